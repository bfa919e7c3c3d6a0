"""runme – execute the code blocks of a markdown document and report on them.

Subpackages:

- :mod:`runme.markdown` – Block extraction from markdown documents
- :mod:`runme.sandbox` – Execution backends and output streaming
- :mod:`runme.runner` – Block execution engine and report models
- :mod:`runme.cli` – Typer command-line interface
"""

__version__ = "0.1.0"
