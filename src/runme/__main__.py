"""Allow ``python -m runme``."""

from runme.cli.app import app

app()
