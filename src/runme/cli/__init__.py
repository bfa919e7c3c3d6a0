"""runme CLI – command-line interface built with Typer and Rich.

- :data:`app` – The main Typer application
- :class:`RunmeConfig` – Configuration model
- :func:`setup_logging` – Logging infrastructure
- :func:`error_handler` / :func:`error_context` – Error panels and exit codes
"""

from runme.cli.app import app
from runme.cli.config import RunmeConfig, load_config
from runme.cli.errors import CLIError, ConfigError, error_context, error_handler
from runme.cli.logging_setup import setup_logging

__all__ = [
    "CLIError",
    "ConfigError",
    "RunmeConfig",
    "app",
    "error_context",
    "error_handler",
    "load_config",
    "setup_logging",
]
