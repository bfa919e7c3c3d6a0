"""runme CLI configuration management.

Loads configuration from a TOML file with environment variable overrides
(``RUNME_`` prefix). Command-line options are applied on top by the CLI.

Precedence, lowest first: defaults, ``.runme.toml``, ``RUNME_*`` variables,
command-line options.
"""

from __future__ import annotations

import os
import shlex
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from runme.cli.errors import ConfigError
from runme.sandbox.models import SandboxConfig, SandboxKind

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILE = ".runme.toml"
ENV_PREFIX = "RUNME_"

# Fields given as a shell-quoted string in the environment
_LIST_FIELDS = frozenset({"container_args"})

# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class RunmeConfig(BaseModel):
    """Application configuration with sensible defaults.

    All fields can be overridden via environment variables with the
    ``RUNME_`` prefix, e.g. ``RUNME_SANDBOX=containerized`` or
    ``RUNME_CONTAINER_ARGS="--cpus=1 --memory=512m"``.
    """

    sandbox: SandboxKind = SandboxKind.LOCAL
    container_image: Optional[str] = None
    container_args: list[str] = Field(default_factory=list)
    container_engine: str = "docker"
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    model_config = {"extra": "ignore"}

    def to_sandbox_config(self, workdir: Path) -> SandboxConfig:
        """Build the sandbox configuration for commands run in *workdir*."""
        return SandboxConfig(
            kind=self.sandbox,
            workdir=workdir,
            image=self.container_image,
            extra_args=list(self.container_args),
            engine=self.container_engine,
        )


# ---------------------------------------------------------------------------
# Loader helpers
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: dict) -> dict:
    """Apply RUNME_ environment variable overrides to *data*."""
    field_names = set(RunmeConfig.model_fields.keys())
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            field = key[len(ENV_PREFIX):].lower()
            if field in field_names:
                data[field] = shlex.split(value) if field in _LIST_FIELDS else value
    return data


def load_config(config_path: Path | None = None, project_dir: Path | None = None) -> RunmeConfig:
    """Load configuration from a TOML file with env-var overrides.

    Parameters
    ----------
    config_path:
        Explicit path to a TOML file. It must exist. When *None*, looks
        for ``<project_dir>/.runme.toml`` and uses defaults if absent.
    project_dir:
        Directory searched for the default file. Defaults to
        :func:`Path.cwd`.

    Returns
    -------
    RunmeConfig
        Parsed and validated configuration.

    Raises
    ------
    ConfigError
        If the file is missing, is not valid TOML, or holds invalid values.
    """
    project = project_dir or Path.cwd()
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    path = config_path or (project / DEFAULT_CONFIG_FILE)

    data: dict = {}
    if path.exists():
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    # Flatten nested TOML sections if present
    flat: dict = {}
    for k, v in data.items():
        if isinstance(v, dict):
            flat.update(v)
        else:
            flat[k] = v

    flat = _apply_env_overrides(flat)
    try:
        return RunmeConfig(**flat)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def default_config_toml() -> str:
    """Return default configuration as a TOML string."""
    return """\
# runme configuration

[sandbox]
sandbox = "local"
container_engine = "docker"
# container_image = "ubuntu:22.04"
container_args = []

[logging]
log_level = "INFO"
"""
