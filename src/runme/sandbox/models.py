"""Data models for the sandbox module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class SandboxKind(str, Enum):
    """Execution backends selectable from configuration."""

    LOCAL = "local"
    CONTAINERIZED = "containerized"
    ISOLATED = "isolated"


@dataclass(frozen=True)
class SpawnCommand:
    """A concrete process invocation built by a backend.

    Attributes:
        argv: Program and arguments, non-empty.
        cwd: Working directory for the child, or ``None`` to inherit.
    """

    argv: tuple[str, ...]
    cwd: Optional[Path] = None

    @property
    def binary(self) -> str:
        return self.argv[0] if self.argv else ""


@dataclass(frozen=True)
class CommandStatus:
    """Status of a finished command.

    Attributes:
        exit_code: Process exit code, or ``None`` when the process was
            terminated by a signal.
        success: True when the process exited with code 0.
        duration: Wall-clock seconds from spawn to reaping the process.
    """

    exit_code: Optional[int]
    success: bool
    duration: float = 0.0

    @classmethod
    def from_returncode(cls, returncode: int, duration: float) -> CommandStatus:
        """Build a status from a :class:`subprocess.Popen` return code."""
        exit_code = returncode if returncode >= 0 else None
        return cls(exit_code=exit_code, success=returncode == 0, duration=duration)


class SandboxConfig(BaseModel):
    """Configuration for constructing a sandbox backend.

    Attributes:
        kind: Which backend to build.
        workdir: Directory commands run in (mounted at ``/workspace`` for
            containers).
        image: Explicit container image. When ``None`` the
            ``RUNME_DOCKER_IMAGE`` environment variable is consulted, then
            the default image.
        extra_args: Extra flags forwarded to ``<engine> run``.
        engine: Container engine executable.
    """

    kind: SandboxKind = Field(default=SandboxKind.LOCAL, description="Backend to use")
    workdir: Path = Field(default_factory=lambda: Path("."), description="Command working directory")
    image: Optional[str] = Field(default=None, description="Container image override")
    extra_args: list[str] = Field(
        default_factory=list,
        description="Extra flags forwarded to the container engine",
    )
    engine: str = Field(default="docker", min_length=1, description="Container engine executable")
