"""Custom exceptions for the sandbox module."""

from __future__ import annotations


class SandboxError(Exception):
    """Base exception for all sandbox errors.

    Raised directly when a backend cannot be prepared, for example when
    the container engine is unreachable or an image cannot be pulled.
    """


class ExecutionError(SandboxError):
    """Raised when a command's process cannot be spawned or streamed.

    A non-zero exit status is never an ``ExecutionError``; it is reported
    through :class:`~runme.sandbox.models.CommandStatus`.

    Attributes:
        binary: Name of the program that was being started.
        label: Label of the backend that attempted the spawn.
        reason: Underlying cause.
    """

    def __init__(self, binary: str, reason: str, label: str = "") -> None:
        self.binary = binary
        self.reason = reason
        self.label = label
        where = f" in {label} sandbox" if label else ""
        super().__init__(f"Failed to run {binary!r}{where}: {reason}")

    def with_label(self, label: str) -> ExecutionError:
        """Return a copy of this error attributed to backend *label*."""
        return ExecutionError(self.binary, self.reason, label=label)
