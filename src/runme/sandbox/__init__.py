"""runme sandbox – execution backends with concurrent output streaming.

- :class:`SandboxBackend` – Common backend interface
- :class:`LocalSandbox` / :class:`ContainerSandbox` / :class:`IsolatedSandbox`
- :func:`create_sandbox` – Build a backend from :class:`SandboxConfig`
- :func:`spawn_with_streaming` – Run one command, streaming stdout/stderr
- :class:`CommandStatus` – Exit status and duration of a command
"""

from runme.sandbox.backends import (
    DEFAULT_IMAGE,
    IMAGE_ENV_VAR,
    ContainerSandbox,
    IsolatedSandbox,
    LocalSandbox,
    SandboxBackend,
    create_sandbox,
)
from runme.sandbox.exceptions import ExecutionError, SandboxError
from runme.sandbox.models import CommandStatus, SandboxConfig, SandboxKind, SpawnCommand
from runme.sandbox.streaming import OutputSink, StreamKind, spawn_with_streaming

__all__ = [
    "DEFAULT_IMAGE",
    "IMAGE_ENV_VAR",
    "CommandStatus",
    "ContainerSandbox",
    "ExecutionError",
    "IsolatedSandbox",
    "LocalSandbox",
    "OutputSink",
    "SandboxBackend",
    "SandboxConfig",
    "SandboxError",
    "SandboxKind",
    "SpawnCommand",
    "StreamKind",
    "create_sandbox",
    "spawn_with_streaming",
]
