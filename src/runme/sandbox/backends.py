"""Sandbox backends – where a block's commands actually run.

Backends only decide *how* an argument vector becomes a concrete process
invocation (:meth:`SandboxBackend.build_command`). Spawning and streaming
always go through :func:`~runme.sandbox.streaming.spawn_with_streaming`.

- :class:`LocalSandbox` – run directly on the host in the working directory
- :class:`ContainerSandbox` – run each command in a disposable container
- :class:`IsolatedSandbox` – placeholder that falls back to local execution
  and says so in its label
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

import docker
from docker.errors import DockerException, ImageNotFound

from runme.sandbox.exceptions import ExecutionError, SandboxError
from runme.sandbox.models import CommandStatus, SandboxConfig, SandboxKind, SpawnCommand
from runme.sandbox.streaming import OutputSink, spawn_with_streaming

logger = logging.getLogger(__name__)

IMAGE_ENV_VAR = "RUNME_DOCKER_IMAGE"
DEFAULT_IMAGE = "ubuntu:22.04"
CONTAINER_WORKDIR = "/workspace"


class SandboxBackend(ABC):
    """Abstract base class for an execution backend.

    Subclasses implement :meth:`build_command` and :attr:`label`. The
    shared :meth:`run` spawns the built command and streams its output.
    """

    @property
    @abstractmethod
    def label(self) -> str:
        """Short label surfaced in reports, e.g. ``local``."""

    @abstractmethod
    def build_command(self, argv: Sequence[str]) -> SpawnCommand:
        """Turn a block command's argument vector into a spawnable command."""

    def prepare(self) -> None:
        """Hook run once before the first block executes. No-op by default."""

    def run(self, argv: Sequence[str], sink: OutputSink) -> CommandStatus:
        """Run *argv* and stream its output to *sink*.

        Raises:
            ValueError: If *argv* is empty.
            ExecutionError: If the process cannot be spawned.
        """
        if not argv:
            raise ValueError("sandbox run requires at least one argument")
        command = self.build_command(argv)
        try:
            return spawn_with_streaming(command, sink)
        except ExecutionError as exc:
            raise exc.with_label(self.label) from exc


class LocalSandbox(SandboxBackend):
    """Run commands directly on the host.

    Args:
        workdir: Directory every command runs in.
    """

    def __init__(self, workdir: Path | str = ".") -> None:
        self.workdir = Path(workdir)

    @property
    def label(self) -> str:
        return "local"

    def build_command(self, argv: Sequence[str]) -> SpawnCommand:
        return SpawnCommand(argv=tuple(argv), cwd=self.workdir)


class ContainerSandbox(SandboxBackend):
    """Run each command inside a disposable, network-less container.

    Each command becomes::

        <engine> run --rm --network=none -v <workdir>:/workspace -w /workspace \\
            [extra args] <image> <argv...>

    Args:
        workdir: Host directory mounted at ``/workspace``.
        image: Explicit image. Falls back to ``$RUNME_DOCKER_IMAGE``, then
            :data:`DEFAULT_IMAGE`.
        extra_args: Extra flags inserted before the image name.
        engine: Container engine executable (``docker``, ``podman``, ...).
    """

    def __init__(
        self,
        workdir: Path | str = ".",
        image: Optional[str] = None,
        extra_args: Sequence[str] = (),
        engine: str = "docker",
    ) -> None:
        workdir = Path(workdir)
        try:
            self.mount_dir = workdir.resolve(strict=True)
        except OSError:
            self.mount_dir = workdir.absolute()
        self.image = image or os.environ.get(IMAGE_ENV_VAR) or DEFAULT_IMAGE
        self.extra_args = list(extra_args)
        self.engine = engine

    @property
    def label(self) -> str:
        return "containerized"

    def build_command(self, argv: Sequence[str]) -> SpawnCommand:
        wrapped = [
            self.engine,
            "run",
            "--rm",
            "--network=none",
            "-v",
            f"{self.mount_dir}:{CONTAINER_WORKDIR}",
            "-w",
            CONTAINER_WORKDIR,
            *self.extra_args,
            self.image,
            *argv,
        ]
        return SpawnCommand(argv=tuple(wrapped))

    def prepare(self) -> None:
        """Check the engine is reachable and the image is available locally.

        For the Docker engine the daemon is pinged and a missing image is
        pulled up front, so pulls are not billed to the first command. Other
        engines only need their executable on ``PATH``.

        Raises:
            SandboxError: If the engine is missing or unreachable, or the
                image cannot be pulled.
        """
        if shutil.which(self.engine) is None:
            raise SandboxError(f"Container engine {self.engine!r} not found on PATH")
        if Path(self.engine).name != "docker":
            logger.debug("Skipping image preflight for engine %s", self.engine)
            return

        try:
            client = docker.from_env()
        except DockerException as exc:
            raise SandboxError(f"Failed to connect to Docker daemon: {exc}") from exc

        try:
            client.ping()
            self._ensure_image(client)
        except DockerException as exc:
            raise SandboxError(f"Failed to connect to Docker daemon: {exc}") from exc
        finally:
            client.close()

    def _ensure_image(self, client: docker.DockerClient) -> None:
        try:
            client.images.get(self.image)
            logger.debug("Image %s already present", self.image)
        except ImageNotFound:
            logger.info("Pulling image %s", self.image)
            try:
                client.images.pull(self.image)
            except DockerException as exc:
                raise SandboxError(f"Failed to pull image {self.image}: {exc}") from exc
        except DockerException as exc:
            raise SandboxError(f"Failed to inspect image {self.image}: {exc}") from exc


class IsolatedSandbox(SandboxBackend):
    """Placeholder for an isolated runtime.

    Commands currently run through a :class:`LocalSandbox`. The label makes
    the fallback visible so reports never claim isolation that did not
    happen.
    """

    def __init__(self, workdir: Path | str = ".") -> None:
        self._fallback = LocalSandbox(workdir)

    @property
    def label(self) -> str:
        return "isolated(local-fallback)"

    def build_command(self, argv: Sequence[str]) -> SpawnCommand:
        return self._fallback.build_command(argv)

    def prepare(self) -> None:
        logger.warning(
            "Isolated runtime is not available yet; commands run locally "
            "and are reported as %s",
            self.label,
        )


def create_sandbox(config: SandboxConfig) -> SandboxBackend:
    """Build the backend selected by *config*."""
    logger.debug("Creating %s sandbox for %s", config.kind.value, config.workdir)
    if config.kind is SandboxKind.CONTAINERIZED:
        return ContainerSandbox(
            workdir=config.workdir,
            image=config.image,
            extra_args=config.extra_args,
            engine=config.engine,
        )
    if config.kind is SandboxKind.ISOLATED:
        return IsolatedSandbox(config.workdir)
    return LocalSandbox(config.workdir)
