"""Report models produced by the execution engine.

Models:
    - StatusKind: passed / failed / skipped
    - BlockStatus: Terminal status of a block, with the exit code on failure
    - BlockReport: Everything a renderer needs about one executed block

Serialized report shape::

    {
      "id": "block-001", "name": null, "headings": ["Install"],
      "language": "bash", "sandbox": "local", "duration_ms": 12,
      "status": "passed" | "skipped" | {"status": "failed", "exit_code": 1},
      "skip_reason": null, "stdout": "$ echo hi\\nhi\\n", "stderr": null
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from runme.markdown.models import CodeBlock


class StatusKind(str, Enum):
    """Terminal outcome of a block."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class BlockStatus(BaseModel):
    """Tagged block status. Only ``failed`` carries an exit code."""

    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    exit_code: Optional[int] = None

    @model_validator(mode="after")
    def exit_code_only_when_failed(self) -> BlockStatus:
        if self.kind is not StatusKind.FAILED and self.exit_code is not None:
            raise ValueError(f"{self.kind.value} status cannot carry an exit code")
        return self

    @classmethod
    def passed(cls) -> BlockStatus:
        return cls(kind=StatusKind.PASSED)

    @classmethod
    def failed(cls, exit_code: Optional[int]) -> BlockStatus:
        return cls(kind=StatusKind.FAILED, exit_code=exit_code)

    @classmethod
    def skipped(cls) -> BlockStatus:
        return cls(kind=StatusKind.SKIPPED)

    @property
    def is_passed(self) -> bool:
        return self.kind is StatusKind.PASSED

    @property
    def is_failed(self) -> bool:
        return self.kind is StatusKind.FAILED

    @property
    def is_skipped(self) -> bool:
        return self.kind is StatusKind.SKIPPED

    def to_json_value(self) -> Union[str, dict[str, Any]]:
        if self.kind is StatusKind.FAILED:
            return {"status": self.kind.value, "exit_code": self.exit_code}
        return self.kind.value

    def __str__(self) -> str:
        if self.kind is StatusKind.FAILED:
            code = "signal" if self.exit_code is None else self.exit_code
            return f"failed (exit code {code})"
        return self.kind.value


class BlockReport(BaseModel):
    """Outcome of running one code block.

    Skipped reports never carry a sandbox label or transcripts, and always
    carry a skip reason. Other reports never carry a skip reason.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    headings: tuple[str, ...] = ()
    language: Optional[str] = None
    sandbox: Optional[str] = Field(default=None, description="Label of the backend used")
    duration_ms: int = Field(default=0, ge=0)
    status: BlockStatus
    skip_reason: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None

    @model_validator(mode="after")
    def check_status_consistency(self) -> BlockReport:
        if self.status.is_skipped:
            if self.skip_reason is None:
                raise ValueError("skipped report requires a skip_reason")
            if self.sandbox is not None or self.stdout is not None or self.stderr is not None:
                raise ValueError("skipped report cannot carry sandbox or transcripts")
        elif self.skip_reason is not None:
            raise ValueError("only skipped reports carry a skip_reason")
        return self

    @field_serializer("status")
    def serialize_status(self, status: BlockStatus) -> Union[str, dict[str, Any]]:
        return status.to_json_value()

    @classmethod
    def from_skip(cls, block: CodeBlock, reason: str) -> BlockReport:
        """Build a skipped report for *block*."""
        return cls(
            id=block.id,
            name=block.name,
            headings=block.headings,
            language=block.language,
            status=BlockStatus.skipped(),
            skip_reason=reason,
        )

    @property
    def display_id(self) -> str:
        if self.name:
            return f"{self.id} ({self.name})"
        return self.id

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-compatible report mapping."""
        return self.model_dump(mode="json")
