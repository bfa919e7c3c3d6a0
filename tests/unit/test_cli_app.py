"""Unit tests for runme.cli.app – the main Typer application."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Sequence
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from runme.cli.app import app
from runme.sandbox import (
    CommandStatus,
    ExecutionError,
    OutputSink,
    SandboxBackend,
    SandboxError,
    SandboxKind,
    SpawnCommand,
)

runner = CliRunner()

DOC = """\
# Install

<!-- runme:name setup -->
```bash
echo hello
```

## Python

```python
print("not run")
```

<!-- runme:ignore -->
```sh
rm -rf /
```
"""


class _ScriptedBackend(SandboxBackend):
    def __init__(self, exit_code: int = 0, prepare_error: Optional[str] = None) -> None:
        self.exit_code = exit_code
        self.prepare_error = prepare_error
        self.calls: list[list[str]] = []

    @property
    def label(self) -> str:
        return "scripted"

    def build_command(self, argv: Sequence[str]) -> SpawnCommand:
        return SpawnCommand(argv=tuple(argv))

    def prepare(self) -> None:
        if self.prepare_error:
            raise SandboxError(self.prepare_error)

    def run(self, argv: Sequence[str], sink: OutputSink) -> CommandStatus:
        self.calls.append(list(argv))
        if argv[0] == "missing-tool":
            raise ExecutionError(argv[0], "No such file or directory", label=self.label)
        sink.on_stdout(" ".join(argv[1:]))
        return CommandStatus(exit_code=self.exit_code, success=self.exit_code == 0)


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RUNME_SANDBOX", raising=False)


@pytest.fixture()
def doc(tmp_path: Path) -> Path:
    path = tmp_path / "README.md"
    path.write_text(DOC)
    return path


# ---------------------------------------------------------------------------
# --version / --help
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "runme 0.1.0" in result.output

    def test_version_short_flag(self) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "runme" in result.output


class TestHelp:
    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("list", "run", "init"):
            assert command in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    def test_invalid_config_exits_2(self, tmp_path: Path, doc: Path) -> None:
        config = tmp_path / "bad.toml"
        config.write_text("sandbox = [\n")
        result = runner.invoke(app, ["--config", str(config), "list", str(doc)])
        assert result.exit_code == 2
        assert "Invalid TOML" in result.output

    def test_missing_config_exits_2(self, tmp_path: Path, doc: Path) -> None:
        result = runner.invoke(app, ["-c", str(tmp_path / "nope.toml"), "list", str(doc)])
        assert result.exit_code == 2

    def test_sandbox_options_reach_backend(self, doc: Path) -> None:
        backend = _ScriptedBackend()
        with patch("runme.cli.app.create_sandbox", return_value=backend) as factory:
            result = runner.invoke(
                app,
                [
                    "--sandbox",
                    "containerized",
                    "--image",
                    "alpine:3.19",
                    "--container-arg=--cpus=1",
                    "--engine",
                    "podman",
                    "run",
                    str(doc),
                ],
            )
        assert result.exit_code == 0, result.output
        config = factory.call_args[0][0]
        assert config.kind is SandboxKind.CONTAINERIZED
        assert config.image == "alpine:3.19"
        assert config.extra_args == ["--cpus=1"]
        assert config.engine == "podman"
        assert config.workdir == doc.parent

    def test_config_file_selects_sandbox(self, tmp_path: Path, doc: Path) -> None:
        (tmp_path / ".runme.toml").write_text('sandbox = "isolated"\n')
        with patch(
            "runme.cli.app.create_sandbox", return_value=_ScriptedBackend()
        ) as factory:
            runner.invoke(app, ["run", str(doc)])
        assert factory.call_args[0][0].kind is SandboxKind.ISOLATED


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


class TestList:
    def test_lists_blocks(self, doc: Path) -> None:
        result = runner.invoke(app, ["list", str(doc)])
        assert result.exit_code == 0
        assert "Discovered 3 block(s):" in result.output
        assert "block-001" in result.output
        assert "setup" in result.output
        assert "python" in result.output

    def test_default_target(self, doc: Path) -> None:
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "Discovered 3 block(s):" in result.output

    def test_empty_document(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.md"
        path.write_text("# Nothing here\n")
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "Discovered 0 block(s):" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["list", "missing.md"])
        assert result.exit_code == 1
        assert "while reading missing.md" in result.output

    def test_unterminated_fence(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.md"
        path.write_text("```bash\necho never closed\n")
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 1
        assert "while parsing" in result.output
        assert "Markdown Error" in result.output

    def test_duplicate_names_warn(self, tmp_path: Path) -> None:
        path = tmp_path / "dup.md"
        path.write_text(
            "<!-- runme:name build -->\n```\nmake\n```\n"
            "<!-- runme:name build -->\n```\nmake install\n```\n"
        )
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "runme:name 'build'" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    def test_json_report(self, doc: Path) -> None:
        backend = _ScriptedBackend()
        with patch("runme.cli.app.create_sandbox", return_value=backend):
            result = runner.invoke(app, ["run", str(doc), "--format", "json"])
        assert result.exit_code == 0, result.output
        reports = json.loads(result.stdout)
        assert [r["id"] for r in reports] == ["block-001", "block-002", "block-003"]
        assert [r["status"] for r in reports] == ["passed", "skipped", "skipped"]
        assert reports[0]["name"] == "setup"
        assert reports[0]["sandbox"] == "scripted"
        assert reports[0]["stdout"] == "$ echo hello\nhello\n"
        assert reports[1]["skip_reason"] == "Language 'python' unsupported yet; add a plugin"
        assert reports[2]["skip_reason"] == "Marked with runme:ignore"
        assert backend.calls == [["echo", "hello"]]

    def test_human_report(self, doc: Path) -> None:
        with patch("runme.cli.app.create_sandbox", return_value=_ScriptedBackend()):
            result = runner.invoke(app, ["run", str(doc)])
        assert result.exit_code == 0
        assert "[block-001 (setup)] $ echo hello" in result.output
        assert "== block-002 ==" in result.output
        assert "1 passed, 0 failed, 2 skipped" in result.output

    def test_failed_block_exits_3(self, doc: Path) -> None:
        with patch("runme.cli.app.create_sandbox", return_value=_ScriptedBackend(exit_code=1)):
            result = runner.invoke(app, ["run", str(doc), "--format", "json"])
        assert result.exit_code == 3
        reports = json.loads(result.stdout)
        assert reports[0]["status"] == {"status": "failed", "exit_code": 1}

    def test_select_by_name(self, doc: Path) -> None:
        backend = _ScriptedBackend()
        with patch("runme.cli.app.create_sandbox", return_value=backend):
            result = runner.invoke(app, ["run", str(doc), "--block", "setup", "-f", "json"])
        assert result.exit_code == 0
        assert [r["id"] for r in json.loads(result.stdout)] == ["block-001"]

    def test_select_by_id(self, doc: Path) -> None:
        with patch("runme.cli.app.create_sandbox", return_value=_ScriptedBackend()):
            result = runner.invoke(app, ["run", str(doc), "-b", "block-002", "-f", "json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["status"] == "skipped"

    def test_unknown_block(self, doc: Path) -> None:
        result = runner.invoke(app, ["run", "README.md", "--block", "deploy"])
        assert result.exit_code == 1
        assert "unknown block id or name 'deploy'" in result.output

    def test_sandbox_prepare_failure(self, doc: Path) -> None:
        backend = _ScriptedBackend(prepare_error="engine missing")
        with patch("runme.cli.app.create_sandbox", return_value=backend):
            result = runner.invoke(app, ["run", str(doc)])
        assert result.exit_code == 1
        assert "while preparing scripted sandbox" in result.output
        assert "Sandbox Error" in result.output
        assert backend.calls == []

    def test_spawn_failure_is_fatal(self, tmp_path: Path) -> None:
        path = tmp_path / "tools.md"
        path.write_text("```\necho ok\n```\n```\nmissing-tool --flag\n```\n```\necho never\n```\n")
        backend = _ScriptedBackend()
        with patch("runme.cli.app.create_sandbox", return_value=backend):
            result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1
        assert "while running block-002" in result.output
        assert "Run Aborted" in result.output
        assert ["echo", "never"] not in backend.calls

    def test_missing_default_target(self) -> None:
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 1
        assert "while reading README.md" in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInit:
    def test_writes_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / ".runme.toml").read_text().startswith("# runme configuration")

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        (tmp_path / ".runme.toml").write_text("sandbox = \"local\"\n")
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_defaults_to_cwd(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / ".runme.toml").exists()
