import asyncio
import os
import stat
import sys
from pathlib import Path
from typing import Optional

import pytest

from session_log import SessionLog
from tools.base import ToolRegistry
from tools.builtin import register_builtin_tools
from tools.cli_runner import CliRunner, FailureReason, SubprocessOutcome
from tools.config import ReviewSettings


ALLOWED = frozenset({".js", ".py", ".ts"})


class RecordingRunner(CliRunner):
    """CliRunner double that records calls instead of spawning processes."""

    def __init__(
        self,
        stdout: str = "OK",
        stderr: Optional[str] = None,
        failure: Optional[FailureReason] = None,
        exit_code: int = 0,
        message: str = "",
        delay: float = 0.0,
        probe_ok: bool = True,
    ):
        self.calls = []
        self.delay = delay
        self.probe_ok = probe_ok
        if failure is None:
            self.outcome = SubprocessOutcome(success=True, stdout=stdout, stderr=stderr, exit_code=0)
        else:
            self.outcome = SubprocessOutcome(
                success=False, stdout=stdout, stderr=stderr, failure=failure,
                exit_code=exit_code, message=message,
            )

    async def run(self, executable, argv, cwd=None, env=None, timeout_sec=60.0, max_output_bytes=None):
        self.calls.append({
            "executable": executable,
            "argv": list(argv),
            "cwd": cwd,
            "env": env,
            "timeout_sec": timeout_sec,
            "max_output_bytes": max_output_bytes,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if argv == ["--version"]:
            if self.probe_ok:
                return SubprocessOutcome(success=True, stdout="1.0.0", exit_code=0)
            return SubprocessOutcome(
                success=False, failure=FailureReason.SPAWN_ERROR,
                message=f"Failed to start {executable}: not found",
            )
        return self.outcome

    @property
    def tool_calls(self):
        return [call for call in self.calls if call["argv"] != ["--version"]]


@pytest.fixture(autouse=True)
def builtin_tools():
    ToolRegistry.clear()
    register_builtin_tools()
    yield
    ToolRegistry.clear()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def make_cli(tmp_path: Path):
    """Write an executable stand-in for the analysis CLI."""

    def _make(stdout: str = "OK", stderr: str = "", exit_code: int = 0, name: str = "fake-gemini") -> str:
        script = tmp_path / name
        script.write_text(
            f"#!{sys.executable}\n"
            "import sys\n"
            "if sys.argv[1:] == ['--version']:\n"
            "    print('0.1.0')\n"
            "    sys.exit(0)\n"
            f"sys.stdout.write({stdout!r})\n"
            f"sys.stderr.write({stderr!r})\n"
            f"sys.exit({exit_code})\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make


@pytest.fixture
def make_settings(project_root: Path):
    def _make(**overrides) -> ReviewSettings:
        values = {
            "root_dir": str(project_root),
            "allowed_extensions": ALLOWED,
            "max_file_size": 1024 * 1024,
            "executable": "gemini",
            "timeout_sec": 10.0,
            "operation_timeouts": {"validate_architecture": 90.0},
        }
        values.update(overrides)
        return ReviewSettings(**values)

    return _make


@pytest.fixture
def session(project_root: Path) -> SessionLog:
    return SessionLog(str(project_root))


posix_only = pytest.mark.skipif(os.name == "nt", reason="uses a shebang script as the CLI stand-in")
