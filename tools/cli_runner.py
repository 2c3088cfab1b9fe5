"""
External CLI execution.

CliRunner spawns the analysis tool with an argument vector (never a shell
string), a minimal environment, a deadline and an stdout ceiling, and
resolves every invocation to exactly one SubprocessOutcome.

CliAvailability probes `<executable> --version` once per process and shares
an in-flight probe between concurrent callers.
"""

import asyncio
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import ErrorCategory, ReviewError


READ_CHUNK_SIZE = 64 * 1024
PROBE_MAX_OUTPUT = 64 * 1024


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"
    SPAWN_ERROR = "spawn_error"
    OUTPUT_TOO_LARGE = "output_too_large"


_FAILURE_CATEGORIES = {
    FailureReason.TIMEOUT: ErrorCategory.SUBPROCESS_TIMEOUT,
    FailureReason.NON_ZERO_EXIT: ErrorCategory.SUBPROCESS_NON_ZERO_EXIT,
    FailureReason.SPAWN_ERROR: ErrorCategory.SUBPROCESS_SPAWN_ERROR,
    FailureReason.OUTPUT_TOO_LARGE: ErrorCategory.OUTPUT_TOO_LARGE,
}


@dataclass(frozen=True)
class SubprocessOutcome:
    """
    Terminal result of one CLI invocation.

    On success `stdout` is the trimmed output and `stderr` an optional
    advisory warning. On failure `failure` names the reason and `message`
    describes it.
    """
    success: bool
    stdout: str = ""
    stderr: Optional[str] = None
    failure: Optional[FailureReason] = None
    exit_code: Optional[int] = None
    message: str = ""

    def raise_for_failure(self) -> "SubprocessOutcome":
        if self.success:
            return self
        category = _FAILURE_CATEGORIES.get(self.failure, ErrorCategory.SUBPROCESS_SPAWN_ERROR)
        raise ReviewError(
            self.message,
            category,
            {"failure": self.failure.value if self.failure else None, "exit_code": self.exit_code},
        )


def build_cli_env(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Only the variables the CLI needs; the parent environment is not inherited."""
    env = {
        "PATH": os.environ.get("PATH", ""),
        "HOME": os.environ.get("HOME", ""),
        "TERM": "dumb",
    }
    if os.name == "nt" and os.environ.get("SYSTEMROOT"):
        env["SYSTEMROOT"] = os.environ["SYSTEMROOT"]
    if extra:
        env.update(extra)
    return env


def _decode_output_bytes(data: bytes) -> str:
    if not data:
        return ""
    if data.startswith(b"\xef\xbb\xbf"):
        return data.decode("utf-8-sig", errors="replace")
    if data.startswith(b"\xff\xfe"):
        return data[2:].decode("utf-16le", errors="replace")
    if data.startswith(b"\xfe\xff"):
        return data[2:].decode("utf-16be", errors="replace")
    return data.decode("utf-8", errors="replace")


def _log(message: str) -> None:
    print(f"[CLI Runner] {message}", file=sys.stderr)


class CliRunner:
    async def run(
        self,
        executable: str,
        argv: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout_sec: float = 60.0,
        max_output_bytes: Optional[int] = None,
    ) -> SubprocessOutcome:
        """
        Run `executable` with `argv` and settle exactly once.

        Args:
            executable: Program name or path, resolved through env PATH
            argv: Arguments passed verbatim, no shell interpretation
            cwd: Working directory for the child
            env: Child environment (defaults to build_cli_env())
            timeout_sec: Deadline after which the child is killed
            max_output_bytes: stdout ceiling; exceeding it kills the child

        Returns:
            SubprocessOutcome (never raises for process level failures)
        """
        display_name = os.path.basename(executable)
        timeout_ms = int(timeout_sec * 1000)
        loop = asyncio.get_running_loop()
        settled: asyncio.Future = loop.create_future()

        def settle(outcome: SubprocessOutcome) -> bool:
            if settled.done():
                return False
            settled.set_result(outcome)
            return True

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *argv,
                cwd=cwd,
                env=env if env is not None else build_cli_env(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            _log(f"spawn failed for {display_name}: {exc}")
            return SubprocessOutcome(
                success=False,
                failure=FailureReason.SPAWN_ERROR,
                message=f"Failed to start {display_name}: {exc}",
            )

        stdout_chunks: List[bytes] = []
        stderr_chunks: List[bytes] = []
        stdout_size = 0

        def kill() -> None:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass

        def on_timeout() -> None:
            if settle(SubprocessOutcome(
                success=False,
                failure=FailureReason.TIMEOUT,
                message=f"Command timeout after {timeout_ms}ms",
            )):
                _log(f"{display_name} timed out after {timeout_ms}ms, killing pid={proc.pid}")
                kill()

        async def read_stdout() -> None:
            nonlocal stdout_size
            while True:
                chunk = await proc.stdout.read(READ_CHUNK_SIZE)
                if not chunk or settled.done():
                    return
                stdout_chunks.append(chunk)
                stdout_size += len(chunk)
                if max_output_bytes and stdout_size > max_output_bytes:
                    if settle(SubprocessOutcome(
                        success=False,
                        failure=FailureReason.OUTPUT_TOO_LARGE,
                        message="Output too large, terminating process",
                    )):
                        _log(f"{display_name} exceeded {max_output_bytes} bytes of output, killing pid={proc.pid}")
                        kill()
                    return

        async def read_stderr() -> None:
            while True:
                chunk = await proc.stderr.read(READ_CHUNK_SIZE)
                if not chunk or settled.done():
                    return
                stderr_chunks.append(chunk)

        async def wait_for_exit() -> None:
            await asyncio.gather(read_stdout(), read_stderr())
            code = await proc.wait()
            stdout = _decode_output_bytes(b"".join(stdout_chunks)).strip()
            stderr = _decode_output_bytes(b"".join(stderr_chunks)).strip()
            if code == 0:
                settle(SubprocessOutcome(success=True, stdout=stdout, stderr=stderr or None, exit_code=0))
            else:
                settle(SubprocessOutcome(
                    success=False,
                    stdout=stdout,
                    stderr=stderr or None,
                    failure=FailureReason.NON_ZERO_EXIT,
                    exit_code=code,
                    message=f"{display_name} failed with exit code {code}: {stderr or 'No error message'}",
                ))

        timer = loop.call_later(timeout_sec, on_timeout)
        watcher = asyncio.ensure_future(wait_for_exit())
        try:
            return await settled
        finally:
            timer.cancel()
            kill()
            if not watcher.done():
                watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)


class CliAvailability:
    """
    Cached availability probe for the analysis CLI.

    The first successful probe is remembered for the process lifetime.
    Concurrent callers await the same in-flight probe; a failed probe is
    not cached so the next call tries again.
    """

    def __init__(
        self,
        runner: CliRunner,
        executable: str,
        timeout_sec: float = 5.0,
        env: Optional[Dict[str, str]] = None,
    ):
        self._runner = runner
        self._executable = executable
        self._timeout_sec = timeout_sec
        self._env = env
        self._validated = False
        self._pending: Optional[asyncio.Future] = None

    @property
    def validated(self) -> bool:
        return self._validated

    async def validate(self) -> bool:
        if self._validated:
            return True
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._probe())
        return await asyncio.shield(self._pending)

    async def _probe(self) -> bool:
        name = os.path.basename(self._executable)
        try:
            outcome = await self._runner.run(
                self._executable,
                ["--version"],
                env=self._env,
                timeout_sec=self._timeout_sec,
                max_output_bytes=PROBE_MAX_OUTPUT,
            )
            if not outcome.success:
                if outcome.failure == FailureReason.SPAWN_ERROR:
                    message = f"{name} CLI not found: {outcome.message}"
                elif outcome.failure == FailureReason.TIMEOUT:
                    message = f"{name} CLI validation timeout"
                else:
                    message = f"{name} CLI not available or not working"
                raise ReviewError(
                    message,
                    ErrorCategory.TOOL_UNAVAILABLE,
                    {"executable": self._executable, "failure": outcome.failure.value if outcome.failure else None},
                )
            self._validated = True
            return True
        finally:
            self._pending = None
