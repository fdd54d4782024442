"""
Persistent shell session.

One long-lived shell process per session keeps the working directory and
shell variables across commands, like a real terminal. Completion of each
command is detected with a marker protocol: after the command, the session
echoes a fresh marker on stdout (followed by the exit status) and on
stderr, then reads both pipes until the markers show up.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import secrets
import shutil
import signal
import time
from enum import Enum
from pathlib import Path

from prodshell._types import ExecutionResult
from prodshell.errors import SessionClosedError, SpawnError
from prodshell.sandbox._base import Sandbox

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096
_REAP_TIMEOUT = 5.0

# Removed from the inherited environment so prompts never reach the pipes.
_PROMPT_VARIABLES = ("PS1", "PS2", "PS3", "PS4", "PROMPT_COMMAND", "ENV", "BASH_ENV")


class SessionState(Enum):
    """Lifecycle of a session's shell process."""

    NOT_STARTED = "not_started"
    IDLE = "idle"
    AWAITING_MARKER = "awaiting_marker"
    DEAD = "dead"  # Respawned on the next execute
    CLOSED = "closed"


def new_marker() -> str:
    """Return a marker token that will not occur in real output."""
    return f"__PRODSHELL_{time.time_ns()}_{secrets.token_hex(16)}__"


def frame_command(command: str, marker: str) -> bytes:
    """Encode ``command`` followed by the stdout and stderr marker lines."""
    return (f'{command}\necho "{marker} $?"\necho "{marker}" >&2\n').encode("utf-8")


def default_shell() -> str:
    if shutil.which("bash"):
        return "bash"
    return "sh"


def shell_environment(env: dict[str, str] | None = None) -> dict[str, str]:
    """Copy ``env`` (default: the host environment) with prompts neutralised."""
    result = dict(os.environ if env is None else env)
    for name in _PROMPT_VARIABLES:
        result.pop(name, None)
    result["PS1"] = ""
    result["PS2"] = ""
    return result


def _shell_argv(executable: str) -> list[str]:
    if Path(executable).name == "bash":
        return [executable, "--noprofile", "--norc"]
    return [executable]


class _PipeReader:
    """Reads a pipe up to a separator, keeping any bytes that arrive past it."""

    def __init__(self, stream: asyncio.StreamReader) -> None:
        self._stream = stream
        self._buffer = bytearray()
        self.bytes_read = 0

    async def read_through(self, separator: bytes) -> bytes:
        """
        Return everything before ``separator`` and consume the separator.

        Raises:
            asyncio.IncompleteReadError: If the pipe closes first.
        """
        start = 0
        while True:
            index = self._buffer.find(separator, start)
            if index != -1:
                data = bytes(self._buffer[:index])
                del self._buffer[: index + len(separator)]
                return data
            start = max(0, len(self._buffer) - len(separator) + 1)
            chunk = await self._stream.read(_CHUNK_SIZE)
            if not chunk:
                raise asyncio.IncompleteReadError(bytes(self._buffer), None)
            self.bytes_read += len(chunk)
            self._buffer.extend(chunk)


class PersistentShell(Sandbox):
    """
    Long-lived shell process pinned to a sandbox directory.

    Commands run strictly one at a time: a second ``execute`` issued while
    one is outstanding waits for it. If the shell dies between commands it
    is respawned on the next call. ``close`` kills the process group and
    any waiting or in-flight call returns a failure result.

    Example:
        >>> async with PersistentShell("./sandbox") as shell:
        ...     await shell.execute("X=1")
        ...     result = await shell.execute("echo $X")
        >>> print(result.output)
        1
    """

    def __init__(
        self,
        root: Path | str,
        *,
        executable: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float = 30.0,
        max_output_bytes: int = 30_000,
    ) -> None:
        """
        Initialize a session. The process starts on ``start()`` or first use.

        Args:
            root: Sandbox directory the shell's working directory is pinned to.
            executable: Shell to run. Defaults to bash, falling back to sh.
            env: Base environment. Defaults to the host environment.
            timeout: Default seconds to wait for a command's marker.
            max_output_bytes: Maximum characters per stream before truncation.
        """
        self._root = Path(root).resolve()
        self._executable = executable or default_shell()
        self._env = shell_environment(env)
        self._timeout = timeout
        self._max_output_bytes = max_output_bytes

        self._process: asyncio.subprocess.Process | None = None
        self._stdout: _PipeReader | None = None
        self._stderr: _PipeReader | None = None
        self._state = SessionState.NOT_STARTED
        self._lock = asyncio.Lock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosedError("Session has been closed")
        if not self.is_alive:
            await self._spawn()

    async def _spawn(self) -> None:
        argv = _shell_argv(self._executable)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self._root,
                env=self._env,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            self._state = SessionState.DEAD
            raise SpawnError(f"Failed to start shell '{self._executable}' in {self._root}: {e}") from e

        assert proc.stdout is not None and proc.stderr is not None
        self._process = proc
        self._stdout = _PipeReader(proc.stdout)
        self._stderr = _PipeReader(proc.stderr)
        self._state = SessionState.IDLE
        logger.info(f"Started shell {proc.pid} in {self._root}")

    async def execute(self, command: str, *, timeout: float | None = None) -> ExecutionResult:
        """
        Run a command in the persistent shell.

        Args:
            command: The command to run. Multi-line commands are allowed.
            timeout: Seconds to wait for completion. Defaults to the session timeout.

        Returns:
            ExecutionResult. On timeout the process is killed and respawned
            on the next call. If the shell turns out to have been killed
            before the command produced anything, it is respawned and the
            command is sent once more.
        """
        timeout_val = self._timeout if timeout is None else timeout

        async with self._lock:
            if self._state is SessionState.CLOSED:
                return ExecutionResult.failure("Session is closed")

            marker = new_marker()
            payload = frame_command(command, marker)
            for attempt in range(2):
                try:
                    await self._ensure_alive()
                    await self._send(payload)
                except SpawnError as e:
                    return ExecutionResult.failure(str(e))
                except (BrokenPipeError, ConnectionResetError) as e:
                    # Died after the liveness check; nothing was run.
                    logger.warning(f"Shell {self.pid} input closed, respawning: {e}")
                    await self._terminate()
                    if attempt:
                        return ExecutionResult.failure(f"Shell input closed: {e}")
                    continue

                result = await self._await_marker(marker, timeout_val, retry=attempt == 0)
                if result is not None:
                    return result
            return ExecutionResult.failure("Shell died before the command could run")

    async def _await_marker(
        self, marker: str, timeout: float, *, retry: bool
    ) -> ExecutionResult | None:
        """Collect the command's output; None means respawn and resend."""
        proc = self._process
        assert self._stdout is not None and self._stderr is not None
        readers = (self._stdout, self._stderr)
        seen = tuple(r.bytes_read for r in readers)

        self._state = SessionState.AWAITING_MARKER
        try:
            stdout, status, stderr = await asyncio.wait_for(
                self._collect(marker.encode("utf-8")), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Command timed out after {timeout}s, killing shell {self.pid}")
            await self._terminate()
            return ExecutionResult.failure(f"Command timed out after {timeout}s", timed_out=True)
        except asyncio.IncompleteReadError as e:
            partial, _ = self._decode_and_truncate(e.partial)
            if self._state is SessionState.CLOSED:
                return ExecutionResult.failure(
                    "Session closed while the command was running", output=partial or None
                )
            await self._terminate()
            returncode = proc.returncode if proc else None
            silent = tuple(r.bytes_read for r in readers) == seen
            if retry and silent and returncode is not None and returncode < 0:
                # Killed by a signal before anything was written; treat as never started.
                logger.warning(f"Shell killed by signal {-returncode}, respawning")
                return None
            return ExecutionResult.failure(
                f"Shell exited with status {returncode} before the command completed",
                output=partial or None,
                exit_code=returncode,
            )

        self._state = SessionState.IDLE
        return self._build_result(stdout, stderr, status)

    async def _ensure_alive(self) -> None:
        if self.is_alive:
            return
        if self._process is not None:
            logger.warning(
                f"Shell {self._process.pid} exited with status {self._process.returncode}, respawning"
            )
            await self._terminate()
        await self._spawn()

    async def _send(self, payload: bytes) -> None:
        assert self._process is not None and self._process.stdin is not None
        self._process.stdin.write(payload)
        await self._process.stdin.drain()

    async def _collect(self, marker: bytes) -> tuple[bytes, bytes, bytes]:
        assert self._stdout is not None and self._stderr is not None
        stdout_reader, stderr_reader = self._stdout, self._stderr

        async def read_stdout() -> tuple[bytes, bytes]:
            data = await stdout_reader.read_through(marker)
            status = await stdout_reader.read_through(b"\n")
            return data, status

        async def read_stderr() -> bytes:
            data = await stderr_reader.read_through(marker)
            await stderr_reader.read_through(b"\n")
            return data

        out_task = asyncio.ensure_future(read_stdout())
        err_task = asyncio.ensure_future(read_stderr())
        try:
            (stdout, status), stderr = await asyncio.gather(out_task, err_task)
        finally:
            out_task.cancel()
            err_task.cancel()
        return stdout, status, stderr

    def _build_result(self, stdout: bytes, stderr: bytes, status: bytes) -> ExecutionResult:
        out_text, out_truncated = self._decode_and_truncate(stdout)
        err_text, err_truncated = self._decode_and_truncate(stderr)
        try:
            exit_code: int | None = int(status.strip())
        except ValueError:
            exit_code = None

        output = out_text
        if err_text:
            if output and not output.endswith("\n"):
                output += "\n"
            output += err_text

        success = exit_code == 0
        error = None
        if not success:
            error = err_text.strip() or (
                f"Command exited with status {exit_code}"
                if exit_code is not None
                else "Could not read the command's exit status"
            )
        return ExecutionResult(
            success=success,
            output=output,
            error=error,
            exit_code=exit_code,
            truncated=out_truncated or err_truncated,
        )

    def _decode_and_truncate(self, data: bytes) -> tuple[str, bool]:
        """Decode bytes and truncate if too large."""
        text = data.decode("utf-8", errors="replace")
        if len(text) > self._max_output_bytes:
            truncated_count = len(text) - self._max_output_bytes
            text = text[: self._max_output_bytes]
            text += f"\n\n[Truncated: {truncated_count} characters removed]"
            return text, True
        return text, False

    async def _terminate(self) -> None:
        """Kill the shell's process group and forget the process."""
        proc = self._process
        self._process = None
        self._stdout = None
        self._stderr = None
        if self._state is not SessionState.CLOSED:
            self._state = SessionState.DEAD
        if proc is None:
            return

        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError, PermissionError):
                os.killpg(proc.pid, signal.SIGKILL)
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
        if proc.stdin is not None:
            proc.stdin.close()
        try:
            await asyncio.wait_for(proc.wait(), timeout=_REAP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Shell {proc.pid} did not exit within {_REAP_TIMEOUT}s of being killed")

    async def close(self) -> None:
        """
        Kill the shell and refuse further commands.

        Safe to call multiple times. An in-flight command is abandoned and
        its caller receives a failure result.
        """
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        await self._terminate()
        logger.info(f"Closed shell session in {self._root}")
