"""Subprocess helpers for the external commands run by the platform backends.

ManagedProcess:
    Owns one child process with a proper lifecycle (terminate -> wait -> kill).

run_command:
    Runs a command to completion under a timeout and captures its output.
    Timeouts and spawn failures raise ExternalCommandError.
"""

__all__ = ["CommandResult", "ManagedProcess", "run_command"]

import asyncio
import contextlib
import subprocess
import sys
from dataclasses import dataclass
from typing import Any

from .models import ExternalCommandError

# Keep console windows from flashing on Windows
NO_WINDOW_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


@dataclass(slots=True)
class CommandResult:
    """Outcome of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0


class ManagedProcess:
    """Manages a subprocess with proper lifecycle handling.

    Provides consistent stop behavior with graceful shutdown:
    1. terminate first (graceful)
    2. Wait with timeout
    3. kill if still alive
    4. Always wait() to reap zombie

    Usage:
        proc = ManagedProcess()
        await proc.start(["Update.exe", "--processStart", "Discord.exe"])
        await proc.stop()
    """

    def __init__(self, graceful_timeout: float = 1.0) -> None:
        """Initialize.

        Args:
            graceful_timeout: Seconds to wait after terminate before kill
        """
        self._proc: asyncio.subprocess.Process | None = None
        self._graceful_timeout = graceful_timeout

    @property
    def pid(self) -> int | None:
        """Return PID if process exists, else None."""
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        """Return exit code if process exited, else None."""
        return self._proc.returncode if self._proc else None

    @property
    def is_alive(self) -> bool:
        """Check if process is currently running."""
        return self._proc is not None and self._proc.returncode is None

    async def start(self, args: list[str], **subprocess_kwargs: Any) -> None:  # noqa: ANN401
        """Start the process. Stops existing process first if running.

        Args:
            args: Program and its arguments
            **subprocess_kwargs: Passed to create_subprocess_exec (e.g., stdout=PIPE)

        Raises:
            ExternalCommandError: the program can't be started
        """
        if self.is_alive:
            await self.stop()

        if sys.platform == "win32":
            subprocess_kwargs.setdefault("creationflags", NO_WINDOW_FLAGS)
        try:
            self._proc = await asyncio.create_subprocess_exec(*args, **subprocess_kwargs)
        except OSError as e:
            msg = f"Cannot start {args[0]}: {e}"
            raise ExternalCommandError(msg) from e

    async def stop(self) -> int | None:
        """Stop the process gracefully.

        Returns:
            The process return code, or None if not running
        """
        if self._proc is None:
            return None

        if self._proc.returncode is not None:
            return self._proc.returncode

        with contextlib.suppress(ProcessLookupError):
            self._proc.terminate()

        try:
            await asyncio.wait_for(self._proc.wait(), timeout=self._graceful_timeout)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._proc.kill()
            await self._proc.wait()

        return self._proc.returncode

    async def wait(self) -> int:
        """Wait for process to exit and return exit code.

        Raises:
            RuntimeError: If no process is running
        """
        if self._proc is None:
            msg = "No process running"
            raise RuntimeError(msg)
        return await self._proc.wait()

    async def communicate(self, timeout: float) -> tuple[bytes, bytes]:
        """Collect the process output, stopping it if `timeout` expires.

        Args:
            timeout: Maximum number of seconds to wait

        Raises:
            RuntimeError: If no process is running
            ExternalCommandError: the timeout expired
        """
        if self._proc is None:
            msg = "No process running"
            raise RuntimeError(msg)
        try:
            stdout, stderr = await asyncio.wait_for(self._proc.communicate(), timeout=timeout)
        except TimeoutError as e:
            await self.stop()
            msg = f"Command timed out after {timeout}s"
            raise ExternalCommandError(msg) from e
        return stdout or b"", stderr or b""


async def run_command(args: list[str], timeout: float) -> CommandResult:
    """Run `args` to completion and capture its output.

    Args:
        args: Program and its arguments
        timeout: Maximum number of seconds the command may take

    Raises:
        ExternalCommandError: the command can't be started or timed out
    """
    proc = ManagedProcess()
    await proc.start(
        args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate(timeout)
    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
