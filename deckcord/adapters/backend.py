"""Platform backend interface.

A backend answers the three questions the session asks the OS: is the
application running, can its window be brought to the front, and can it
be started. It also supplies the icon used to render the button images.
"""

import asyncio
from abc import ABC, abstractmethod
from logging import Logger
from pathlib import Path

import aiofiles
import psutil

from ..config import Configuration
from ..icons import render_icon_set
from ..models import ExternalCommandError, IconSet
from ..process import ManagedProcess

__all__ = ["PlatformBackend", "find_process_ids", "normalize_process_name"]


def normalize_process_name(name: str) -> str:
    """Return a comparable process name (lower case, no `.exe` suffix)."""
    name = name.strip().lower()
    return name.removesuffix(".exe")


def find_process_ids(name: str) -> set[int]:
    """Return the PIDs of every process called `name`.

    Blocking, run it in a thread.

    Args:
        name: Process name, compared case-insensitively with `.exe` optional
    """
    wanted = normalize_process_name(name)
    pids = set()
    for proc in psutil.process_iter(attrs=["pid", "name"]):
        try:
            proc_name = proc.info.get("name")
            if proc_name and normalize_process_name(proc_name) == wanted:
                pids.add(proc.info["pid"])
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return pids


class PlatformBackend(ABC):
    """Abstract base class for the OS specific operations.

    Subclasses provide window focus, launching and the icon source.
    Process detection is shared and uses psutil.
    """

    default_process_name = "Discord"

    def __init__(self, config: Configuration, log: Logger) -> None:
        """Initialize the backend.

        Args:
            config: Plugin settings
            log: Logger to use for this backend
        """
        self.config = config
        self.log = log
        self.command_timeout = config.get_float("command_timeout")
        self.icon_timeout = config.get_float("icon_timeout")
        self._reapers: set[asyncio.Task] = set()

    @property
    def process_name(self) -> str:
        """Name of the application process."""
        return self.config.get_str("process_name") or self.default_process_name

    async def is_running(self) -> bool:
        """Tell if the application process exists."""
        pids = await asyncio.to_thread(find_process_ids, self.process_name)
        return bool(pids)

    @abstractmethod
    async def focus_main_window(self) -> bool:
        """Bring the application main window to the foreground.

        Returns:
            False if no window was found or focusing failed
        """

    @abstractmethod
    async def launch(self) -> bool:
        """Start the application.

        Returns:
            False if the launcher isn't installed or couldn't be started
        """

    @abstractmethod
    async def load_icon_source(self) -> bytes:
        """Return the encoded application icon.

        Raises:
            ExternalCommandError: no icon could be found or extracted
        """

    async def load_icons(self) -> IconSet:
        """Render the idle & active button images."""
        source = await self.load_icon_source()
        return await asyncio.to_thread(render_icon_set, source, self.config.get_int("icon_size"))

    async def read_file(self, path: Path) -> bytes:
        """Read a whole file without blocking the loop.

        Raises:
            ExternalCommandError: the file can't be read
        """
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            msg = f"Cannot read {path}: {e}"
            raise ExternalCommandError(msg) from e

    async def spawn_detached(self, args: list[str]) -> bool:
        """Start `args` without waiting for it to finish.

        The child is reaped in the background, it is never stopped by us.

        Returns:
            True if the process was started
        """
        proc = ManagedProcess()
        try:
            await proc.start(
                args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except ExternalCommandError as e:
            self.log.warning("%s", e)
            return False
        self.log.info("Started %s (pid %s)", args[0], proc.pid)
        reaper = asyncio.create_task(proc.wait())
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)
        return True
