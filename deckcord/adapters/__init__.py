"""Platform backends."""

import sys
from logging import Logger

from ..config import Configuration
from .backend import PlatformBackend
from .posix import PosixBackend
from .windows import WindowsBackend

__all__ = ["PlatformBackend", "PosixBackend", "WindowsBackend", "select_backend"]


def select_backend(config: Configuration, log: Logger, platform: str = sys.platform) -> PlatformBackend:
    """Return the backend matching `platform`."""
    if platform == "win32":
        return WindowsBackend(config, log)
    return PosixBackend(config, log)
