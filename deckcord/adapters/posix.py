"""Linux / X11 backend using psutil, wmctrl and the `discord` launcher."""

import shutil
from pathlib import Path

from ..models import ExternalCommandError
from ..process import run_command
from .backend import PlatformBackend

__all__ = ["ICON_CANDIDATES", "PosixBackend"]

ICON_CANDIDATES = (
    "/usr/share/pixmaps/discord.png",
    "/usr/share/icons/hicolor/256x256/apps/discord.png",
    "/usr/share/icons/hicolor/128x128/apps/discord.png",
    "/opt/discord/discord.png",
    "/usr/share/discord/discord.png",
    "/var/lib/flatpak/exports/share/icons/hicolor/256x256/apps/com.discordapp.Discord.png",
)


class PosixBackend(PlatformBackend):
    """Discord installed as a regular desktop application."""

    default_process_name = "Discord"
    default_launcher = "discord"
    window_class = "discord"

    async def focus_main_window(self) -> bool:
        """Activate the Discord window with `wmctrl -x -a`."""
        wmctrl = shutil.which("wmctrl")
        if not wmctrl:
            self.log.debug("wmctrl not available, can't focus windows")
            return False
        if not await self.is_running():
            return False
        result = await run_command([wmctrl, "-x", "-a", self.window_class], timeout=self.command_timeout)
        return result.ok

    async def launch(self) -> bool:
        """Start the configured launcher, `discord` from PATH by default."""
        launcher = shutil.which(self.config.get_str("launcher") or self.default_launcher)
        if not launcher:
            self.log.warning("Discord launcher not found")
            return False
        args = self.config.get_list("launcher_args", [])
        return await self.spawn_detached([launcher, *args])

    def find_icon(self) -> Path | None:
        """Return the configured icon or the first one found in the usual places."""
        icon_path = self.config.get_str("icon_path")
        candidates = [icon_path] if icon_path else ICON_CANDIDATES
        for candidate in candidates:
            path = Path(candidate).expanduser()
            if path.is_file():
                return path
        return None

    async def load_icon_source(self) -> bytes:
        """Read the Discord icon file."""
        path = self.find_icon()
        if path is None:
            msg = "No Discord icon found."
            raise ExternalCommandError(msg)
        return await self.read_file(path)
