"""Windows backend: psutil, user32 through ctypes and the Discord updater."""

import asyncio
import base64
import binascii
import ctypes
import os
import time
from pathlib import Path, PurePath

from ..models import ExternalCommandError
from ..process import run_command
from .backend import PlatformBackend, find_process_ids

__all__ = ["WindowsBackend", "icon_script", "resolve_binary_path", "resolve_updater_path"]

SW_RESTORE = 9
GW_OWNER = 4
# pause between restoring a window and activating it
RESTORE_SETTLE_DELAY = 0.12

# Size requested from the executable's icon resources
EXTRACT_ICON_SIZE = 256

# Large icon through PrivateExtractIcons, the 32px shell icon otherwise
ICON_SCRIPT = """
$ErrorActionPreference = 'Stop'
Add-Type -AssemblyName System.Drawing
$path = '{path}'
$bitmap = $null
try {{
    Add-Type -Namespace Deckcord -Name IconApi -MemberDefinition @'
[DllImport("user32.dll", CharSet = CharSet.Unicode)]
public static extern uint PrivateExtractIcons(string file, int index, int cx, int cy, IntPtr[] icons, uint[] ids, uint count, uint flags);
[DllImport("user32.dll")]
public static extern bool DestroyIcon(IntPtr icon);
'@
    $handles = New-Object IntPtr[] 1
    $ids = New-Object UInt32[] 1
    $count = [Deckcord.IconApi]::PrivateExtractIcons($path, 0, {size}, {size}, $handles, $ids, 1, 0)
    if ($count -gt 0 -and $handles[0] -ne [IntPtr]::Zero) {{
        try {{
            $large = [System.Drawing.Icon]::FromHandle($handles[0])
            $bitmap = New-Object System.Drawing.Bitmap($large.ToBitmap())
            $large.Dispose()
        }} finally {{
            [void][Deckcord.IconApi]::DestroyIcon($handles[0])
        }}
    }}
}} catch {{
    $bitmap = $null
}}
if (-not $bitmap) {{
    $icon = [System.Drawing.Icon]::ExtractAssociatedIcon($path)
    if (-not $icon) {{ exit 2 }}
    $bitmap = $icon.ToBitmap()
    $icon.Dispose()
}}
$memory = New-Object System.IO.MemoryStream
$bitmap.Save($memory, [System.Drawing.Imaging.ImageFormat]::Png)
Write-Output ([Convert]::ToBase64String($memory.ToArray()))
$memory.Dispose()
$bitmap.Dispose()
"""


def icon_script(source: PurePath, size: int = EXTRACT_ICON_SIZE) -> str:
    """Return the PowerShell script printing the icon of `source` as base64 PNG."""
    return ICON_SCRIPT.format(path=str(source).replace("'", "''"), size=size)


def discord_root(local_appdata: str | None = None) -> Path:
    """Return the per-user Discord installation folder."""
    base = local_appdata or os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    return Path(base) / "Discord"


def resolve_updater_path(local_appdata: str | None = None) -> Path | None:
    """Return the Discord updater (`Update.exe`) if installed."""
    updater = discord_root(local_appdata) / "Update.exe"
    return updater if updater.is_file() else None


def resolve_binary_path(local_appdata: str | None = None) -> Path | None:
    """Return the newest `app-*/Discord.exe`, falling back to the updater."""
    root = discord_root(local_appdata)
    if not root.is_dir():
        return None
    for app_dir in sorted(root.glob("app-*"), key=lambda p: p.name, reverse=True):
        exe = app_dir / "Discord.exe"
        if app_dir.is_dir() and exe.is_file():
            return exe
    return resolve_updater_path(local_appdata)


def _load_user32() -> "ctypes.WinDLL":  # type: ignore[name-defined]
    from ctypes import wintypes  # noqa: PLC0415

    user32 = ctypes.WinDLL("user32", use_last_error=True)  # type: ignore[attr-defined]
    user32.EnumWindows.argtypes = [ctypes.c_void_p, wintypes.LPARAM]
    user32.EnumWindows.restype = wintypes.BOOL
    user32.IsWindowVisible.argtypes = [wintypes.HWND]
    user32.IsWindowVisible.restype = wintypes.BOOL
    user32.GetWindow.argtypes = [wintypes.HWND, wintypes.UINT]
    user32.GetWindow.restype = wintypes.HWND
    user32.GetWindowThreadProcessId.argtypes = [wintypes.HWND, ctypes.POINTER(wintypes.DWORD)]
    user32.GetWindowThreadProcessId.restype = wintypes.DWORD
    user32.IsIconic.argtypes = [wintypes.HWND]
    user32.IsIconic.restype = wintypes.BOOL
    user32.ShowWindowAsync.argtypes = [wintypes.HWND, ctypes.c_int]
    user32.ShowWindowAsync.restype = wintypes.BOOL
    user32.SetForegroundWindow.argtypes = [wintypes.HWND]
    user32.SetForegroundWindow.restype = wintypes.BOOL
    return user32


def find_main_window(pids: set[int]) -> int | None:
    """Return the first visible, unowned top-level window of `pids`.

    Blocking, run it in a thread.
    """
    from ctypes import wintypes  # noqa: PLC0415

    user32 = _load_user32()
    found: list[int] = []

    @ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)  # type: ignore[attr-defined]
    def _visit(hwnd: int, _lparam: int) -> bool:
        if not user32.IsWindowVisible(hwnd) or user32.GetWindow(hwnd, GW_OWNER):
            return True
        owner_pid = wintypes.DWORD()
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(owner_pid))
        if owner_pid.value in pids:
            found.append(hwnd)
            return False
        return True

    user32.EnumWindows(_visit, 0)
    return found[0] if found else None


def activate_window(hwnd: int) -> None:
    """Bring `hwnd` to the foreground, restoring it only if minimized.

    Restoring a visible window would break the application's fullscreen state.
    Blocking, run it in a thread.
    """
    user32 = _load_user32()
    if user32.IsIconic(hwnd):
        user32.ShowWindowAsync(hwnd, SW_RESTORE)
    time.sleep(RESTORE_SETTLE_DELAY)
    user32.SetForegroundWindow(hwnd)


class WindowsBackend(PlatformBackend):
    """Discord as installed by its Squirrel based updater."""

    default_process_name = "Discord.exe"

    def _focus(self) -> bool:
        pids = find_process_ids(self.process_name)
        if not pids:
            return False
        hwnd = find_main_window(pids)
        if hwnd is None:
            self.log.debug("%s is running without a visible window", self.process_name)
            return False
        activate_window(hwnd)
        return True

    async def focus_main_window(self) -> bool:
        """Focus Discord's main window through user32."""
        try:
            return await asyncio.to_thread(self._focus)
        except OSError as e:
            self.log.warning("Focusing %s failed: %s", self.process_name, e)
            return False

    async def launch(self) -> bool:
        """Start Discord with `Update.exe --processStart Discord.exe`."""
        launcher = self.config.get_str("launcher")
        updater = Path(launcher) if launcher else resolve_updater_path()
        if updater is None or not updater.is_file():
            self.log.warning("Discord updater not found")
            return False
        args = self.config.get_list("launcher_args", ["--processStart", "Discord.exe"])
        return await self.spawn_detached([str(updater), *args])

    async def load_icon_source(self) -> bytes:
        """Extract the icon associated with the Discord executable."""
        icon_path = self.config.get_str("icon_path")
        source = Path(icon_path) if icon_path else resolve_binary_path()
        if source is None:
            msg = "No Discord binary found for icon extraction."
            raise ExternalCommandError(msg)
        if source.suffix.lower() != ".exe":
            return await self.read_file(source)

        # the script holds double quotes: pass it as base64 UTF-16LE
        script = base64.b64encode(icon_script(source).encode("utf-16-le")).decode("ascii")
        result = await run_command(
            ["powershell.exe", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-EncodedCommand", script],
            timeout=self.icon_timeout,
        )
        if result.stderr.strip():
            self.log.debug(result.stderr.strip())
        if not result.ok or not result.stdout.strip():
            msg = f"Failed to extract Discord icon (exit code {result.returncode})."
            raise ExternalCommandError(msg)
        try:
            return base64.b64decode(result.stdout.strip(), validate=True)
        except binascii.Error as e:
            msg = "Discord icon payload is invalid."
            raise ExternalCommandError(msg) from e
