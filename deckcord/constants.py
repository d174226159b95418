"""Shared constants for deckcord."""

import os
from pathlib import Path

__all__ = [
    "ACTION_UUID",
    "BADGE_COLOR_RGB",
    "BADGE_DIAMETER_RATIO",
    "BADGE_INSET_RATIO",
    "BADGE_OUTLINE_RATIO",
    "CONFIG_FILE",
    "CONFIG_SECTION",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_FOCUS_ATTEMPTS",
    "DEFAULT_FOCUS_DELAY",
    "DEFAULT_ICON_SIZE",
    "DEFAULT_ICON_TIMEOUT",
    "DEFAULT_KEY_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_TITLE",
    "HOST_ADDRESS",
    "LOG_PREFIX",
    "TASK_TIMEOUT",
    "TITLE_ERROR",
    "TITLE_NOT_FOUND",
    "TITLE_WORKING",
]

# Identifier of the single button type handled by this plugin
ACTION_UUID = "com.kenobi.discordlauncher.launch"

HOST_ADDRESS = "127.0.0.1"

# Settings file: env override, else next to the plugin (the host starts us in the plugin folder)
CONFIG_FILE = Path(os.environ.get("DECKCORD_CONFIG") or "deckcord.toml")
CONFIG_SECTION = "deckcord"

# Maximum time for a single queued event handler (key presses use their own deadline)
TASK_TIMEOUT = 35.0

# Status polling
DEFAULT_POLL_INTERVAL = 3.0

# Focus retry after launching: the application needs time to create its window
DEFAULT_FOCUS_ATTEMPTS = 20
DEFAULT_FOCUS_DELAY = 0.2

# Focus / launch work of one key press, feedback is sent once it expires
DEFAULT_KEY_TIMEOUT = 30.0

# External command timeouts (seconds)
DEFAULT_COMMAND_TIMEOUT = 10.0
DEFAULT_ICON_TIMEOUT = 20.0

# Icons
DEFAULT_ICON_SIZE = 144
BADGE_COLOR_RGB = (43, 172, 119)
BADGE_DIAMETER_RATIO = 0.255
BADGE_INSET_RATIO = 0.065
BADGE_OUTLINE_RATIO = 0.028

# Button titles
DEFAULT_TITLE = "Discord"
TITLE_WORKING = "Working..."
TITLE_NOT_FOUND = "Not Found"
TITLE_ERROR = "Error"

LOG_PREFIX = "[DiscordLauncher]"
