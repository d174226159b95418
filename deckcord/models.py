"""Common types and errors."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, StrEnum
from typing import Any

__all__ = [
    "ConfigError",
    "ConnectionState",
    "DeckcordError",
    "DisplayState",
    "EventName",
    "ExitCode",
    "ExternalCommandError",
    "IconSet",
    "InboundEvent",
    "LaunchArgs",
    "StartupArgError",
    "TransportError",
]


class DisplayState(IntEnum):
    """Button state index, as understood by the host."""

    OFFLINE = 0
    RUNNING = 1

    @classmethod
    def from_running(cls, running: bool) -> "DisplayState":
        """Map a process presence answer to a state."""
        return cls.RUNNING if running else cls.OFFLINE


class ConnectionState(Enum):
    """Host connection lifecycle."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class EventName(StrEnum):
    """Inbound events handled by the plugin."""

    WILL_APPEAR = "willAppear"
    WILL_DISAPPEAR = "willDisappear"
    KEY_DOWN = "keyDown"


@dataclass(frozen=True, slots=True)
class IconSet:
    """Rendered button images, as data URLs."""

    idle: str
    active: str

    def for_state(self, state: DisplayState) -> str:
        """Return the image used for `state`."""
        return self.active if state is DisplayState.RUNNING else self.idle


@dataclass(frozen=True, slots=True)
class InboundEvent:
    """A host event routed to this plugin's action."""

    event: EventName
    context: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LaunchArgs:
    """Arguments passed by the host when starting the plugin."""

    port: int
    plugin_uuid: str
    register_event: str
    info: dict[str, Any] = field(default_factory=dict)


class DeckcordError(Exception):
    """Base class for deckcord errors."""


class StartupArgError(DeckcordError):
    """Missing or invalid host-supplied arguments."""


class ConfigError(DeckcordError):
    """Used for configuration errors which already triggered logging."""


class TransportError(DeckcordError):
    """The host connection is unusable."""


class ExternalCommandError(DeckcordError):
    """An OS probe, launcher or icon command failed or timed out."""


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    FAILURE = 1
