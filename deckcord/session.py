"""Plugin session - the context registry, event handling and status polling."""

import asyncio
import contextlib
from collections.abc import Callable, Coroutine
from enum import StrEnum
from logging import Logger
from typing import Any

from . import protocol
from .adapters.backend import PlatformBackend
from .config import Configuration
from .connection import HostConnection
from .constants import (
    ACTION_UUID,
    LOG_PREFIX,
    TASK_TIMEOUT,
    TITLE_ERROR,
    TITLE_NOT_FOUND,
    TITLE_WORKING,
)
from .icons import IconCache
from .logging_setup import get_logger
from .models import DisplayState, EventName, IconSet, InboundEvent, TransportError

__all__ = ["FocusOutcome", "Session"]


class FocusOutcome(StrEnum):
    """Result of a key press."""

    FOCUSED = "focused"
    LAUNCHED = "launched"
    LAUNCHER_MISSING = "launcher missing"
    NO_WINDOW = "no window"

    @property
    def ok(self) -> bool:
        return self in {FocusOutcome.FOCUSED, FocusOutcome.LAUNCHED}


class Session:  # pylint: disable=too-many-instance-attributes
    """One plugin run: the host connection plus the registry of visible buttons.

    Inbound events are queued and handled one at a time by a worker task,
    while a poller refreshes every button's state on a fixed interval.
    """

    def __init__(
        self,
        connection: HostConnection,
        backend: PlatformBackend,
        config: Configuration,
        log: Logger | None = None,
        action_uuid: str = ACTION_UUID,
    ) -> None:
        self.connection = connection
        self.backend = backend
        self.config = config
        self.log = log or get_logger()
        self.action_uuid = action_uuid
        self.contexts: set[str] = set()
        self.queue: asyncio.Queue[InboundEvent] = asyncio.Queue()
        self.icons = IconCache(self._load_icons, get_logger("icons"))

        self.title = config.get_str("title")
        self.show_titles = config.get_bool("show_titles", True)
        self.poll_interval = config.get_float("poll_interval")
        self.focus_attempts = config.get_int("focus_attempts")
        self.focus_delay = config.get_float("focus_delay")
        self.key_timeout = config.get_float("key_timeout")

        self._handlers: dict[EventName, Callable[[str], Coroutine[Any, Any, None]]] = {
            EventName.WILL_APPEAR: self.on_will_appear,
            EventName.WILL_DISAPPEAR: self.on_will_disappear,
            EventName.KEY_DOWN: self.on_key_down,
        }

    # Outbound {{{

    async def send(self, message: dict[str, Any]) -> None:
        await self.connection.send_json(message)

    async def set_title(self, context: str, title: str) -> None:
        if self.show_titles:
            await self.send(protocol.set_title(context, title))

    async def apply_icons(self, context: str, icons: IconSet) -> None:
        """Send both state images to `context`."""
        for state in DisplayState:
            await self.send(protocol.set_image(context, icons.for_state(state), state))

    async def host_log(self, text: str) -> None:
        """Best effort diagnostic for the host log."""
        try:
            await self.send(protocol.log_message(f"{LOG_PREFIX} {text}"))
        except TransportError:
            self.log.debug("Can't forward log message: %s", text)

    # }}}

    # Icons {{{

    async def _load_icons(self) -> IconSet:
        icons = await self.backend.load_icons()
        # buttons which appeared while icons were missing get them now
        try:
            for context in sorted(self.contexts):
                await self.apply_icons(context, icons)
        except TransportError as e:
            self.log.warning("Can't apply icons: %s", e)
        return icons

    async def ensure_icons(self) -> IconSet | None:
        """Return the icons, None if they can't be produced right now."""
        try:
            return await self.icons.get()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.log.warning("Could not load icons: %s", e)
            await self.host_log(f"Could not load Discord icon images: {e}")
            return None

    # }}}

    # Status {{{

    async def current_state(self) -> DisplayState:
        return DisplayState.from_running(await self.backend.is_running())

    async def refresh_context_state(self, context: str) -> None:
        try:
            state = await self.current_state()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.log.warning("Status check failed: %s", e)
            state = DisplayState.OFFLINE
        await self.send(protocol.set_state(context, state))

    async def refresh_all_states(self) -> None:
        """Probe once and apply the result to every registered button."""
        contexts = sorted(self.contexts)
        if not contexts:
            return
        state = await self.current_state()
        for context in contexts:
            await self.send(protocol.set_state(context, state))

    async def poll_tick(self) -> None:
        """Refresh every button, never raising."""
        try:
            await self.refresh_all_states()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.log.warning("Status refresh failed: %s", e)

    # }}}

    # Event handlers {{{

    async def on_will_appear(self, context: str) -> None:
        self.contexts.add(context)
        await self.set_title(context, self.title)
        icons = await self.ensure_icons()
        if icons:
            await self.apply_icons(context, icons)
        await self.refresh_context_state(context)

    async def on_will_disappear(self, context: str) -> None:
        self.contexts.discard(context)

    async def bring_to_front_or_launch(self) -> FocusOutcome:
        """Focus the application, starting it first if needed."""
        if await self.backend.focus_main_window():
            return FocusOutcome.FOCUSED

        # Running in the tray or not running at all: the launcher handles both
        if not await self.backend.launch():
            return FocusOutcome.LAUNCHER_MISSING

        for _ in range(self.focus_attempts):
            await asyncio.sleep(self.focus_delay)
            if await self.backend.focus_main_window():
                return FocusOutcome.LAUNCHED
        return FocusOutcome.NO_WINDOW

    async def _focus_or_launch(self, context: str) -> FocusOutcome:
        icons = await self.ensure_icons()
        if icons:
            await self.apply_icons(context, icons)
        return await self.bring_to_front_or_launch()

    async def on_key_down(self, context: str) -> None:
        """Focus or launch, flash the result, then refresh every button.

        The focus / launch work is bounded by `key_timeout`, the feedback and
        the refresh are always sent afterwards.
        """
        await self.set_title(context, TITLE_WORKING)
        outcome: FocusOutcome | None = None
        try:
            outcome = await asyncio.wait_for(self._focus_or_launch(context), timeout=self.key_timeout)
        except TimeoutError:
            self.log.warning("Key press on %s timed out after %ss", context, self.key_timeout)
            await self.host_log(f"Discord launcher timed out after {self.key_timeout}s")
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.log.exception("Discord launcher failed")
            await self.host_log(f"Discord launcher failed: {e}")

        self.log.info("Key press on %s: %s", context, outcome or "error")
        if outcome is None:
            title = TITLE_ERROR
        elif outcome is FocusOutcome.LAUNCHER_MISSING:
            title = TITLE_NOT_FOUND
        else:
            title = self.title
        await self.set_title(context, title)
        if outcome is not None and outcome.ok:
            await self.send(protocol.show_ok(context))
        else:
            await self.send(protocol.show_alert(context))
        await self.poll_tick()

    async def handle_event(self, event: InboundEvent) -> None:
        self.log.debug("%s(%s)", event.event, event.context)
        await self._handlers[event.event](event.context)

    # }}}

    # Loops {{{

    async def register(self, register_event: str, plugin_uuid: str) -> None:
        """Connect to the host and announce the plugin.

        Raises:
            TransportError: the host can't be reached
        """
        await self.connection.connect()
        await self.send(protocol.register_message(register_event, plugin_uuid))

    async def receive_loop(self) -> None:
        """Queue the events of our action until the connection closes."""
        async for raw in self.connection.messages():
            event = protocol.parse_message(raw, self.action_uuid, self.log)
            if event is not None:
                await self.queue.put(event)

    async def _event_runner_loop(self) -> None:
        while True:
            event = await self.queue.get()
            # key presses enforce their own deadline so their feedback is never cut
            timeout = None if event.event is EventName.KEY_DOWN else TASK_TIMEOUT
            try:
                await asyncio.wait_for(self.handle_event(event), timeout=timeout)
            except TimeoutError:
                self.log.exception("Timeout handling %s", event.event)
            except Exception:  # pylint: disable=broad-exception-caught
                self.log.exception("Unhandled error handling %s", event.event)
            finally:
                self.queue.task_done()

    async def _poll_loop(self) -> None:
        while self.connection.is_open:
            await asyncio.sleep(self.poll_interval)
            await self.poll_tick()

    async def run(self) -> None:
        """Serve until the host closes the connection.

        Raises:
            TransportError: the connection failed
        """
        tasks = [
            asyncio.create_task(self._event_runner_loop()),
            asyncio.create_task(self._poll_loop()),
        ]
        try:
            await self.receive_loop()
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            await self.connection.close()
            self.contexts.clear()

    # }}}
