"""Stream Deck plugin protocol: inbound routing and outbound messages.

Inbound messages are JSON objects shaped ``{"event", "action", "context", ...}``.
Only the three lifecycle/key events of our action are kept, anything else
is dropped silently so newer host versions don't break the plugin.
"""

import json
from logging import Logger
from typing import Any

from .models import DisplayState, EventName, InboundEvent

__all__ = [
    "log_message",
    "parse_message",
    "register_message",
    "set_image",
    "set_state",
    "set_title",
    "show_alert",
    "show_ok",
]

Message = dict[str, Any]

# Title/image target: hardware and software
TARGET_BOTH = 0


def parse_message(raw: str | bytes, action_uuid: str, log: Logger | None = None) -> InboundEvent | None:
    """Route a raw host message.

    Args:
        raw: The message text
        action_uuid: Action identifier handled by this plugin
        log: Optional logger for dropped messages

    Returns:
        The event to handle, None if the message must be ignored
    """
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        if log:
            log.debug("Dropping malformed message: %s", e)
        return None
    if not isinstance(message, dict):
        return None

    event = message.get("event")
    action = message.get("action")
    if not isinstance(event, str) or not isinstance(action, str):
        return None
    if action != action_uuid:
        return None
    try:
        event_name = EventName(event)
    except ValueError:
        return None

    context = message.get("context")
    if not isinstance(context, str) or not context.strip():
        if log:
            log.debug("Dropping %s without context", event)
        return None

    payload = message.get("payload")
    return InboundEvent(event=event_name, context=context, payload=payload if isinstance(payload, dict) else {})


def register_message(register_event: str, plugin_uuid: str) -> Message:
    """Registration sent right after connecting."""
    return {"event": register_event, "uuid": plugin_uuid}


def set_title(context: str, title: str) -> Message:
    return {"event": "setTitle", "context": context, "payload": {"title": title, "target": TARGET_BOTH}}


def set_state(context: str, state: DisplayState) -> Message:
    return {"event": "setState", "context": context, "payload": {"state": int(state)}}


def set_image(context: str, image: str, state: DisplayState) -> Message:
    return {
        "event": "setImage",
        "context": context,
        "payload": {"image": image, "target": TARGET_BOTH, "state": int(state)},
    }


def show_ok(context: str) -> Message:
    return {"event": "showOk", "context": context}


def show_alert(context: str) -> Message:
    return {"event": "showAlert", "context": context}


def log_message(message: str) -> Message:
    """Diagnostic text the host may write to its own log."""
    return {"event": "logMessage", "payload": {"message": message}}
