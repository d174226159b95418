"""Configuration wrapper providing typed access, schema defaults and validation.

Settings are read from a TOML file (``[deckcord]`` table). Every key is
optional: a missing file yields the schema defaults.
"""

from __future__ import annotations

import difflib
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .constants import (
    CONFIG_SECTION,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_FOCUS_ATTEMPTS,
    DEFAULT_FOCUS_DELAY,
    DEFAULT_ICON_SIZE,
    DEFAULT_ICON_TIMEOUT,
    DEFAULT_KEY_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TITLE,
)
from .models import ConfigError

if TYPE_CHECKING:
    import logging

__all__ = [
    "BOOL_FALSE_STRINGS",
    "SETTINGS_SCHEMA",
    "ConfigField",
    "ConfigItems",
    "Configuration",
    "coerce_to_bool",
    "load_config",
    "validate_config",
]

# Type alias for config values
ConfigValueType = float | bool | str | list | dict

BOOL_FALSE_STRINGS = frozenset({"false", "no", "off", "0", "disabled"})


def coerce_to_bool(value: ConfigValueType | None, default: bool = False) -> bool:
    """Coerce a value to boolean, handling loose typing.

    Args:
        value: The value to coerce
        default: Default value if value is None

    Returns:
        The boolean value
    """
    if value is None:
        return default
    if isinstance(value, str):
        if not value.strip():
            return False
        return value.lower().strip() not in BOOL_FALSE_STRINGS
    return bool(value)


@dataclass
class ConfigField:
    """Describes an expected configuration field.

    Attributes:
        name: The configuration key name
        field_type: Expected type or tuple of types
        default: Default value if not provided
        description: Human-readable description for error messages
        positive: Numeric values must be strictly positive
    """

    name: str
    field_type: type | tuple[type, ...] = str
    default: Any = None
    description: str = ""
    positive: bool = False

    @property
    def type_name(self) -> str:
        """Return human-readable type name."""
        if isinstance(self.field_type, tuple):
            return " or ".join(typ.__name__ for typ in self.field_type)
        return self.field_type.__name__


class ConfigItems(list):
    """A list of ConfigField items with cached lookup by name."""

    def __init__(self, *args: ConfigField) -> None:
        super().__init__(args)
        self._cache: dict[str, ConfigField] = {}

    def get(self, name: str) -> ConfigField | None:
        """Get a ConfigField by name.

        Args:
            name: The field name to look up
        """
        v = self._cache.get(name)
        if not v:
            for prop in self:
                if prop.name == name:
                    v = prop
                    self._cache[name] = v
                    break
        return v

    @property
    def names(self) -> list[str]:
        """Return every known key."""
        return [prop.name for prop in self]


SETTINGS_SCHEMA = ConfigItems(
    ConfigField("title", str, default=DEFAULT_TITLE, description="Button title when idle"),
    ConfigField("show_titles", bool, default=True, description="Send title updates to the button"),
    ConfigField("poll_interval", (int, float), default=DEFAULT_POLL_INTERVAL, description="Seconds between status polls", positive=True),
    ConfigField("focus_attempts", int, default=DEFAULT_FOCUS_ATTEMPTS, description="Focus retries after launching", positive=True),
    ConfigField("focus_delay", (int, float), default=DEFAULT_FOCUS_DELAY, description="Seconds between focus retries", positive=True),
    ConfigField("key_timeout", (int, float), default=DEFAULT_KEY_TIMEOUT, description="Seconds a key press may spend focusing or launching", positive=True),
    ConfigField("command_timeout", (int, float), default=DEFAULT_COMMAND_TIMEOUT, description="External command timeout", positive=True),
    ConfigField("icon_timeout", (int, float), default=DEFAULT_ICON_TIMEOUT, description="Icon extraction timeout", positive=True),
    ConfigField("icon_size", int, default=DEFAULT_ICON_SIZE, description="Rendered icon size in pixels", positive=True),
    ConfigField("process_name", str, description="Process name of the application"),
    ConfigField("launcher", str, description="Executable used to start the application"),
    ConfigField("launcher_args", list, description="Arguments passed to the launcher"),
    ConfigField("icon_path", str, description="Image or executable providing the icon"),
    ConfigField("log_file", str, description="Append logs to this file"),
    ConfigField("debug", bool, default=False, description="Verbose logging"),
)


def _find_similar_key(unknown_key: str, known_keys: list[str]) -> str | None:
    """Find a similar key using fuzzy matching.

    Args:
        unknown_key: The unknown key to find a match for
        known_keys: List of valid keys to search
    """
    matches = difflib.get_close_matches(unknown_key, known_keys, n=1)
    if matches:
        return matches[0]
    return None


def _check_value(field: ConfigField, value: Any) -> str | None:  # noqa: ANN401
    """Return an error message if `value` doesn't fit `field`, else None."""
    expected = field.field_type if isinstance(field.field_type, tuple) else (field.field_type,)
    # bool is an int subclass, don't accept it for numbers
    if isinstance(value, bool) and bool not in expected:
        return f"Invalid value for '{field.name}': expected {field.type_name}, got bool"
    if not isinstance(value, expected):
        return f"Invalid value for '{field.name}': expected {field.type_name}, got {type(value).__name__}"
    if field.positive and value <= 0:
        return f"Invalid value for '{field.name}': must be greater than 0, got {value}"
    if field.field_type is list and not all(isinstance(item, str) for item in value):
        return f"Invalid value for '{field.name}': all items must be strings"
    return None


def validate_config(config: dict[str, Any], schema: ConfigItems = SETTINGS_SCHEMA) -> list[str]:
    """Validate a settings table against the schema.

    Args:
        config: The raw settings
        schema: Expected fields

    Returns:
        A list of error messages, empty if the configuration is valid
    """
    errors = []
    for key, value in config.items():
        field = schema.get(key)
        if field is None:
            suggestion = _find_similar_key(key, schema.names)
            hint = f", did you mean '{suggestion}'?" if suggestion else ""
            errors.append(f"Unknown option '{key}'{hint}")
            continue
        error = _check_value(field, value)
        if error:
            errors.append(error)
    return errors


class Configuration(dict):
    """Configuration wrapper providing typed access with schema defaults."""

    def __init__(
        self,
        *args: Any,  # noqa: ANN401
        logger: logging.Logger,
        schema: ConfigItems | None = None,
        **kwargs: Any,  # noqa: ANN401
    ):
        """Initialize the configuration object.

        Args:
            *args: Arguments for dict
            logger: Logger instance to use for warnings
            schema: Optional list of ConfigField definitions for automatic defaults
            **kwargs: Keyword arguments for dict
        """
        super().__init__(*args, **kwargs)
        self.log = logger
        self._schema_defaults: dict[str, ConfigValueType] = {}
        if schema:
            self._schema_defaults = {field.name: field.default for field in schema if field.default is not None}

    def get(self, name: str, default: ConfigValueType | None = None) -> ConfigValueType | None:  # type: ignore[override]
        """Get a value with schema-aware defaults.

        Args:
            name: The configuration key
            default: Fallback if key is missing and not in schema defaults
        """
        if name in self:
            return dict.get(self, name)  # type: ignore[return-value]
        if name in self._schema_defaults:
            return self._schema_defaults[name]
        return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a boolean value, handling loose typing."""
        return coerce_to_bool(self.get(name), default)

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value."""
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid integer value for %s: %s", name, value)
            return default

    def get_float(self, name: str, default: float = 0.0) -> float:
        """Get a float value."""
        value = self.get(name)
        if value is None:
            return default
        try:
            return float(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid float value for %s: %s", name, value)
            return default

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        value = self.get(name)
        if value is None:
            return default
        return str(value)

    def get_list(self, name: str, default: list[str] | None = None) -> list[str] | None:
        """Get a list of strings, `default` if unset."""
        value = self.get(name)
        if value is None:
            return default
        if isinstance(value, str):
            return value.split()
        return [str(item) for item in value]  # type: ignore[union-attr]


def load_config(path: Path | str, logger: logging.Logger, schema: ConfigItems = SETTINGS_SCHEMA) -> Configuration:
    """Load the settings file and return the validated `[deckcord]` table.

    Invalid entries are logged and dropped, so their defaults apply.

    Args:
        path: TOML file to read, may not exist
        logger: Logger for validation messages
        schema: Expected fields

    Raises:
        ConfigError: the file exists but can't be parsed
    """
    fname = Path(path).expanduser()
    raw: dict[str, Any] = {}
    if fname.exists():
        logger.info("Loading %s", fname)
        with fname.open("rb") as f:
            try:
                raw = tomllib.load(f).get(CONFIG_SECTION, {})
            except tomllib.TOMLDecodeError as e:
                logger.critical("Problem reading %s: %s", fname, e)
                raise ConfigError(str(e)) from e
        if not isinstance(raw, dict):
            logger.critical("Problem reading %s: [%s] must be a table", fname, CONFIG_SECTION)
            msg = f"[{CONFIG_SECTION}] must be a table"
            raise ConfigError(msg)
    else:
        logger.debug("No settings file at %s, using defaults", fname)

    settings = {}
    for key, value in raw.items():
        errors = validate_config({key: value}, schema)
        for error in errors:
            logger.error(error)
        if not errors:
            settings[key] = value
    return Configuration(settings, logger=logger, schema=schema)
