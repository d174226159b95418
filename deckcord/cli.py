"""Plugin entry point, started by the Stream Deck host.

The host runs ``deckcord -port <port> -pluginUUID <uuid> -registerEvent <event> -info <json>``.
Developer flags ``--debug <logfile>`` and ``--config <file>`` are also accepted.
"""

import asyncio
import json
import sys
from typing import Any

from .adapters import select_backend
from .config import Configuration, load_config
from .connection import HostConnection
from .constants import CONFIG_FILE
from .logging_setup import add_log_file, enable_debug, get_logger, init_logger
from .models import ConfigError, ExitCode, LaunchArgs, StartupArgError, TransportError
from .session import Session

__all__ = ["main", "parse_args", "run_plugin"]

MAX_PORT = 65535

# flag (lower case) -> LaunchArgs field
HOST_FLAGS = {
    "-port": "port",
    "-pluginuuid": "plugin_uuid",
    "-registerevent": "register_event",
    "-info": "info",
}


def use_param(argv: list[str], txt: str) -> str:
    """Check if parameter `txt` is in `argv`.

    if found, removes it from `argv` & returns the argument value
    """
    v = ""
    if txt in argv:
        i = argv.index(txt)
        if i + 1 < len(argv):
            v = argv[i + 1]
        del argv[i : i + 2]
    return v


def _parse_info(raw: str) -> dict[str, Any]:
    try:
        info = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return info if isinstance(info, dict) else {}


def parse_args(argv: list[str]) -> LaunchArgs:
    """Parse the host supplied flags, in any order.

    Raises:
        StartupArgError: a required flag is missing or invalid
    """
    values: dict[str, str] = {}
    i = 0
    while i < len(argv):
        field = HOST_FLAGS.get(argv[i].lower())
        if field and i + 1 < len(argv):
            values[field] = argv[i + 1]
            i += 2
        else:
            i += 1

    for field, flag in (("port", "-port"), ("plugin_uuid", "-pluginUUID"), ("register_event", "-registerEvent")):
        if not values.get(field, "").strip():
            msg = f"Missing {flag} argument"
            raise StartupArgError(msg)
    try:
        port = int(values["port"])
    except ValueError as e:
        msg = f"Invalid -port value: {values['port']}"
        raise StartupArgError(msg) from e
    if not 0 < port <= MAX_PORT:
        msg = f"Invalid -port value: {port}"
        raise StartupArgError(msg)

    return LaunchArgs(
        port=port,
        plugin_uuid=values["plugin_uuid"],
        register_event=values["register_event"],
        info=_parse_info(values.get("info", "")),
    )


async def run_plugin(args: LaunchArgs, config: Configuration) -> None:
    """Connect, register and serve until the host closes the connection.

    Raises:
        TransportError: the connection couldn't be opened or failed
    """
    backend = select_backend(config, get_logger("backend"))
    connection = HostConnection(args.port, get_logger("connection"))
    session = Session(connection, backend, config, get_logger())
    try:
        await session.register(args.register_event, args.plugin_uuid)
    except TransportError:
        await connection.close()
        raise
    await session.run()


def main() -> None:
    """Run the plugin."""
    argv = sys.argv[1:]
    debug_flag = use_param(argv, "--debug")
    config_override = use_param(argv, "--config")
    if debug_flag:
        init_logger(filename=debug_flag, force_debug=True)
    else:
        init_logger()
    log = get_logger("startup")

    try:
        args = parse_args(argv)
    except StartupArgError as e:
        log.critical("%s", e)
        sys.exit(ExitCode.FAILURE)

    try:
        config = load_config(config_override or CONFIG_FILE, get_logger("config"))
    except ConfigError:
        log.critical("Invalid settings file.")
        sys.exit(ExitCode.FAILURE)

    if config.get_bool("debug"):
        enable_debug()
    log_file = config.get_str("log_file")
    if log_file:
        try:
            add_log_file(log_file)
        except OSError as e:
            log.warning("Can't open log file %s: %s", log_file, e)
    log.debug("Host info: %s", args.info)

    try:
        asyncio.run(run_plugin(args, config))
    except KeyboardInterrupt:
        pass
    except TransportError as e:
        log.critical("Connection failed: %s", e)
        sys.exit(ExitCode.FAILURE)
    except Exception:  # pylint: disable=W0718
        log.critical("Unhandled exception:", exc_info=True)
        sys.exit(ExitCode.FAILURE)
    sys.exit(ExitCode.SUCCESS)
