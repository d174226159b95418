"""WebSocket connection to the Stream Deck host."""

import asyncio
import json
from collections.abc import AsyncIterator
from logging import Logger
from typing import Any

import aiohttp

from .constants import HOST_ADDRESS
from .models import ConnectionState, TransportError

__all__ = ["HostConnection"]


class HostConnection:
    """The plugin's single channel to the host.

    States: CONNECTING -> OPEN -> CLOSED. CLOSED is terminal.
    Outgoing messages are serialized so frames never interleave.
    """

    def __init__(self, port: int, log: Logger, host: str = HOST_ADDRESS) -> None:
        """Initialize.

        Args:
            port: Port the host listens on
            log: Logger
            host: Host address
        """
        self.url = f"ws://{host}:{port}"
        self.log = log
        self.state = ConnectionState.CONNECTING
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._send_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def connect(self) -> None:
        """Open the WebSocket.

        Raises:
            TransportError: the host can't be reached
        """
        self.log.debug("Connecting to %s", self.url)
        self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self.url, autoclose=True, max_msg_size=0)
        except (aiohttp.ClientError, OSError) as e:
            await self.close()
            msg = f"Cannot connect to {self.url}: {e}"
            raise TransportError(msg) from e
        self.state = ConnectionState.OPEN
        self.log.info("Connected to %s", self.url)

    async def send_json(self, message: dict[str, Any]) -> bool:
        """Send one message.

        Returns:
            False if the connection isn't open (the message is dropped)

        Raises:
            TransportError: the write failed, the connection is now closed
        """
        if not self.is_open or self._ws is None:
            return False
        data = json.dumps(message, separators=(",", ":"))
        async with self._send_lock:
            try:
                await self._ws.send_str(data)
            except (aiohttp.ClientError, ConnectionError) as e:
                self.state = ConnectionState.CLOSED
                msg = f"Sending {message.get('event')} failed: {e}"
                raise TransportError(msg) from e
        return True

    async def messages(self) -> AsyncIterator[str]:
        """Yield inbound text messages until the host closes the connection.

        aiohttp reassembles fragmented frames, each item is a complete message.

        Raises:
            TransportError: the connection failed
        """
        if self._ws is None:
            return
        async for msg in self._ws:
            if msg.type is aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type is aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type is aiohttp.WSMsgType.ERROR:
                self.state = ConnectionState.CLOSED
                error = self._ws.exception()
                raise TransportError(f"Connection failed: {error}") from error
        self.log.info("Host closed the connection (code %s)", self._ws.close_code)
        await self.close()

    async def close(self) -> None:
        """Close the socket and the HTTP session."""
        self.state = ConnectionState.CLOSED
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._session is not None and not self._session.closed:
            await self._session.close()
