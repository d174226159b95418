"""End to end tests against a local WebSocket host."""

import asyncio
import json
import socket

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from deckcord.connection import HostConnection
from deckcord.constants import ACTION_UUID
from deckcord.models import ConnectionState, TransportError
from deckcord.session import Session

from .testtools import FakeBackend


def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def start_host(handler):
    app = web.Application()
    app.router.add_get("/", handler)
    server = TestServer(app, host="127.0.0.1")
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_connect_failure(test_logger):
    connection = HostConnection(unused_port(), test_logger)
    with pytest.raises(TransportError):
        await connection.connect()
    assert connection.state is ConnectionState.CLOSED
    assert await connection.send_json({"event": "showOk"}) is False


@pytest.mark.asyncio
async def test_send_before_connect(test_logger):
    connection = HostConnection(1, test_logger)
    assert connection.url == "ws://127.0.0.1:1"
    assert connection.state is ConnectionState.CONNECTING
    assert await connection.send_json({"event": "showOk"}) is False


@pytest.mark.asyncio
async def test_messages_until_close(test_logger):
    async def host(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_str("first")
        await ws.send_bytes(b"second")
        await ws.close()
        return ws

    server = await start_host(host)
    try:
        connection = HostConnection(server.port, test_logger)
        await connection.connect()
        assert connection.is_open
        received = [m async for m in connection.messages()]
    finally:
        await server.close()

    assert received == ["first", "second"]
    assert connection.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_plugin_session(config, test_logger):
    """Register, show a button, press it, then get closed by the host."""
    received = []

    async def host(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        received.append(await ws.receive_json(timeout=5))

        def event(name):
            return json.dumps({"event": name, "action": ACTION_UUID, "context": "button-1", "payload": {}})

        await ws.send_str(event("willAppear"))
        await ws.send_str("{broken")
        await ws.send_str(json.dumps({"event": "keyDown", "action": "com.other.plugin", "context": "x"}))
        await ws.send_str(event("keyDown"))
        while True:
            message = await ws.receive_json(timeout=5)
            received.append(message)
            if message["event"] in {"showOk", "showAlert"}:
                break
        await ws.close()
        return ws

    server = await start_host(host)
    backend = FakeBackend(config, test_logger)
    backend.running = True
    backend.focus_default = True
    try:
        connection = HostConnection(server.port, test_logger)
        session = Session(connection, backend, config, test_logger)
        await session.register("registerPlugin", "plugin-uuid")
        await asyncio.wait_for(session.run(), timeout=5)
    finally:
        await server.close()

    assert received[0] == {"event": "registerPlugin", "uuid": "plugin-uuid"}
    events = [(m["event"], m.get("context")) for m in received[1:]]
    assert ("setTitle", "button-1") in events
    assert ("setImage", "button-1") in events
    assert ("setState", "button-1") in events
    assert events[-1] == ("showOk", "button-1")
    assert all(context == "button-1" for _, context in events)
    assert connection.state is ConnectionState.CLOSED
    assert session.contexts == set()
