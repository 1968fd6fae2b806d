import asyncio

import pytest

from progress_stream.client import CONNECTION_ERROR_MESSAGE, SETUP_ERROR_MESSAGE, StreamingClient
from progress_stream.config import StreamSettings
from progress_stream.network.state import ConnectionState


class _RecordingClient(StreamingClient):
    """Records scheduled backoff delays and retries on the next loop turn."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.delays: list[float] = []

    def _call_later(self, delay, callback):
        self.delays.append(delay)
        return asyncio.get_running_loop().call_soon(callback)


async def _wait_for(predicate, *, timeout: float = 1.0, interval: float = 0.005) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_backoff_doubles_until_budget_is_exhausted(recorder, transports):
    settings = StreamSettings(transport="dummy", max_reconnect_attempts=3, reconnect_base_delay_seconds=0.5)
    transports.plan("fail", "fail", "fail", "fail")
    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)

    client.connect()

    assert await _wait_for(lambda: ("close",) in recorder.events)
    assert client.delays == [0.5, 1.0, 2.0]
    assert recorder.events == [("error", CONNECTION_ERROR_MESSAGE)] * 4 + [("close",)]
    assert client.state is ConnectionState.CLOSED
    await asyncio.sleep(0.05)
    assert len(transports.created) == 4


@pytest.mark.asyncio
async def test_successful_open_restarts_backoff_sequence(recorder, transports):
    settings = StreamSettings(transport="dummy", max_reconnect_attempts=5, reconnect_base_delay_seconds=1.0)
    transports.plan("ok", "fail", "ok")
    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)

    transports.latest.drop(1011, "server restart")
    assert await _wait_for(lambda: len(transports.created) == 3 and client.is_connected())
    assert client.reconnect_attempts == 0

    transports.latest.drop()
    assert await _wait_for(lambda: len(transports.created) == 4 and client.is_connected())

    assert client.delays == [1.0, 2.0, 1.0]
    assert recorder.names() == ["open", "error", "open", "open"]
    await client.aclose()


@pytest.mark.asyncio
async def test_disconnect_cancels_pending_reconnect(recorder, transports, settings):
    settings = settings.model_copy(update={"reconnect_base_delay_seconds": 0.1})
    client = StreamingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)

    transports.latest.drop()
    assert await _wait_for(lambda: client.state is ConnectionState.RECONNECTING)
    client.disconnect()
    await asyncio.sleep(0.25)

    assert len(transports.created) == 1
    assert recorder.events == [("open",)]
    assert client.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_stale_timer_does_not_reconnect_after_disconnect(recorder, transports, settings):
    settings = settings.model_copy(update={"reconnect_base_delay_seconds": 0.5})
    client = StreamingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)
    transports.latest.drop()
    assert await _wait_for(lambda: client.state is ConnectionState.RECONNECTING)

    client.disconnect()
    client._on_reconnect_timer()
    await asyncio.sleep(0.05)

    assert len(transports.created) == 1
    assert client.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_no_callbacks_after_disconnect(recorder, transports, settings):
    client = StreamingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)
    transport = transports.latest

    await client.aclose()
    transport.feed('{"type":"progress","data":{"progress":50}}')
    transport.drop()
    await asyncio.sleep(0.05)

    assert recorder.events == [("open",)]
    assert transport.closed
    assert not client.is_connected()


@pytest.mark.asyncio
async def test_disconnect_during_handshake_suppresses_open(recorder, transports, settings):
    client = StreamingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)

    client.connect()
    client.disconnect()
    await client.wait_closed()
    await asyncio.sleep(0.02)

    assert recorder.events == []
    assert client.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_zero_budget_reports_close_on_first_drop(recorder, transports):
    settings = StreamSettings(transport="dummy", max_reconnect_attempts=0)
    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)

    transports.latest.drop()

    assert await _wait_for(lambda: client.state is ConnectionState.CLOSED)
    assert recorder.events == [("open",), ("close",)]
    assert client.delays == []


@pytest.mark.asyncio
async def test_receive_error_is_reported_then_reconnected(recorder, transports, settings):
    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)

    transports.latest.explode(ConnectionResetError("peer reset"))

    assert await _wait_for(lambda: len(transports.created) == 2 and client.is_connected())
    assert recorder.events == [("open",), ("error", CONNECTION_ERROR_MESSAGE), ("open",)]
    assert transports.created[0].closed
    await client.aclose()


@pytest.mark.asyncio
async def test_connect_after_terminal_close_starts_a_fresh_session(recorder, transports):
    settings = StreamSettings(transport="dummy", max_reconnect_attempts=1, reconnect_base_delay_seconds=0.25)
    transports.plan("fail", "fail", "ok")
    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)

    client.connect()
    assert await _wait_for(lambda: client.state is ConnectionState.CLOSED)
    assert client.reconnect_attempts == 1

    client.connect()
    assert await _wait_for(client.is_connected)

    assert client.reconnect_attempts == 0
    assert recorder.names() == ["error", "error", "close", "open"]
    await client.aclose()


@pytest.mark.asyncio
async def test_manual_connect_while_reconnecting_replaces_the_timer(recorder, transports, settings):
    settings = settings.model_copy(update={"reconnect_base_delay_seconds": 10.0})
    client = StreamingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=transports.factory)
    client.connect()
    assert await _wait_for(client.is_connected)
    transports.latest.drop()
    assert await _wait_for(lambda: client.state is ConnectionState.RECONNECTING)

    client.connect()

    assert await _wait_for(client.is_connected)
    assert client._reconnect_handle is None
    assert len(transports.created) == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_factory_failure_during_reconnect_reports_close(recorder, transports, settings):
    def _factory(url, _settings):
        if transports.created:
            raise OSError("resolver unavailable")
        return transports.factory(url, _settings)

    client = _RecordingClient("http://host/progress", recorder.callbacks(), settings=settings, transport_factory=_factory)
    client.connect()
    assert await _wait_for(client.is_connected)

    transports.latest.drop()

    assert await _wait_for(lambda: ("close",) in recorder.events)
    assert recorder.events == [("open",), ("error", SETUP_ERROR_MESSAGE), ("close",)]
    assert client.state is ConnectionState.CLOSED
    assert client.delays == [0.01]
