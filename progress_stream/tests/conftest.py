from __future__ import annotations

from collections import deque
from typing import Any, Optional

import pytest

from progress_stream.callbacks import StreamCallbacks
from progress_stream.config import StreamSettings
from progress_stream.network.transport.dummy import DummyTransport

_EXPLODE = "__explode__"


class ScriptedTransport(DummyTransport):
    """Dummy transport that can refuse to connect or blow up mid-stream."""

    def __init__(self, url: str, settings: Optional[StreamSettings], *, fail_connect: bool = False) -> None:
        super().__init__(url, settings)
        self.fail_connect = fail_connect
        self.connect_calls = 0
        self._receive_error: Optional[Exception] = None

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise OSError("connection refused")
        await super().connect()

    def explode(self, exc: Exception) -> None:
        self._receive_error = exc
        self.feed(_EXPLODE)

    async def receive(self) -> str | bytes:
        frame = await super().receive()
        if frame == _EXPLODE and self._receive_error is not None:
            raise self._receive_error
        return frame


class TransportPool:
    """Transport factory that records every transport it hands out."""

    def __init__(self) -> None:
        self.created: list[ScriptedTransport] = []
        self._plan: deque[str] = deque()

    def plan(self, *outcomes: str) -> None:
        """Queue ``"ok"`` / ``"fail"`` outcomes for the next connect attempts."""

        self._plan.extend(outcomes)

    def factory(self, url: str, settings: StreamSettings) -> ScriptedTransport:
        outcome = self._plan.popleft() if self._plan else "ok"
        transport = ScriptedTransport(url, settings, fail_connect=outcome == "fail")
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> ScriptedTransport:
        return self.created[-1]


class Recorder:
    """Collects callback invocations as ``(name, *args)`` tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def callbacks(self) -> StreamCallbacks:
        return StreamCallbacks(
            on_open=lambda: self.events.append(("open",)),
            on_progress=lambda value, message: self.events.append(("progress", value, message)),
            on_preview_ready=lambda location: self.events.append(("preview", location)),
            on_complete=lambda payload: self.events.append(("complete", payload)),
            on_error=lambda description: self.events.append(("error", description)),
            on_close=lambda: self.events.append(("close",)),
        )

    def names(self) -> list[str]:
        return [event[0] for event in self.events]


@pytest.fixture
def settings() -> StreamSettings:
    return StreamSettings(
        transport="dummy",
        max_reconnect_attempts=5,
        reconnect_base_delay_seconds=0.01,
    )


@pytest.fixture
def transports() -> TransportPool:
    return TransportPool()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
