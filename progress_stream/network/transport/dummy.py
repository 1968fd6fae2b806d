"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from progress_stream.config import StreamSettings

from .base import BaseTransport, TransportClosed

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Transport whose frames are supplied by the host through :meth:`feed`.

    Nothing is read from the network. :meth:`drop` simulates the peer closing
    the stream; :meth:`close` ends it locally with a normal closure code.
    """

    def __init__(self, url: str = "ws://dummy", settings: Optional[StreamSettings] = None) -> None:
        self.url = url
        self._settings = settings
        self._inbox: asyncio.Queue[str | bytes | TransportClosed] = asyncio.Queue()
        self.connected = False
        self.closed = False

    def feed(self, frame: str | bytes) -> None:
        self._inbox.put_nowait(frame)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        self._inbox.put_nowait(TransportClosed(code, reason))

    async def connect(self) -> None:
        LOGGER.debug("Dummy transport connect() url=%s", self.url)
        self.connected = True

    async def receive(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, TransportClosed):
            self.connected = False
            raise item
        LOGGER.debug("Dummy transport receive(): %s", item)
        return item

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
        self.closed = True
        if self.connected:
            self.drop(1000, "client closed")
