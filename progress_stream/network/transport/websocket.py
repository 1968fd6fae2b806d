"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from progress_stream.config import StreamSettings
from progress_stream.network.transport.base import BaseTransport, TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)

STREAMING_SCHEMES = frozenset({"ws", "wss"})


class WebSocketTransport(BaseTransport):
    """WebSocket-based transport for progress updates."""

    def __init__(self, url: str, settings: StreamSettings) -> None:
        scheme = urlsplit(url).scheme.lower()
        if scheme not in STREAMING_SCHEMES:
            raise ValueError(f"Unsupported WebSocket endpoint scheme {scheme!r} in {url!r}")
        self._url = url
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self) -> None:
        LOGGER.info("Connecting to progress WebSocket at %s", self._url)
        self._ws = await connect(
            self._url,
            open_timeout=self._settings.open_timeout_seconds,
            max_size=self._settings.max_message_bytes,
        )

    async def receive(self) -> str | bytes:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            close = exc.rcvd
            if close is None:
                raise TransportClosed() from exc
            raise TransportClosed(close.code, close.reason) from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        return raw

    async def close(self) -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close()
            self._ws = None
