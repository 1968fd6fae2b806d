"""Transport abstractions for the progress stream."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TransportError(RuntimeError):
    """Raised when the underlying transport fails."""


class TransportClosed(TransportError):
    """Raised by ``receive`` once the stream has ended."""

    def __init__(self, code: int = 1006, reason: str = "") -> None:
        super().__init__(f"transport closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason


class BaseTransport(ABC):
    """Abstract receive-only, WebSocket-like transport owned by one client."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str | bytes:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
