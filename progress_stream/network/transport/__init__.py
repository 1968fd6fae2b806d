"""Transport implementations for the progress stream."""

from .base import BaseTransport, TransportClosed, TransportError
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "TransportClosed", "TransportError", "DummyTransport", "WebSocketTransport"]
