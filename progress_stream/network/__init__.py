"""Network stack (transport/state/backoff) for the progress stream."""

from progress_stream.network.backoff import backoff_delay
from progress_stream.network.endpoint import normalize_endpoint
from progress_stream.network.state import ConnectionState, ConnectionTracker
from progress_stream.network.transport.base import BaseTransport, TransportClosed, TransportError
from progress_stream.network.transport.dummy import DummyTransport
from progress_stream.network.transport.websocket import WebSocketTransport

__all__ = [
    "backoff_delay",
    "normalize_endpoint",
    "ConnectionState",
    "ConnectionTracker",
    "BaseTransport",
    "TransportClosed",
    "TransportError",
    "DummyTransport",
    "WebSocketTransport",
]
