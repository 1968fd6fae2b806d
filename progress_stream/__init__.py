"""Resilient streaming-update client for job progress endpoints."""

from progress_stream.callbacks import StreamCallbacks
from progress_stream.client import StreamingClient, create_streaming_client, default_transport_factory
from progress_stream.config import StreamSettings, get_settings
from progress_stream.network.state import ConnectionState

__all__ = [
    "ConnectionState",
    "StreamCallbacks",
    "StreamSettings",
    "StreamingClient",
    "create_streaming_client",
    "default_transport_factory",
    "get_settings",
]
