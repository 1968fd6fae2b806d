"""Resilient streaming-update client for progress endpoints."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from functools import partial
from typing import Any, Optional

from progress_stream.callbacks import StreamCallbacks
from progress_stream.config import StreamSettings, get_settings
from progress_stream.network.backoff import backoff_delay
from progress_stream.network.endpoint import normalize_endpoint
from progress_stream.network.state import ConnectionState, ConnectionTracker
from progress_stream.network.transport.base import BaseTransport, TransportClosed
from progress_stream.network.transport.dummy import DummyTransport
from progress_stream.network.transport.websocket import WebSocketTransport
from progress_stream.protocol import (
    ClassifiedMessage,
    Completion,
    ErrorReport,
    FrameDecodeError,
    PreviewNotice,
    ProgressUpdate,
    classify_message,
    parse_frame,
)

LOGGER = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "WebSocket connection error"
SETUP_ERROR_MESSAGE = "Failed to establish WebSocket connection"

TransportFactory = Callable[[str, StreamSettings], BaseTransport]


def default_transport_factory(url: str, settings: StreamSettings) -> BaseTransport:
    """Build the transport selected by ``settings.transport``."""

    if settings.transport == "dummy":
        return DummyTransport(url, settings)
    return WebSocketTransport(url, settings)


class StreamingClient:
    """Receives progress updates over one reconnecting transport.

    The client owns at most one transport and one pending reconnect timer at
    a time. Every outcome reaches the host through :class:`StreamCallbacks`;
    nothing is raised back to the caller once the client is constructed.
    ``connect`` and ``disconnect`` must be called from the event loop thread.
    """

    def __init__(
        self,
        url: str,
        callbacks: Optional[StreamCallbacks] = None,
        *,
        settings: Optional[StreamSettings] = None,
        transport_factory: Optional[TransportFactory] = None,
        max_reconnect_attempts: int | None = None,
        base_delay: float | None = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._url = url
        self._callbacks = callbacks or StreamCallbacks()
        self._settings = settings or get_settings()
        self._transport_factory = transport_factory or default_transport_factory
        self._max_attempts = int(
            max_reconnect_attempts if max_reconnect_attempts is not None else self._settings.max_reconnect_attempts
        )
        self._base_delay = float(base_delay if base_delay is not None else self._settings.reconnect_base_delay_seconds)
        self._max_delay = self._settings.reconnect_max_delay_seconds
        self._jitter = self._settings.reconnect_jitter
        self._logger = logger or LOGGER
        self._tracker = ConnectionTracker()
        self._transport: Optional[BaseTransport] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_attempts = 0
        self._intentionally_closed = False
        self._ws_url: Optional[str] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def ws_url(self) -> Optional[str]:
        """Normalized endpoint of the latest connect attempt."""

        return self._ws_url

    @property
    def state(self) -> ConnectionState:
        return self._tracker.state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def is_connected(self) -> bool:
        return self._tracker.state is ConnectionState.OPEN

    def connect(self) -> None:
        """Open the transport in the background; no-op while connecting or open."""

        state = self._tracker.state
        if state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            self._logger.debug("Progress stream already %s; ignoring connect()", state.value.lower())
            return
        loop = asyncio.get_running_loop()
        self._cancel_reconnect_timer()
        if state is ConnectionState.CLOSED:
            self._reconnect_attempts = 0
        self._intentionally_closed = False
        self._ws_url = normalize_endpoint(self._url)
        try:
            transport = self._transport_factory(self._ws_url, self._settings)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("Failed to create transport for %s: %s", self._ws_url, exc)
            self._set_state(ConnectionState.CLOSED)
            self._emit("on_error", SETUP_ERROR_MESSAGE)
            # no retry follows, so this is the end of the session
            self._emit("on_close")
            return
        self._set_state(ConnectionState.CONNECTING)
        self._transport = transport
        self._task = loop.create_task(self._run(transport), name="progress-stream-connection")

    def disconnect(self) -> None:
        """Close the session for good; suppresses reconnects and further callbacks."""

        self._intentionally_closed = True
        self._cancel_reconnect_timer()
        transport = self._transport
        self._transport = None
        task = self._task
        if transport is not None and task is not None and not task.done() and not _is_current_task(task):
            task.cancel()
        if self._tracker.state is not ConnectionState.CLOSED:
            self._set_state(ConnectionState.CLOSED)
            self._logger.info("Progress stream to %s disconnected", self._ws_url or self._url)

    async def wait_closed(self) -> None:
        """Wait until the current connection task has released its transport."""

        task = self._task
        if task is None or _is_current_task(task):
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def aclose(self) -> None:
        self.disconnect()
        await self.wait_closed()

    async def __aenter__(self) -> StreamingClient:
        self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _run(self, transport: BaseTransport) -> None:
        try:
            try:
                await transport.connect()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                if self._transport is transport:
                    self._logger.warning("Progress stream connect failed for %s: %s", self._ws_url, exc)
                    self._emit("on_error", CONNECTION_ERROR_MESSAGE)
                return
            if self._transport is not transport:
                return
            self._reconnect_attempts = 0
            self._set_state(ConnectionState.OPEN)
            self._logger.info("Progress stream connected to %s", self._ws_url)
            self._emit("on_open")
            # disconnect() or a newer connect() swaps self._transport out
            while self._transport is transport:
                frame = await transport.receive()
                self._handle_frame(frame)
        except TransportClosed as exc:
            self._logger.info("Progress stream closed (code=%s, reason=%r)", exc.code, exc.reason)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if self._transport is transport:
                self._logger.warning("Progress stream transport error: %s", exc)
                self._emit("on_error", CONNECTION_ERROR_MESSAGE)
        finally:
            if self._transport is transport:
                self._transport = None
                self._handle_close()
            await self._close_transport(transport)

    def _handle_close(self) -> None:
        if self._intentionally_closed:
            return
        if self._reconnect_attempts < self._max_attempts:
            self._reconnect_attempts += 1
            delay = backoff_delay(
                self._reconnect_attempts,
                self._base_delay,
                max_delay=self._max_delay,
                jitter=self._jitter,
            )
            self._logger.info(
                "Reconnecting to %s in %.2fs (attempt %s/%s)",
                self._ws_url,
                delay,
                self._reconnect_attempts,
                self._max_attempts,
            )
            self._set_state(ConnectionState.RECONNECTING)
            self._reconnect_handle = self._call_later(delay, self._on_reconnect_timer)
            return
        self._logger.warning(
            "Progress stream to %s lost after %s reconnect attempt(s); giving up",
            self._ws_url,
            self._reconnect_attempts,
        )
        self._set_state(ConnectionState.CLOSED)
        self._emit("on_close")

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._intentionally_closed or self._tracker.state is not ConnectionState.RECONNECTING:
            return
        self.connect()

    def _call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def _cancel_reconnect_timer(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()

    def _handle_frame(self, frame: str | bytes) -> None:
        try:
            document = parse_frame(frame)
        except FrameDecodeError as exc:
            self._logger.warning("Dropping malformed progress frame: %s (raw=%.200r)", exc, frame)
            return
        self._logger.debug("Progress frame received: %s", document)
        message = classify_message(
            document,
            default_progress_message=self._settings.default_progress_message,
            default_error_message=self._settings.default_error_message,
        )
        self._dispatch(message)

    def _dispatch(self, message: ClassifiedMessage) -> None:
        if isinstance(message, ProgressUpdate):
            self._emit("on_progress", message.value, message.message)
            if message.preview_url:
                self._logger.info("Preview URL found in progress message: %s", message.preview_url)
                self._emit("on_preview_ready", message.preview_url)
        elif isinstance(message, Completion):
            if message.preview_url:
                self._logger.info("Preview URL found in complete message: %s", message.preview_url)
                self._emit("on_preview_ready", message.preview_url)
            self._emit("on_complete", message.payload)
        elif isinstance(message, ErrorReport):
            self._emit("on_error", message.description)
        elif isinstance(message, PreviewNotice):
            self._logger.info("Preview URL found in message without progress: %s", message.preview_url)
            self._emit("on_preview_ready", message.preview_url)
        else:
            self._logger.warning("Dropping progress frame: %s (%r)", message.reason, message.document)

    def _emit(self, name: str, *args: Any) -> None:
        if self._intentionally_closed:
            self._logger.debug("Suppressing %s after disconnect()", name)
            return
        handler = getattr(self._callbacks, name, None)
        if handler is None:
            return
        try:
            result = handler(*args)
        except Exception:  # noqa: BLE001
            self._logger.warning("Progress stream %s callback failed", name, exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            task.add_done_callback(partial(self._log_callback_failure, name))

    def _log_callback_failure(self, name: str, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.warning("Progress stream %s callback failed", name, exc_info=exc)

    def _set_state(self, next_state: ConnectionState) -> None:
        if self._tracker.state is next_state:
            return
        self._tracker.transition(next_state)

    async def _close_transport(self, transport: BaseTransport) -> None:
        try:
            await transport.close()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            self._logger.debug("Suppress transport close error", exc_info=True)


def create_streaming_client(
    url: str,
    callbacks: Optional[StreamCallbacks] = None,
    **kwargs: Any,
) -> StreamingClient:
    """Construct a :class:`StreamingClient` and start connecting right away."""

    client = StreamingClient(url, callbacks, **kwargs)
    client.connect()
    return client


def _is_current_task(task: asyncio.Task[Any]) -> bool:
    try:
        return asyncio.current_task() is task
    except RuntimeError:
        return False
