"""Host-facing callback set for the streaming client."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional, Union

NoArgHandler = Callable[[], Union[Awaitable[None], None]]
ProgressHandler = Callable[[float, str], Union[Awaitable[None], None]]
PreviewHandler = Callable[[str], Union[Awaitable[None], None]]
CompleteHandler = Callable[[dict[str, Any]], Union[Awaitable[None], None]]
ErrorHandler = Callable[[str], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class StreamCallbacks:
    """Optional notification handlers supplied by the host.

    Any handler may be omitted. Handlers run synchronously inside the
    client's event context; a handler that returns an awaitable has it
    scheduled on the running loop instead of awaited.
    """

    on_open: Optional[NoArgHandler] = None
    on_progress: Optional[ProgressHandler] = None
    on_preview_ready: Optional[PreviewHandler] = None
    on_complete: Optional[CompleteHandler] = None
    on_error: Optional[ErrorHandler] = None
    on_close: Optional[NoArgHandler] = None
