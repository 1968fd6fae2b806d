"""Envelope model and message classification for progress frames."""

from .classify import (
    ClassifiedMessage,
    Completion,
    ErrorReport,
    FrameDecodeError,
    PreviewNotice,
    ProgressUpdate,
    Unrecognized,
    classify_message,
    extract_preview_url,
    normalize_preview_url,
    parse_frame,
)
from .envelope import InboundEnvelope

__all__ = [
    "ClassifiedMessage",
    "Completion",
    "ErrorReport",
    "FrameDecodeError",
    "InboundEnvelope",
    "PreviewNotice",
    "ProgressUpdate",
    "Unrecognized",
    "classify_message",
    "extract_preview_url",
    "normalize_preview_url",
    "parse_frame",
]
