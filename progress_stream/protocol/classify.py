"""Parsing and classification of inbound progress frames.

Everything here is pure: a frame goes in, a classified message comes out.
Dispatching the result to host callbacks is the client's job.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from pydantic import AnyUrl, TypeAdapter, ValidationError

from progress_stream.protocol.envelope import InboundEnvelope

PREVIEW_FIELDS: tuple[str, ...] = ("preview_url", "previewUrl", "url", "preview")
HTTP_SCHEMES = frozenset({"http", "https"})
DEFAULT_PROGRESS_MESSAGE = "Processing..."
DEFAULT_ERROR_MESSAGE = "Unknown error occurred"

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)


class FrameDecodeError(ValueError):
    """Raised when a frame is not a JSON document."""


@dataclass(frozen=True)
class ProgressUpdate:
    value: float
    message: str
    preview_url: Optional[str] = None


@dataclass(frozen=True)
class Completion:
    payload: dict[str, Any]
    preview_url: Optional[str] = None


@dataclass(frozen=True)
class ErrorReport:
    description: str


@dataclass(frozen=True)
class PreviewNotice:
    preview_url: str


@dataclass(frozen=True)
class Unrecognized:
    reason: str
    document: Any = field(default=None, compare=False)


ClassifiedMessage = Union[ProgressUpdate, Completion, ErrorReport, PreviewNotice, Unrecognized]


def parse_frame(frame: str | bytes) -> Any:
    """Decode a raw frame into a JSON document."""

    try:
        return json.loads(frame)
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError both land here
        raise FrameDecodeError(f"frame is not valid JSON: {exc}") from exc


def normalize_preview_url(candidate: str) -> Optional[str]:
    """Validate a preview location, repairing common formatting noise.

    Absolute http(s) URLs are returned unchanged and other absolute URLs are
    rejected. Strings that do not parse as absolute URLs are repaired:
    protocol-relative ``//host/...`` gains ``https:``, anything not starting
    with ``http`` gains ``https://``, and the rest passes through as-is.
    """

    try:
        url = _URL_ADAPTER.validate_python(candidate)
    except ValidationError:
        if candidate.startswith("//"):
            return f"https:{candidate}"
        if not candidate.startswith("http"):
            return f"https://{candidate}"
        return candidate
    if url.scheme in HTTP_SCHEMES:
        return candidate
    return None


def extract_preview_url(scope: Mapping[str, Any]) -> Optional[str]:
    """Return the normalized preview location carried by ``scope``, if any."""

    candidate = _first_present(scope, PREVIEW_FIELDS)
    if not isinstance(candidate, str):
        return None
    return normalize_preview_url(candidate)


def classify_message(
    document: Any,
    *,
    default_progress_message: str = DEFAULT_PROGRESS_MESSAGE,
    default_error_message: str = DEFAULT_ERROR_MESSAGE,
) -> ClassifiedMessage:
    """Classify a decoded frame into one of the message kinds."""

    try:
        envelope = InboundEnvelope.model_validate(document)
    except ValidationError:
        return Unrecognized("message is not a JSON object", document)

    scope: dict[str, Any] = envelope.data if isinstance(envelope.data, dict) else document
    kind = envelope.kind

    if kind == "progress":
        if not _is_number(scope.get("progress")):
            return Unrecognized("progress message without a numeric progress value", document)
        return _progress(scope, default_progress_message)
    if kind == "complete":
        return Completion(payload=scope, preview_url=extract_preview_url(scope))
    if kind == "error":
        return ErrorReport(_error_description(envelope, scope, default_error_message))

    if _is_number(scope.get("progress")):
        return _progress(scope, default_progress_message)
    preview_url = extract_preview_url(scope)
    if preview_url:
        return PreviewNotice(preview_url)
    implicit_error = _first_string(scope.get("error"), envelope.error)
    if implicit_error is not None:
        return ErrorReport(implicit_error)
    return Unrecognized(f"unknown message type {kind!r}", document)


def _progress(scope: Mapping[str, Any], default_message: str) -> ProgressUpdate:
    message = scope.get("message")
    if not isinstance(message, str) or not message:
        message = default_message
    return ProgressUpdate(
        value=scope["progress"],
        message=message,
        preview_url=extract_preview_url(scope),
    )


def _error_description(envelope: InboundEnvelope, scope: Mapping[str, Any], default: str) -> str:
    description = _first_string(scope.get("error"), envelope.error, envelope.message)
    return description if description is not None else default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _first_present(scope: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = scope.get(name)
        if value:
            return value
    return None


def _first_string(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None
