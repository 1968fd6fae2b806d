"""Endpoint scheme normalization."""

from __future__ import annotations

_SCHEME_MAP = (
    ("http://", "ws://"),
    ("https://", "wss://"),
)


def normalize_endpoint(url: str) -> str:
    """Map a web endpoint onto the matching streaming scheme.

    ``http://`` becomes ``ws://`` and ``https://`` becomes ``wss://``; any
    other URL is returned unchanged.
    """

    for web_prefix, stream_prefix in _SCHEME_MAP:
        if url.startswith(web_prefix):
            return stream_prefix + url[len(web_prefix):]
    return url
