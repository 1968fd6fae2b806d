"""Reconnection backoff schedule."""

from __future__ import annotations

import random
from typing import Optional


def backoff_delay(
    attempt: int,
    base_delay: float,
    *,
    max_delay: Optional[float] = None,
    jitter: float = 0.0,
) -> float:
    """Return the delay in seconds before reconnect ``attempt`` (1-indexed).

    The delay doubles per attempt: ``base_delay * 2 ** (attempt - 1)``.
    ``max_delay`` caps it and ``jitter`` scales it by a random factor in
    ``[1 - jitter, 1 + jitter]``.
    """

    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    delay = base_delay * (2 ** (attempt - 1))
    if max_delay is not None:
        delay = min(max_delay, delay)
    if jitter:
        delay *= random.uniform(1 - jitter, 1 + jitter)
    return max(0.0, delay)
