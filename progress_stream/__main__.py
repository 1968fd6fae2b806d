"""Command line watcher that prints updates from a progress endpoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional, Sequence, TextIO

from progress_stream.callbacks import StreamCallbacks
from progress_stream.client import StreamingClient
from progress_stream.config import StreamSettings, get_settings

LOGGER = logging.getLogger("progress_stream")

EXIT_COMPLETE = 0
EXIT_FAILED = 1
EXIT_NO_ENDPOINT = 2
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="progress-stream",
        description="Follow a progress endpoint until the job completes.",
    )
    parser.add_argument("url", nargs="?", help="Endpoint URL (http, https, ws or wss); defaults to the configured endpoint_url.")
    parser.add_argument("--max-attempts", type=int, default=None, help="Reconnect attempts before giving up.")
    parser.add_argument("--base-delay", type=float, default=None, help="Base reconnect delay in seconds.")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Override the configured log level.",
    )
    return parser.parse_args(argv)


async def watch(
    url: str,
    settings: StreamSettings,
    *,
    max_reconnect_attempts: int | None = None,
    base_delay: float | None = None,
    out: TextIO = sys.stdout,
) -> int:
    """Follow ``url`` until completion or terminal closure; return an exit code."""

    loop = asyncio.get_running_loop()
    finished: asyncio.Future[int] = loop.create_future()

    def _finish(code: int) -> None:
        if not finished.done():
            finished.set_result(code)

    def _on_progress(value: float, message: str) -> None:
        print(f"[{value:>6.1f}%] {message}", file=out)

    def _on_preview_ready(location: str) -> None:
        print(f"preview: {location}", file=out)

    def _on_complete(payload: dict[str, Any]) -> None:
        print(json.dumps(payload, default=str), file=out)
        _finish(EXIT_COMPLETE)

    def _on_error(description: str) -> None:
        LOGGER.warning("Server reported: %s", description)

    callbacks = StreamCallbacks(
        on_open=lambda: LOGGER.info("Watching %s", url),
        on_progress=_on_progress,
        on_preview_ready=_on_preview_ready,
        on_complete=_on_complete,
        on_error=_on_error,
        on_close=lambda: _finish(EXIT_FAILED),
    )
    client = StreamingClient(
        url,
        callbacks,
        settings=settings,
        max_reconnect_attempts=max_reconnect_attempts,
        base_delay=base_delay,
    )
    async with client:
        return await finished


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, args.log_level or settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    url = args.url or settings.endpoint_url
    if not url:
        LOGGER.error("No endpoint given; pass a URL or set PROGRESS_STREAM_ENDPOINT_URL")
        return EXIT_NO_ENDPOINT
    try:
        return asyncio.run(
            watch(url, settings, max_reconnect_attempts=args.max_attempts, base_delay=args.base_delay)
        )
    except KeyboardInterrupt:
        LOGGER.info("Watch interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
