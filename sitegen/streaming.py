"""
Server-sent progress stream.

The edit orchestrator runs in a background task that ``pump``s its events
into a ``ProgressChannel``; the HTTP response iterates ``frames()``.
When the client goes away the channel is detached and later events are
dropped silently while the edit itself runs to completion.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

from sitegen.models import EditFailed

logger = logging.getLogger("sitegen.streaming")

_END = object()


def sse_frame(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


class ProgressChannel:
    """Single-producer, single-consumer queue of progress events."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._last_percentage = 0.0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: dict[str, Any]) -> None:
        if self._closed:
            return
        if "percentage" in event:
            # Percentages never go backwards
            pct = max(self._last_percentage, min(100.0, float(event["percentage"])))
            self._last_percentage = pct
            event = {**event, "percentage": pct}
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def detach(self) -> None:
        self._closed = True

    async def frames(self) -> AsyncIterator[str]:
        try:
            while True:
                event = await self._queue.get()
                if event is _END:
                    return
                yield sse_frame(event)
        finally:
            self.detach()


async def pump(events: AsyncIterator[dict[str, Any]], channel: ProgressChannel) -> None:
    """Drain *events* into *channel*; always ends the stream with a terminal event."""
    try:
        async for event in events:
            channel.emit(event)
    except Exception:
        logger.exception("Progress producer crashed")
        channel.emit(
            EditFailed(
                error="An unexpected error occurred while editing the website. Please try again.",
                code="EDIT_ERROR",
            ).model_dump()
        )
    finally:
        channel.close()
