# backend/app/services/relay.py

"""
Relay plumbing shared by the streaming endpoints.

The handler returns a StreamingResponse right away; the frames are produced
by a background task writing into a FrameChannel, which the response drains.
The task body runs inside `async with channel`, so the channel is closed
exactly once whichever way the work ends.
"""

import asyncio
import time
from typing import AsyncIterator, Awaitable, Callable, Optional, Set

from fastapi.responses import StreamingResponse

from app.core.exceptions import ClientDisconnected
from app.core.logger import get_logger
from app.core.stream_codec import encode_frame
from app.models.stream_models import ErrorFrame, StreamFrame, is_terminal

logger = get_logger("relay")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

GENERIC_ERROR_MESSAGE = "An error occurred while processing your request."

_CLOSE = None

# Strong references so running relays are not garbage collected mid-stream
_background_tasks: Set[asyncio.Task] = set()


class FrameChannel:
    """Single-producer frame writer drained by the HTTP response."""

    def __init__(self, label: str = "relay"):
        self.label = label
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._consumer_gone = False
        self._terminal_sent = False
        self.frames_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    async def write(self, frame: StreamFrame):
        if self._consumer_gone:
            raise ClientDisconnected(f"{self.label}: client went away")
        if self._closed:
            raise ClientDisconnected(f"{self.label}: channel already closed")
        if self._terminal_sent:
            logger.warning(f"{self.label}: dropping {frame.type} frame written after the terminal frame")
            return

        await self._queue.put(encode_frame(frame))
        self.frames_written += 1
        if is_terminal(frame):
            self._terminal_sent = True

    async def close(self):
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSE)

    async def __aenter__(self) -> "FrameChannel":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def stream(self) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await self._queue.get()
                if chunk is _CLOSE:
                    break
                yield chunk
        finally:
            # Reached on normal end and when the server stops iterating
            # because the client disconnected.
            self._consumer_gone = True


RelayWork = Callable[[FrameChannel], Awaitable[None]]


async def run_relay(work: RelayWork, channel: FrameChannel):
    started = time.monotonic()
    async with channel:
        try:
            await work(channel)
        except ClientDisconnected:
            logger.info(f"{channel.label}: client disconnected, stopping")
        except Exception as e:
            logger.error(f"{channel.label}: relay failed: {e}", exc_info=True)
            if not channel.terminal_sent:
                try:
                    await channel.write(ErrorFrame(message=GENERIC_ERROR_MESSAGE))
                except ClientDisconnected:
                    pass

    logger.info(
        f"{channel.label}: closed after {channel.frames_written} frames "
        f"in {time.monotonic() - started:.2f}s"
    )


def spawn_relay(work: RelayWork, channel: FrameChannel) -> asyncio.Task:
    task = asyncio.create_task(run_relay(work, channel), name=channel.label)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def open_relay(work: RelayWork, label: str, channel: Optional[FrameChannel] = None) -> StreamingResponse:
    channel = channel or FrameChannel(label)
    spawn_relay(work, channel)
    logger.info(f"{label}: stream opened")

    return StreamingResponse(
        channel.stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
