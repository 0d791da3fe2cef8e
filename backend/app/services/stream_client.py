# backend/app/services/stream_client.py

from typing import Any, AsyncIterator, Dict, Optional

import httpx

from app.core.stream_codec import FrameDecoder
from app.models.stream_models import ContentFrame, DoneFrame, ErrorFrame, StreamFrame


async def iter_frames(
    client: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> AsyncIterator[StreamFrame]:
    """
    POST to a relay endpoint and yield frames as they arrive. Stops at [DONE];
    a non-2xx answer (the request was rejected before streaming) raises
    httpx.HTTPStatusError.
    """
    request_headers = {"Accept": "text/event-stream", **(headers or {})}
    decoder = FrameDecoder()

    async with client.stream("POST", url, json=payload, headers=request_headers) as resp:
        if resp.is_error:
            await resp.aread()
            resp.raise_for_status()

        async for chunk in resp.aiter_bytes():
            for frame in decoder.feed(chunk):
                yield frame
                if isinstance(frame, DoneFrame):
                    return

        for frame in decoder.flush():
            yield frame


async def collect_text(
    client: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """Concatenated content of one relay stream; raises RuntimeError on an error frame."""
    parts = []
    async for frame in iter_frames(client, url, payload, headers):
        if isinstance(frame, ContentFrame):
            parts.append(frame.delta)
        elif isinstance(frame, ErrorFrame):
            raise RuntimeError(frame.message)
    return "".join(parts)
