# backend/app/core/stream_codec.py

"""
Line-based SSE framing shared by the relay endpoints and their consumers.

Wire format (UTF-8):

    data: {"type":"thought","content":"..."}\\n\\n
    data: {"type":"content","content":"..."}\\n\\n
    data: {"type":"error","content":"..."}\\n\\n
    data: [DONE]\\n\\n
"""

import codecs
import json
from typing import Iterable, List, Optional, Union

from app.core.logger import get_logger
from app.models.stream_models import (
    ContentFrame,
    DoneFrame,
    ErrorFrame,
    StreamFrame,
    ThoughtFrame,
)

logger = get_logger("codec")

DATA_PREFIX = "data:"
DONE_TOKEN = "[DONE]"
FRAME_TERMINATOR = "\n\n"


# ---------------------------------------------------------------------------
# ENCODE
# ---------------------------------------------------------------------------
def _payload(frame: StreamFrame) -> dict:
    if isinstance(frame, ThoughtFrame):
        return {"type": "thought", "content": frame.text}
    if isinstance(frame, ContentFrame):
        return {"type": "content", "content": frame.delta}
    if isinstance(frame, ErrorFrame):
        return {"type": "error", "content": frame.message}
    raise TypeError(f"Unsupported frame: {frame!r}")


def encode_frame(frame: StreamFrame) -> bytes:
    if isinstance(frame, DoneFrame):
        body = DONE_TOKEN
    else:
        body = json.dumps(_payload(frame), ensure_ascii=False, separators=(",", ":"))
    return f"{DATA_PREFIX} {body}{FRAME_TERMINATOR}".encode("utf-8")


# ---------------------------------------------------------------------------
# DECODE
# ---------------------------------------------------------------------------
def _frame_from_payload(payload: dict) -> Optional[StreamFrame]:
    kind = payload.get("type")
    content = payload.get("content", "")
    if not isinstance(content, str):
        content = str(content)

    if kind == "thought":
        return ThoughtFrame(text=content)
    if kind == "content":
        return ContentFrame(delta=content)
    if kind == "error":
        return ErrorFrame(message=content)
    return None


def parse_line(line: str) -> Optional[StreamFrame]:
    """
    Parse one complete line. Returns None for blank lines, comments,
    non-data fields and malformed payloads.
    """
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):]
    if data.startswith(" "):
        data = data[1:]

    # The sentinel is never handed to the JSON parser
    if data.strip() == DONE_TOKEN:
        return DoneFrame()

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping malformed frame ({e.msg}): {data[:80]!r}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Skipping non-object frame payload: {data[:80]!r}")
        return None

    frame = _frame_from_payload(payload)
    if frame is None:
        logger.warning(f"Skipping frame with unknown type: {payload.get('type')!r}")
    return frame


class FrameDecoder:
    """
    Incremental decoder for arbitrary transport chunks.

    Chunk boundaries may fall inside a multi-byte character or inside a
    JSON payload; incomplete input is buffered until its line is complete.
    """

    def __init__(self):
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: Union[bytes, str]) -> List[StreamFrame]:
        if isinstance(chunk, bytes):
            chunk = self._text.decode(chunk)
        self._buffer += chunk

        *complete, self._buffer = self._buffer.split("\n")
        return self._parse_lines(complete)

    def flush(self) -> List[StreamFrame]:
        """Process whatever is left once the transport has ended."""
        tail = self._buffer + self._text.decode(b"", final=True)
        self._buffer = ""
        return self._parse_lines([tail]) if tail else []

    @staticmethod
    def _parse_lines(lines: Iterable[str]) -> List[StreamFrame]:
        frames = []
        for line in lines:
            frame = parse_line(line)
            if frame is not None:
                frames.append(frame)
        return frames


def decode_stream(chunks: Iterable[Union[bytes, str]]) -> List[StreamFrame]:
    decoder = FrameDecoder()
    frames: List[StreamFrame] = []
    for chunk in chunks:
        frames.extend(decoder.feed(chunk))
    frames.extend(decoder.flush())
    return frames
