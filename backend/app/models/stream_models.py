# backend/app/models/stream_models.py

from pydantic import BaseModel
from typing import Literal, Union


class ThoughtFrame(BaseModel):
    """Synthetic status line shown before content (generation only)."""
    type: Literal["thought"] = "thought"
    text: str


class ContentFrame(BaseModel):
    type: Literal["content"] = "content"
    delta: str


class ErrorFrame(BaseModel):
    type: Literal["error"] = "error"
    message: str


class DoneFrame(BaseModel):
    type: Literal["done"] = "done"


StreamFrame = Union[ThoughtFrame, ContentFrame, ErrorFrame, DoneFrame]

TERMINAL_FRAMES = (ErrorFrame, DoneFrame)


def is_terminal(frame: StreamFrame) -> bool:
    return isinstance(frame, TERMINAL_FRAMES)
