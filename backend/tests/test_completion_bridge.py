"""
Unit tests for app/services/completion_bridge.py
"""
import pytest

from app.core.exceptions import ClientDisconnected
from app.core.llm import CHAT_PARAMS
from app.core.stream_codec import decode_stream
from app.models.stream_models import ContentFrame, DoneFrame, ErrorFrame
from app.services.completion_bridge import CompletionBridge
from app.services.relay import FrameChannel

from conftest import FakeProvider, drain

MESSAGES = [{"role": "user", "content": "Plan Rome"}]


async def _relay(provider, **kwargs):
    channel = FrameChannel("test")
    async with channel:
        result = await CompletionBridge(provider).relay(channel, MESSAGES, CHAT_PARAMS, **kwargs)
    frames = decode_stream(await drain(channel))
    return result, frames


@pytest.mark.asyncio
@pytest.mark.parametrize("fragments", [
    [],
    ["one"],
    ["Day ", "1", ": ", "Colosseum", "\n", "Day 2: Vatican"],
    ["a"] * 50,
    ["emoji ☕", "", "中文"],
])
async def test_content_concatenation_equals_provider_fragments(fragments):
    provider = FakeProvider(fragments)
    result, frames = await _relay(provider)

    content = [f.delta for f in frames if isinstance(f, ContentFrame)]
    assert "".join(content) == "".join(fragments)
    assert result.text == "".join(fragments)
    assert result.completed


@pytest.mark.asyncio
async def test_fragments_emitted_in_order_one_frame_each():
    provider = FakeProvider(["first", "second", "third"])
    _, frames = await _relay(provider)
    assert frames == [ContentFrame(delta="first"), ContentFrame(delta="second"), ContentFrame(delta="third")]


@pytest.mark.asyncio
async def test_bridge_never_writes_done():
    _, frames = await _relay(FakeProvider(["x"]))
    assert DoneFrame() not in frames


@pytest.mark.asyncio
async def test_provider_error_writes_single_error_frame_and_keeps_partial_text():
    provider = FakeProvider(["Day 1: ", "Colosseum", "never sent"], fail_after=2)
    result, frames = await _relay(provider, error_message="An error occurred while processing your message.")

    assert result.failed
    assert result.text == "Day 1: Colosseum"
    assert result.fragments == 2
    assert frames[-1] == ErrorFrame(message="An error occurred while processing your message.")
    assert sum(isinstance(f, ErrorFrame) for f in frames) == 1


@pytest.mark.asyncio
async def test_error_before_first_fragment():
    result, frames = await _relay(FakeProvider(["x"], fail_after=0))
    assert result.failed and result.text == ""
    assert len(frames) == 1 and isinstance(frames[0], ErrorFrame)


@pytest.mark.asyncio
async def test_unexpected_provider_exception_is_reported_as_error_frame():
    class BrokenProvider:
        async def stream(self, messages, params):
            yield "partial"
            raise KeyError("choices")

    result, frames = await _relay(BrokenProvider())
    assert result.failed
    assert result.text == "partial"
    assert isinstance(frames[-1], ErrorFrame)


@pytest.mark.asyncio
async def test_client_disconnect_stops_pulling_fragments():
    pulled = []

    class CountingProvider:
        async def stream(self, messages, params):
            for fragment in ("a", "b", "c", "d"):
                pulled.append(fragment)
                yield fragment

    class FlakyChannel(FrameChannel):
        async def write(self, frame):
            if self.frames_written == 2:
                raise ClientDisconnected("gone")
            await super().write(frame)

    channel = FlakyChannel("flaky")
    result = await CompletionBridge(CountingProvider()).relay(channel, MESSAGES, CHAT_PARAMS)

    assert result.disconnected and not result.failed
    assert result.text == "abc"
    assert pulled == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_provider_receives_messages_and_params():
    provider = FakeProvider(["ok"])
    await _relay(provider)
    assert provider.calls == [{"messages": MESSAGES, "params": CHAT_PARAMS}]
