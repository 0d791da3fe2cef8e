"""
Unit tests for app/services/relay.py: the frame channel and the
background relay task.
"""
import asyncio

import pytest

from app.core.exceptions import ClientDisconnected
from app.core.stream_codec import decode_stream
from app.models.stream_models import ContentFrame, DoneFrame, ErrorFrame
from app.services.relay import GENERIC_ERROR_MESSAGE, FrameChannel, open_relay, run_relay

from conftest import drain


class CountingChannel(FrameChannel):
    def __init__(self, label="counting"):
        super().__init__(label)
        self.close_calls = 0

    async def close(self):
        if not self.closed:
            self.close_calls += 1
        await super().close()


# ---------------------------------------------------------------------------
# FrameChannel
# ---------------------------------------------------------------------------

class TestFrameChannel:
    @pytest.mark.asyncio
    async def test_frames_drain_in_write_order(self):
        channel = FrameChannel()
        async with channel:
            for delta in ("a", "b", "c"):
                await channel.write(ContentFrame(delta=delta))
            await channel.write(DoneFrame())
        frames = decode_stream(await drain(channel))
        assert frames == [ContentFrame(delta="a"), ContentFrame(delta="b"), ContentFrame(delta="c"), DoneFrame()]

    @pytest.mark.asyncio
    async def test_only_one_terminal_frame(self):
        channel = FrameChannel()
        async with channel:
            await channel.write(ErrorFrame(message="first"))
            await channel.write(DoneFrame())
            await channel.write(ContentFrame(delta="late"))
        assert decode_stream(await drain(channel)) == [ErrorFrame(message="first")]

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        channel = CountingChannel()
        await channel.close()
        await channel.close()
        assert channel.close_calls == 1
        assert await drain(channel) == []

    @pytest.mark.asyncio
    async def test_write_after_consumer_left_raises(self):
        channel = FrameChannel()
        await channel.write(ContentFrame(delta="x"))

        stream = channel.stream()
        await stream.__anext__()
        await stream.aclose()

        with pytest.raises(ClientDisconnected):
            await channel.write(ContentFrame(delta="y"))

    @pytest.mark.asyncio
    async def test_write_after_close_raises(self):
        channel = FrameChannel()
        await channel.close()
        with pytest.raises(ClientDisconnected):
            await channel.write(ContentFrame(delta="y"))


# ---------------------------------------------------------------------------
# run_relay
# ---------------------------------------------------------------------------

class TestRunRelay:
    @pytest.mark.asyncio
    async def test_closes_once_on_success(self):
        channel = CountingChannel()

        async def work(ch):
            await ch.write(ContentFrame(delta="hi"))
            await ch.write(DoneFrame())

        await run_relay(work, channel)
        assert channel.close_calls == 1
        assert decode_stream(await drain(channel))[-1] == DoneFrame()

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_frame_and_closes(self):
        channel = CountingChannel()

        async def work(ch):
            await ch.write(ContentFrame(delta="partial"))
            raise RuntimeError("bug")

        await run_relay(work, channel)
        assert channel.close_calls == 1
        assert decode_stream(await drain(channel)) == [
            ContentFrame(delta="partial"),
            ErrorFrame(message=GENERIC_ERROR_MESSAGE),
        ]

    @pytest.mark.asyncio
    async def test_no_second_terminal_after_error_frame(self):
        channel = CountingChannel()

        async def work(ch):
            await ch.write(ErrorFrame(message="provider down"))
            raise RuntimeError("then a bug")

        await run_relay(work, channel)
        assert decode_stream(await drain(channel)) == [ErrorFrame(message="provider down")]

    @pytest.mark.asyncio
    async def test_client_disconnect_is_terminal_not_a_crash(self):
        channel = CountingChannel()

        async def work(ch):
            raise ClientDisconnected("gone")

        await run_relay(work, channel)
        assert channel.close_calls == 1
        assert await drain(channel) == []


@pytest.mark.asyncio
async def test_open_relay_returns_event_stream_before_work_finishes():
    release = asyncio.Event()
    channel = FrameChannel("slow")

    async def work(ch):
        await release.wait()
        await ch.write(DoneFrame())

    response = open_relay(work, label="slow", channel=channel)
    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["connection"] == "keep-alive"
    assert not channel.closed

    release.set()
    chunks = [chunk async for chunk in response.body_iterator]
    assert decode_stream(chunks) == [DoneFrame()]
    assert channel.closed
