# backend/app/services/completion_bridge.py

from contextlib import aclosing
from typing import Dict, List

from pydantic import BaseModel

from app.core.exceptions import ClientDisconnected, ProviderError
from app.core.llm import CompletionParams, CompletionProvider
from app.core.logger import get_logger
from app.models.stream_models import ContentFrame, ErrorFrame
from app.services.relay import FrameChannel

logger = get_logger("bridge")

DEFAULT_ERROR_MESSAGE = "An error occurred while generating a response."


class BridgeResult(BaseModel):
    text: str = ""
    fragments: int = 0
    failed: bool = False
    disconnected: bool = False

    @property
    def completed(self) -> bool:
        return not self.failed and not self.disconnected


class CompletionBridge:
    """
    Republishes provider fragments as content frames, in arrival order,
    and keeps the concatenated text for reconciliation.

    Never writes the done frame; the endpoint does that once it has
    reconciled. A provider failure produces exactly one error frame.
    """

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    async def relay(
        self,
        channel: FrameChannel,
        messages: List[Dict[str, str]],
        params: CompletionParams,
        error_message: str = DEFAULT_ERROR_MESSAGE,
    ) -> BridgeResult:
        parts: List[str] = []
        result = BridgeResult()

        try:
            async with aclosing(self.provider.stream(messages, params)) as fragments:
                async for fragment in fragments:
                    parts.append(fragment)
                    await channel.write(ContentFrame(delta=fragment))
        except ClientDisconnected:
            logger.info(f"{channel.label}: client gone after {len(parts)} fragments")
            result.disconnected = True
        except ProviderError as e:
            logger.error(f"{channel.label}: provider failed after {len(parts)} fragments: {e}")
            result.failed = True
        except Exception as e:
            logger.error(f"{channel.label}: unexpected completion stream failure: {e}", exc_info=True)
            result.failed = True

        if result.failed:
            try:
                await channel.write(ErrorFrame(message=error_message))
            except ClientDisconnected:
                result.disconnected = True

        result.text = "".join(parts)
        result.fragments = len(parts)
        return result
