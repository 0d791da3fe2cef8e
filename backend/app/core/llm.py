# backend/app/core/llm.py

import asyncio
from typing import AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI
from pydantic import BaseModel

from app.core.config_loader import Settings, settings as default_settings
from app.core.exceptions import ProviderError
from app.core.logger import get_logger

logger = get_logger("llm")


class CompletionParams(BaseModel):
    max_tokens: int = 2000
    temperature: float = 0.7
    top_p: Optional[float] = None

    def as_kwargs(self) -> Dict[str, float]:
        kwargs = {"max_tokens": self.max_tokens, "temperature": self.temperature}
        if self.top_p is not None:
            kwargs["top_p"] = self.top_p
        return kwargs


# Itinerary generation is long-form; chat replies are shorter
GENERATION_PARAMS = CompletionParams(max_tokens=4000, temperature=0.7, top_p=0.95)
CHAT_PARAMS = CompletionParams(max_tokens=2000, temperature=0.7)


def _delta_text(chunk) -> Optional[str]:
    # Azure sends content-filter chunks with no choices
    if not chunk.choices:
        return None
    delta = chunk.choices[0].delta
    return getattr(delta, "content", None) if delta is not None else None


class CompletionProvider:
    """
    Streams chat completions from an explicitly constructed OpenAI client.

    Each wait for the next fragment is bounded by `idle_timeout`; a stalled
    provider surfaces as ProviderError instead of holding the response open.
    """

    def __init__(self, client: AsyncOpenAI, model: str, idle_timeout: float = 60.0):
        self.client = client
        self.model = model
        self.idle_timeout = idle_timeout

    async def stream(
        self,
        messages: List[Dict[str, str]],
        params: CompletionParams,
    ) -> AsyncIterator[str]:
        response = None
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    stream=True,
                    **params.as_kwargs(),
                ),
                timeout=self.idle_timeout,
            )
            chunks = response.__aiter__()
            while True:
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), timeout=self.idle_timeout)
                except StopAsyncIteration:
                    break
                text = _delta_text(chunk)
                if text:
                    yield text
        except asyncio.TimeoutError as e:
            logger.error(f"Completion stream idle for more than {self.idle_timeout}s")
            raise ProviderError(f"Completion service idle for {self.idle_timeout}s") from e
        except openai.OpenAIError as e:
            logger.error(f"Completion service error: {e}")
            raise ProviderError(str(e)) from e
        finally:
            if response is not None:
                await response.close()


def build_completion_provider(config: Optional[Settings] = None) -> CompletionProvider:
    config = config or default_settings

    if config.AZURE_OPENAI_ENDPOINT:
        # Deployment name doubles as the model name on Azure
        client = AsyncAzureOpenAI(
            api_key=config.OPENAI_API_KEY,
            azure_endpoint=config.AZURE_OPENAI_ENDPOINT,
            azure_deployment=config.OPENAI_MODEL,
            api_version=config.AZURE_OPENAI_API_VERSION,
        )
    else:
        client = AsyncOpenAI(api_key=config.OPENAI_API_KEY, base_url=config.OPENAI_BASE_URL)

    logger.info(f"Completion provider ready: model={config.OPENAI_MODEL}, azure={bool(config.AZURE_OPENAI_ENDPOINT)}")
    return CompletionProvider(
        client=client,
        model=config.OPENAI_MODEL,
        idle_timeout=config.PROVIDER_IDLE_TIMEOUT_SECONDS,
    )
