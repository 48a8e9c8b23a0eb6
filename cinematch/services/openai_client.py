"""
OpenAI providers - embeddings and chat completion
Thin adapters; all pipeline logic lives in the services that use them.
"""
from typing import Dict, List, Optional
import logging

from openai import AsyncOpenAI, APIError

from cinematch import config
from cinematch.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


def create_openai_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    api_key = api_key or config.OPENAI_API_KEY
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is not set in environment variables")
    return AsyncOpenAI(api_key=api_key)


class OpenAIEmbeddingProvider:
    """text -> vector via the OpenAI embeddings endpoint"""

    def __init__(self, client: AsyncOpenAI, model: str = config.OPENAI_EMBEDDING_MODEL):
        self.client = client
        self.model = model

    async def embed(self, text: str, dimensions: int) -> List[float]:
        vectors = await self.embed_batch([text], dimensions)
        return vectors[0] if vectors else []

    async def embed_batch(self, texts: List[str], dimensions: int) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=texts,
                dimensions=dimensions,
            )
        except APIError as e:
            logger.error(f"OpenAI embeddings error: {str(e)}")
            raise UpstreamUnavailableError("embedding provider", str(e)) from e

        # The API may return items out of order, index tells the position
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]


class OpenAITextGenerator:
    """Chat completion used to phrase the final recommendation answer"""

    FALLBACK_RESPONSE = "Sorry, I could not generate a response."

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = config.OPENAI_CHAT_MODEL_SMALL,
        temperature: float = 0.7,
        max_tokens: int = 800,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except APIError as e:
            logger.error(f"OpenAI chat completion error: {str(e)}")
            raise UpstreamUnavailableError("text generator", str(e)) from e

        if not response.choices:
            return self.FALLBACK_RESPONSE
        return response.choices[0].message.content or self.FALLBACK_RESPONSE
