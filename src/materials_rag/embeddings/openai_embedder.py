"""OpenAI embedding provider using text-embedding-3-small."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import openai
from openai import AsyncOpenAI

from materials_rag.embeddings.retry import RetryPolicy, call_with_retry
from materials_rag.exceptions import (
    EmbeddingError,
    ProviderAuthError,
    ProviderPermanentError,
    ProviderTransientError,
)
from materials_rag.observability.logger import get_logger

logger = get_logger("embeddings")

MAX_BATCH_SIZE = 100


def translate_openai_error(e: Exception) -> EmbeddingError:
    """Map an openai SDK exception onto the transient/permanent taxonomy."""
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderAuthError(f"Embedding provider rejected credentials: {e}")
    if isinstance(
        e,
        (
            openai.APITimeoutError,
            openai.APIConnectionError,
            openai.RateLimitError,
            openai.InternalServerError,
        ),
    ):
        return ProviderTransientError(f"Transient embedding failure: {e}")
    if isinstance(e, openai.APIStatusError) and e.status_code >= 500:
        return ProviderTransientError(f"Transient embedding failure: {e}")
    return ProviderPermanentError(f"Embedding request rejected: {e}")


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = MAX_BATCH_SIZE,
        _dimensions: int = 1536,
        retry_policy: RetryPolicy | None = None,
        client: AsyncOpenAI | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        # The SDK's own retries are disabled so the backoff schedule is ours alone.
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self._model = model
        self._batch_size = min(batch_size, MAX_BATCH_SIZE)
        self._dimensions = _dimensions
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        all_embeddings: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            batch = texts[i : i + self._batch_size]
            all_embeddings.extend(
                await call_with_retry(
                    lambda batch=batch: self._create(batch),
                    self._retry,
                    operation="embed_batch",
                    sleep=self._sleep,
                )
            )
        logger.info("embedded_texts", count=len(texts), model=self._model)
        return all_embeddings

    async def embed(self, text: str) -> list[float]:
        embeddings = await call_with_retry(
            lambda: self._create([text]),
            self._retry,
            operation="embed",
            sleep=self._sleep,
        )
        return embeddings[0]

    async def _create(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=batch, model=self._model)
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e
        # The API returns items tagged with their input index.
        ordered = sorted(response.data, key=lambda item: item.index)
        if len(ordered) != len(batch):
            raise ProviderPermanentError(
                f"Expected {len(batch)} embeddings, provider returned {len(ordered)}"
            )
        return [item.embedding for item in ordered]
