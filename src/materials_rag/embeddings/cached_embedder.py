"""Caching wrapper around an Embedder that stores results in SQLite."""

from __future__ import annotations

from materials_rag.embeddings.cache import EmbeddingCache
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.embedder import Embedder

logger = get_logger("cached_embedder")


class CachedEmbedder:
    """Checks the cache first and calls the delegate only for misses."""

    def __init__(self, delegate: Embedder, cache: EmbeddingCache) -> None:
        self._delegate = delegate
        self._cache = cache

    @property
    def dimensions(self) -> int:
        return self._delegate.dimensions

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        cached = await self._cache.get_batch(texts)
        miss_indices = [i for i in range(len(texts)) if i not in cached]
        if not miss_indices:
            logger.debug("embed_batch_all_cached", count=len(texts))
            return [cached[i] for i in range(len(texts))]

        miss_texts = [texts[i] for i in miss_indices]
        miss_embeddings = await self._delegate.embed_batch(miss_texts)
        await self._cache.put_batch(miss_texts, miss_embeddings)

        result = dict(cached)
        result.update(zip(miss_indices, miss_embeddings))
        logger.info(
            "embed_batch_with_cache",
            total=len(texts),
            hits=len(texts) - len(miss_indices),
            misses=len(miss_indices),
        )
        return [result[i] for i in range(len(texts))]

    async def embed(self, text: str) -> list[float]:
        cached = await self._cache.get(text)
        if cached is not None:
            logger.debug("embed_cache_hit", text_len=len(text))
            return cached

        embedding = await self._delegate.embed(text)
        await self._cache.put_batch([text], [embedding])
        logger.debug("embed_cache_miss", text_len=len(text))
        return embedding
