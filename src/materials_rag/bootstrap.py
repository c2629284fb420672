"""Process-scoped construction of every service from one immutable Settings object."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from materials_rag.config.settings import Settings
from materials_rag.embeddings.cache import EmbeddingCache
from materials_rag.embeddings.cached_embedder import CachedEmbedder
from materials_rag.embeddings.openai_embedder import OpenAIEmbedder
from materials_rag.embeddings.retry import RetryPolicy
from materials_rag.exceptions import ConfigurationError
from materials_rag.generation.factory import build_answer_generator
from materials_rag.indexing.chunker import build_chunker
from materials_rag.indexing.pipeline import IndexingPipeline
from materials_rag.observability.logger import get_logger, setup_logging
from materials_rag.protocols.answer_generator import AnswerGenerator
from materials_rag.protocols.embedder import Embedder
from materials_rag.quality.reranker import ResponseReranker
from materials_rag.query.classifier import QueryClassifier
from materials_rag.retrieval.hybrid_search import HybridSearchExecutor
from materials_rag.retrieval.service import RetrievalService
from materials_rag.routing.router import CollectionRouter
from materials_rag.storage.sqlite_record_store import SQLiteRecordStore
from materials_rag.tools.search_tools import SearchToolExecutor
from materials_rag.vectorstore.faiss_store import FAISSPartitionedStore

logger = get_logger("bootstrap")


@dataclass
class Services:
    settings: Settings
    embedder: Embedder
    vector_store: FAISSPartitionedStore
    record_store: SQLiteRecordStore
    indexing: IndexingPipeline
    retrieval: RetrievalService
    generator: AnswerGenerator
    reranker: ResponseReranker
    tools: SearchToolExecutor


async def build_embedder(settings: Settings) -> Embedder:
    if not settings.openai_api_key:
        raise ConfigurationError("MRAG_OPENAI_API_KEY is required for embeddings")
    embedder: Embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        _dimensions=settings.embedding_dimensions,
        retry_policy=RetryPolicy(
            max_retries=settings.embedding_max_retries,
            base_delay_s=settings.embedding_backoff_base_s,
        ),
    )
    if settings.embedding_cache_enabled:
        cache = EmbeddingCache(settings.embedding_cache_db_path, namespace=settings.embedding_model)
        await cache.initialize()
        embedder = CachedEmbedder(delegate=embedder, cache=cache)
    return embedder


async def build_services(settings: Settings | None = None, embedder: Embedder | None = None) -> Services:
    settings = settings or Settings()
    setup_logging(settings.log_level, json=settings.log_json)

    for path in (settings.record_db_path, settings.embedding_cache_db_path):
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    record_store = SQLiteRecordStore(settings.record_db_path)
    await record_store.initialize()

    embedder = embedder or await build_embedder(settings)
    if embedder.dimensions != settings.embedding_dimensions:
        raise ConfigurationError(
            f"Embedder produces {embedder.dimensions} dimensions, "
            f"settings declare {settings.embedding_dimensions}"
        )
    vector_store = FAISSPartitionedStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )

    indexing = IndexingPipeline(
        record_store=record_store,
        chunker=build_chunker(
            settings.chunking_strategy, settings.chunk_max_chars, settings.chunk_overlap_chars
        ),
        embedder=embedder,
        vector_store=vector_store,
        batch_size=settings.indexing_batch_size,
        batch_delay_s=settings.indexing_batch_delay_s,
    )

    executor = HybridSearchExecutor(
        vector_store=vector_store,
        embedder=embedder,
        top_k=settings.search_top_k,
        result_cap=settings.search_result_cap,
        stock_priority_boost=settings.stock_priority_boost,
        partition_timeout_s=settings.partition_timeout_s,
    )
    retrieval = RetrievalService(
        classifier=QueryClassifier(),
        router=CollectionRouter(),
        embedder=embedder,
        executor=executor,
        request_timeout_s=settings.request_timeout_s,
    )

    services = Services(
        settings=settings,
        embedder=embedder,
        vector_store=vector_store,
        record_store=record_store,
        indexing=indexing,
        retrieval=retrieval,
        generator=build_answer_generator(settings),
        reranker=ResponseReranker(
            regenerate_threshold=settings.rerank_regenerate_threshold,
            max_attempts=settings.rerank_max_attempts,
        ),
        tools=SearchToolExecutor(retrieval),
    )
    logger.info(
        "services_ready",
        partitions=vector_store.partitions(),
        answer_generator=settings.answer_generator,
        chunking=settings.chunking_strategy,
    )
    return services
