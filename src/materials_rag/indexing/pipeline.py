"""Indexing pipeline: read records -> render -> chunk -> embed -> upsert, batch by batch."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from materials_rag.exceptions import EmbeddingError, ProviderAuthError, VectorStoreError
from materials_rag.indexing.collections import CollectionSpec, get_collection
from materials_rag.models.domain import Chunk, IndexingReport
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.chunker import Chunker
from materials_rag.protocols.embedder import Embedder
from materials_rag.protocols.record_store import RecordStore
from materials_rag.protocols.vector_store import PartitionedVectorStore

logger = get_logger("indexing")


class IndexingPipeline:
    """Best-effort bulk job. Failed items and batches are counted and skipped.

    Only credential failures abort a run, since they would fail every item the same way.
    Chunk ids are deterministic and upserts overwrite, so a partial run can simply be
    re-executed.
    """

    def __init__(
        self,
        record_store: RecordStore,
        chunker: Chunker,
        embedder: Embedder,
        vector_store: PartitionedVectorStore,
        batch_size: int = 100,
        batch_delay_s: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._record_store = record_store
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store
        self._batch_size = batch_size
        self._batch_delay_s = batch_delay_s
        self._sleep = sleep

    async def index_collection(self, name: str) -> IndexingReport:
        spec = get_collection(name)
        report = IndexingReport(collection=name, partition=spec.partition)
        total = await self._record_store.count(name)
        logger.info("indexing_started", collection=name, partition=spec.partition, total=total)

        async for docs in self._record_store.iter_batches(name, self._batch_size):
            if report.batches:
                await self._sleep(self._batch_delay_s)
            report.batches += 1
            await self._index_batch(spec, docs, report)
            logger.info(
                "indexing_progress",
                collection=name,
                batch=report.batches,
                processed=report.docs_processed,
                skipped=report.docs_skipped,
                total=total,
            )

        logger.info(
            "indexing_finished",
            collection=name,
            partition=spec.partition,
            docs_processed=report.docs_processed,
            docs_skipped=report.docs_skipped,
            chunks_written=report.chunks_written,
            failed_batches=report.failed_batches,
        )
        return report

    async def _index_batch(
        self, spec: CollectionSpec, docs: list[dict], report: IndexingReport
    ) -> None:
        chunks_by_record: dict[str, list[Chunk]] = {}
        for doc in docs:
            record = spec.to_record(doc)
            text, metadata = spec.render(record)
            chunks = self._chunker.chunk(record, text, metadata) if record.record_id else []
            if not chunks:
                self._skip(report, record.record_id or "<missing id>", 0, "empty_record")
                continue
            previous = chunks_by_record.pop(record.record_id, None)
            if previous is not None:
                # The later copy of a repeated id wins.
                self._skip(report, record.record_id, len(previous), "duplicate_in_batch")
            chunks_by_record[record.record_id] = chunks

        embedded = await self._embed(chunks_by_record, report)
        if not embedded:
            return

        items = [
            (chunk.chunk_id, vector, chunk.metadata)
            for chunks, vectors in embedded.values()
            for chunk, vector in zip(chunks, vectors)
        ]
        try:
            written = await self._vector_store.upsert(spec.partition, items)
        except VectorStoreError as e:
            report.failed_batches += 1
            for record_id, (chunks, _) in embedded.items():
                self._skip(report, record_id, len(chunks), "upsert_failed")
            logger.error(
                "batch_upsert_failed",
                collection=spec.name,
                batch=report.batches,
                records=len(embedded),
                error=str(e),
            )
            return

        report.docs_processed += len(embedded)
        report.chunks_written += written
        await self._remove_stale_chunks(spec, embedded, report)

    async def _remove_stale_chunks(
        self,
        spec: CollectionSpec,
        embedded: dict[str, tuple[list[Chunk], list[list[float]]]],
        report: IndexingReport,
    ) -> None:
        """Drop chunks a previous run wrote for these records that this run no longer produces."""
        current = {chunk.chunk_id for chunks, _ in embedded.values() for chunk in chunks}
        try:
            existing = await self._vector_store.list_ids(
                spec.partition, filter={"record_id": {"$in": list(embedded)}}
            )
            stale = [chunk_id for chunk_id in existing if chunk_id not in current]
            if stale:
                await self._vector_store.delete(spec.partition, stale)
        except VectorStoreError as e:
            logger.warning(
                "stale_chunk_cleanup_failed",
                collection=spec.name,
                batch=report.batches,
                error=str(e),
            )
            return
        report.chunks_removed += len(stale)

    async def _embed(
        self, chunks_by_record: dict[str, list[Chunk]], report: IndexingReport
    ) -> dict[str, tuple[list[Chunk], list[list[float]]]]:
        if not chunks_by_record:
            return {}
        texts = [c.text for chunks in chunks_by_record.values() for c in chunks]
        try:
            vectors = await self._embedder.embed_batch(texts)
        except ProviderAuthError:
            raise
        except EmbeddingError as e:
            logger.warning(
                "batch_embedding_failed_falling_back",
                batch=report.batches,
                records=len(chunks_by_record),
                error=str(e),
            )
            return await self._embed_per_record(chunks_by_record, report)

        embedded: dict[str, tuple[list[Chunk], list[list[float]]]] = {}
        offset = 0
        for record_id, chunks in chunks_by_record.items():
            embedded[record_id] = (chunks, vectors[offset : offset + len(chunks)])
            offset += len(chunks)
        return embedded

    async def _embed_per_record(
        self, chunks_by_record: dict[str, list[Chunk]], report: IndexingReport
    ) -> dict[str, tuple[list[Chunk], list[list[float]]]]:
        embedded: dict[str, tuple[list[Chunk], list[list[float]]]] = {}
        for record_id, chunks in chunks_by_record.items():
            try:
                vectors = await self._embedder.embed_batch([c.text for c in chunks])
            except ProviderAuthError:
                raise
            except EmbeddingError as e:
                self._skip(report, record_id, len(chunks), "embedding_failed", error=str(e))
                continue
            embedded[record_id] = (chunks, vectors)
        return embedded

    @staticmethod
    def _skip(
        report: IndexingReport, record_id: str, chunk_count: int, reason: str, **extra
    ) -> None:
        report.docs_skipped += 1
        report.chunks_failed += chunk_count
        report.skipped_ids.append(record_id)
        logger.warning("record_skipped", record_id=record_id, reason=reason, **extra)
