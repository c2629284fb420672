"""Concurrent per-partition vector search with exact-code promotion and merge."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace

from materials_rag.exceptions import AllPartitionsFailedError, EmbeddingError
from materials_rag.models.domain import (
    ALL_FDA,
    IN_STOCK,
    Match,
    QueryClassification,
    RoutingDecision,
)
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.embedder import Embedder
from materials_rag.protocols.vector_store import PartitionedVectorStore
from materials_rag.query.classifier import fuzzy_match_score
from materials_rag.retrieval.merge import dedup_key, merge_partition_results

logger = get_logger("hybrid_search")

EXPANSION_CONFIDENCE_THRESHOLD = 0.5
MAX_QUERY_VARIANTS = 3
FUZZY_PROMOTION_THRESHOLD = 0.8


@dataclass
class SearchResult:
    matches: list[Match]
    partition_errors: dict[str, str] = field(default_factory=dict)


class HybridSearchExecutor:
    def __init__(
        self,
        vector_store: PartitionedVectorStore,
        embedder: Embedder | None = None,
        top_k: int = 10,
        result_cap: int = 10,
        stock_priority_boost: float = 0.2,
        partition_timeout_s: float = 5.0,
    ) -> None:
        self._store = vector_store
        self._embedder = embedder
        self._top_k = top_k
        self._result_cap = result_cap
        self._stock_boost = stock_priority_boost
        self._partition_timeout_s = partition_timeout_s

    async def search(
        self,
        routing: RoutingDecision,
        query_vector: list[float],
        classification: QueryClassification | None = None,
        top_k: int | None = None,
    ) -> list[Match]:
        return (await self.execute(routing, query_vector, classification, top_k)).matches

    async def execute(
        self,
        routing: RoutingDecision,
        query_vector: list[float],
        classification: QueryClassification | None = None,
        top_k: int | None = None,
    ) -> SearchResult:
        """Search every routed partition and merge.

        ``top_k`` widens both the per-partition depth and the merged cap, for callers that
        page or filter past the default result cap.
        """
        depth = top_k or self._top_k
        cap = max(self._result_cap, top_k) if top_k else self._result_cap
        vectors = [query_vector] + await self._expansion_vectors(classification)

        partitions = list(routing.collections)
        outcomes = await asyncio.gather(
            *(self._guarded_partition_search(p, vectors, classification, depth) for p in partitions)
        )

        by_partition: dict[str, list[Match]] = {}
        errors: dict[str, str] = {}
        for partition, (matches, error) in zip(partitions, outcomes):
            if error is not None:
                errors[partition] = error
            else:
                by_partition[partition] = matches

        if not by_partition:
            raise AllPartitionsFailedError(
                f"All partitions failed: {', '.join(f'{p}: {e}' for p, e in errors.items())}"
            )

        merged = merge_partition_results(
            routing.search_mode,
            by_partition.get(IN_STOCK, []),
            by_partition.get(ALL_FDA, []),
            result_cap=cap,
            stock_boost=self._stock_boost,
        )
        logger.info(
            "search_merged",
            search_mode=routing.search_mode,
            per_partition={p: len(m) for p, m in by_partition.items()},
            failed_partitions=list(errors),
            results=len(merged),
        )
        return SearchResult(matches=merged, partition_errors=errors)

    async def search_partition(
        self,
        partition: str,
        vectors: list[list[float]],
        classification: QueryClassification | None = None,
        top_k: int | None = None,
    ) -> list[Match]:
        """Ranked, code-unique matches from one partition."""
        top_k = top_k or self._top_k
        exact: list[Match] = []
        codes = classification.extracted_entities.codes if classification else ()
        if classification and classification.search_strategy == "exact_match" and codes:
            hits = await self._store.query(
                partition, vectors[0], top_k, filter={"rm_code": {"$in": list(codes)}}
            )
            exact = [replace(m, score=1.0, match_type="exact") for m in hits]

        best: dict[str, Match] = {}
        for vector in vectors:
            for match in await self._store.query(partition, vector, top_k):
                current = best.get(match.id)
                if current is None or match.score > current.score:
                    best[match.id] = match

        semantic = list(best.values())
        if classification and classification.search_strategy == "fuzzy_match":
            semantic = [self._fuzzy_rescore(m, classification) for m in semantic]
        semantic.sort(key=lambda m: m.score, reverse=True)

        ranked: list[Match] = []
        seen: set[str] = set()
        for match in exact + semantic:
            key = dedup_key(match)
            if key in seen:
                continue
            seen.add(key)
            ranked.append(match)
        logger.debug(
            "partition_searched",
            partition=partition,
            exact=len(exact),
            semantic=len(semantic),
            matches=len(ranked),
        )
        return ranked[:top_k]

    async def _guarded_partition_search(
        self,
        partition: str,
        vectors: list[list[float]],
        classification: QueryClassification | None,
        top_k: int,
    ) -> tuple[list[Match], str | None]:
        try:
            matches = await asyncio.wait_for(
                self.search_partition(partition, vectors, classification, top_k),
                timeout=self._partition_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "partition_timeout", partition=partition, timeout_s=self._partition_timeout_s
            )
            return [], f"timed out after {self._partition_timeout_s}s"
        except Exception as e:
            # One failing partition contributes zero matches; the caller decides on total failure.
            logger.warning("partition_failed", partition=partition, error=str(e))
            return [], str(e) or type(e).__name__
        return matches, None

    async def _expansion_vectors(
        self, classification: QueryClassification | None
    ) -> list[list[float]]:
        if (
            self._embedder is None
            or classification is None
            or classification.confidence >= EXPANSION_CONFIDENCE_THRESHOLD
        ):
            return []
        variants = [
            q for q in classification.expanded_queries if q != classification.query
        ][: MAX_QUERY_VARIANTS - 1]
        if not variants:
            return []
        try:
            return await self._embedder.embed_batch(variants)
        except EmbeddingError as e:
            logger.warning("expansion_embedding_failed", variants=len(variants), error=str(e))
            return []

    @staticmethod
    def _fuzzy_rescore(match: Match, classification: QueryClassification) -> Match:
        entities = classification.extracted_entities
        candidates = [
            str(match.metadata.get(key) or "")
            for key in ("rm_code", "trade_name", "inci_name", "name")
        ]
        best = max(
            (
                fuzzy_match_score(term, value)
                for term in entities.names + entities.codes
                for value in candidates
                if value
            ),
            default=0.0,
        )
        if best >= FUZZY_PROMOTION_THRESHOLD and best > match.score:
            return replace(match, score=best, match_type="fuzzy")
        return match
