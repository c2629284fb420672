"""Application-facing retrieval: classify, gate, route, embed, search."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from materials_rag.exceptions import RetrievalError
from materials_rag.models.domain import (
    ALL_FDA,
    FORMULAS,
    IN_STOCK,
    CollectionOverride,
    Match,
    RetrievalOutcome,
)
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.embedder import Embedder
from materials_rag.query.classifier import QueryClassifier
from materials_rag.retrieval.hybrid_search import HybridSearchExecutor
from materials_rag.retrieval.merge import tag_matches
from materials_rag.routing.router import CollectionRouter

logger = get_logger("retrieval_service")

IN_STOCK_SCORE_THRESHOLD = 0.8
MAX_ALTERNATIVES = 5


@dataclass
class AvailabilityResult:
    query: str
    in_stock: bool
    match: Match | None = None
    alternatives: list[Match] = field(default_factory=list)


class RetrievalService:
    def __init__(
        self,
        classifier: QueryClassifier,
        router: CollectionRouter,
        embedder: Embedder,
        executor: HybridSearchExecutor,
        request_timeout_s: float = 20.0,
    ) -> None:
        self._classifier = classifier
        self._router = router
        self._embedder = embedder
        self._executor = executor
        self._request_timeout_s = request_timeout_s

    async def retrieve(
        self,
        query: str,
        override: CollectionOverride | None = None,
        top_k: int | None = None,
    ) -> RetrievalOutcome:
        """Ranked matches for ``query``, or an empty outcome when it is not a materials query.

        An explicit ``override`` always runs the search. ``top_k`` asks for more than the
        default result cap.
        """
        classification = self._classifier.classify(query)
        if override is None and not classification.is_raw_materials_query:
            logger.info("retrieval_skipped", reason="not_materials_query", query_len=len(query))
            return RetrievalOutcome(classification=classification, routing=None, matches=[])

        routing = self._router.route(query, override)

        async def _run():
            vector = await self._embedder.embed(classification.query or query)
            return await self._executor.execute(routing, vector, classification, top_k)

        result = await self._bounded(_run(), "retrieve")
        return RetrievalOutcome(
            classification=classification,
            routing=routing,
            matches=result.matches,
            partition_errors=result.partition_errors,
        )

    async def search_formulas(self, query: str, top_k: int = 5) -> list[Match]:
        async def _run():
            vector = await self._embedder.embed(query)
            return await self._executor.search_partition(FORMULAS, [vector])

        matches = await self._bounded(_run(), "search_formulas")
        return tag_matches(matches[:top_k], FORMULAS)

    async def check_availability(self, code_or_name: str) -> AvailabilityResult:
        """In stock when the best stock hit scores above 0.8; otherwise catalog alternatives."""
        classification = self._classifier.classify(code_or_name)

        async def _run() -> AvailabilityResult:
            vector = await self._embedder.embed(classification.query or code_or_name)
            stock = await self._executor.search_partition(IN_STOCK, [vector], classification)
            if stock and stock[0].score > IN_STOCK_SCORE_THRESHOLD:
                return AvailabilityResult(
                    query=code_or_name,
                    in_stock=True,
                    match=tag_matches(stock[:1], IN_STOCK)[0],
                )
            catalog = await self._executor.search_partition(ALL_FDA, [vector], classification)
            return AvailabilityResult(
                query=code_or_name,
                in_stock=False,
                alternatives=tag_matches(catalog[:MAX_ALTERNATIVES], ALL_FDA),
            )

        result = await self._bounded(_run(), "check_availability")
        logger.info(
            "availability_checked",
            in_stock=result.in_stock,
            alternatives=len(result.alternatives),
        )
        return result

    async def _bounded(self, coro, operation: str):
        try:
            return await asyncio.wait_for(coro, timeout=self._request_timeout_s)
        except asyncio.TimeoutError as e:
            logger.error(
                "request_timeout", operation=operation, timeout_s=self._request_timeout_s
            )
            raise RetrievalError(
                f"{operation} exceeded {self._request_timeout_s}s request timeout"
            ) from e
