"""Keyword-signal router that picks partitions and a merge mode for a query."""

from __future__ import annotations

from materials_rag.models.domain import (
    ALL_FDA,
    IN_STOCK,
    CollectionOverride,
    RoutingDecision,
)
from materials_rag.observability.logger import get_logger

logger = get_logger("collection_router")

STOCK_KEYWORDS: tuple[str, ...] = (
    "in stock",
    "มีในสต็อก",
    "มีอยู่",
    "available",
    "can buy",
    "purchase",
    "order",
    "inventory",
    "stock",
    "สต็อก",
    "real stock",
    "actual stock",
    "ของที่มี",
    "ซื้อได้",
    "สั่งได้",
)

CATALOG_KEYWORDS: tuple[str, ...] = (
    "all ingredients",
    "fda",
    "registered",
    "approved",
    "วัตถุดิบทั้งหมด",
    "ทุกวัตถุดิบ",
    "any ingredient",
    "explore",
    "search all",
    "หาทั้งหมด",
    "ค้นหาทั้งหมด",
)

AVAILABILITY_KEYWORDS: tuple[str, ...] = (
    "do we have",
    "มีไหม",
    "available",
    "in stock",
    "can we get",
    "หาได้ไหม",
)


class CollectionRouter:
    """Pure function of (query, override); holds only its keyword lists."""

    def __init__(
        self,
        stock_keywords: tuple[str, ...] = STOCK_KEYWORDS,
        catalog_keywords: tuple[str, ...] = CATALOG_KEYWORDS,
        availability_keywords: tuple[str, ...] = AVAILABILITY_KEYWORDS,
    ) -> None:
        self._stock = stock_keywords
        self._catalog = catalog_keywords
        self._availability = availability_keywords

    def route(self, query: str, explicit: CollectionOverride | None = None) -> RoutingDecision:
        if explicit is not None:
            decision = self._explicit(explicit)
        else:
            decision = self._from_keywords((query or "").lower())
        logger.info(
            "query_routed",
            search_mode=decision.search_mode,
            collections=list(decision.collections),
            confidence=decision.confidence,
        )
        return decision

    @staticmethod
    def _explicit(explicit: CollectionOverride) -> RoutingDecision:
        if explicit == "both":
            return RoutingDecision(
                collections=(IN_STOCK, ALL_FDA),
                search_mode="unified",
                confidence=1.0,
                reasoning="Explicitly requested both collections",
            )
        if explicit == IN_STOCK:
            return RoutingDecision(
                collections=(IN_STOCK,),
                search_mode="stock_only",
                confidence=1.0,
                reasoning=f"Explicitly requested {explicit} collection",
            )
        return RoutingDecision(
            collections=(ALL_FDA,),
            search_mode="fda_only",
            confidence=1.0,
            reasoning=f"Explicitly requested {explicit} collection",
        )

    def _from_keywords(self, lowered: str) -> RoutingDecision:
        mentions_stock = _contains_any(lowered, self._stock)
        mentions_catalog = _contains_any(lowered, self._catalog)

        if mentions_stock and not mentions_catalog:
            return RoutingDecision(
                collections=(IN_STOCK,),
                search_mode="stock_only",
                confidence=0.9,
                reasoning="Query explicitly mentions stock/inventory",
            )
        if mentions_catalog and not mentions_stock:
            return RoutingDecision(
                collections=(ALL_FDA,),
                search_mode="fda_only",
                confidence=0.9,
                reasoning="Query asks for all FDA ingredients",
            )
        if _contains_any(lowered, self._availability):
            return RoutingDecision(
                collections=(IN_STOCK, ALL_FDA),
                search_mode="prioritize_stock",
                confidence=0.85,
                reasoning="Availability query - checking stock first, then FDA database",
            )
        return RoutingDecision(
            collections=(IN_STOCK, ALL_FDA),
            search_mode="prioritize_stock",
            confidence=0.7,
            reasoning="Default unified search - prioritizing in-stock materials",
        )


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword.lower() in text for keyword in keywords)


_default_router = CollectionRouter()


def route_query_to_collections(
    query: str, explicit: CollectionOverride | None = None
) -> RoutingDecision:
    return _default_router.route(query, explicit)
