"""Deterministic reduction of per-partition matches into one ranked list."""

from __future__ import annotations

from dataclasses import replace

from materials_rag.models.domain import ALL_FDA, IN_STOCK, Match, SearchMode

DEFAULT_RESULT_CAP = 10
DEFAULT_STOCK_BOOST = 0.2


def dedup_key(match: Match) -> str:
    return match.business_code or match.id


def tag_matches(matches: list[Match], source: str, priority_boost: float = 0.0) -> list[Match]:
    return [replace(m, source=source, priority_boost=priority_boost) for m in matches]


def merge_partition_results(
    search_mode: SearchMode,
    stock_matches: list[Match],
    catalog_matches: list[Match],
    result_cap: int = DEFAULT_RESULT_CAP,
    stock_boost: float = DEFAULT_STOCK_BOOST,
) -> list[Match]:
    """Combine stock and catalog matches according to the routing mode.

    Stock matches are always placed before catalog matches, so the first-occurrence
    dedup in ``unified`` mode keeps the stock entry for a shared business code.
    """
    stock = tag_matches(stock_matches, IN_STOCK, stock_boost)
    catalog = tag_matches(catalog_matches, ALL_FDA)

    if search_mode == "stock_only":
        return stock[:result_cap]
    if search_mode == "fda_only":
        return catalog[:result_cap]
    if search_mode == "prioritize_stock":
        # Both partitions may list the same code; order alone conveys priority.
        return (stock + catalog)[:result_cap]

    seen: set[str] = set()
    unique: list[Match] = []
    for match in stock + catalog:
        key = dedup_key(match)
        if key in seen:
            continue
        seen.add(key)
        unique.append(match)
    unique.sort(key=lambda m: (m.priority_boost, m.score), reverse=True)
    return unique[:result_cap]
