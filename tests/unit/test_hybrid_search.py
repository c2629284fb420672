"""Tests for concurrent partition search."""

from __future__ import annotations

import dataclasses

import pytest
from conftest import FakeEmbedder, InMemoryVectorStore, make_match

from materials_rag.exceptions import AllPartitionsFailedError
from materials_rag.models.domain import RoutingDecision
from materials_rag.query.classifier import classify_query
from materials_rag.retrieval.hybrid_search import HybridSearchExecutor
from materials_rag.routing.router import route_query_to_collections

VECTOR = [1.0] + [0.0] * 15
BOTH = RoutingDecision(("in_stock", "all_fda"), "prioritize_stock", 0.7, "default")


@pytest.fixture
def store():
    store = InMemoryVectorStore()
    store.canned["in_stock"] = [
        make_match("RM002345_full", 0.6, code="RM002345", trade_name="Ginger Extract"),
        make_match("RM000001_full", 0.3, code="RM000001", trade_name="Hyaluron Pure"),
    ]
    store.canned["all_fda"] = [
        make_match("RM000001_full", 0.9, code="RM000001"),
        make_match("RM004410_full", 0.7, code="RM004410"),
    ]
    return store


async def test_exact_code_is_promoted(store):
    executor = HybridSearchExecutor(store, top_k=10)
    classification = classify_query("RM000001")
    matches = await executor.search_partition("in_stock", [VECTOR], classification)
    assert matches[0].business_code == "RM000001"
    assert matches[0].score == 1.0
    assert matches[0].match_type == "exact"
    assert [m.business_code for m in matches].count("RM000001") == 1
    assert store.queries[0] == ("in_stock", {"rm_code": {"$in": ["RM000001"]}})


async def test_semantic_search_skips_exact_filter(store):
    executor = HybridSearchExecutor(store)
    await executor.search_partition("in_stock", [VECTOR], classify_query("moisturizing serum"))
    assert all(f is None for _, f in store.queries)


async def test_fuzzy_name_match_is_rescored(store):
    executor = HybridSearchExecutor(store)
    matches = await executor.search_partition(
        "in_stock", [VECTOR], classify_query("Ginger Extract มีรหัสอะไร")
    )
    assert matches[0].business_code == "RM002345"
    assert matches[0].score == 1.0
    assert matches[0].match_type == "fuzzy"


async def test_unified_search_dedups_across_partitions(store):
    executor = HybridSearchExecutor(store)
    routing = route_query_to_collections("anything", explicit="both")
    result = await executor.execute(routing, VECTOR)
    codes = [m.business_code for m in result.matches]
    assert len(codes) == len(set(codes))
    shared = next(m for m in result.matches if m.business_code == "RM000001")
    assert shared.source == "in_stock"
    assert result.partition_errors == {}


async def test_prioritize_stock_order(store):
    result = await HybridSearchExecutor(store).execute(BOTH, VECTOR)
    assert [m.source for m in result.matches] == ["in_stock", "in_stock", "all_fda", "all_fda"]


async def test_timed_out_partition_contributes_nothing(store):
    store.delays["all_fda"] = 1.0
    executor = HybridSearchExecutor(store, partition_timeout_s=0.05)
    result = await executor.execute(BOTH, VECTOR)
    assert [m.source for m in result.matches] == ["in_stock", "in_stock"]
    assert "all_fda" in result.partition_errors


async def test_failed_partition_degrades(store):
    store.failing.add("in_stock")
    result = await HybridSearchExecutor(store).execute(BOTH, VECTOR)
    assert all(m.source == "all_fda" for m in result.matches)
    assert "unavailable" in result.partition_errors["in_stock"]


async def test_all_partitions_failed(store):
    store.failing.update({"in_stock", "all_fda"})
    with pytest.raises(AllPartitionsFailedError):
        await HybridSearchExecutor(store).execute(BOTH, VECTOR)


async def test_low_confidence_queries_add_expansion_vectors(store):
    embedder = FakeEmbedder()
    classification = dataclasses.replace(
        classify_query("hello"),
        confidence=0.3,
        expanded_queries=("hello", "variant one", "variant two", "variant three"),
    )
    executor = HybridSearchExecutor(store, embedder=embedder)
    await executor.search_partition("in_stock", [VECTOR], classification)
    await executor.execute(BOTH, VECTOR, classification)
    assert embedder.batch_calls == [["variant one", "variant two"]]
    # Original vector plus two variants, per partition.
    assert len(store.queries) == 1 + 3 * 2


async def test_top_k_limits_partition_results(store):
    store.canned["all_fda"] = [make_match(f"id{i}", 1 - i / 100, code=f"RM{i:06d}") for i in range(30)]
    matches = await HybridSearchExecutor(store, top_k=5).search_partition("all_fda", [VECTOR])
    assert len(matches) == 5
    assert [m.score for m in matches] == sorted((m.score for m in matches), reverse=True)


async def test_chunks_of_one_material_collapse_to_best(store):
    store.canned["all_fda"] = [
        make_match("RM000001_primary_id", 0.9, code="RM000001"),
        make_match("RM000001_tech_specs", 0.8, code="RM000001"),
        make_match("RM004410_combined", 0.7, code="RM004410"),
    ]
    matches = await HybridSearchExecutor(store).search_partition("all_fda", [VECTOR])
    assert [m.id for m in matches] == ["RM000001_primary_id", "RM004410_combined"]


async def test_top_k_widens_merged_cap(store):
    store.canned["all_fda"] = [make_match(f"id{i}", 1 - i / 100, code=f"RM{i:06d}") for i in range(30)]
    fda = RoutingDecision(("all_fda",), "fda_only", 0.9, "explicit")
    executor = HybridSearchExecutor(store)
    assert len(await executor.search(fda, VECTOR)) == 10
    assert len(await executor.search(fda, VECTOR, top_k=25)) == 25
