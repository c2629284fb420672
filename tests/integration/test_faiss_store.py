"""Integration tests for the partitioned FAISS store."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from materials_rag.exceptions import VectorStoreError
from materials_rag.vectorstore.faiss_store import FAISSPartitionedStore

DIMS = 4


def _unit(i: int) -> list[float]:
    vector = [0.0] * DIMS
    vector[i] = 1.0
    return vector


@pytest.fixture
async def store():
    store = FAISSPartitionedStore(dimensions=DIMS)
    await store.upsert(
        "in_stock",
        [
            ("RM1_full", _unit(0), {"rm_code": "RM1", "text": "one"}),
            ("RM2_full", _unit(1), {"rm_code": "RM2", "text": "two"}),
            ("RM3_full", [0.7, 0.7, 0.0, 0.0], {"rm_code": "RM3", "text": "three"}),
        ],
    )
    await store.upsert("all_fda", [("RM9_full", _unit(0), {"rm_code": "RM9"})])
    return store


async def test_query_ranks_by_cosine(store):
    matches = await store.query("in_stock", _unit(0), top_k=2)
    assert [m.id for m in matches] == ["RM1_full", "RM3_full"]
    assert matches[0].score == pytest.approx(1.0)
    assert matches[0].metadata["text"] == "one"


async def test_partitions_are_isolated(store):
    assert await store.count("in_stock") == 3
    assert await store.count("all_fda") == 1
    matches = await store.query("all_fda", _unit(1))
    assert [m.id for m in matches] == ["RM9_full"]
    assert await store.query("formulas", _unit(0)) == []
    assert store.partitions() == ["all_fda", "in_stock"]


async def test_upsert_overwrites_same_id(store):
    await store.upsert("in_stock", [("RM1_full", _unit(2), {"rm_code": "RM1", "text": "moved"})])
    assert await store.count("in_stock") == 3
    matches = await store.query("in_stock", _unit(2), top_k=1)
    assert matches[0].id == "RM1_full"
    assert store.get_metadata("in_stock", "RM1_full")["text"] == "moved"


async def test_filter_applies_to_whole_partition(store):
    matches = await store.query("in_stock", _unit(0), top_k=5, filter={"rm_code": {"$in": ["RM2"]}})
    assert [m.id for m in matches] == ["RM2_full"]
    matches = await store.query("in_stock", _unit(0), filter={"rm_code": "RM3"})
    assert [m.id for m in matches] == ["RM3_full"]


async def test_delete(store):
    assert await store.delete("in_stock", ["RM2_full", "missing"]) == 1
    assert await store.count("in_stock") == 2
    assert store.get_metadata("in_stock", "RM2_full") is None
    assert await store.delete("nowhere", ["x"]) == 0


async def test_invalid_upserts(store):
    with pytest.raises(VectorStoreError):
        await store.upsert("in_stock", [("a", _unit(0), {}), ("a", _unit(1), {})])
    with pytest.raises(VectorStoreError):
        await store.upsert("in_stock", [("b", [1.0, 0.0], {})])
    assert await store.upsert("in_stock", []) == 0


async def test_save_and_load(store, tmp_dir):
    path = str(Path(tmp_dir) / "faiss_index")
    store.save(path)

    loaded = FAISSPartitionedStore(dimensions=DIMS, index_path=path)
    assert loaded.partitions() == ["all_fda", "in_stock"]
    assert await loaded.count("in_stock") == 3
    matches = await loaded.query("in_stock", _unit(1), top_k=1)
    assert matches[0].id == "RM2_full"

    await loaded.upsert("in_stock", [("RM4_full", _unit(3), {"rm_code": "RM4"})])
    assert await loaded.count("in_stock") == 4


async def test_load_rejects_other_dimensions(store, tmp_dir):
    path = str(Path(tmp_dir) / "faiss_index")
    store.save(path)
    with pytest.raises(VectorStoreError):
        FAISSPartitionedStore(dimensions=8, index_path=path)


async def test_list_ids_by_metadata(store):
    assert sorted(await store.list_ids("in_stock")) == ["RM1_full", "RM2_full", "RM3_full"]
    assert await store.list_ids("in_stock", {"rm_code": {"$in": ["RM2", "RM7"]}}) == ["RM2_full"]
    assert await store.list_ids("formulas") == []


async def test_queries_never_observe_half_applied_overwrite(store):
    async def overwrite(n: int) -> None:
        await store.upsert("in_stock", [("RM1_full", _unit(0), {"rm_code": "RM1", "text": f"v{n}"})])

    async def lookup() -> list[str]:
        return [m.id for m in await store.query("in_stock", _unit(0), top_k=3)]

    results = await asyncio.gather(
        *(coro for n in range(50) for coro in (overwrite(n), lookup()))
    )
    lookups = [r for r in results if r is not None]
    assert len(lookups) == 50
    assert all("RM1_full" in ids for ids in lookups)
    assert await store.count("in_stock") == 3
