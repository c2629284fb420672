"""Shared test fixtures and hand-written fakes for the protocol seams."""

from __future__ import annotations

import asyncio
import hashlib
import json
import tempfile
from pathlib import Path

import pytest

from materials_rag.config.settings import Settings
from materials_rag.exceptions import ProviderTransientError, VectorStoreError
from materials_rag.models.domain import Match
from materials_rag.vectorstore.faiss_store import matches_filter

FIXTURES = Path(__file__).parent / "fixtures"
DIMS = 16


def bag_of_words_vector(text: str, dims: int = DIMS) -> list[float]:
    """Deterministic vector: each lowercase token bumps one hashed bucket."""
    vector = [0.0] * dims
    for token in text.lower().split():
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dims
        vector[bucket] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeEmbedder:
    """Deterministic embedder; any batch containing a poisoned substring fails."""

    def __init__(self, dims: int = DIMS, poison: tuple[str, ...] = ()) -> None:
        self._dims = dims
        self.poison = poison
        self.batch_calls: list[list[str]] = []
        self.single_calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return self._dims

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        if any(p in t for p in self.poison for t in texts):
            raise ProviderTransientError("simulated provider failure")
        return [bag_of_words_vector(t, self._dims) for t in texts]

    async def embed(self, text: str) -> list[float]:
        self.single_calls.append(text)
        if any(p in text for p in self.poison):
            raise ProviderTransientError("simulated provider failure")
        return bag_of_words_vector(text, self._dims)


class InMemoryVectorStore:
    """Dict-backed partitioned store; queries return canned matches when configured."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, tuple[list[float], dict]]] = {}
        self.canned: dict[str, list[Match]] = {}
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}
        self.fail_upserts = False
        self.queries: list[tuple[str, dict | None]] = []

    async def upsert(self, partition: str, items: list[tuple[str, list[float], dict]]) -> int:
        if self.fail_upserts:
            raise VectorStoreError("simulated upsert failure")
        bucket = self.items.setdefault(partition, {})
        for item_id, vector, metadata in items:
            bucket[item_id] = (list(vector), dict(metadata))
        return len(items)

    async def query(self, partition, vector, top_k=10, filter=None):
        self.queries.append((partition, filter))
        if partition in self.delays:
            await asyncio.sleep(self.delays[partition])
        if partition in self.failing:
            raise VectorStoreError(f"partition {partition} unavailable")
        if partition in self.canned:
            matches = [m for m in self.canned[partition] if matches_filter(m.metadata, filter)]
            return [Match(m.id, m.score, dict(m.metadata)) for m in matches[:top_k]]
        bucket = self.items.get(partition, {})
        scored = [
            Match(item_id, _cosine(vector, stored), dict(meta))
            for item_id, (stored, meta) in bucket.items()
            if matches_filter(meta, filter)
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def delete(self, partition: str, ids: list[str]) -> int:
        bucket = self.items.get(partition, {})
        return sum(1 for i in ids if bucket.pop(i, None) is not None)

    async def list_ids(self, partition: str, filter: dict | None = None) -> list[str]:
        bucket = self.items.get(partition, {})
        return [i for i, (_, meta) in bucket.items() if matches_filter(meta, filter)]

    async def count(self, partition: str) -> int:
        return len(self.items.get(partition, {}))


class InMemoryRecordStore:
    def __init__(self, collections: dict[str, list[dict]] | None = None) -> None:
        self.collections = collections or {}

    async def iter_batches(self, collection: str, batch_size: int):
        docs = self.collections.get(collection, [])
        for start in range(0, len(docs), batch_size):
            yield docs[start : start + batch_size]

    async def count(self, collection: str) -> int:
        return len(self.collections.get(collection, []))


class ScriptedGenerator:
    """Returns queued drafts in order, repeating the last one."""

    def __init__(self, *drafts: str) -> None:
        self.drafts = list(drafts)
        self.calls: list[str | None] = []

    async def generate(self, query, matches, feedback=None) -> str:
        self.calls.append(feedback)
        index = min(len(self.calls) - 1, len(self.drafts) - 1)
        return self.drafts[index]


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = (sum(x * x for x in a) ** 0.5) * (sum(y * y for y in b) ** 0.5)
    return dot / norm if norm else 0.0


def make_match(id: str, score: float, code: str | None = None, text: str = "", **meta) -> Match:
    metadata = {"text": text or f"record {id}", **meta}
    if code is not None:
        metadata["rm_code"] = code
    return Match(id=id, score=score, metadata=metadata)


@pytest.fixture
def settings():
    """Test settings with temp paths."""
    tmp = tempfile.mkdtemp()
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        embedding_dimensions=DIMS,
        embedding_cache_db_path=str(Path(tmp) / "cache.db"),
        record_db_path=str(Path(tmp) / "records.db"),
        faiss_index_path=str(Path(tmp) / "faiss_index"),
        indexing_batch_delay_s=0.0,
    )


@pytest.fixture
def sample_records() -> dict[str, list[dict]]:
    with open(FIXTURES / "sample_records.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def memory_store():
    return InMemoryVectorStore()


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()
