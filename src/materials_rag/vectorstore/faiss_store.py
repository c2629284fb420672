"""Partitioned FAISS vector store with overwrite-on-upsert, metadata filters and persistence."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import faiss
import numpy as np

from materials_rag.exceptions import VectorStoreError
from materials_rag.models.domain import Match
from materials_rag.observability.logger import get_logger

logger = get_logger("faiss_store")


def matches_filter(metadata: dict, filter: dict | None) -> bool:
    """Equality per key, or membership for ``{"key": {"$in": [...]}}``."""
    if not filter:
        return True
    for key, expected in filter.items():
        value = metadata.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if value not in expected["$in"]:
                return False
        elif value != expected:
            return False
    return True


class _PartitionIndex:
    """One isolated namespace: a FAISS inner-product index plus id and metadata maps."""

    def __init__(self, dimensions: int) -> None:
        self.index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self.id_to_key: dict[int, str] = {}
        self.key_to_int: dict[str, int] = {}
        self.metadata: dict[str, dict] = {}
        self.next_id = 0

    def upsert(self, keys: list[str], vectors: np.ndarray, metadatas: list[dict]) -> None:
        existing = [self.key_to_int[k] for k in keys if k in self.key_to_int]
        if existing:
            self.index.remove_ids(np.array(existing, dtype=np.int64))
        int_ids = [self._assign(k) for k in keys]
        self.index.add_with_ids(vectors, np.array(int_ids, dtype=np.int64))
        for key, meta in zip(keys, metadatas):
            self.metadata[key] = dict(meta)

    def delete(self, keys: list[str]) -> int:
        int_ids = [self.key_to_int.pop(k) for k in keys if k in self.key_to_int]
        if not int_ids:
            return 0
        self.index.remove_ids(np.array(int_ids, dtype=np.int64))
        for int_id in int_ids:
            key = self.id_to_key.pop(int_id)
            self.metadata.pop(key, None)
        return len(int_ids)

    def search(self, vector: np.ndarray, top_k: int, filter: dict | None) -> list[Match]:
        total = self.index.ntotal
        if total == 0:
            return []
        # Filters apply after the similarity search, so scan everything when filtering.
        k = total if filter else min(top_k, total)
        scores, indices = self.index.search(vector, k)
        results: list[Match] = []
        for idx, score in zip(indices[0], scores[0]):
            key = self.id_to_key.get(int(idx))
            if key is None:
                continue
            meta = self.metadata.get(key, {})
            if not matches_filter(meta, filter):
                continue
            results.append(Match(id=key, score=float(score), metadata=dict(meta)))
            if len(results) >= top_k:
                break
        return results

    def _assign(self, key: str) -> int:
        if key not in self.key_to_int:
            self.key_to_int[key] = self.next_id
            self.id_to_key[self.next_id] = key
            self.next_id += 1
        return self.key_to_int[key]


class FAISSPartitionedStore:
    def __init__(self, dimensions: int, index_path: str | None = None) -> None:
        self._dimensions = dimensions
        self._index_path = index_path
        self._partitions: dict[str, _PartitionIndex] = {}
        self._lock = asyncio.Lock()

        if index_path:
            self._try_load(index_path)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def partitions(self) -> list[str]:
        return sorted(self._partitions)

    async def upsert(self, partition: str, items: list[tuple[str, list[float], dict]]) -> int:
        if not items:
            return 0
        keys = [item[0] for item in items]
        if len(set(keys)) != len(keys):
            raise VectorStoreError(f"Duplicate ids in one upsert to '{partition}'")
        vectors = self._prepare([item[1] for item in items])
        metadatas = [item[2] for item in items]
        async with self._lock:
            await asyncio.to_thread(self._partition(partition).upsert, keys, vectors, metadatas)
        logger.debug("faiss_upserted", partition=partition, count=len(items))
        return len(items)

    async def query(
        self,
        partition: str,
        vector: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[Match]:
        index = self._partitions.get(partition)
        if index is None:
            return []
        prepared = self._prepare([vector])
        # Upsert and delete mutate the index and id maps off-thread.
        async with self._lock:
            return await asyncio.to_thread(index.search, prepared, top_k, filter)

    async def delete(self, partition: str, ids: list[str]) -> int:
        index = self._partitions.get(partition)
        if index is None:
            return 0
        async with self._lock:
            removed = await asyncio.to_thread(index.delete, ids)
        logger.info("faiss_deleted", partition=partition, count=removed)
        return removed

    async def list_ids(self, partition: str, filter: dict | None = None) -> list[str]:
        index = self._partitions.get(partition)
        if index is None:
            return []
        async with self._lock:
            return [key for key, meta in index.metadata.items() if matches_filter(meta, filter)]

    async def count(self, partition: str) -> int:
        index = self._partitions.get(partition)
        return index.index.ntotal if index else 0

    def get_metadata(self, partition: str, id: str) -> dict | None:
        index = self._partitions.get(partition)
        if index is None or id not in index.metadata:
            return None
        return dict(index.metadata[id])

    def save(self, path: str | None = None) -> None:
        path = path or self._index_path
        if not path:
            return
        for name, index in self._partitions.items():
            target = Path(path) / name
            target.mkdir(parents=True, exist_ok=True)
            faiss.write_index(index.index, str(target / "index.faiss"))
            with open(target / "mapping.json", "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "dimensions": self._dimensions,
                        "id_to_key": index.id_to_key,
                        "metadata": index.metadata,
                        "next_id": index.next_id,
                    },
                    f,
                    ensure_ascii=False,
                )
            logger.info("faiss_saved", partition=name, path=str(target), size=index.index.ntotal)

    def _try_load(self, path: str) -> None:
        if not os.path.isdir(path):
            return
        for name in sorted(os.listdir(path)):
            index_file = os.path.join(path, name, "index.faiss")
            mapping_file = os.path.join(path, name, "mapping.json")
            if not (os.path.exists(index_file) and os.path.exists(mapping_file)):
                continue
            with open(mapping_file, encoding="utf-8") as f:
                data = json.load(f)
            if data.get("dimensions", self._dimensions) != self._dimensions:
                raise VectorStoreError(
                    f"Partition '{name}' was built with {data['dimensions']} dimensions, "
                    f"store configured for {self._dimensions}"
                )
            index = _PartitionIndex(self._dimensions)
            index.index = faiss.read_index(index_file)
            index.id_to_key = {int(k): v for k, v in data["id_to_key"].items()}
            index.key_to_int = {v: k for k, v in index.id_to_key.items()}
            index.metadata = data["metadata"]
            index.next_id = data["next_id"]
            self._partitions[name] = index
            logger.info("faiss_loaded", partition=name, size=index.index.ntotal, path=path)

    def _partition(self, name: str) -> _PartitionIndex:
        if name not in self._partitions:
            self._partitions[name] = _PartitionIndex(self._dimensions)
        return self._partitions[name]

    def _prepare(self, vectors: list[list[float]]) -> np.ndarray:
        array = np.asarray(vectors, dtype=np.float32)
        if array.ndim != 2 or array.shape[1] != self._dimensions:
            raise VectorStoreError(
                f"Expected vectors of dimension {self._dimensions}, got shape {array.shape}"
            )
        array = np.ascontiguousarray(array)
        faiss.normalize_L2(array)
        return array
