"""SQLite-backed embedding cache keyed by model and text."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str, namespace: str = "") -> None:
        self._db_path = db_path
        self._namespace = namespace

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get(self, text: str) -> list[float] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT embedding FROM embedding_cache WHERE text_hash = ?",
                (self._hash(text),),
            ) as cursor:
                row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def get_batch(self, texts: list[str]) -> dict[int, list[float]]:
        """Return {index: embedding} for the texts already cached."""
        if not texts:
            return {}
        indices_by_hash: dict[str, list[int]] = {}
        for i, text in enumerate(texts):
            indices_by_hash.setdefault(self._hash(text), []).append(i)
        placeholders = ",".join("?" for _ in indices_by_hash)

        result: dict[int, list[float]] = {}
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                f"SELECT text_hash, embedding FROM embedding_cache WHERE text_hash IN ({placeholders})",
                list(indices_by_hash),
            ) as cursor:
                async for text_hash, raw in cursor:
                    embedding = json.loads(raw)
                    for idx in indices_by_hash.get(text_hash, []):
                        result[idx] = embedding
        return result

    async def put_batch(self, texts: list[str], embeddings: list[list[float]]) -> None:
        if not texts:
            return
        rows = [(self._hash(t), json.dumps(e)) for t, e in zip(texts, embeddings)]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO embedding_cache (text_hash, embedding) VALUES (?, ?)",
                rows,
            )
            await db.commit()

    def _hash(self, text: str) -> str:
        return hashlib.sha256(f"{self._namespace}\x00{text}".encode("utf-8")).hexdigest()
