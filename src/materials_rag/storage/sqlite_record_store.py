"""SQLite-backed source record store for materials and formulas."""

from __future__ import annotations

import hashlib
import json
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import aiosqlite

from materials_rag.storage.migrations import initialize_record_db


def document_key(doc: dict) -> str:
    """Stable primary key: business code, then storage id, then a content hash."""
    for field in ("rm_code", "formula_code", "_id", "id"):
        value = str(doc.get(field) or "").strip()
        if value:
            return value
    payload = json.dumps(doc, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


class SQLiteRecordStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_record_db(self._db_path)

    async def save_records(self, collection: str, docs: list[dict]) -> int:
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            (collection, document_key(doc), json.dumps(doc, ensure_ascii=False, default=str), now)
            for doc in docs
        ]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO records (collection, record_id, document, updated_at) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )
            await db.commit()
        return len(rows)

    async def get_record(self, collection: str, record_id: str) -> dict | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT document FROM records WHERE collection = ? AND record_id = ?",
                (collection, record_id),
            ) as cursor:
                row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def iter_batches(self, collection: str, batch_size: int) -> AsyncIterator[list[dict]]:
        """Yield documents in record_id order, ``batch_size`` at a time."""
        last_id = ""
        while True:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute(
                    "SELECT record_id, document FROM records "
                    "WHERE collection = ? AND record_id > ? ORDER BY record_id LIMIT ?",
                    (collection, last_id, batch_size),
                ) as cursor:
                    rows = await cursor.fetchall()
            if not rows:
                return
            last_id = rows[-1][0]
            yield [json.loads(document) for _, document in rows]
            if len(rows) < batch_size:
                return

    async def count(self, collection: str) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM records WHERE collection = ?", (collection,)
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def collections(self) -> list[str]:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT DISTINCT collection FROM records ORDER BY collection"
            ) as cursor:
                rows = await cursor.fetchall()
        return [row[0] for row in rows]
