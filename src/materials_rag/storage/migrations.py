"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS records (
    collection TEXT NOT NULL,
    record_id TEXT NOT NULL,
    document TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (collection, record_id)
)
"""

RECORDS_COLLECTION_INDEX = """
CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection)
"""


async def initialize_record_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(RECORDS_TABLE)
        await db.execute(RECORDS_COLLECTION_INDEX)
        await db.commit()
