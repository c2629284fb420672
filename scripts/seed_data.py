"""Seed the record store with sample materials and formulas for development."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from materials_rag.config.settings import Settings
from materials_rag.indexing.collections import get_collection
from materials_rag.observability.logger import get_logger, setup_logging
from materials_rag.storage.sqlite_record_store import SQLiteRecordStore

SAMPLE_PATH = Path(__file__).parent.parent / "tests" / "fixtures" / "sample_records.json"

logger = get_logger("seed_data")


async def main(input_path: Path) -> None:
    settings = Settings()
    setup_logging(settings.log_level, json=settings.log_json)
    Path(settings.record_db_path).parent.mkdir(parents=True, exist_ok=True)

    store = SQLiteRecordStore(settings.record_db_path)
    await store.initialize()

    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)

    for collection, docs in data.items():
        get_collection(collection)
        saved = await store.save_records(collection, docs)
        logger.info("collection_seeded", collection=collection, records=saved)
        print(f"  {collection}: {await store.count(collection)} records")

    print("Done! Run scripts/index_collections.py to build the vector partitions.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load sample records into the record store")
    parser.add_argument("--input", type=Path, default=SAMPLE_PATH)
    args = parser.parse_args()
    asyncio.run(main(args.input))
