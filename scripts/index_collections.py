"""Build the vector partitions from the record store.

Usage:
    python scripts/index_collections.py                 # every registered collection
    python scripts/index_collections.py formulas        # just one
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from materials_rag.bootstrap import build_services
from materials_rag.exceptions import MaterialsRAGError
from materials_rag.indexing.collections import COLLECTIONS


async def main(names: list[str]) -> int:
    services = await build_services()
    # Collections write to disjoint partitions, so they may run side by side;
    # each one is indexed sequentially inside the pipeline.
    results = await asyncio.gather(
        *(services.indexing.index_collection(name) for name in names),
        return_exceptions=True,
    )
    await asyncio.to_thread(services.vector_store.save)

    exit_code = 0
    for name, result in zip(names, results):
        if isinstance(result, MaterialsRAGError):
            print(f"  {name}: FAILED ({result})")
            exit_code = 1
            continue
        if isinstance(result, BaseException):
            raise result
        report = asdict(result)
        print(
            f"  {name} -> {report['partition']}: {report['docs_processed']} processed, "
            f"{report['docs_skipped']} skipped, {report['chunks_written']} chunks, "
            f"{report['failed_batches']}/{report['batches']} batches failed"
        )
        if report["skipped_ids"]:
            print(f"    skipped: {', '.join(report['skipped_ids'][:20])}")
    return exit_code


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Index source collections into vector partitions")
    parser.add_argument("collections", nargs="*", help=f"any of: {', '.join(COLLECTIONS)}")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.collections or list(COLLECTIONS))))
