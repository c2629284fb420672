"""Protocol for the source document store the indexer reads from."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol


class RecordStore(Protocol):
    def iter_batches(self, collection: str, batch_size: int) -> AsyncIterator[list[dict]]: ...

    async def count(self, collection: str) -> int: ...
