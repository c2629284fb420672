"""Protocol for partitioned vector storage."""

from __future__ import annotations

from typing import Protocol

from materials_rag.models.domain import Match


class PartitionedVectorStore(Protocol):
    async def upsert(
        self,
        partition: str,
        items: list[tuple[str, list[float], dict]],
    ) -> int:
        """Insert or overwrite (id, vector, metadata) items. Returns the number written."""
        ...

    async def query(
        self,
        partition: str,
        vector: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[Match]: ...

    async def delete(self, partition: str, ids: list[str]) -> int: ...

    async def list_ids(self, partition: str, filter: dict | None = None) -> list[str]:
        """Ids of stored items whose metadata matches ``filter``."""
        ...

    async def count(self, partition: str) -> int: ...
