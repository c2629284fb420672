"""Protocol for record chunking."""

from __future__ import annotations

from typing import Protocol

from materials_rag.models.domain import Chunk, FormulaRecord, MaterialRecord


class Chunker(Protocol):
    def chunk(
        self, record: MaterialRecord | FormulaRecord, text: str, metadata: dict
    ) -> list[Chunk]: ...
