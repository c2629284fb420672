"""Fixed registry of source collections and the partitions they feed."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from materials_rag.exceptions import IndexingError
from materials_rag.indexing.formatter import (
    format_formula_text,
    format_material_text,
    formula_metadata,
    material_metadata,
)
from materials_rag.models.domain import (
    ALL_FDA,
    FORMULAS,
    IN_STOCK,
    FormulaRecord,
    MaterialRecord,
    Partition,
)


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    partition: Partition
    record_kind: Literal["material", "formula"]

    def to_record(self, doc: dict) -> MaterialRecord | FormulaRecord:
        if self.record_kind == "formula":
            return FormulaRecord.from_document(doc)
        return MaterialRecord.from_document(doc)

    def render(self, record: MaterialRecord | FormulaRecord) -> tuple[str, dict]:
        """Embedding text and base metadata for one record."""
        if isinstance(record, FormulaRecord):
            return format_formula_text(record), formula_metadata(record, self.partition, self.name)
        return format_material_text(record), material_metadata(record, self.partition, self.name)


COLLECTIONS = MappingProxyType(
    {
        "raw_materials_real_stock": CollectionSpec("raw_materials_real_stock", IN_STOCK, "material"),
        "raw_materials_console": CollectionSpec("raw_materials_console", ALL_FDA, "material"),
        "formulas": CollectionSpec("formulas", FORMULAS, "formula"),
    }
)


def get_collection(name: str) -> CollectionSpec:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise IndexingError(
            f"Unknown collection '{name}'. Known: {', '.join(sorted(COLLECTIONS))}"
        ) from None
