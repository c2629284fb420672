"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

QueryType = Literal[
    "exact_code", "name_search", "description_search", "property_search", "generic"
]
SearchStrategy = Literal["exact_match", "fuzzy_match", "semantic_search", "hybrid"]
Language = Literal["thai", "english", "mixed"]
SearchMode = Literal["stock_only", "fda_only", "unified", "prioritize_stock"]
Partition = Literal["in_stock", "all_fda", "formulas"]
CollectionOverride = Literal["in_stock", "all_fda", "both"]

IN_STOCK: Partition = "in_stock"
ALL_FDA: Partition = "all_fda"
FORMULAS: Partition = "formulas"


@dataclass(frozen=True)
class ExtractedEntities:
    codes: tuple[str, ...] = ()
    names: tuple[str, ...] = ()
    properties: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.codes or self.names or self.properties)


@dataclass(frozen=True)
class QueryClassification:
    query: str
    query_type: QueryType
    confidence: float
    detected_patterns: tuple[str, ...]
    extracted_entities: ExtractedEntities
    search_strategy: SearchStrategy
    expanded_queries: tuple[str, ...]
    language: Language

    @property
    def is_raw_materials_query(self) -> bool:
        """Gate for running retrieval at all."""
        return (
            self.confidence > 0.5
            or not self.extracted_entities.is_empty
            or bool(self.detected_patterns)
        )


@dataclass(frozen=True)
class RoutingDecision:
    collections: tuple[Partition, ...]
    search_mode: SearchMode
    confidence: float
    reasoning: str


@dataclass
class Match:
    id: str
    score: float
    metadata: dict
    source: str = ""
    priority_boost: float = 0.0
    match_type: str = "semantic"  # "semantic", "exact"

    @property
    def business_code(self) -> str | None:
        return self.metadata.get("rm_code") or self.metadata.get("formula_code")

    @property
    def text(self) -> str:
        return self.metadata.get("text", "")


@dataclass
class MaterialRecord:
    record_id: str
    rm_code: str
    trade_name: str = ""
    inci_name: str = ""
    function: str = ""
    category: str = ""
    supplier: str = ""
    company_name: str = ""
    cost: float | None = None
    benefits: list[str] = field(default_factory=list)
    use_cases: list[str] = field(default_factory=list)
    description: str = ""
    details: str = ""

    @classmethod
    def from_document(cls, doc: dict) -> MaterialRecord:
        """Build a record from a raw store document, tolerating legacy field names."""
        rm_code = str(doc.get("rm_code") or "").strip()
        record_id = rm_code or str(doc.get("_id") or doc.get("id") or "").strip()
        cost = doc.get("rm_cost", doc.get("cost"))
        return cls(
            record_id=record_id,
            rm_code=rm_code,
            trade_name=_as_text(doc.get("trade_name")),
            inci_name=_as_text(doc.get("inci_name") or doc.get("INCI_name")),
            function=_as_text(doc.get("function") or doc.get("Function")),
            category=_as_text(doc.get("category")),
            supplier=_as_text(doc.get("supplier")),
            company_name=_as_text(doc.get("company_name")),
            cost=float(cost) if cost not in (None, "") else None,
            benefits=_as_list(doc.get("benefits") or doc.get("benefits_cached")),
            use_cases=_as_list(doc.get("use_cases") or doc.get("usecase")),
            description=_as_text(
                doc.get("description") or doc.get("Chem_IUPAC_Name_Description")
            ),
            details=_as_text(doc.get("details")),
        )


@dataclass
class FormulaRecord:
    record_id: str
    formula_code: str
    name: str = ""
    product_type: str = ""
    ingredients: list[str] = field(default_factory=list)
    target_benefits: list[str] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_document(cls, doc: dict) -> FormulaRecord:
        formula_code = str(doc.get("formula_code") or doc.get("code") or "").strip()
        ingredients = []
        for item in doc.get("ingredients") or []:
            if isinstance(item, dict):
                label = _as_text(item.get("rm_code") or item.get("name"))
                if item.get("percentage") is not None:
                    label = f"{label} {item['percentage']}%"
                ingredients.append(label)
            else:
                ingredients.append(_as_text(item))
        return cls(
            record_id=formula_code or str(doc.get("_id") or doc.get("id") or ""),
            formula_code=formula_code,
            name=_as_text(doc.get("name") or doc.get("formula_name")),
            product_type=_as_text(doc.get("product_type")),
            ingredients=[i for i in ingredients if i],
            target_benefits=_as_list(doc.get("target_benefits") or doc.get("benefits")),
            description=_as_text(doc.get("description")),
        )


@dataclass
class Chunk:
    chunk_id: str
    record_id: str
    chunk_type: str
    text: str
    metadata: dict
    priority: float = 1.0


@dataclass
class IndexingReport:
    collection: str
    partition: str
    docs_processed: int = 0
    docs_skipped: int = 0
    chunks_written: int = 0
    chunks_failed: int = 0
    chunks_removed: int = 0
    batches: int = 0
    failed_batches: int = 0
    skipped_ids: list[str] = field(default_factory=list)


@dataclass
class RetrievalOutcome:
    classification: QueryClassification
    routing: RoutingDecision | None
    matches: list[Match]
    partition_errors: dict[str, str] = field(default_factory=dict)

    @property
    def used_context(self) -> bool:
        return bool(self.matches)


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _as_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v).strip() for v in value if str(v).strip()]
