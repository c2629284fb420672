"""Tests for record formatting and chunking strategies."""

from __future__ import annotations

import pytest

from materials_rag.indexing.chunker import (
    MultiFieldChunker,
    SingleChunker,
    build_chunker,
)
from materials_rag.indexing.collections import get_collection
from materials_rag.indexing.formatter import format_material_text
from materials_rag.models.domain import FormulaRecord, MaterialRecord


def _ginger(sample_records):
    doc = next(d for d in sample_records["raw_materials_real_stock"] if d["rm_code"] == "RM002345")
    return MaterialRecord.from_document(doc)


def test_legacy_field_names_are_read():
    record = MaterialRecord.from_document(
        {"rm_code": "RM9", "INCI_name": "Aqua", "Function": "Solvent", "usecase": ["toner"], "rm_cost": "12.5"}
    )
    assert record.inci_name == "Aqua"
    assert record.function == "Solvent"
    assert record.use_cases == ["toner"]
    assert record.cost == 12.5


def test_material_text_field_order():
    record = MaterialRecord(
        record_id="RM1",
        rm_code="RM1",
        trade_name="Hyaluron Pure",
        inci_name="Sodium Hyaluronate",
        supplier="XYZ",
        benefits=["moisturizing", "hydrating"],
    )
    assert format_material_text(record) == (
        "Code: RM1\nTrade Name: Hyaluron Pure\nINCI: Sodium Hyaluronate\n"
        "Benefits: moisturizing, hydrating\nSupplier: XYZ"
    )


def test_render_is_stable():
    spec = get_collection("raw_materials_real_stock")
    record = MaterialRecord.from_document({"rm_code": "RM1", "trade_name": "A", "benefits": "x, y"})
    assert spec.render(record) == spec.render(record)
    text, metadata = spec.render(record)
    assert metadata["partition"] == "in_stock"
    assert metadata["source_collection"] == "raw_materials_real_stock"
    assert metadata["benefits"] == "x, y"


def test_single_chunker_emits_one_full_chunk():
    record = MaterialRecord(record_id="RM1", rm_code="RM1", trade_name="A")
    chunks = SingleChunker().chunk(record, "Code: RM1", {"rm_code": "RM1"})
    assert len(chunks) == 1
    assert chunks[0].chunk_id == "RM1_full"
    assert chunks[0].metadata["text"] == "Code: RM1"
    assert chunks[0].metadata["rm_code"] == "RM1"


def test_single_chunker_skips_blank_text():
    record = MaterialRecord(record_id="RM1", rm_code="RM1")
    assert SingleChunker().chunk(record, "  ", {}) == []


def test_multi_chunker_chunk_types(sample_records):
    record = _ginger(sample_records)
    chunks = MultiFieldChunker().chunk(record, "ignored", {"rm_code": record.rm_code})
    types = [c.chunk_type for c in chunks]
    assert types == [
        "primary_id",
        "code_exact",
        "tech_specs",
        "commercial",
        "benefits",
        "details_0",
        "combined",
        "thai",
    ]
    by_type = {c.chunk_type: c for c in chunks}
    assert by_type["code_exact"].text == "RM002345 Ginger Extract"
    assert by_type["primary_id"].priority == 1.0
    assert by_type["combined"].priority == 0.85
    assert "ซัพพลายเออร์: Thai Herbal Labs" in by_type["thai"].text
    assert all(c.metadata["chunk_type"] == c.chunk_type for c in chunks)
    assert len({c.chunk_id for c in chunks}) == len(chunks)


def test_multi_chunker_code_only_record():
    record = MaterialRecord(record_id="RM1", rm_code="RM1")
    types = [c.chunk_type for c in MultiFieldChunker().chunk(record, "Code: RM1", {})]
    assert types == ["primary_id", "code_exact", "combined", "thai"]


def test_long_details_split_with_overlap():
    record = MaterialRecord(record_id="RM1", rm_code="RM1", details="x" * 250)
    chunks = MultiFieldChunker(max_chars=100, overlap_chars=20).chunk(record, "", {})
    details = [c for c in chunks if c.chunk_type.startswith("details_")]
    assert [c.chunk_type for c in details] == [f"details_{i}" for i in range(len(details))]
    assert len(details) >= 3
    assert all(len(c.text) <= 100 for c in details)
    combined = next(c for c in chunks if c.chunk_type == "combined")
    assert combined.text.endswith("...")
    assert len(combined.text) == 103


def test_multi_chunker_formula_falls_back_to_single():
    record = FormulaRecord(record_id="FM-1", formula_code="FM-1", name="Serum")
    chunks = MultiFieldChunker().chunk(record, "Formula Code: FM-1", {})
    assert [c.chunk_id for c in chunks] == ["FM-1_full"]


def test_overlap_must_be_smaller_than_chunk():
    with pytest.raises(ValueError):
        MultiFieldChunker(max_chars=50, overlap_chars=50)


def test_build_chunker():
    assert isinstance(build_chunker("multi"), MultiFieldChunker)
    assert isinstance(build_chunker("single"), SingleChunker)
