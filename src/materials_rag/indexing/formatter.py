"""Render source records as embedding text and flat vector-store metadata.

Field order is fixed so that re-indexing an unchanged record yields identical text,
and therefore an identical vector.
"""

from __future__ import annotations

from materials_rag.models.domain import FormulaRecord, MaterialRecord


def format_material_text(record: MaterialRecord) -> str:
    parts = [
        f"Code: {record.rm_code}" if record.rm_code else "",
        f"Trade Name: {record.trade_name}" if record.trade_name else "",
        f"INCI: {record.inci_name}" if record.inci_name else "",
        f"Function: {record.function}" if record.function else "",
        f"Benefits: {', '.join(record.benefits)}" if record.benefits else "",
        f"Use Cases: {', '.join(record.use_cases)}" if record.use_cases else "",
        f"Description: {record.description}" if record.description else "",
        f"Supplier: {record.supplier}" if record.supplier else "",
    ]
    return "\n".join(p for p in parts if p)


def format_formula_text(record: FormulaRecord) -> str:
    parts = [
        f"Formula Code: {record.formula_code}" if record.formula_code else "",
        f"Name: {record.name}" if record.name else "",
        f"Product Type: {record.product_type}" if record.product_type else "",
        f"Ingredients: {', '.join(record.ingredients)}" if record.ingredients else "",
        f"Target Benefits: {', '.join(record.target_benefits)}" if record.target_benefits else "",
        f"Description: {record.description}" if record.description else "",
    ]
    return "\n".join(p for p in parts if p)


def material_metadata(record: MaterialRecord, partition: str, collection: str) -> dict:
    return {
        "rm_code": record.rm_code,
        "trade_name": record.trade_name,
        "inci_name": record.inci_name,
        "function": record.function,
        "category": record.category,
        "supplier": record.supplier,
        "company_name": record.company_name,
        "cost": record.cost if record.cost is not None else 0.0,
        "benefits": ", ".join(record.benefits),
        "use_cases": ", ".join(record.use_cases),
        "partition": partition,
        "source_collection": collection,
    }


def formula_metadata(record: FormulaRecord, partition: str, collection: str) -> dict:
    return {
        "formula_code": record.formula_code,
        "name": record.name,
        "product_type": record.product_type,
        "ingredients": ", ".join(record.ingredients),
        "target_benefits": ", ".join(record.target_benefits),
        "partition": partition,
        "source_collection": collection,
    }
