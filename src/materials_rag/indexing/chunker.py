"""Chunking strategies: one chunk per record, or several field-focused chunks."""

from __future__ import annotations

from materials_rag.models.domain import Chunk, FormulaRecord, MaterialRecord

PRIMARY_IDENTIFIER = 1.0
TECHNICAL_SPECS = 0.9
COMMERCIAL_INFO = 0.8
DESCRIPTIVE_CONTENT = 0.7
COMBINED_CONTEXT = 0.85


def make_chunk(
    record_id: str, chunk_type: str, text: str, metadata: dict, priority: float = 1.0
) -> Chunk:
    chunk_id = f"{record_id}_{chunk_type}"
    return Chunk(
        chunk_id=chunk_id,
        record_id=record_id,
        chunk_type=chunk_type,
        text=text,
        metadata={
            **metadata,
            "record_id": record_id,
            "chunk_type": chunk_type,
            "priority": priority,
            "text": text,
        },
        priority=priority,
    )


class SingleChunker:
    """The whole normalized record as one ``full`` chunk."""

    def chunk(
        self, record: MaterialRecord | FormulaRecord, text: str, metadata: dict
    ) -> list[Chunk]:
        if not text.strip():
            return []
        return [make_chunk(record.record_id, "full", text, metadata)]


class MultiFieldChunker:
    """Identity, technical, commercial, descriptive, combined and Thai chunks per material.

    Formula records fall back to a single chunk.
    """

    def __init__(self, max_chars: int = 500, overlap_chars: int = 50) -> None:
        if overlap_chars >= max_chars:
            raise ValueError("overlap_chars must be smaller than max_chars")
        self._max_chars = max_chars
        self._overlap = overlap_chars

    def chunk(
        self, record: MaterialRecord | FormulaRecord, text: str, metadata: dict
    ) -> list[Chunk]:
        if not isinstance(record, MaterialRecord):
            return SingleChunker().chunk(record, text, metadata)

        rid = record.record_id
        chunks: list[Chunk] = []

        def add(chunk_type: str, parts: list[str], priority: float) -> None:
            if parts:
                chunks.append(make_chunk(rid, chunk_type, ". ".join(parts), metadata, priority))

        primary: list[str] = []
        if record.rm_code:
            primary += [f"Material Code: {record.rm_code}", f"Code: {record.rm_code}", record.rm_code]
        if record.trade_name:
            primary += [f"Trade Name: {record.trade_name}", record.trade_name]
        if record.inci_name:
            primary += [f"INCI Name: {record.inci_name}", f"INCI: {record.inci_name}"]
        add("primary_id", primary, PRIMARY_IDENTIFIER)

        if record.rm_code:
            add("code_exact", [f"{record.rm_code} {record.trade_name}".strip()], PRIMARY_IDENTIFIER)

        add(
            "tech_specs",
            _labelled(
                ("INCI Name", record.inci_name),
                ("Category", record.category),
                ("Function", record.function),
                ("Trade Name", record.trade_name),
            ),
            TECHNICAL_SPECS,
        )

        commercial = _labelled(
            ("Material", record.rm_code),
            ("Supplier", record.supplier),
            ("Company", record.company_name),
            ("Cost", _cost(record)),
        )
        # The code alone is not commercial information.
        if len(commercial) > 1:
            add("commercial", commercial, COMMERCIAL_INFO)

        label = record.trade_name or record.rm_code
        if record.benefits:
            add("benefits", [f"{label}: Benefits - {', '.join(record.benefits)}"], DESCRIPTIVE_CONTENT)
        if record.details:
            for index, piece in enumerate(self._split(f"{label}: Details - {record.details}")):
                add(f"details_{index}", [piece], DESCRIPTIVE_CONTENT)

        combined = ". ".join(
            _labelled(
                ("Rm Code", record.rm_code),
                ("Trade Name", record.trade_name),
                ("Inci Name", record.inci_name),
                ("Category", record.category),
                ("Function", record.function),
                ("Benefits", ", ".join(record.benefits)),
                ("Supplier", record.supplier),
                ("Company Name", record.company_name),
                ("Rm Cost", _cost(record)),
                ("Details", record.details),
            )
        )
        if len(combined) > self._max_chars:
            combined = combined[: self._max_chars] + "..."
        add("combined", [combined] if combined else [], COMBINED_CONTEXT)

        add(
            "thai",
            _labelled(
                ("รหัสสาร", record.rm_code),
                ("ชื่อการค้า", record.trade_name),
                ("ชื่อ INCI", record.inci_name),
                ("ซัพพลายเออร์", record.supplier),
                ("ประโยชน์", ", ".join(record.benefits)),
            ),
            TECHNICAL_SPECS,
        )
        return chunks

    def _split(self, text: str) -> list[str]:
        if len(text) <= self._max_chars:
            return [text]
        step = self._max_chars - self._overlap
        return [text[start : start + self._max_chars] for start in range(0, len(text), step)]


def build_chunker(strategy: str, max_chars: int = 500, overlap_chars: int = 50):
    if strategy == "multi":
        return MultiFieldChunker(max_chars, overlap_chars)
    return SingleChunker()


def _labelled(*pairs: tuple[str, str]) -> list[str]:
    return [f"{label}: {value}" for label, value in pairs if value]


def _cost(record: MaterialRecord) -> str:
    return f"{record.cost:g}" if record.cost else ""
