"""Deterministic answers assembled from matched record fields, no model call."""

from __future__ import annotations

from materials_rag.models.domain import Match

_FIELDS = (
    ("rm_code", "Material Code"),
    ("formula_code", "Formula Code"),
    ("trade_name", "Trade Name"),
    ("inci_name", "INCI Name"),
    ("function", "Function"),
    ("benefits", "Benefits"),
    ("supplier", "Supplier"),
)

_NO_CONTEXT_ANSWER = "No matching records were found in the materials database."


class ExtractiveAnswerGenerator:
    def __init__(self, max_records: int = 3) -> None:
        self._max_records = max_records

    async def generate(
        self,
        query: str,
        matches: list[Match],
        feedback: str | None = None,
    ) -> str:
        if not matches:
            return _NO_CONTEXT_ANSWER
        sentences = []
        for match in matches[: self._max_records]:
            facts = [
                f"{label}: {match.metadata[key]}"
                for key, label in _FIELDS
                if match.metadata.get(key)
            ]
            if not facts:
                facts = [match.text.strip()]
            where = {"in_stock": " (in stock)", "all_fda": " (FDA catalog)"}.get(match.source, "")
            sentences.append(". ".join(facts) + where + ".")
        return "Based on the retrieved information: " + " ".join(sentences)
