"""Prompt templates for answering materials questions over retrieved records."""

from __future__ import annotations

from materials_rag.models.domain import Match

ANSWER_SYSTEM = """You are a cosmetic raw-materials specialist supporting an R&D team.
Answer using ONLY the retrieved records below.
Rules:
- Quote material codes, trade names and INCI names exactly as they appear in the records.
- Say whether a material is in stock (in_stock) or only registered in the FDA catalog (all_fda).
- Cite records using [1], [2], etc. markers matching the record numbers.
- If the records do not contain the answer, say so clearly. Never invent codes, suppliers or prices.
- Answer in the language of the question (Thai or English)."""

ANSWER_PROMPT = """Question: {query}

Retrieved records:
{context_block}

{feedback_block}Provide a concise, well-cited answer based on the records above."""

NO_CONTEXT_SYSTEM = """You are a cosmetic raw-materials specialist. No records were retrieved for
this question, so answer from general knowledge and state that the database was not consulted."""

REGENERATE_FEEDBACK = """A previous draft was rejected by the quality review ({reason}).
Stay closer to the records and cite the material codes you rely on.

"""


def format_context_block(matches: list[Match], max_matches: int = 10) -> str:
    """Number the matches for citation, tagging each with its source partition."""
    lines = []
    for i, match in enumerate(matches[:max_matches], 1):
        source = f" ({match.source})" if match.source else ""
        lines.append(f"[{i}]{source} {match.text}")
    return "\n\n".join(lines)


def build_answer_prompt(query: str, matches: list[Match], feedback: str | None = None) -> str:
    feedback_block = REGENERATE_FEEDBACK.format(reason=feedback) if feedback else ""
    return ANSWER_PROMPT.format(
        query=query,
        context_block=format_context_block(matches),
        feedback_block=feedback_block,
    )
