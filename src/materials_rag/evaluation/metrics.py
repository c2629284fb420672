"""Faithfulness, relevancy, precision and recall heuristics for retrieval regression tests."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from itertools import groupby

from materials_rag.text.normalizer import content_words, split_clauses

GOOD_THRESHOLD = 0.8
FAIR_THRESHOLD = 0.6
CLAIM_SUPPORT_RATIO = 0.5
CHUNK_KEYWORD_RATIO = 0.3

METRIC_NAMES = ("faithfulness", "answer_relevancy", "context_precision", "context_recall")


@dataclass
class EvaluationResult:
    """Scores and diagnostics for one evaluation case."""

    case_id: str
    query: str
    category: str
    faithfulness: float
    answer_relevancy: float
    context_precision: float
    context_recall: float
    overall_score: float
    answer: str = ""
    retrieved_chunks: int = 0
    relevant_chunks: int = 0
    missing_information: list[str] = field(default_factory=list)
    classification: dict = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def faithfulness(answer: str, contexts: list[str]) -> float:
    """Share of answer clauses whose content words mostly appear in the context."""
    claims = split_clauses(answer)
    if not claims:
        return 0.0
    context_text = " ".join(contexts).lower()
    supported = 0
    for claim in claims:
        terms = content_words(claim)
        found = [t for t in terms if t in context_text]
        if len(found) / max(len(terms), 1) >= CLAIM_SUPPORT_RATIO:
            supported += 1
    return supported / len(claims)


def answer_relevancy(query: str, answer: str, expected_info: list[str]) -> float:
    answer_lower = answer.lower()
    query_words = [w for w in query.lower().split() if len(w) > 3]
    keyword_score = sum(1 for w in query_words if w in answer_lower) / max(len(query_words), 1)
    info_score = sum(1 for info in expected_info if info.lower() in answer_lower) / max(
        len(expected_info), 1
    )
    return min(keyword_score * 0.3 + info_score * 0.7, 1.0)


def relevant_chunk_count(contexts: list[str], context_keywords: list[str]) -> int:
    relevant = 0
    for chunk in contexts:
        chunk_lower = chunk.lower()
        hits = sum(1 for kw in context_keywords if kw.lower() in chunk_lower)
        if hits / max(len(context_keywords), 1) >= CHUNK_KEYWORD_RATIO:
            relevant += 1
    return relevant


def context_precision(contexts: list[str], context_keywords: list[str]) -> float:
    if not contexts:
        return 0.0
    return relevant_chunk_count(contexts, context_keywords) / len(contexts)


def context_recall(contexts: list[str], expected_info: list[str]) -> float:
    if not expected_info:
        return 1.0
    all_context = " ".join(contexts).lower()
    return sum(1 for info in expected_info if info.lower() in all_context) / len(expected_info)


def overall_score(
    faithfulness: float, answer_relevancy: float, context_precision: float, context_recall: float
) -> float:
    return (faithfulness + answer_relevancy + context_precision + context_recall) / 4


def missing_information(answer: str, expected_info: list[str]) -> list[str]:
    answer_lower = answer.lower()
    return [info for info in expected_info if info.lower() not in answer_lower]


def score_label(score: float) -> str:
    if score >= GOOD_THRESHOLD:
        return "good"
    if score >= FAIR_THRESHOLD:
        return "fair"
    return "needs_improvement"


def summarize(results: list[EvaluationResult], pass_threshold: float = FAIR_THRESHOLD) -> dict:
    """Per-metric means and labels, per-category means, and the regression verdict."""
    total = len(results)
    if total == 0:
        return {
            "total_cases": 0,
            "error_count": 0,
            "metrics": {},
            "labels": {},
            "categories": {},
            "overall_score": 0.0,
            "passed": False,
        }

    means = {name: sum(getattr(r, name) for r in results) / total for name in METRIC_NAMES}
    overall = sum(r.overall_score for r in results) / total

    categories: dict[str, dict] = {}
    for category, group in groupby(sorted(results, key=lambda r: r.category), key=lambda r: r.category):
        members = list(group)
        categories[category] = {
            "count": len(members),
            "overall_score": sum(r.overall_score for r in members) / len(members),
            **{name: sum(getattr(r, name) for r in members) / len(members) for name in METRIC_NAMES},
        }

    return {
        "total_cases": total,
        "error_count": sum(1 for r in results if r.error is not None),
        "metrics": means,
        "labels": {**{name: score_label(v) for name, v in means.items()}, "overall": score_label(overall)},
        "categories": categories,
        "overall_score": overall,
        "passed": overall >= pass_threshold,
    }
