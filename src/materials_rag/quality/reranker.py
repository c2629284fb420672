"""Quality gate for drafted answers: groundedness, fact checks, sources, regenerate or accept."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from materials_rag.evaluation.metrics import faithfulness
from materials_rag.models.domain import Match
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.answer_generator import AnswerGenerator

logger = get_logger("response_reranker")

GROUNDEDNESS_WEIGHT = 0.6
FACTUAL_WEIGHT = 0.4
SOURCE_BONUS = 0.1
DEFAULT_FACTUAL_ACCURACY = 0.8
MAX_FACTS = 10
MAX_SOURCES = 5

_FACT_MARKERS = ("is", "contains", "provides", "helps", "reduces")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_SOURCE_PATTERNS = (
    re.compile(r"(?:source|reference|according to|based on):\s*([^,\n.]+)", re.IGNORECASE),
    re.compile(r"\[([^\]]+)\]"),
    re.compile(r"\b(CIR|SCCS|FDA|EU Regulation|ASEAN)\b", re.IGNORECASE),
)


@dataclass
class ResponseReview:
    groundedness: float
    factual_accuracy: float
    overall: float
    decision: Literal["accept", "regenerate"]
    sources: list[str] = field(default_factory=list)
    unverified_facts: list[str] = field(default_factory=list)


def extract_facts(text: str) -> list[str]:
    facts = []
    for sentence in _SENTENCE_SPLIT.split(text):
        sentence = sentence.strip()
        if len(sentence) > 20 and any(marker in sentence for marker in _FACT_MARKERS):
            facts.append(sentence)
    return facts[:MAX_FACTS]


def fact_is_verified(fact: str, match_text: str) -> bool:
    haystack = match_text.lower()
    hits = [w for w in fact.lower().split(" ") if len(w) > 3 and w in haystack]
    return len(hits) >= 2


def extract_sources(draft: str, matches: list[Match]) -> list[str]:
    sources: list[str] = []
    for pattern in _SOURCE_PATTERNS:
        sources.extend(m.group(1).strip() for m in pattern.finditer(draft))
    draft_lower = draft.lower()
    for match in matches:
        code = match.business_code
        if code and code.lower() in draft_lower:
            sources.append(code)
    return list(dict.fromkeys(s for s in sources if s))[:MAX_SOURCES]


class ResponseReranker:
    def __init__(self, regenerate_threshold: float = 0.6, max_attempts: int = 2) -> None:
        self._threshold = regenerate_threshold
        self._max_attempts = max(1, max_attempts)

    def review(self, query: str, draft: str, matches: list[Match]) -> ResponseReview:
        texts = [m.text for m in matches]
        groundedness = faithfulness(draft, texts)

        facts = extract_facts(draft)
        unverified = [f for f in facts if not any(fact_is_verified(f, t) for t in texts)]
        if facts and matches:
            factual_accuracy = (len(facts) - len(unverified)) / len(facts)
        else:
            factual_accuracy = DEFAULT_FACTUAL_ACCURACY

        sources = extract_sources(draft, matches)
        overall = min(
            groundedness * GROUNDEDNESS_WEIGHT
            + factual_accuracy * FACTUAL_WEIGHT
            + (SOURCE_BONUS if sources else 0.0),
            1.0,
        )
        decision = "accept" if overall >= self._threshold else "regenerate"
        logger.info(
            "response_reviewed",
            groundedness=round(groundedness, 3),
            factual_accuracy=round(factual_accuracy, 3),
            sources=len(sources),
            overall=round(overall, 3),
            decision=decision,
        )
        return ResponseReview(
            groundedness=groundedness,
            factual_accuracy=factual_accuracy,
            overall=overall,
            decision=decision,
            sources=sources,
            unverified_facts=unverified,
        )

    async def refine(
        self, query: str, matches: list[Match], generator: AnswerGenerator
    ) -> tuple[str, ResponseReview]:
        """Generate, review and regenerate until accepted or out of attempts; keep the best draft."""
        best: tuple[str, ResponseReview] | None = None
        feedback: str | None = None
        for attempt in range(1, self._max_attempts + 1):
            draft = await generator.generate(query, matches, feedback=feedback)
            review = self.review(query, draft, matches)
            if best is None or review.overall > best[1].overall:
                best = (draft, review)
            # Nothing to ground against without matches, so a retry cannot improve it.
            if review.decision == "accept" or not matches:
                break
            feedback = f"overall score {review.overall:.2f} below {self._threshold:.2f}"
            logger.info("regenerating_answer", attempt=attempt, overall=round(review.overall, 3))
        return best
