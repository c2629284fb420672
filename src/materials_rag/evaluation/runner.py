"""Evaluation runner: replays cases through classification, retrieval and answering, then scores them."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from materials_rag.evaluation.metrics import (
    EvaluationResult,
    answer_relevancy,
    context_precision,
    context_recall,
    faithfulness,
    missing_information,
    overall_score,
    relevant_chunk_count,
    score_label,
)
from materials_rag.exceptions import EvaluationError
from materials_rag.models.domain import Match
from materials_rag.models.schemas import EvaluationCase
from materials_rag.observability.logger import get_logger
from materials_rag.protocols.answer_generator import AnswerGenerator
from materials_rag.quality.reranker import ResponseReranker
from materials_rag.query.classifier import QueryClassifier
from materials_rag.retrieval.service import RetrievalService

logger = get_logger("evaluation")

DATASET_PATH = (
    Path(__file__).parent.parent.parent.parent / "tests" / "fixtures" / "eval_cases.json"
)
DEFAULT_CODE = "RM000001"

_TRADE_NAME = re.compile(r"trade name:?\s*([^.\n]+)", re.IGNORECASE)
_INCI_NAME = re.compile(r"inci name:?\s*([^.\n]+)", re.IGNORECASE)
_SUPPLIER = re.compile(r"supplier:?\s*([^.\n]+)", re.IGNORECASE)


def load_cases(path: Path | str | None = None) -> list[EvaluationCase]:
    p = Path(path) if path else DATASET_PATH
    try:
        with open(p, encoding="utf-8") as f:
            raw = json.load(f)
        return [EvaluationCase.model_validate(item) for item in raw]
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise EvaluationError(f"Cannot load evaluation cases from {p}: {e}") from e


class ContextSource(Protocol):
    async def fetch(self, case: EvaluationCase) -> list[Match]: ...


class FixtureContextSource:
    """Context from the case's own fixture chunks, or a synthesized record for its expected code."""

    async def fetch(self, case: EvaluationCase) -> list[Match]:
        if case.context:
            return [
                Match(
                    id=f"fixture_{i}",
                    score=chunk.score,
                    metadata={"text": chunk.text, "rm_code": chunk.rm_code or case.expected_code},
                    source="fixture",
                )
                for i, chunk in enumerate(case.context)
            ]
        code = case.expected_code or DEFAULT_CODE
        texts = [
            f"Material Code: {code}. Trade Name: Test Material. INCI Name: Test Ingredient. "
            "Supplier: Test Supplier Ltd.",
            f"Category: Humectant. Function: {', '.join(case.context_keywords)}. Cost: 2500 THB/kg.",
        ]
        return [
            Match(
                id=f"fixture_{i}",
                score=0.9 - i * 0.1,
                metadata={"text": text, "rm_code": code},
                source="fixture",
            )
            for i, text in enumerate(texts)
        ]


class LiveContextSource:
    def __init__(self, service: RetrievalService) -> None:
        self._service = service

    async def fetch(self, case: EvaluationCase) -> list[Match]:
        outcome = await self._service.retrieve(case.query)
        return outcome.matches


def simulate_answer(query: str, contexts: list[str], expected_code: str | None = None) -> str:
    """Deterministic stand-in for a model answer, built from the retrieved text."""
    if expected_code:
        code_context = next((c for c in contexts if expected_code.lower() in c.lower()), None)
        if code_context:
            facts = []
            for label, pattern in (
                ("Trade Name", _TRADE_NAME),
                ("INCI", _INCI_NAME),
                ("Supplier", _SUPPLIER),
            ):
                found = pattern.search(code_context)
                if found:
                    facts.append(f"{label}: {found.group(1).strip()}")
            return f"{expected_code} is a raw material with the following details:\n" + "\n".join(facts)
    return "Based on the retrieved information: " + " ".join(contexts[:2])


class EvaluationRunner:
    def __init__(
        self,
        context_source: ContextSource,
        classifier: QueryClassifier | None = None,
        generator: AnswerGenerator | None = None,
        reranker: ResponseReranker | None = None,
    ) -> None:
        self._context_source = context_source
        self._classifier = classifier or QueryClassifier()
        self._generator = generator
        self._reranker = reranker

    async def evaluate(self, cases: list[EvaluationCase]) -> list[EvaluationResult]:
        results = []
        for index, case in enumerate(cases, 1):
            results.append(await self.evaluate_case(case, case_id=case.id or f"case_{index:03d}"))
        return results

    async def evaluate_case(self, case: EvaluationCase, case_id: str = "case") -> EvaluationResult:
        classification = self._classifier.classify(case.query)
        summary = {
            "query_type": classification.query_type,
            "confidence": round(classification.confidence, 3),
            "search_strategy": classification.search_strategy,
            "language": classification.language,
        }
        try:
            matches = await self._context_source.fetch(case)
            contexts = [m.text for m in matches]
            answer = await self._answer(case, matches, contexts)
        except Exception as e:
            logger.error("evaluation_case_failed", case_id=case_id, error=str(e))
            return EvaluationResult(
                case_id=case_id,
                query=case.query,
                category=case.category,
                faithfulness=0.0,
                answer_relevancy=0.0,
                context_precision=0.0,
                context_recall=0.0,
                overall_score=0.0,
                missing_information=list(case.expected_info),
                classification=summary,
                error=str(e),
            )

        scores = {
            "faithfulness": faithfulness(answer, contexts),
            "answer_relevancy": answer_relevancy(case.query, answer, case.expected_info),
            "context_precision": context_precision(contexts, case.context_keywords),
            "context_recall": context_recall(contexts, case.expected_info),
        }
        result = EvaluationResult(
            case_id=case_id,
            query=case.query,
            category=case.category,
            overall_score=overall_score(**scores),
            answer=answer,
            retrieved_chunks=len(contexts),
            relevant_chunks=relevant_chunk_count(contexts, case.context_keywords),
            missing_information=missing_information(answer, case.expected_info),
            classification=summary,
            **scores,
        )
        logger.info(
            "evaluation_case_scored",
            case_id=case_id,
            overall=round(result.overall_score, 3),
            **{k: round(v, 3) for k, v in scores.items()},
        )
        return result

    async def _answer(self, case: EvaluationCase, matches: list[Match], contexts: list[str]) -> str:
        if case.answer is not None:
            return case.answer
        if self._generator is None:
            return simulate_answer(case.query, contexts, case.expected_code)
        if self._reranker is not None:
            draft, _ = await self._reranker.refine(case.query, matches, self._generator)
            return draft
        return await self._generator.generate(case.query, matches)


def render_report(results: list[EvaluationResult], summary: dict) -> str:
    lines = [f"Total Test Cases: {summary['total_cases']}", ""]
    for r in results:
        status = f"ERROR: {r.error}" if r.error else f"overall {r.overall_score:.3f}"
        lines.append(f"[{r.case_id}] {r.query} -> {status}")
        lines.append(
            f"    faithfulness={r.faithfulness:.3f} relevancy={r.answer_relevancy:.3f} "
            f"precision={r.context_precision:.3f} recall={r.context_recall:.3f} "
            f"chunks={r.relevant_chunks}/{r.retrieved_chunks}"
        )
        if r.missing_information:
            lines.append(f"    missing: {', '.join(r.missing_information)}")
    lines.append("")
    for name, value in summary.get("metrics", {}).items():
        lines.append(f"{name:<18} {value:.3f}  {score_label(value)}")
    lines.append(
        f"{'overall':<18} {summary['overall_score']:.3f}  {score_label(summary['overall_score'])}"
    )
    for category, stats in summary.get("categories", {}).items():
        lines.append(f"  {category}: {stats['overall_score']:.3f} ({stats['count']} cases)")
    lines.append("PASSED" if summary["passed"] else "FAILED")
    return "\n".join(lines)
