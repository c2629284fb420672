"""Retrieval quality regression gate.

Usage:
    python scripts/run_eval.py                       # fixture context, simulated answers
    python scripts/run_eval.py --live                # live retrieval and the configured generator
    python scripts/run_eval.py --output results.json --threshold 0.7

Exits non-zero when the mean overall score is below the threshold.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from materials_rag.config.settings import Settings
from materials_rag.evaluation.metrics import summarize
from materials_rag.evaluation.runner import (
    EvaluationRunner,
    FixtureContextSource,
    LiveContextSource,
    load_cases,
    render_report,
)
from materials_rag.observability.logger import setup_logging


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


async def main(args: argparse.Namespace) -> int:
    settings = Settings()
    setup_logging(settings.log_level, json=settings.log_json)
    cases = load_cases(args.cases)

    if args.live:
        from materials_rag.bootstrap import build_services

        services = await build_services(settings)
        runner = EvaluationRunner(
            LiveContextSource(services.retrieval),
            generator=services.generator,
            reranker=services.reranker,
        )
    else:
        runner = EvaluationRunner(FixtureContextSource())

    results = await runner.evaluate(cases)
    threshold = args.threshold if args.threshold is not None else settings.eval_pass_threshold
    summary = summarize(results, pass_threshold=threshold)

    print_header("RETRIEVAL QUALITY EVALUATION")
    print(render_report(results, summary))

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(
                {"summary": summary, "results": [r.to_dict() for r in results]},
                f,
                ensure_ascii=False,
                indent=2,
            )
        print(f"\nRaw results written to {args.output}")

    return 0 if summary["passed"] else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the retrieval quality harness")
    parser.add_argument("--cases", type=Path, default=None)
    parser.add_argument("--live", action="store_true")
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument("--threshold", type=float, default=None)
    sys.exit(asyncio.run(main(parser.parse_args())))
