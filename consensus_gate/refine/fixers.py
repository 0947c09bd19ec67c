"""Fixer orchestration: dispatch dimension fixers for the weak spots of a score.

Fixers run concurrently and are best-effort: a fixer that raises is recorded
as a failure and contributes no edits, the rest carry on.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping

from consensus_gate.contracts import (
    AggregatedCritique,
    Dimension,
    FinalScore,
    Fixer,
    FixerFailure,
    FixerResult,
    OrchestratorResult,
    Severity,
    Source,
)
from consensus_gate.scoring.critiques import aggregate_critiques
from consensus_gate.utils.text import truncate

FIXER_SCORE_THRESHOLD = 7.0


def index_fixers(fixers: Mapping[Dimension, Fixer] | Iterable[Fixer]) -> dict[Dimension, Fixer]:
    """Key fixers by the dimension they repair."""
    values = fixers.values() if isinstance(fixers, Mapping) else fixers
    return {Dimension(f.fixer_type): f for f in values}


def select_fixer_dimensions(
    final_score: FinalScore,
    *,
    threshold: float = FIXER_SCORE_THRESHOLD,
    critique: AggregatedCritique | None = None,
) -> list[Dimension]:
    """Dimensions scoring below threshold, plus any carrying a high-severity issue.

    Weakest dimension first.
    """
    scores = {Dimension(ds["dimension"]): ds["score"] for ds in final_score["dimension_breakdown"]}
    selected = {d for d, s in scores.items() if s < threshold}
    if critique is not None:
        selected.update(
            Dimension(i["dimension"])
            for i in critique["prioritized_issues"]
            if i["severity"] == Severity.HIGH
        )
    order = list(Dimension)
    return sorted(selected, key=lambda d: (scores.get(d, 0.0), order.index(d)))


def dimension_critique(
    final_score: FinalScore, dimension: Dimension, critique: AggregatedCritique | None = None
) -> str:
    """Critique text handed to a single fixer."""
    parts: list[str] = []
    for ds in final_score["dimension_breakdown"]:
        if ds["dimension"] != dimension:
            continue
        if ds["issues"]:
            parts.append("Flagged: " + "; ".join(ds["issues"]))
        if ds["reasoning"]:
            parts.append(truncate(ds["reasoning"], 800))
    if critique is not None:
        for issue in critique["prioritized_issues"]:
            if issue["dimension"] != dimension:
                continue
            line = f"[{issue['severity'].value}] {issue['description']}"
            if issue.get("quote"):
                line += f' (quote: "{issue["quote"]}")'
            if issue.get("suggested_fix"):
                line += f" (suggested fix: {issue['suggested_fix']})"
            parts.append(line)
    return "\n".join(parts)


async def orchestrate_fixes(
    document: str,
    final_score: FinalScore,
    fixers: Mapping[Dimension, Fixer] | Iterable[Fixer],
    *,
    threshold: float = FIXER_SCORE_THRESHOLD,
    sources: list[Source] | None = None,
) -> OrchestratorResult:
    """Run the fixers for every selected dimension that has one registered."""
    start = time.monotonic()
    registry = index_fixers(fixers)
    critique = aggregate_critiques(final_score["evaluator_verdicts"])
    scores = {Dimension(ds["dimension"]): ds["score"] for ds in final_score["dimension_breakdown"]}

    deployed = [
        d
        for d in select_fixer_dimensions(final_score, threshold=threshold, critique=critique)
        if d in registry
    ]

    outcomes = await asyncio.gather(
        *(
            registry[d].suggest_edits(
                document, scores.get(d, 0.0), dimension_critique(final_score, d, critique), sources
            )
            for d in deployed
        ),
        return_exceptions=True,
    )

    results: list[FixerResult] = []
    failures: list[FixerFailure] = []
    for dimension, outcome in zip(deployed, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            failures.append(FixerFailure(fixer_type=dimension, error=f"{type(outcome).__name__}: {outcome}"))
            continue
        results.append(outcome)

    return OrchestratorResult(
        fixers_deployed=deployed,
        fixer_results=results,
        all_suggested_edits=[e for r in results for e in r["suggested_edits"]],
        failures=failures,
        total_processing_time=round(time.monotonic() - start, 3),
    )
