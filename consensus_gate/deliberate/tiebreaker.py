"""Tiebreaker: a single arbiter call settles the dimensions the panel disputes."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from consensus_gate.contracts import (
    ArbiterJudge,
    ArbiterResponse,
    Dimension,
    DimensionScore,
    DisagreementResult,
    EvaluatorRole,
    EvaluatorVerdict,
    TiebreakerOutput,
)
from consensus_gate.decoding import validate_arbiter_response
from consensus_gate.scoring.aggregate import ARBITER_WEIGHT_MULTIPLIER
from consensus_gate.scoring.dimensions import weighted_overall

DEFAULT_ARBITER_SCORE = 5.0
NOT_EVALUATED = "Not explicitly evaluated by Arbiter"

__all__ = [
    "ARBITER_WEIGHT_MULTIPLIER",
    "build_arbiter_verdict",
    "run_tiebreaker",
]


def build_arbiter_verdict(response: ArbiterResponse) -> EvaluatorVerdict:
    """Turn an arbiter ruling into a full seven-dimension verdict.

    Disputed rulings win over plain scores for the same dimension; any
    dimension the ruling leaves out gets the neutral default.
    """
    scores: dict[Dimension, DimensionScore] = {}

    for other in response["other_dimensions"]:
        scores[Dimension(other["dimension"])] = DimensionScore(
            dimension=Dimension(other["dimension"]),
            score=other["score"],
            reasoning=other["reasoning"],
            issues=[],
        )

    for ruling in response["disputed_dimension_evaluations"]:
        dimension = Dimension(ruling["dimension"])
        scores[dimension] = DimensionScore(
            dimension=dimension,
            score=ruling["definitive_score"],
            reasoning=f"{ruling['stronger_argument']}\n\n[RESOLUTION] {ruling['resolution']}",
            issues=[],
        )

    breakdown = [
        scores.get(
            dimension,
            DimensionScore(
                dimension=dimension,
                score=DEFAULT_ARBITER_SCORE,
                reasoning=NOT_EVALUATED,
                issues=[],
            ),
        )
        for dimension in Dimension
    ]

    return EvaluatorVerdict(
        evaluator_role=EvaluatorRole.ARBITER,
        dimension_scores=breakdown,
        overall_score=weighted_overall(breakdown),
        critique=response["overall_critique"],
        issues=[],
        confidence=response["confidence"],
        evaluated_at=datetime.now(timezone.utc).isoformat(),
    )


async def run_tiebreaker(
    document: str,
    verdicts: list[EvaluatorVerdict],
    disagreement: DisagreementResult,
    arbiter: ArbiterJudge,
    discussion_summary: str | None = None,
) -> TiebreakerOutput:
    """Ask the arbiter for definitive scores. A malformed ruling is fatal."""
    start = time.monotonic()
    response = validate_arbiter_response(
        await arbiter.arbitrate(document, verdicts, disagreement, discussion_summary)
    )
    return TiebreakerOutput(
        verdict=build_arbiter_verdict(response),
        resolution_summary=response["resolution_summary"],
        duration_s=round(time.monotonic() - start, 3),
    )
