"""Disagreement detection across evaluator verdicts.

A dimension is disputed when the spread (max - min) of its scores across
verdicts strictly exceeds DISAGREEMENT_THRESHOLD. A spread of exactly 2.0
is agreement, and so is subtraction noise around it such as
7.3 - 5.3 == 2.0000000000000004. SPREAD_TOLERANCE sits well below any
real score difference and well above rounding error on 0-10 scores, so
2.0 + 1e-10 still flags.
"""

from __future__ import annotations

from consensus_gate.contracts import (
    Dimension,
    DimensionSpread,
    DisagreementResult,
    DivergentScore,
    EvaluatorPosition,
    EvaluatorVerdict,
)
from consensus_gate.scoring.dimensions import scores_by_dimension

DISAGREEMENT_THRESHOLD = 2.0

SPREAD_TOLERANCE = 1e-12


def _spread(values: list[float]) -> float:
    if not values:
        return 0.0
    return max(values) - min(values)


def _exceeds(spread: float) -> bool:
    return spread - DISAGREEMENT_THRESHOLD > SPREAD_TOLERANCE


def detect_disagreement(verdicts: list[EvaluatorVerdict]) -> DisagreementResult:
    """Compare verdicts dimension by dimension and on overall score.

    Fewer than two verdicts cannot disagree: the result reports no
    disagreement and zero spread, but still lists evaluator positions.
    """
    if len(verdicts) < 2:
        return DisagreementResult(
            has_disagreement=False,
            disagreeing_dimensions=[],
            max_spread=0.0,
            overall_spread=0.0,
            evaluator_positions=[
                EvaluatorPosition(
                    evaluator=v["evaluator_role"],
                    overall_score=v["overall_score"],
                    divergent_dimensions=[],
                )
                for v in verdicts
            ],
            details=[],
        )

    # A dimension missing from a verdict counts as 0
    score_maps = [scores_by_dimension(v["dimension_scores"]) for v in verdicts]

    details: list[DimensionSpread] = []
    disagreeing: list[Dimension] = []
    max_spread = 0.0

    for dimension in Dimension:
        values = [m.get(dimension, 0.0) for m in score_maps]
        spread = _spread(values)
        flagged = _exceeds(spread)
        details.append(
            DimensionSpread(
                dimension=dimension,
                min_score=min(values),
                max_score=max(values),
                spread=spread,
                disagreeing=flagged,
            )
        )
        if flagged:
            disagreeing.append(dimension)
        max_spread = max(max_spread, spread)

    overall_spread = _spread([v["overall_score"] for v in verdicts])
    max_spread = max(max_spread, overall_spread)

    positions = [
        EvaluatorPosition(
            evaluator=verdict["evaluator_role"],
            overall_score=verdict["overall_score"],
            divergent_dimensions=[
                DivergentScore(dimension=dim, score=scores[dim])
                for dim in disagreeing
                if dim in scores
            ],
        )
        for verdict, scores in zip(verdicts, score_maps)
    ]

    return DisagreementResult(
        has_disagreement=bool(disagreeing) or _exceeds(overall_spread),
        disagreeing_dimensions=disagreeing,
        max_spread=max_spread,
        overall_spread=overall_spread,
        evaluator_positions=positions,
        details=details,
    )
