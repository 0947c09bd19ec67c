"""Final score aggregation: median, post-discussion, and arbiter-weighted blend."""

from __future__ import annotations

from datetime import datetime, timezone

from consensus_gate.contracts import (
    ConsensusMethod,
    Dimension,
    DimensionScore,
    DisagreementResult,
    EvaluatorVerdict,
    FinalScore,
)
from consensus_gate.scoring.dimensions import weighted_overall

ARBITER_WEIGHT_MULTIPLIER = 1.5


def median(values: list[float]) -> float:
    """Middle value; mean of the two middle values for an even count."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def _find_dimension(verdict: EvaluatorVerdict, dimension: Dimension) -> DimensionScore | None:
    for ds in verdict["dimension_scores"]:
        if ds["dimension"] == dimension:
            return ds
    return None


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def _role(verdict: EvaluatorVerdict) -> str:
    role = verdict["evaluator_role"]
    return role.value if hasattr(role, "value") else str(role)


def _median_dimensions(verdicts: list[EvaluatorVerdict]) -> list[DimensionScore]:
    breakdown: list[DimensionScore] = []
    for dimension in Dimension:
        present = [
            (verdict, ds)
            for verdict in verdicts
            if (ds := _find_dimension(verdict, dimension)) is not None
        ]
        breakdown.append(
            DimensionScore(
                dimension=dimension,
                score=round(median([ds["score"] for _, ds in present]), 1),
                reasoning="\n\n".join(f"[{_role(v)}] {ds['reasoning']}" for v, ds in present),
                issues=_dedupe([issue for _, ds in present for issue in ds["issues"]]),
            )
        )
    return breakdown


def _blended_dimensions(
    verdicts: list[EvaluatorVerdict],
    arbiter: EvaluatorVerdict,
    disputed: list[Dimension],
) -> list[DimensionScore]:
    """Disputed dimensions blend the arbiter in at 1.5x; the rest take the median.

    Blend: (sum of primary scores + 1.5 * arbiter) / (n + 1.5).
    """
    breakdown: list[DimensionScore] = []
    for dimension in Dimension:
        present = [
            (verdict, ds)
            for verdict in verdicts
            if (ds := _find_dimension(verdict, dimension)) is not None
        ]
        primary_scores = [ds["score"] for _, ds in present]
        arbiter_ds = _find_dimension(arbiter, dimension)

        if dimension in disputed and arbiter_ds is not None:
            total = sum(primary_scores) + arbiter_ds["score"] * ARBITER_WEIGHT_MULTIPLIER
            score = total / (len(primary_scores) + ARBITER_WEIGHT_MULTIPLIER)
            reasoning_parts = [f"[{_role(v)}] {ds['reasoning']}" for v, ds in present]
            reasoning_parts.append(f"[Arbiter - TIEBREAKER] {arbiter_ds['reasoning']}")
            issues = [issue for _, ds in present for issue in ds["issues"]]
            issues.extend(arbiter_ds["issues"])
        else:
            score = median(primary_scores)
            reasoning_parts = [f"[{_role(v)}] {ds['reasoning']}" for v, ds in present]
            issues = [issue for _, ds in present for issue in ds["issues"]]

        breakdown.append(
            DimensionScore(
                dimension=dimension,
                score=round(score, 1),
                reasoning="\n\n".join(reasoning_parts),
                issues=_dedupe(issues),
            )
        )
    return breakdown


def _consolidate_critiques(
    verdicts: list[EvaluatorVerdict], arbiter: EvaluatorVerdict | None = None
) -> str:
    parts = [f"**{_role(v)}:** {v['critique']}" for v in verdicts]
    if arbiter is not None:
        parts.append(f"**Arbiter (Tiebreaker):** {arbiter['critique']}")
    return "\n\n---\n\n".join(parts)


def calculate_final_score(
    verdicts: list[EvaluatorVerdict],
    disagreement: DisagreementResult | None = None,
    *,
    discussion_occurred: bool = False,
    arbiter_verdict: EvaluatorVerdict | None = None,
) -> FinalScore:
    """Combine verdicts into one FinalScore.

    Method selection:
      - arbiter verdict supplied -> tiebreaker (disputed dimensions blended,
        flagged for human review)
      - disagreement and a discussion round ran -> post-discussion median
      - otherwise -> median
    """
    has_disagreement = bool(disagreement and disagreement["has_disagreement"])

    if arbiter_verdict is not None:
        disputed = list(disagreement["disagreeing_dimensions"]) if disagreement else []
        breakdown = _blended_dimensions(verdicts, arbiter_verdict, disputed)
        method = ConsensusMethod.TIEBREAKER
        max_spread = disagreement["max_spread"] if disagreement else 0.0
        names = ", ".join(d.value if hasattr(d, "value") else str(d) for d in disputed)
        review_reason: str | None = (
            f"Tiebreaker invoked due to {len(disputed)} disputed dimension(s): "
            f"{names or 'overall score'}. Max spread: {max_spread:.1f}."
        )
        considered = [*verdicts, arbiter_verdict]
    else:
        breakdown = _median_dimensions(verdicts)
        if has_disagreement and discussion_occurred:
            method = ConsensusMethod.POST_DISCUSSION
        else:
            method = ConsensusMethod.MEDIAN
        review_reason = None
        considered = list(verdicts)

    confidences = [v["confidence"] for v in considered]
    confidence = round(sum(confidences) / len(confidences), 2) if confidences else 0.0

    return FinalScore(
        overall_score=weighted_overall(breakdown),
        dimension_breakdown=breakdown,
        consensus_method=method,
        confidence=confidence,
        critique=_consolidate_critiques(verdicts, arbiter_verdict),
        has_disagreement=has_disagreement,
        needs_human_review=arbiter_verdict is not None,
        review_reason=review_reason,
        evaluator_verdicts=considered,
        scored_at=datetime.now(timezone.utc).isoformat(),
    )
