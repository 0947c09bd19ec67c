"""Dimension weights and weighted overall scoring."""

from __future__ import annotations

from consensus_gate.contracts import DIMENSIONS, Dimension, DimensionScore

WEIGHT_TOLERANCE = 0.001


def dimension_weight(dimension: Dimension | str) -> float:
    return DIMENSIONS[Dimension(dimension)]["weight"]


def weights_sum_to_one() -> bool:
    """True when the seven fixed weights sum to 1.0 within tolerance."""
    total = sum(spec["weight"] for spec in DIMENSIONS.values())
    return abs(total - 1.0) < WEIGHT_TOLERANCE


def weighted_overall(dimension_scores: list[DimensionScore]) -> float:
    """Weight-normalised overall score, rounded to one decimal.

    Dividing by the weights actually present keeps a partial breakdown
    on the 0-10 scale.
    """
    weighted = 0.0
    total_weight = 0.0
    for ds in dimension_scores:
        weight = dimension_weight(ds["dimension"])
        weighted += ds["score"] * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return round(weighted / total_weight, 1)


def scores_by_dimension(dimension_scores: list[DimensionScore]) -> dict[Dimension, float]:
    return {Dimension(ds["dimension"]): ds["score"] for ds in dimension_scores}
