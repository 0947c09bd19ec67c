"""Quality tier classification for a final score."""

from __future__ import annotations

from consensus_gate.contracts import QualityTier, QualityTierDecision

HIGH_THRESHOLD = 8.0
ACCEPTABLE_THRESHOLD = 6.0


def classify_tier(score: float) -> QualityTier:
    """Classify a 0-10 score into a quality tier."""
    if score >= HIGH_THRESHOLD:
        return QualityTier.HIGH
    if score >= ACCEPTABLE_THRESHOLD:
        return QualityTier.ACCEPTABLE
    return QualityTier.FAILED


def get_tier_decision(score: float) -> QualityTierDecision:
    """Map a score to its publishing decision. Out-of-range scores clamp to [0, 10]."""
    clamped = min(10.0, max(0.0, float(score)))
    tier = classify_tier(clamped)

    if tier is QualityTier.HIGH:
        return QualityTierDecision(
            tier=tier,
            publishable=True,
            warning_badge=False,
            refund_required=False,
            reasoning=f"Score {clamped:g} >= {HIGH_THRESHOLD}: HIGH quality, publishing normally",
        )
    if tier is QualityTier.ACCEPTABLE:
        return QualityTierDecision(
            tier=tier,
            publishable=True,
            warning_badge=True,
            refund_required=False,
            reasoning=(
                f"Score {clamped:g} >= {ACCEPTABLE_THRESHOLD}: ACCEPTABLE quality, "
                "publishing with warning"
            ),
        )
    return QualityTierDecision(
        tier=tier,
        publishable=False,
        warning_badge=False,
        refund_required=True,
        reasoning=(
            f"Score {clamped:g} < {ACCEPTABLE_THRESHOLD}: FAILED quality gate, refund required"
        ),
    )
