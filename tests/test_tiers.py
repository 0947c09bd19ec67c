"""Tests for scoring.tiers: tier boundaries and publishing decisions."""

from __future__ import annotations

from consensus_gate.contracts import QualityTier
from consensus_gate.scoring.tiers import classify_tier, get_tier_decision


class TestTierBoundaries:
    def test_eight_is_high(self):
        decision = get_tier_decision(8.0)
        assert decision["tier"] == QualityTier.HIGH
        assert decision["publishable"] is True
        assert decision["warning_badge"] is False
        assert decision["refund_required"] is False

    def test_just_below_eight_is_acceptable(self):
        decision = get_tier_decision(7.999)
        assert decision["tier"] == QualityTier.ACCEPTABLE
        assert decision["publishable"] is True
        assert decision["warning_badge"] is True
        assert decision["refund_required"] is False

    def test_six_is_acceptable(self):
        assert get_tier_decision(6.0)["tier"] == QualityTier.ACCEPTABLE

    def test_just_below_six_fails(self):
        decision = get_tier_decision(5.999)
        assert decision["tier"] == QualityTier.FAILED
        assert decision["publishable"] is False
        assert decision["warning_badge"] is False
        assert decision["refund_required"] is True


class TestClamping:
    def test_above_ten_is_high(self):
        decision = get_tier_decision(11)
        assert decision["tier"] == QualityTier.HIGH
        assert "Score 10 " in decision["reasoning"]

    def test_negative_fails_with_refund(self):
        decision = get_tier_decision(-1)
        assert decision["tier"] == QualityTier.FAILED
        assert decision["refund_required"] is True
        assert "Score 0 " in decision["reasoning"]


class TestReasoning:
    def test_reasoning_names_tier(self):
        assert "HIGH" in get_tier_decision(9.0)["reasoning"]
        assert "ACCEPTABLE" in get_tier_decision(7.0)["reasoning"]
        assert "FAILED" in get_tier_decision(2.0)["reasoning"]

    def test_classify_tier(self):
        assert classify_tier(8.0) is QualityTier.HIGH
        assert classify_tier(6.5) is QualityTier.ACCEPTABLE
        assert classify_tier(0.0) is QualityTier.FAILED
