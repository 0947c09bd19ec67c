"""Tests for scoring.disagreement: spread threshold and evaluator positions."""

from __future__ import annotations

import pytest

from consensus_gate.contracts import (
    Dimension,
    DimensionScore,
    EvaluatorRole,
    EvaluatorVerdict,
)
from consensus_gate.scoring.dimensions import weighted_overall
from consensus_gate.scoring.disagreement import (
    DISAGREEMENT_THRESHOLD,
    SPREAD_TOLERANCE,
    detect_disagreement,
)


def _make_verdict(
    role: EvaluatorRole,
    base: float = 7.0,
    overrides: dict[Dimension, float] | None = None,
) -> EvaluatorVerdict:
    overrides = overrides or {}
    dims = [
        DimensionScore(dimension=d, score=overrides.get(d, base), reasoning="ok", issues=[])
        for d in Dimension
    ]
    return EvaluatorVerdict(
        evaluator_role=role,
        dimension_scores=dims,
        overall_score=weighted_overall(dims),
        critique="",
        issues=[],
        confidence=0.8,
        evaluated_at="2026-01-01T00:00:00+00:00",
    )


class TestNoDisagreement:
    def test_identical_scores(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC),
            _make_verdict(EvaluatorRole.ADVOCATE),
            _make_verdict(EvaluatorRole.GENERALIST),
        ]
        result = detect_disagreement(verdicts)
        assert result["has_disagreement"] is False
        assert result["disagreeing_dimensions"] == []
        assert result["max_spread"] == 0.0
        assert len(result["details"]) == 7

    def test_spread_exactly_threshold_is_agreement(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC, 7.0, {Dimension.OBJECTIVITY: 5.0}),
            _make_verdict(EvaluatorRole.ADVOCATE, 7.0, {Dimension.OBJECTIVITY: 7.0}),
        ]
        result = detect_disagreement(verdicts)
        assert result["has_disagreement"] is False
        assert result["max_spread"] == pytest.approx(DISAGREEMENT_THRESHOLD)

    def test_float_noise_at_threshold_is_agreement(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC, 7.3, {Dimension.ACCESSIBILITY: 5.3}),
            _make_verdict(EvaluatorRole.ADVOCATE, 7.3),
        ]
        result = detect_disagreement(verdicts)
        assert Dimension.ACCESSIBILITY not in result["disagreeing_dimensions"]

    def test_single_verdict(self):
        result = detect_disagreement([_make_verdict(EvaluatorRole.SKEPTIC)])
        assert result["has_disagreement"] is False
        assert result["max_spread"] == 0.0
        assert result["details"] == []
        assert len(result["evaluator_positions"]) == 1
        assert result["evaluator_positions"][0]["divergent_dimensions"] == []

    def test_no_verdicts(self):
        result = detect_disagreement([])
        assert result["has_disagreement"] is False
        assert result["evaluator_positions"] == []


class TestDisagreement:
    def test_just_above_threshold_flags(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC, 7.0, {Dimension.OBJECTIVITY: 4.99}),
            _make_verdict(EvaluatorRole.ADVOCATE, 7.0, {Dimension.OBJECTIVITY: 7.0}),
        ]
        result = detect_disagreement(verdicts)
        assert result["has_disagreement"] is True
        assert result["disagreeing_dimensions"] == [Dimension.OBJECTIVITY]
        spread = next(d for d in result["details"] if d["dimension"] == Dimension.OBJECTIVITY)
        assert spread["disagreeing"] is True
        assert spread["min_score"] == 4.99
        assert spread["max_score"] == 7.0

    def test_tiny_excess_over_threshold_flags(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC, 7.0, {Dimension.OBJECTIVITY: 4.9999999999}),
            _make_verdict(EvaluatorRole.ADVOCATE, 7.0),
        ]
        result = detect_disagreement(verdicts)
        assert result["disagreeing_dimensions"] == [Dimension.OBJECTIVITY]
        assert result["max_spread"] - DISAGREEMENT_THRESHOLD > SPREAD_TOLERANCE

    def test_positions_list_own_scores_on_disputed(self):
        verdicts = [
            _make_verdict(EvaluatorRole.SKEPTIC, 6.0, {Dimension.EVIDENCE_QUALITY: 5.0}),
            _make_verdict(EvaluatorRole.ADVOCATE, 8.5, {Dimension.EVIDENCE_QUALITY: 8.5}),
            _make_verdict(EvaluatorRole.GENERALIST, 7.0, {Dimension.EVIDENCE_QUALITY: 6.5}),
        ]
        result = detect_disagreement(verdicts)
        assert Dimension.EVIDENCE_QUALITY in result["disagreeing_dimensions"]
        assert result["max_spread"] == pytest.approx(3.5)

        skeptic = result["evaluator_positions"][0]
        assert skeptic["evaluator"] == EvaluatorRole.SKEPTIC
        by_dim = {d["dimension"]: d["score"] for d in skeptic["divergent_dimensions"]}
        assert by_dim[Dimension.EVIDENCE_QUALITY] == 5.0

    def test_missing_dimension_counts_as_zero(self):
        partial = _make_verdict(EvaluatorRole.SKEPTIC)
        partial["dimension_scores"] = [
            ds for ds in partial["dimension_scores"] if ds["dimension"] != Dimension.BIAS_DETECTION
        ]
        result = detect_disagreement([partial, _make_verdict(EvaluatorRole.ADVOCATE)])
        assert Dimension.BIAS_DETECTION in result["disagreeing_dimensions"]

    def test_overall_spread_alone_flags(self):
        a = _make_verdict(EvaluatorRole.SKEPTIC, 6.0)
        b = _make_verdict(EvaluatorRole.ADVOCATE, 6.0)
        b["overall_score"] = 8.5
        result = detect_disagreement([a, b])
        assert result["disagreeing_dimensions"] == []
        assert result["overall_spread"] == pytest.approx(2.5)
        assert result["has_disagreement"] is True
        assert result["max_spread"] == pytest.approx(2.5)
