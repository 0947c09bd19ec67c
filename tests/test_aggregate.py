"""Tests for scoring.aggregate: median, post-discussion and tiebreaker blends."""

from __future__ import annotations

import pytest

from consensus_gate.contracts import (
    ConsensusMethod,
    Dimension,
    DimensionScore,
    EvaluatorRole,
    EvaluatorVerdict,
)
from consensus_gate.scoring.aggregate import (
    ARBITER_WEIGHT_MULTIPLIER,
    calculate_final_score,
    median,
)
from consensus_gate.scoring.dimensions import weighted_overall
from consensus_gate.scoring.disagreement import detect_disagreement


def _make_verdict(
    role: EvaluatorRole,
    base: float = 7.0,
    overrides: dict[Dimension, float] | None = None,
    *,
    confidence: float = 0.8,
    critique: str = "Reasonable draft.",
) -> EvaluatorVerdict:
    overrides = overrides or {}
    dims = [
        DimensionScore(
            dimension=d,
            score=overrides.get(d, base),
            reasoning=f"{role.value} view of {d.value}",
            issues=[f"{d.value} needs work"] if overrides.get(d, base) < 6 else [],
        )
        for d in Dimension
    ]
    return EvaluatorVerdict(
        evaluator_role=role,
        dimension_scores=dims,
        overall_score=weighted_overall(dims),
        critique=critique,
        issues=[],
        confidence=confidence,
        evaluated_at="2026-01-01T00:00:00+00:00",
    )


def _make_panel(*bases: float, evidence: tuple[float, ...] | None = None) -> list[EvaluatorVerdict]:
    roles = [EvaluatorRole.SKEPTIC, EvaluatorRole.ADVOCATE, EvaluatorRole.GENERALIST]
    verdicts = []
    for i, (role, base) in enumerate(zip(roles, bases)):
        overrides = {Dimension.EVIDENCE_QUALITY: evidence[i]} if evidence else None
        verdicts.append(_make_verdict(role, base, overrides))
    return verdicts


def _dim(final, dimension: Dimension) -> DimensionScore:
    return next(ds for ds in final["dimension_breakdown"] if ds["dimension"] == dimension)


class TestMedian:
    def test_odd_count(self):
        assert median([9.0, 1.0, 5.0]) == 5.0

    def test_even_count_averages_middle(self):
        assert median([6.0, 8.0, 7.0, 9.0]) == 7.5

    def test_empty(self):
        assert median([]) == 0.0


class TestMedianConsensus:
    def test_all_eight(self):
        final = calculate_final_score(_make_panel(8.0, 8.0, 8.0))
        assert final["overall_score"] == 8.0
        assert final["consensus_method"] == ConsensusMethod.MEDIAN
        assert final["needs_human_review"] is False
        assert final["review_reason"] is None

    def test_dimension_median(self):
        final = calculate_final_score(_make_panel(6.0, 9.0, 7.0))
        assert _dim(final, Dimension.OBJECTIVITY)["score"] == 7.0
        assert final["overall_score"] == 7.0

    def test_reasoning_labelled_by_role(self):
        final = calculate_final_score(_make_panel(7.0, 7.0, 7.0))
        reasoning = _dim(final, Dimension.ACCESSIBILITY)["reasoning"]
        assert reasoning.startswith("[Skeptic] ")
        assert "[Advocate] " in reasoning
        assert "[Generalist] " in reasoning

    def test_issues_deduplicated(self):
        final = calculate_final_score(_make_panel(5.0, 5.0, 5.0))
        assert _dim(final, Dimension.OBJECTIVITY)["issues"] == ["objectivity needs work"]

    def test_confidence_is_mean(self):
        verdicts = _make_panel(7.0, 7.0, 7.0)
        for v, c in zip(verdicts, (0.6, 0.8, 0.9)):
            v["confidence"] = c
        assert calculate_final_score(verdicts)["confidence"] == pytest.approx(0.77)

    def test_critique_consolidated(self):
        final = calculate_final_score(_make_panel(7.0, 7.0, 7.0))
        assert final["critique"].count("\n\n---\n\n") == 2
        assert final["critique"].startswith("**Skeptic:** ")

    def test_disagreement_without_discussion_stays_median(self):
        verdicts = _make_panel(6.0, 8.5, 7.0, evidence=(5.0, 8.5, 6.5))
        final = calculate_final_score(verdicts, detect_disagreement(verdicts))
        assert final["consensus_method"] == ConsensusMethod.MEDIAN
        assert final["has_disagreement"] is True


class TestPostDiscussion:
    def test_method_after_discussion(self):
        verdicts = _make_panel(6.0, 8.5, 7.0, evidence=(5.0, 8.5, 6.5))
        final = calculate_final_score(
            verdicts, detect_disagreement(verdicts), discussion_occurred=True
        )
        assert final["consensus_method"] == ConsensusMethod.POST_DISCUSSION
        assert final["needs_human_review"] is False

    def test_discussion_without_disagreement_is_median(self):
        verdicts = _make_panel(7.0, 7.0, 7.0)
        final = calculate_final_score(
            verdicts, detect_disagreement(verdicts), discussion_occurred=True
        )
        assert final["consensus_method"] == ConsensusMethod.MEDIAN


class TestTiebreakerBlend:
    def test_end_to_end_disputed_evidence(self):
        verdicts = _make_panel(6.0, 8.5, 7.0, evidence=(5.0, 8.5, 6.5))
        disagreement = detect_disagreement(verdicts)
        assert disagreement["has_disagreement"] is True
        assert Dimension.EVIDENCE_QUALITY in disagreement["disagreeing_dimensions"]

        arbiter = _make_verdict(EvaluatorRole.ARBITER, 7.0, critique="Arbiter ruling.")
        final = calculate_final_score(verdicts, disagreement, arbiter_verdict=arbiter)

        assert final["consensus_method"] == ConsensusMethod.TIEBREAKER
        assert final["needs_human_review"] is True
        assert "Tiebreaker invoked" in final["review_reason"]
        assert "evidenceQuality" in final["review_reason"]
        assert "Max spread: 3.5" in final["review_reason"]

    def test_disputed_dimension_blends_arbiter(self):
        verdicts = _make_panel(6.0, 8.5, 7.0, evidence=(5.0, 8.5, 6.5))
        disagreement = detect_disagreement(verdicts)
        arbiter = _make_verdict(EvaluatorRole.ARBITER, 7.0)
        final = calculate_final_score(verdicts, disagreement, arbiter_verdict=arbiter)

        expected = (5.0 + 8.5 + 6.5 + 7.0 * ARBITER_WEIGHT_MULTIPLIER) / (
            3 + ARBITER_WEIGHT_MULTIPLIER
        )
        evidence = _dim(final, Dimension.EVIDENCE_QUALITY)
        assert evidence["score"] == round(expected, 1)
        assert "[Arbiter - TIEBREAKER]" in evidence["reasoning"]

    def test_undisputed_dimension_keeps_median(self):
        verdicts = _make_panel(7.0, 8.0, 7.5, evidence=(4.0, 8.5, 6.5))
        disagreement = detect_disagreement(verdicts)
        assert disagreement["disagreeing_dimensions"] == [Dimension.EVIDENCE_QUALITY]

        arbiter = _make_verdict(EvaluatorRole.ARBITER, 2.0)
        final = calculate_final_score(verdicts, disagreement, arbiter_verdict=arbiter)
        objectivity = _dim(final, Dimension.OBJECTIVITY)
        assert objectivity["score"] == 7.5
        assert "TIEBREAKER" not in objectivity["reasoning"]

    def test_arbiter_included_in_verdicts_and_confidence(self):
        verdicts = _make_panel(6.0, 8.5, 7.0, evidence=(5.0, 8.5, 6.5))
        arbiter = _make_verdict(EvaluatorRole.ARBITER, 7.0, confidence=0.4)
        final = calculate_final_score(
            verdicts, detect_disagreement(verdicts), arbiter_verdict=arbiter
        )
        assert len(final["evaluator_verdicts"]) == 4
        assert final["evaluator_verdicts"][-1]["evaluator_role"] == EvaluatorRole.ARBITER
        assert final["confidence"] == pytest.approx(0.7)
        assert "**Arbiter (Tiebreaker):**" in final["critique"]

    def test_arbiter_without_disputed_dimensions(self):
        verdicts = _make_panel(7.0, 7.0, 7.0)
        arbiter = _make_verdict(EvaluatorRole.ARBITER, 3.0)
        final = calculate_final_score(verdicts, None, arbiter_verdict=arbiter)
        assert final["consensus_method"] == ConsensusMethod.TIEBREAKER
        assert final["overall_score"] == 7.0
        assert "overall score" in final["review_reason"]
