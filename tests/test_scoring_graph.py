"""Tests for graph.builder: routing through discussion and tiebreaker."""

from __future__ import annotations

import pytest

from consensus_gate.contracts import (
    ArbiterDimensionScore,
    ArbiterPosition,
    ArbiterResponse,
    ConsensusMethod,
    Dimension,
    DimensionRevision,
    DimensionScore,
    DiscussionResponse,
    DisputedDimensionEvaluation,
    EvaluatorRole,
    EvaluatorVerdict,
    Persona,
)
from consensus_gate.deliberate.panel import EvaluatorPanel
from consensus_gate.event_log.writer import EventLog
from consensus_gate.graph.builder import ConsensusScorer
from consensus_gate.scoring.dimensions import weighted_overall

_AGREE = {
    EvaluatorRole.SKEPTIC: (8.0, 8.0),
    EvaluatorRole.ADVOCATE: (8.0, 8.0),
    EvaluatorRole.GENERALIST: (8.0, 8.0),
}
_DISPUTE = {
    EvaluatorRole.SKEPTIC: (6.0, 5.0),
    EvaluatorRole.ADVOCATE: (8.5, 8.5),
    EvaluatorRole.GENERALIST: (7.0, 6.5),
}


def _make_verdict(role: EvaluatorRole, base: float, evidence: float) -> EvaluatorVerdict:
    dims = [
        DimensionScore(
            dimension=d,
            score=evidence if d == Dimension.EVIDENCE_QUALITY else base,
            reasoning="ok",
            issues=[],
        )
        for d in Dimension
    ]
    return EvaluatorVerdict(
        evaluator_role=role,
        dimension_scores=dims,
        overall_score=weighted_overall(dims),
        critique=f"{role.value} critique",
        issues=[],
        confidence=0.8,
        evaluated_at="2026-01-01T00:00:00+00:00",
    )


class FakeEvaluator:
    def __init__(self, table):
        self.table = table
        self.calls = 0

    async def evaluate(self, document: str, persona: Persona) -> EvaluatorVerdict:
        self.calls += 1
        base, evidence = self.table[persona["role"]]
        return _make_verdict(persona["role"], base, evidence)


class ConvergingDiscussant:
    """Everyone moves to 7.0 across the board."""

    def __init__(self):
        self.calls = 0

    async def reconsider(self, document, own_verdict, peer_verdicts):
        self.calls += 1
        return DiscussionResponse(
            revised_dimensions=[
                DimensionRevision(
                    dimension=ds["dimension"],
                    original_score=ds["score"],
                    revised_score=7.0,
                    reason_for_change="Converged",
                )
                for ds in own_verdict["dimension_scores"]
                if ds["score"] != 7.0
            ],
            maintained_positions=[],
            overall_reflection="Converged.",
        )


class StubbornDiscussant:
    def __init__(self):
        self.calls = 0

    async def reconsider(self, document, own_verdict, peer_verdicts):
        self.calls += 1
        return DiscussionResponse(
            revised_dimensions=[], maintained_positions=[], overall_reflection="Holding."
        )


class FakeArbiter:
    def __init__(self):
        self.calls = 0
        self.summaries: list[str | None] = []

    async def arbitrate(self, document, verdicts, disagreement, discussion_summary=None):
        self.calls += 1
        self.summaries.append(discussion_summary)
        return ArbiterResponse(
            disputed_dimension_evaluations=[
                DisputedDimensionEvaluation(
                    dimension=d,
                    evaluator_positions=[
                        ArbiterPosition(evaluator="Skeptic", score=5.0, reasoning="thin")
                    ],
                    stronger_argument="Skeptic",
                    definitive_score=7.0,
                    resolution="Middle ground",
                )
                for d in disagreement["disagreeing_dimensions"]
            ],
            other_dimensions=[
                ArbiterDimensionScore(dimension=d, score=7.0, reasoning="fine")
                for d in Dimension
                if d not in disagreement["disagreeing_dimensions"]
            ],
            overall_critique="Arbiter critique",
            resolution_summary="Settled.",
            confidence=0.9,
        )


class TestScoringGraph:
    @pytest.mark.asyncio
    async def test_agreement_goes_straight_to_median(self):
        discussant, arbiter = StubbornDiscussant(), FakeArbiter()
        scorer = ConsensusScorer(
            EvaluatorPanel(FakeEvaluator(_AGREE)), discussant=discussant, arbiter=arbiter
        )
        final = await scorer("doc")

        assert final["overall_score"] == 8.0
        assert final["consensus_method"] == ConsensusMethod.MEDIAN
        assert discussant.calls == 0
        assert arbiter.calls == 0
        stages = [t["stage"] for t in scorer.last_state["stage_timings"]]
        assert stages == ["panel", "disagreement", "final_score"]

    @pytest.mark.asyncio
    async def test_discussion_resolves_dispute(self):
        discussant, arbiter = ConvergingDiscussant(), FakeArbiter()
        scorer = ConsensusScorer(
            EvaluatorPanel(FakeEvaluator(_DISPUTE)), discussant=discussant, arbiter=arbiter
        )
        final = await scorer("doc")

        assert discussant.calls == 3
        assert arbiter.calls == 0
        assert final["consensus_method"] == ConsensusMethod.POST_DISCUSSION
        assert final["overall_score"] == 7.0
        assert final["needs_human_review"] is False

    @pytest.mark.asyncio
    async def test_persisting_dispute_goes_to_tiebreaker(self):
        discussant, arbiter = StubbornDiscussant(), FakeArbiter()
        scorer = ConsensusScorer(
            EvaluatorPanel(FakeEvaluator(_DISPUTE)), discussant=discussant, arbiter=arbiter
        )
        final = await scorer("doc")

        assert discussant.calls == 3
        assert arbiter.calls == 1
        assert arbiter.summaries[0].startswith("All evaluators maintained")
        assert final["consensus_method"] == ConsensusMethod.TIEBREAKER
        assert final["needs_human_review"] is True
        assert "evidenceQuality" in final["review_reason"]
        assert len(final["evaluator_verdicts"]) == 4

    @pytest.mark.asyncio
    async def test_tiebreaker_without_discussion(self):
        arbiter = FakeArbiter()
        scorer = ConsensusScorer(EvaluatorPanel(FakeEvaluator(_DISPUTE)), arbiter=arbiter)
        final = await scorer("doc")

        assert arbiter.calls == 1
        assert arbiter.summaries == [None]
        assert final["consensus_method"] == ConsensusMethod.TIEBREAKER

    @pytest.mark.asyncio
    async def test_no_deliberation_falls_back_to_median(self):
        scorer = ConsensusScorer(EvaluatorPanel(FakeEvaluator(_DISPUTE)))
        final = await scorer("doc")
        assert final["consensus_method"] == ConsensusMethod.MEDIAN
        assert final["has_disagreement"] is True

    @pytest.mark.asyncio
    async def test_events_and_cycles(self, tmp_path):
        log = EventLog(tmp_path, "graph-run")
        scorer = ConsensusScorer(
            EvaluatorPanel(FakeEvaluator(_DISPUTE)),
            discussant=StubbornDiscussant(),
            arbiter=FakeArbiter(),
            event_log=log,
        )
        await scorer.score("first")
        await scorer.score("second")

        assert scorer.cycles == 2
        stages = [e["stage"] for e in log.read_all() if e["attempt"] == 0]
        assert stages == [
            "panel",
            "disagreement",
            "discussion",
            "post_discussion_disagreement",
            "tiebreaker",
            "final_score",
        ]
        panel_event = log.read_stage("panel")[0]
        assert panel_event["details"]["scores"]["Skeptic"] == 5.8
        assert [e["attempt"] for e in log.read_stage("final_score")] == [0, 1]
