"""Quality gate: score, classify, and refine until the document clears the bar.

The gate owns the publish decision:
  HIGH        publish normally
  ACCEPTABLE  publish with a warning badge
  FAILED      reject and refund
"""

from __future__ import annotations

import time

from consensus_gate.agents.base import AgentCaller
from consensus_gate.agents.fixers import build_default_fixers
from consensus_gate.agents.reconciler import LLMReconciler
from consensus_gate.config import Settings
from consensus_gate.contracts import (
    QualityGateResult,
    Reconciler,
    RefinementLoopResult,
    ScoringFunction,
    Source,
    TierSnapshot,
)
from consensus_gate.event_log.metrics import GATE_STAGE
from consensus_gate.event_log.writer import EventLog
from consensus_gate.graph.builder import build_consensus_scorer
from consensus_gate.refine.loop import DEFAULT_MAX_ATTEMPTS, DEFAULT_TARGET_SCORE, RefinementLoop
from consensus_gate.refine.reconcile import TextReconciler
from consensus_gate.scoring.tiers import classify_tier, get_tier_decision


def _tier_history(initial: float, refinement: RefinementLoopResult | None) -> list[TierSnapshot]:
    history = [TierSnapshot(attempt=0, score=initial, tier=classify_tier(initial))]
    if refinement is not None:
        for attempt in refinement["attempts"]:
            after = attempt["score_before_after"]["after"]
            history.append(
                TierSnapshot(
                    attempt=attempt["attempt_number"],
                    score=after,
                    tier=classify_tier(after),
                )
            )
    return history


class QualityGate:
    """Runs one document through scoring and, when it falls short, refinement."""

    def __init__(
        self,
        scorer: ScoringFunction,
        refinement_loop: RefinementLoop | None = None,
        *,
        target_score: float = DEFAULT_TARGET_SCORE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        event_log: EventLog | None = None,
        callers: list[AgentCaller] | None = None,
    ) -> None:
        self._scorer = scorer
        self._loop = refinement_loop
        self.target_score = target_score
        self.max_attempts = max_attempts
        self._event_log = event_log
        self.callers = callers or []

    @property
    def total_cost(self) -> float:
        return sum(c.total_cost for c in self.callers)

    @property
    def total_tokens(self) -> int:
        return sum(c.total_tokens for c in self.callers)

    async def run(self, document: str, sources: list[Source] | None = None) -> QualityGateResult:
        start = time.monotonic()
        consensus = await self._scorer(document)
        initial_score = consensus["overall_score"]

        refinement: RefinementLoopResult | None = None
        final_document = document
        if initial_score < self.target_score and self._loop is not None:
            refinement = await self._loop.refine_until_passing(
                document,
                consensus,
                self._scorer,
                target_score=self.target_score,
                max_attempts=self.max_attempts,
                sources=sources,
            )
            consensus = refinement["final_consensus"]
            final_document = refinement["final_document"]

        decision = get_tier_decision(consensus["overall_score"])
        attempts = 1 + (len(refinement["attempts"]) if refinement else 0)
        result = QualityGateResult(
            tier=decision["tier"],
            final_score=consensus["overall_score"],
            initial_score=initial_score,
            attempts=attempts,
            publishable=decision["publishable"],
            warning_badge=decision["warning_badge"],
            refund_required=decision["refund_required"],
            decision=decision,
            tier_history=_tier_history(initial_score, refinement),
            final_document=final_document,
            consensus=consensus,
            refinement=refinement,
            needs_human_review=consensus["needs_human_review"],
            review_reason=consensus["review_reason"],
        )

        if self._event_log is not None:
            self._event_log.emit(
                EventLog.make_event(
                    stage=GATE_STAGE,
                    attempt=attempts,
                    elapsed_s=time.monotonic() - start,
                    details={
                        "tier": decision["tier"].value,
                        "publishable": decision["publishable"],
                        "warning_badge": decision["warning_badge"],
                        "refund_required": decision["refund_required"],
                        "attempts": attempts,
                        "initial_score": initial_score,
                        "final_score": consensus["overall_score"],
                        "stop_reason": refinement["stop_reason"].value if refinement else None,
                        "needs_human_review": consensus["needs_human_review"],
                    },
                )
            )
        return result


async def run_quality_gate(
    document: str,
    scorer: ScoringFunction,
    refinement_loop: RefinementLoop | None = None,
    *,
    sources: list[Source] | None = None,
    target_score: float = DEFAULT_TARGET_SCORE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    event_log: EventLog | None = None,
) -> QualityGateResult:
    """Functional form of QualityGate.run."""
    gate = QualityGate(
        scorer,
        refinement_loop,
        target_score=target_score,
        max_attempts=max_attempts,
        event_log=event_log,
    )
    return await gate.run(document, sources)


def build_quality_gate(settings: Settings, *, event_log: EventLog | None = None) -> QualityGate:
    """LLM-backed gate wired from settings: scorer, per-dimension fixers, reconciler."""

    def _caller(model: str, fallback: str | None = None) -> AgentCaller:
        return AgentCaller(
            api_key=settings.anthropic_api_key,
            model=model,
            max_concurrent=settings.max_concurrent_requests,
            max_retries=settings.max_retries,
            fallback_model=fallback,
        )

    evaluator_caller = _caller(settings.evaluator_model, settings.arbiter_model)
    arbiter_caller = _caller(settings.arbiter_model)
    fixer_caller = _caller(settings.fixer_model)
    callers = [evaluator_caller, arbiter_caller, fixer_caller]

    reconciler: Reconciler
    if settings.reconciler_mode == "model":
        reconciler_caller = _caller(settings.reconciler_model)
        callers.append(reconciler_caller)
        reconciler = LLMReconciler(reconciler_caller)
    else:
        reconciler = TextReconciler()

    scorer = build_consensus_scorer(
        settings,
        event_log=event_log,
        caller=evaluator_caller,
        arbiter_caller=arbiter_caller,
    )
    loop = RefinementLoop(
        build_default_fixers(fixer_caller),
        reconciler,
        fixer_threshold=settings.fixer_score_threshold,
        event_log=event_log,
    )
    return QualityGate(
        scorer,
        loop,
        target_score=settings.target_score,
        max_attempts=settings.max_refinement_attempts,
        event_log=event_log,
        callers=callers,
    )
