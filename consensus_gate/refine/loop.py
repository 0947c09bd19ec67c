"""Refinement loop: fix, reconcile, rescore until the target is met or attempts run out.

Each attempt:
  1. dispatch fixers for weak dimensions (none deployed / no edits -> stop)
  2. reconcile edits into one revision (nothing applied -> stop)
  3. rescore the revision and record the attempt

A revision that scores below the best seen so far is recorded but not
built upon; the next attempt starts again from the best document.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping

from consensus_gate.contracts import (
    Dimension,
    FinalScore,
    Fixer,
    Reconciler,
    RefinementAttempt,
    RefinementLoopResult,
    ScoreBeforeAfter,
    ScoreDelta,
    ScoringFunction,
    Source,
    StopReason,
)
from consensus_gate.event_log.writer import EventLog
from consensus_gate.refine.fixers import FIXER_SCORE_THRESHOLD, index_fixers, orchestrate_fixes

DEFAULT_TARGET_SCORE = 8.0
DEFAULT_MAX_ATTEMPTS = 3


def _score_delta(before: FinalScore, after: FinalScore) -> ScoreBeforeAfter:
    prior = {ds["dimension"]: ds["score"] for ds in before["dimension_breakdown"]}
    dims: dict[str, ScoreDelta] = {}
    for ds in after["dimension_breakdown"]:
        key = Dimension(ds["dimension"]).value
        dims[key] = ScoreDelta(before=prior.get(ds["dimension"], 0.0), after=ds["score"])
    return ScoreBeforeAfter(
        before=before["overall_score"],
        after=after["overall_score"],
        dimension_scores=dims,
    )


def _warning(score: FinalScore, attempts: list[RefinementAttempt], reason: StopReason) -> str:
    if not attempts:
        return (
            f"Document scored {score['overall_score']:.1f}/10; no refinement attempts "
            f"could be completed ({reason.value})."
        )
    last = attempts[-1]["score_before_after"]
    weakest = sorted(
        (name for name, d in last["dimension_scores"].items() if d["after"] < FIXER_SCORE_THRESHOLD),
        key=lambda name: last["dimension_scores"][name]["after"],
    )[:3]
    text = (
        f"Document scored {last['after']:.1f}/10 after {len(attempts)} refinement attempt(s); "
        f"best score {score['overall_score']:.1f}/10."
    )
    if weakest:
        text += f" Lowest dimensions: {', '.join(weakest)}."
    return text


class RefinementLoop:
    """Drives fixers and a reconciler against an injected scoring function."""

    def __init__(
        self,
        fixers: Mapping[Dimension, Fixer] | Iterable[Fixer],
        reconciler: Reconciler,
        *,
        fixer_threshold: float = FIXER_SCORE_THRESHOLD,
        event_log: EventLog | None = None,
    ) -> None:
        self._fixers = index_fixers(fixers)
        self._reconciler = reconciler
        self._threshold = fixer_threshold
        self._event_log = event_log

    def _emit(self, stage: str, attempt: int, elapsed_s: float, **details) -> None:
        if self._event_log is not None:
            self._event_log.emit(
                EventLog.make_event(stage=stage, attempt=attempt, elapsed_s=elapsed_s, details=details)
            )

    async def refine_until_passing(
        self,
        document: str,
        initial_score: FinalScore,
        scoring_function: ScoringFunction,
        target_score: float = DEFAULT_TARGET_SCORE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sources: list[Source] | None = None,
    ) -> RefinementLoopResult:
        if initial_score["overall_score"] >= target_score:
            return RefinementLoopResult(
                success=True,
                stop_reason=StopReason.ALREADY_PASSING,
                attempts=[],
                final_score=initial_score["overall_score"],
                final_consensus=initial_score,
                final_document=document,
                total_processing_time=0.0,
            )

        best_document, best_score = document, initial_score
        attempts: list[RefinementAttempt] = []
        stop_reason = StopReason.EXHAUSTED

        for attempt_number in range(1, max_attempts + 1):
            start = time.monotonic()

            orchestrated = await orchestrate_fixes(
                best_document,
                best_score,
                self._fixers,
                threshold=self._threshold,
                sources=sources,
            )
            for failure in orchestrated["failures"]:
                self._emit(
                    "fixer_failed",
                    attempt_number,
                    time.monotonic() - start,
                    fixer=failure["fixer_type"].value,
                    error=failure["error"],
                )
            if not orchestrated["fixers_deployed"]:
                stop_reason = StopReason.NO_FIXERS
                break
            if not orchestrated["all_suggested_edits"]:
                stop_reason = StopReason.NO_EDITS_SUGGESTED
                break

            reconciled = await self._reconciler.reconcile(best_document, orchestrated["fixer_results"])
            if not reconciled["edits_applied"]:
                stop_reason = StopReason.NO_EDITS_APPLIED
                break

            new_score = await scoring_function(reconciled["revised_document"])
            elapsed = time.monotonic() - start
            attempts.append(
                RefinementAttempt(
                    attempt_number=attempt_number,
                    fixers_deployed=orchestrated["fixers_deployed"],
                    edits_applied=reconciled["edits_applied"],
                    edits_skipped=reconciled["edits_skipped"],
                    score_before_after=_score_delta(best_score, new_score),
                    processing_time=round(elapsed, 3),
                )
            )
            self._emit(
                "refinement_attempt",
                attempt_number,
                elapsed,
                fixers=[d.value for d in orchestrated["fixers_deployed"]],
                edits_applied=len(reconciled["edits_applied"]),
                edits_skipped=len(reconciled["edits_skipped"]),
                score_before=best_score["overall_score"],
                score_after=new_score["overall_score"],
            )

            if new_score["overall_score"] >= best_score["overall_score"]:
                best_document, best_score = reconciled["revised_document"], new_score
            if best_score["overall_score"] >= target_score:
                stop_reason = StopReason.TARGET_REACHED
                break

        result = RefinementLoopResult(
            success=stop_reason is StopReason.TARGET_REACHED,
            stop_reason=stop_reason,
            attempts=attempts,
            final_score=best_score["overall_score"],
            final_consensus=best_score,
            final_document=best_document,
            total_processing_time=round(sum(a["processing_time"] for a in attempts), 3),
        )
        if not result["success"]:
            result["warning_reason"] = _warning(best_score, attempts, stop_reason)
        return result
