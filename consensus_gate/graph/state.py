"""ScoringState: the state object flowing through one scoring cycle."""

from __future__ import annotations

import operator
from typing import Annotated, TypedDict

from consensus_gate.contracts import (
    DisagreementResult,
    EvaluatorTiming,
    EvaluatorVerdict,
    FinalScore,
    ScoreChange,
)

# --- Last-write-wins reducers ---


def _replace_bool(existing: bool, new: bool) -> bool:
    return new


def _replace_list(existing: list, new: list) -> list:
    """Replace-last-write for list fields (overwrites, not appends)."""
    return new


def _replace_dict(existing: dict, new: dict) -> dict:
    return new


class ScoringState(TypedDict):
    # Input (set once)
    document: str

    # Panel
    verdicts: Annotated[list[EvaluatorVerdict], _replace_list]
    evaluator_durations: Annotated[list[EvaluatorTiming], _replace_list]

    # Disagreement: first detection, then latest after any discussion
    initial_disagreement: Annotated[DisagreementResult, _replace_dict]
    disagreement: Annotated[DisagreementResult, _replace_dict]

    # Discussion
    discussion_occurred: Annotated[bool, _replace_bool]
    discussion_summary: str
    discussion_changes: Annotated[list[ScoreChange], _replace_list]

    # Tiebreaker
    arbiter_verdict: EvaluatorVerdict
    resolution_summary: str

    # Output
    final_score: Annotated[FinalScore, _replace_dict]

    # Accumulating (operator.add)
    stage_timings: Annotated[list[dict], operator.add]
