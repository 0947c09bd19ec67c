"""Discussion round: each evaluator sees its peers' verdicts and may revise.

Revisions never mutate the input verdicts; each evaluator gets a fresh
verdict with updated scores, annotated reasoning and a later timestamp.
"""

from __future__ import annotations

import asyncio
import copy
import time
from datetime import datetime, timedelta, timezone

from consensus_gate.contracts import (
    Dimension,
    Discussant,
    DiscussionResponse,
    DiscussionRoundOutput,
    EvaluatorVerdict,
    ScoreChange,
)
from consensus_gate.decoding import validate_discussion_response
from consensus_gate.scoring.dimensions import weighted_overall

NO_CHANGES_SUMMARY = (
    "All evaluators maintained their original positions after reviewing other perspectives."
)


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def later_than(previous: str) -> str:
    """Current UTC time, nudged forward if it would not be after `previous`."""
    now = datetime.now(timezone.utc)
    try:
        floor = _parse_ts(previous)
    except (TypeError, ValueError):
        return now.isoformat()
    if now <= floor:
        now = floor + timedelta(microseconds=1)
    return now.isoformat()


def apply_revisions(
    verdict: EvaluatorVerdict, response: DiscussionResponse
) -> tuple[EvaluatorVerdict, list[ScoreChange]]:
    """Return a revised copy of the verdict and the score changes made."""
    revised = copy.deepcopy(verdict)
    by_dimension = {Dimension(r["dimension"]): r for r in response["revised_dimensions"]}
    changes: list[ScoreChange] = []

    for ds in revised["dimension_scores"]:
        revision = by_dimension.get(ds["dimension"])
        if revision is None:
            continue
        changes.append(
            ScoreChange(
                evaluator=verdict["evaluator_role"],
                dimension=ds["dimension"],
                before=ds["score"],
                after=revision["revised_score"],
            )
        )
        ds["score"] = revision["revised_score"]
        ds["reasoning"] = f"{ds['reasoning']}\n\n[REVISED] {revision['reason_for_change']}"

    revised["overall_score"] = weighted_overall(revised["dimension_scores"])
    revised["critique"] = f"{verdict['critique']}\n\n[POST-DISCUSSION] {response['overall_reflection']}"
    revised["evaluated_at"] = later_than(verdict["evaluated_at"])
    return revised, changes


def summarize_changes(changes: list[ScoreChange]) -> str:
    if not changes:
        return NO_CHANGES_SUMMARY
    lines = [f"Discussion round completed with {len(changes)} score revision(s):"]
    for c in changes:
        lines.append(
            f"- {c['evaluator'].value} revised {c['dimension'].value}: "
            f"{c['before']:.1f} → {c['after']:.1f}"
        )
    return "\n".join(lines)


async def run_discussion_round(
    document: str,
    verdicts: list[EvaluatorVerdict],
    discussant: Discussant,
) -> DiscussionRoundOutput:
    """One reconsideration pass over every verdict, run concurrently.

    A malformed response from any evaluator fails the whole round.
    """
    start = time.monotonic()

    async def _reconsider(index: int) -> DiscussionResponse:
        own = verdicts[index]
        peers = [v for i, v in enumerate(verdicts) if i != index]
        return await discussant.reconsider(document, own, peers)

    responses = await asyncio.gather(*(_reconsider(i) for i in range(len(verdicts))))

    revised_verdicts: list[EvaluatorVerdict] = []
    all_changes: list[ScoreChange] = []
    for verdict, response in zip(verdicts, responses):
        revised, changes = apply_revisions(
            verdict, validate_discussion_response(response, verdict["evaluator_role"])
        )
        revised_verdicts.append(revised)
        all_changes.extend(changes)

    return DiscussionRoundOutput(
        revised_verdicts=revised_verdicts,
        discussion_summary=summarize_changes(all_changes),
        changes_count=len(all_changes),
        changes=all_changes,
        duration_s=round(time.monotonic() - start, 3),
    )
