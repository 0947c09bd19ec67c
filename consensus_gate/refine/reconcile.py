"""Edit reconciliation: merge fixer suggestions into one revised document.

Edits are grouped by section. Within a section each edit scores its priority
weight plus an agreement bonus when several fixers target the same text;
higher scores claim their text first and any edit whose original text
overlaps an already-claimed one is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass

from consensus_gate.contracts import (
    Dimension,
    EditPriority,
    FixerResult,
    ReconciliationResult,
    SkippedEdit,
    SuggestedEdit,
)
from consensus_gate.utils.text import normalize_key

PRIORITY_WEIGHTS: dict[EditPriority, int] = {
    EditPriority.CRITICAL: 4,
    EditPriority.HIGH: 3,
    EditPriority.MEDIUM: 2,
    EditPriority.LOW: 1,
}

AGREEMENT_BONUS = 0.5


@dataclass
class ScoredEdit:
    edit: SuggestedEdit
    fixer_type: Dimension
    score: float


def edit_score(edit: SuggestedEdit, agreement_count: int) -> float:
    """Priority weight, plus 0.5 per agreeing fixer once two or more agree."""
    bonus = agreement_count * AGREEMENT_BONUS if agreement_count > 1 else 0.0
    return PRIORITY_WEIGHTS.get(EditPriority(edit["priority"]), 2) + bonus


def edits_conflict(a: SuggestedEdit, b: SuggestedEdit) -> bool:
    text_a = a["original_text"].lower()
    text_b = b["original_text"].lower()
    return text_a in text_b or text_b in text_a


def prioritize_edits(
    fixer_results: list[FixerResult],
) -> tuple[list[ScoredEdit], list[SkippedEdit]]:
    """Select non-conflicting edits per section. Returns (selected, skipped)."""
    by_section: dict[str, list[tuple[SuggestedEdit, Dimension]]] = {}
    for result in fixer_results:
        for edit in result["suggested_edits"]:
            by_section.setdefault(normalize_key(edit["section"]), []).append(
                (edit, result["fixer_type"])
            )

    selected: list[ScoredEdit] = []
    skipped: list[SkippedEdit] = []

    for section, edits in by_section.items():
        scored = []
        for edit, fixer_type in edits:
            agreeing = sum(
                1
                for other, other_type in edits
                if other["original_text"] == edit["original_text"] and other_type != fixer_type
            )
            scored.append(ScoredEdit(edit, fixer_type, edit_score(edit, agreeing + 1)))
        # Stable: ties keep fixer order
        scored.sort(key=lambda s: s.score, reverse=True)

        kept: list[ScoredEdit] = []
        for candidate in scored:
            if any(edits_conflict(candidate.edit, k.edit) for k in kept):
                skipped.append(
                    SkippedEdit(
                        edit=candidate.edit,
                        reason=f'Conflicts with higher-priority edit in section "{section}"',
                    )
                )
            else:
                kept.append(candidate)
        selected.extend(kept)

    return selected, skipped


class TextReconciler:
    """Applies selected edits by exact text replacement, first occurrence only."""

    async def reconcile(
        self, original_document: str, fixer_results: list[FixerResult]
    ) -> ReconciliationResult:
        selected, skipped = prioritize_edits(fixer_results)

        revised = original_document
        applied: list[SuggestedEdit] = []
        for scored in selected:
            edit = scored.edit
            if edit["original_text"] not in revised:
                skipped.append(SkippedEdit(edit=edit, reason="Original text not found in document"))
                continue
            revised = revised.replace(edit["original_text"], edit["suggested_text"], 1)
            applied.append(edit)

        return ReconciliationResult(
            revised_document=revised,
            edits_applied=applied,
            edits_skipped=skipped,
        )
