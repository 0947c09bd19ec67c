"""LLM-backed reconciler: applies the selected edits while keeping the prose fluent."""

from __future__ import annotations

from consensus_gate.agents.base import AgentCaller
from consensus_gate.contracts import FixerResult, ReconciliationResult
from consensus_gate.decoding import decode_reconciliation_response
from consensus_gate.refine.reconcile import ScoredEdit, prioritize_edits

RECONCILER_SYSTEM = """\
You are an expert editor who applies suggested edits to documents while \
maintaining narrative coherence and flow. You respond only with valid JSON.
"""

RECONCILER_FORMAT = """\
Respond with valid JSON only:

{
  "revisedDocument": "The complete revised document with all applicable edits applied",
  "editsApplied": [
    {
      "section": "section name",
      "originalText": "original text that was replaced",
      "suggestedText": "the replacement text",
      "rationale": "why this edit was made",
      "priority": "critical|high|medium|low"
    }
  ],
  "editsNotApplicable": [
    {
      "section": "section name",
      "originalText": "text that could not be found",
      "reason": "why this edit could not be applied"
    }
  ]
}"""


def build_reconciliation_prompt(document: str, selected: list[ScoredEdit]) -> str:
    described = "\n\n".join(
        f"Edit {i} (from {s.fixer_type.value}, priority: {s.edit['priority'].value}):\n"
        f"  Section: {s.edit['section']}\n"
        f"  Original: \"{s.edit['original_text']}\"\n"
        f"  Suggested: \"{s.edit['suggested_text']}\"\n"
        f"  Rationale: {s.edit['rationale']}"
        for i, s in enumerate(selected, start=1)
    )
    return f"""You are applying a set of suggested edits to a document while maintaining narrative coherence.

## Original Document

{document}

## Suggested Edits to Apply

{described}

## Instructions

1. Apply all the suggested edits to the original document
2. Ensure the revised text flows naturally; adjust transitions if needed
3. Maintain consistent tone and style throughout
4. Do not add new information or change meaning beyond what the edits specify
5. If an edit's originalText cannot be found exactly in the document, skip it

## Response Format

{RECONCILER_FORMAT}"""


class LLMReconciler:
    """Reconciler capability: conflict resolution locally, application by the model."""

    def __init__(self, caller: AgentCaller, *, max_tokens: int = 8000) -> None:
        self._caller = caller
        self._max_tokens = max_tokens

    async def reconcile(
        self, original_document: str, fixer_results: list[FixerResult]
    ) -> ReconciliationResult:
        selected, skipped = prioritize_edits(fixer_results)
        if not selected:
            return ReconciliationResult(
                revised_document=original_document,
                edits_applied=[],
                edits_skipped=skipped,
            )

        data, _usage = await self._caller.call_json(
            system=RECONCILER_SYSTEM,
            messages=[
                {"role": "user", "content": build_reconciliation_prompt(original_document, selected)}
            ],
            agent_name="reconciler",
            max_tokens=self._max_tokens,
        )
        return decode_reconciliation_response(
            data, original_document, [s.edit for s in selected], skipped
        )
