"""Schema decoders for model payloads.

Judge payloads (verdicts, discussion responses, arbiter rulings) decode
strictly: any missing field, unknown dimension or out-of-range score raises
MalformedResponseError. Fixer and reconciler payloads decode leniently,
dropping what cannot be used, since they only ever propose edits.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from consensus_gate.contracts import (
    ArbiterDimensionScore,
    ArbiterPosition,
    ArbiterResponse,
    Dimension,
    DimensionRevision,
    DimensionScore,
    DiscussionResponse,
    DisputedDimensionEvaluation,
    EditPriority,
    EvaluatorRole,
    EvaluatorVerdict,
    FixerResult,
    Issue,
    MaintainedPosition,
    ReconciliationResult,
    Severity,
    SkippedEdit,
    SuggestedEdit,
)
from consensus_gate.errors import MalformedResponseError
from consensus_gate.scoring.dimensions import weighted_overall

# Overall scores are rounded to one decimal
OVERALL_TOLERANCE = 0.05

# --- Field helpers ---


def _require(data: Any, key: str, agent: str) -> Any:
    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected an object, got {type(data).__name__}", agent=agent)
    if key not in data:
        raise MalformedResponseError(f"missing field '{key}'", agent=agent)
    return data[key]


def _str(data: Any, key: str, agent: str) -> str:
    value = _require(data, key, agent)
    if not isinstance(value, str):
        raise MalformedResponseError(f"field '{key}' must be a string", agent=agent)
    return value


def _list(data: Any, key: str, agent: str) -> list:
    value = _require(data, key, agent)
    if not isinstance(value, list):
        raise MalformedResponseError(f"field '{key}' must be a list", agent=agent)
    return value


def _number(data: Any, key: str, agent: str, *, low: float, high: float) -> float:
    value = _require(data, key, agent)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponseError(f"field '{key}' must be a number", agent=agent)
    if not low <= value <= high:
        raise MalformedResponseError(
            f"field '{key}'={value} outside [{low:g}, {high:g}]", agent=agent
        )
    return float(value)


def _score(data: Any, key: str, agent: str) -> float:
    return _number(data, key, agent, low=0.0, high=10.0)


def _dimension(data: Any, key: str, agent: str) -> Dimension:
    value = _require(data, key, agent)
    try:
        return Dimension(value)
    except ValueError:
        raise MalformedResponseError(f"unknown dimension '{value}'", agent=agent) from None


def _severity(data: Any, agent: str) -> Severity:
    value = _require(data, "severity", agent)
    try:
        return Severity(value)
    except ValueError:
        raise MalformedResponseError(f"unknown severity '{value}'", agent=agent) from None


def _check_complete(dimensions: list[Dimension], agent: str) -> None:
    if len(dimensions) != len(set(dimensions)):
        raise MalformedResponseError("dimension scored more than once", agent=agent)
    missing = [d.value for d in Dimension if d not in dimensions]
    if missing:
        raise MalformedResponseError(f"missing dimensions: {', '.join(missing)}", agent=agent)


# --- Verdicts ---


def decode_issue(data: Any, agent: str) -> Issue:
    issue = Issue(
        dimension=_dimension(data, "dimension", agent),
        severity=_severity(data, agent),
        description=_str(data, "description", agent),
    )
    if data.get("quote"):
        issue["quote"] = str(data["quote"])
    if data.get("suggestedFix"):
        issue["suggested_fix"] = str(data["suggestedFix"])
    return issue


def decode_verdict(data: Any, role: EvaluatorRole) -> EvaluatorVerdict:
    """Decode an evaluator's JSON into a verdict with all seven dimensions.

    The overall score is recomputed from the dimension scores rather than
    trusted from the payload.
    """
    agent = f"evaluator:{EvaluatorRole(role).value}"
    dimension_scores: list[DimensionScore] = []
    for item in _list(data, "dimensions", agent):
        raw_issues = item.get("issues", []) if isinstance(item, dict) else []
        if not isinstance(raw_issues, list):
            raise MalformedResponseError("dimension 'issues' must be a list", agent=agent)
        dimension_scores.append(
            DimensionScore(
                dimension=_dimension(item, "dimension", agent),
                score=_score(item, "score", agent),
                reasoning=_str(item, "reasoning", agent),
                issues=[str(i) for i in raw_issues],
            )
        )
    _check_complete([ds["dimension"] for ds in dimension_scores], agent)

    return EvaluatorVerdict(
        evaluator_role=EvaluatorRole(role),
        dimension_scores=dimension_scores,
        overall_score=weighted_overall(dimension_scores),
        critique=_str(data, "overallCritique", agent),
        issues=[decode_issue(i, agent) for i in _list(data, "issues", agent)],
        confidence=_number(data, "confidence", agent, low=0.0, high=1.0),
        evaluated_at=datetime.now(timezone.utc).isoformat(),
    )


def validate_verdict(verdict: Any) -> EvaluatorVerdict:
    """Check an already-typed verdict meets the structural invariants."""
    if not isinstance(verdict, dict):
        raise MalformedResponseError(f"verdict must be a dict, got {type(verdict).__name__}")
    role = _require(verdict, "evaluator_role", "panel")
    try:
        agent = f"evaluator:{EvaluatorRole(role).value}"
    except ValueError:
        raise MalformedResponseError(f"unknown evaluator role '{role}'", agent="panel") from None

    dimensions = []
    for ds in _list(verdict, "dimension_scores", agent):
        dimensions.append(_dimension(ds, "dimension", agent))
        _score(ds, "score", agent)
        _str(ds, "reasoning", agent)
        _list(ds, "issues", agent)
    _check_complete(dimensions, agent)

    overall = _score(verdict, "overall_score", agent)
    expected = weighted_overall(verdict["dimension_scores"])
    if abs(overall - expected) > OVERALL_TOLERANCE:
        raise MalformedResponseError(
            f"overall_score {overall:g} does not match weighted dimension scores ({expected:g})",
            agent=agent,
        )

    for issue in _list(verdict, "issues", agent):
        _dimension(issue, "dimension", agent)
        _severity(issue, agent)
        _str(issue, "description", agent)
    _number(verdict, "confidence", agent, low=0.0, high=1.0)
    _str(verdict, "evaluated_at", agent)
    return verdict


# --- Discussion ---


def decode_discussion_response(data: Any, role: EvaluatorRole) -> DiscussionResponse:
    agent = f"discussion:{EvaluatorRole(role).value}"
    revised = [
        DimensionRevision(
            dimension=_dimension(item, "dimension", agent),
            original_score=_score(item, "originalScore", agent),
            revised_score=_score(item, "revisedScore", agent),
            reason_for_change=_str(item, "reasonForChange", agent),
        )
        for item in _list(data, "revisedDimensions", agent)
    ]
    maintained = [
        MaintainedPosition(
            dimension=_dimension(item, "dimension", agent),
            score=_score(item, "score", agent),
            justification=_str(item, "justification", agent),
        )
        for item in _list(data, "maintainedPositions", agent)
    ]
    revised_dims = [r["dimension"] for r in revised]
    if len(revised_dims) != len(set(revised_dims)):
        raise MalformedResponseError("dimension revised more than once", agent=agent)

    return DiscussionResponse(
        revised_dimensions=revised,
        maintained_positions=maintained,
        overall_reflection=_str(data, "overallReflection", agent),
    )


def validate_discussion_response(response: Any, role: EvaluatorRole) -> DiscussionResponse:
    """Check an already-typed discussion response; dimensions come back as Dimension."""
    agent = f"discussion:{EvaluatorRole(role).value}"
    revised = [
        DimensionRevision(
            dimension=_dimension(r, "dimension", agent),
            original_score=_score(r, "original_score", agent),
            revised_score=_score(r, "revised_score", agent),
            reason_for_change=_str(r, "reason_for_change", agent),
        )
        for r in _list(response, "revised_dimensions", agent)
    ]
    maintained = [
        MaintainedPosition(
            dimension=_dimension(m, "dimension", agent),
            score=_score(m, "score", agent),
            justification=_str(m, "justification", agent),
        )
        for m in _list(response, "maintained_positions", agent)
    ]
    revised_dims = [r["dimension"] for r in revised]
    if len(revised_dims) != len(set(revised_dims)):
        raise MalformedResponseError("dimension revised more than once", agent=agent)

    return DiscussionResponse(
        revised_dimensions=revised,
        maintained_positions=maintained,
        overall_reflection=_str(response, "overall_reflection", agent),
    )


# --- Arbiter ---


def decode_arbiter_response(data: Any) -> ArbiterResponse:
    agent = "arbiter"
    disputed: list[DisputedDimensionEvaluation] = []
    for item in _list(data, "disputedDimensionEvaluations", agent):
        positions = [
            ArbiterPosition(
                evaluator=_str(pos, "evaluator", agent),
                score=_score(pos, "score", agent),
                reasoning=_str(pos, "reasoning", agent),
            )
            for pos in _list(item, "evaluatorPositions", agent)
        ]
        if not positions:
            raise MalformedResponseError("disputed dimension lists no evaluator positions", agent=agent)
        disputed.append(
            DisputedDimensionEvaluation(
                dimension=_dimension(item, "dimension", agent),
                evaluator_positions=positions,
                stronger_argument=_str(item, "strongerArgument", agent),
                definitive_score=_score(item, "definitiveScore", agent),
                resolution=_str(item, "resolution", agent),
            )
        )

    others = [
        ArbiterDimensionScore(
            dimension=_dimension(item, "dimension", agent),
            score=_score(item, "score", agent),
            reasoning=_str(item, "reasoning", agent),
        )
        for item in _list(data, "otherDimensions", agent)
    ]

    return ArbiterResponse(
        disputed_dimension_evaluations=disputed,
        other_dimensions=others,
        overall_critique=_str(data, "overallCritique", agent),
        resolution_summary=_str(data, "resolutionSummary", agent),
        confidence=_number(data, "confidence", agent, low=0.0, high=1.0),
    )


def validate_arbiter_response(response: Any) -> ArbiterResponse:
    """Check an already-typed arbiter ruling; dimensions come back as Dimension."""
    agent = "arbiter"
    disputed: list[DisputedDimensionEvaluation] = []
    for item in _list(response, "disputed_dimension_evaluations", agent):
        positions = _list(item, "evaluator_positions", agent)
        if not positions:
            raise MalformedResponseError("disputed dimension lists no evaluator positions", agent=agent)
        for pos in positions:
            _score(pos, "score", agent)
        disputed.append(
            DisputedDimensionEvaluation(
                dimension=_dimension(item, "dimension", agent),
                evaluator_positions=positions,
                stronger_argument=_str(item, "stronger_argument", agent),
                definitive_score=_score(item, "definitive_score", agent),
                resolution=_str(item, "resolution", agent),
            )
        )

    others = [
        ArbiterDimensionScore(
            dimension=_dimension(item, "dimension", agent),
            score=_score(item, "score", agent),
            reasoning=_str(item, "reasoning", agent),
        )
        for item in _list(response, "other_dimensions", agent)
    ]

    return ArbiterResponse(
        disputed_dimension_evaluations=disputed,
        other_dimensions=others,
        overall_critique=_str(response, "overall_critique", agent),
        resolution_summary=_str(response, "resolution_summary", agent),
        confidence=_number(response, "confidence", agent, low=0.0, high=1.0),
    )


# --- Fixers & reconciliation (lenient) ---


def coerce_priority(value: Any) -> EditPriority:
    try:
        return EditPriority(value)
    except ValueError:
        return EditPriority.MEDIUM


def decode_edit(data: Any) -> SuggestedEdit | None:
    """Edit from a fixer payload, or None when a required field is blank."""
    if not isinstance(data, dict):
        return None
    fields = ("section", "originalText", "suggestedText", "rationale")
    if not all(data.get(f) for f in fields):
        return None
    return SuggestedEdit(
        section=str(data["section"]),
        original_text=str(data["originalText"]),
        suggested_text=str(data["suggestedText"]),
        rationale=str(data["rationale"]),
        priority=coerce_priority(data.get("priority")),
    )


def decode_fixer_response(
    data: Any, fixer_type: Dimension, processing_time: float = 0.0
) -> FixerResult:
    raw_edits = data.get("suggestedEdits") if isinstance(data, dict) else None
    edits = [e for e in map(decode_edit, raw_edits or []) if e is not None]

    confidence = 0.5
    raw_confidence = data.get("confidence") if isinstance(data, dict) else None
    if isinstance(raw_confidence, (int, float)) and not isinstance(raw_confidence, bool):
        confidence = min(1.0, max(0.0, float(raw_confidence)))

    return FixerResult(
        fixer_type=Dimension(fixer_type),
        suggested_edits=edits,
        confidence=confidence,
        processing_time=processing_time,
    )


def decode_reconciliation_response(
    data: Any,
    original_document: str,
    selected: list[SuggestedEdit],
    already_skipped: list[SkippedEdit],
) -> ReconciliationResult:
    """Merge the model's report with edits already dropped as conflicts.

    A payload with no revised document applies nothing.
    """
    revised = data.get("revisedDocument") if isinstance(data, dict) else None
    if not isinstance(revised, str) or not revised.strip():
        return ReconciliationResult(
            revised_document=original_document,
            edits_applied=[],
            edits_skipped=list(already_skipped),
        )

    applied = [e for e in map(decode_edit, data.get("editsApplied") or []) if e is not None]

    skipped = list(already_skipped)
    for item in data.get("editsNotApplicable") or []:
        if not isinstance(item, dict):
            continue
        section = str(item.get("section", ""))
        original_text = str(item.get("originalText", ""))
        match = next(
            (
                e
                for e in selected
                if e["section"].lower() == section.lower() and e["original_text"] == original_text
            ),
            None,
        )
        edit = match or SuggestedEdit(
            section=section,
            original_text=original_text,
            suggested_text="",
            rationale="",
            priority=EditPriority.MEDIUM,
        )
        skipped.append(SkippedEdit(edit=edit, reason=str(item.get("reason") or "Could not be applied")))

    return ReconciliationResult(
        revised_document=revised,
        edits_applied=applied,
        edits_skipped=skipped,
    )
