"""Critique aggregation: merge near-duplicate issues and rank by impact.

Two issues merge when they target the same dimension and their descriptions
overlap by more than SIMILARITY_THRESHOLD (token Jaccard). Rank is
severity_weight * 10 + number of evaluators that raised the issue, so
severity dominates and agreement breaks ties within a severity band.
"""

from __future__ import annotations

from consensus_gate.contracts import (
    AggregatedCritique,
    EvaluatorVerdict,
    Issue,
    PrioritizedIssue,
    Severity,
)
from consensus_gate.utils.text import jaccard_score

SIMILARITY_THRESHOLD = 0.6
TOP_ISSUES = 5

SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


def _severity_weight(severity: Severity | str) -> int:
    return SEVERITY_WEIGHTS.get(Severity(severity), 1)


def issues_similar(a: Issue, b: Issue) -> bool:
    if a["dimension"] != b["dimension"]:
        return False
    text_a = a["description"].lower().strip()
    text_b = b["description"].lower().strip()
    if text_a == text_b:
        return True
    return jaccard_score(text_a, text_b) > SIMILARITY_THRESHOLD


class _IssueCluster:
    """Issues judged to be the same finding, plus the verdicts that raised it."""

    def __init__(self, issue: Issue, source: int) -> None:
        self.members: list[Issue] = [issue]
        self.sources: set[int] = {source}

    @property
    def head(self) -> Issue:
        return self.members[0]

    def add(self, issue: Issue, source: int) -> None:
        self.members.append(issue)
        self.sources.add(source)

    def merged(self, evaluator_count: int) -> PrioritizedIssue:
        # max() keeps the first of equal severities
        best = max(self.members, key=lambda i: _severity_weight(i["severity"]))
        agreed = len(self.sources)
        severity = Severity(best["severity"])
        rank = _severity_weight(severity) * 10 + agreed

        if severity is Severity.HIGH and agreed >= evaluator_count:
            priority = "critical"
        else:
            priority = severity.value

        merged = PrioritizedIssue(
            dimension=best["dimension"],
            severity=severity,
            description=best["description"],
            agreed_by_evaluators=agreed,
            rank=rank,
            priority=priority,
        )
        quote = best.get("quote") or _longest(m.get("quote") for m in self.members)
        if quote:
            merged["quote"] = quote
        fix = best.get("suggested_fix") or _longest(m.get("suggested_fix") for m in self.members)
        if fix:
            merged["suggested_fix"] = fix
        return merged


def _longest(values) -> str:
    return max((v for v in values if v), key=len, default="")


def aggregate_critiques(verdicts: list[EvaluatorVerdict]) -> AggregatedCritique:
    """Deduplicate issues across verdicts and keep the top five by rank."""
    if not verdicts:
        return AggregatedCritique(
            prioritized_issues=[],
            top_priority=None,
            summary="No evaluator verdicts available.",
        )

    clusters: list[_IssueCluster] = []
    for index, verdict in enumerate(verdicts):
        for issue in verdict["issues"]:
            for cluster in clusters:
                if issues_similar(cluster.head, issue):
                    cluster.add(issue, index)
                    break
            else:
                clusters.append(_IssueCluster(issue, index))

    if not clusters:
        return AggregatedCritique(
            prioritized_issues=[],
            top_priority=None,
            summary="No issues flagged by evaluators.",
        )

    evaluator_count = len(verdicts)
    ranked = [c.merged(evaluator_count) for c in clusters]
    ranked.sort(key=lambda i: i["rank"], reverse=True)
    top = ranked[:TOP_ISSUES]

    return AggregatedCritique(
        prioritized_issues=top,
        top_priority=top[0],
        summary=_summarize(top, len(ranked), evaluator_count),
    )


def _summarize(top: list[PrioritizedIssue], total: int, evaluator_count: int) -> str:
    lead = top[0]
    dimension = lead["dimension"]
    dimension = dimension.value if hasattr(dimension, "value") else dimension
    critical = [i for i in top if i["priority"] == "critical"]

    if critical:
        head = (
            f"{len(critical)} critical issue(s) flagged by all {evaluator_count} evaluators "
            f"require attention, led by {dimension}: {lead['description']}"
        )
    else:
        head = (
            f"Top concern ({lead['severity'].value} severity, {dimension}, raised by "
            f"{lead['agreed_by_evaluators']} of {evaluator_count} evaluators): "
            f"{lead['description']}"
        )
    return f"{head} ({total} distinct issue(s), {len(top)} prioritized)."
