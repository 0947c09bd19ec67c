"""Gate metrics: pass, warning and refund rates across logged runs."""

from __future__ import annotations

from pathlib import Path

from consensus_gate.contracts import GateMetrics, QualityTier, RunEvent
from consensus_gate.event_log.writer import EventLog

GATE_STAGE = "quality_gate"


def compute_gate_metrics(events: list[RunEvent]) -> GateMetrics:
    """Aggregate quality_gate events; other stages are ignored."""
    decisions = [e["details"] for e in events if e.get("stage") == GATE_STAGE]
    runs = len(decisions)
    tier_counts = {tier.value: 0 for tier in QualityTier}
    for d in decisions:
        tier = d.get("tier", QualityTier.FAILED.value)
        tier_counts[tier] = tier_counts.get(tier, 0) + 1

    if runs == 0:
        return GateMetrics(
            runs=0,
            pass_rate=0.0,
            warning_rate=0.0,
            refund_rate=0.0,
            avg_attempts=0.0,
            avg_initial_score=0.0,
            avg_final_score=0.0,
            tier_counts=tier_counts,
        )

    def _rate(flag: str) -> float:
        return round(sum(1 for d in decisions if d.get(flag)) / runs, 4)

    def _mean(key: str) -> float:
        return round(sum(float(d.get(key, 0.0)) for d in decisions) / runs, 2)

    return GateMetrics(
        runs=runs,
        pass_rate=_rate("publishable"),
        warning_rate=_rate("warning_badge"),
        refund_rate=_rate("refund_required"),
        avg_attempts=_mean("attempts"),
        avg_initial_score=_mean("initial_score"),
        avg_final_score=_mean("final_score"),
        tier_counts=tier_counts,
    )


def collect_gate_events(log_dir: str | Path) -> list[RunEvent]:
    """quality_gate events from every run directory under log_dir."""
    root = Path(log_dir)
    if not root.is_dir():
        return []
    events: list[RunEvent] = []
    for run_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        events.extend(EventLog(root, run_dir.name).read_stage(GATE_STAGE))
    return events
