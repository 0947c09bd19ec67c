"""Append-only JSONL event log for scoring and refinement runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from consensus_gate.contracts import RunEvent


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class EventLog:
    """JSONL-backed event log for a single gate run.

    File-based with directory auto-creation; reads skip corrupt lines.
    """

    _FILENAME = "events.jsonl"

    def __init__(self, log_dir: str | Path, run_id: str) -> None:
        self.run_id = run_id
        self._dir = Path(log_dir) / run_id
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._dir / self._FILENAME

    def emit(self, event: RunEvent) -> None:
        """Append a single event as a JSON line."""
        line = json.dumps(event, ensure_ascii=False, default=_jsonable)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read_all(self) -> list[RunEvent]:
        """Read all events. Skips corrupt lines, returns [] on missing file."""
        if not self.path.exists():
            return []
        events: list[RunEvent] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events

    def read_stage(self, stage: str) -> list[RunEvent]:
        return [e for e in self.read_all() if e.get("stage") == stage]

    @staticmethod
    def make_event(
        *,
        stage: str,
        attempt: int = 0,
        elapsed_s: float = 0.0,
        details: dict | None = None,
    ) -> RunEvent:
        """Factory for creating a RunEvent with timestamp."""
        return RunEvent(
            stage=stage,
            attempt=attempt,
            ts=datetime.now(timezone.utc).isoformat(),
            elapsed_s=round(elapsed_s, 3),
            details=details or {},
        )
