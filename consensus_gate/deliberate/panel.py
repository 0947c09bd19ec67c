"""Evaluator panel: independent judges score the same document in parallel.

There is no partial quorum: if any judge raises or returns a malformed
verdict, the whole panel fails.
"""

from __future__ import annotations

import asyncio
import time

from consensus_gate.agents.personas import PRIMARY_PERSONAS
from consensus_gate.contracts import (
    Evaluator,
    EvaluatorTiming,
    EvaluatorVerdict,
    PanelResult,
    Persona,
)
from consensus_gate.decoding import validate_verdict


class EvaluatorPanel:
    def __init__(self, evaluator: Evaluator, personas: list[Persona] | None = None) -> None:
        self._evaluator = evaluator
        self.personas = list(personas) if personas is not None else list(PRIMARY_PERSONAS)

    async def _run_one(self, document: str, persona: Persona) -> tuple[EvaluatorVerdict, float]:
        start = time.monotonic()
        verdict = await self._evaluator.evaluate(document, persona)
        return validate_verdict(verdict), time.monotonic() - start

    async def evaluate(self, document: str) -> PanelResult:
        """Score the document with every persona concurrently."""
        start = time.monotonic()
        results = await asyncio.gather(*(self._run_one(document, p) for p in self.personas))

        return PanelResult(
            verdicts=[verdict for verdict, _ in results],
            durations=[
                EvaluatorTiming(role=persona["role"], duration_s=round(elapsed, 3))
                for persona, (_, elapsed) in zip(self.personas, results)
            ],
            total_duration_s=round(time.monotonic() - start, 3),
        )
