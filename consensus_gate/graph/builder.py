"""StateGraph construction: wires one consensus scoring cycle.

    evaluate -> detect --(disagreement, discussant)--> discuss -> redetect
                  |                                                  |
                  +--(disagreement, arbiter)--> tiebreak <--(still disputed)
                  |                                 |
                  +-----------> finalize <----------+
"""

from __future__ import annotations

import time

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from consensus_gate.agents.arbiter import LLMArbiter
from consensus_gate.agents.base import AgentCaller
from consensus_gate.agents.discussant import LLMDiscussant
from consensus_gate.agents.evaluator import LLMEvaluator
from consensus_gate.config import Settings
from consensus_gate.contracts import ArbiterJudge, Discussant, FinalScore
from consensus_gate.deliberate.discussion import run_discussion_round
from consensus_gate.deliberate.panel import EvaluatorPanel
from consensus_gate.deliberate.tiebreaker import run_tiebreaker
from consensus_gate.event_log.writer import EventLog
from consensus_gate.graph.state import ScoringState
from consensus_gate.scoring.aggregate import calculate_final_score
from consensus_gate.scoring.disagreement import detect_disagreement


def build_scoring_graph(
    panel: EvaluatorPanel,
    *,
    discussant: Discussant | None = None,
    arbiter: ArbiterJudge | None = None,
    event_log: EventLog | None = None,
    attempt: int = 0,
) -> CompiledStateGraph:
    """Build and compile the scoring graph.

    Without a discussant the discussion round is skipped; without an
    arbiter, disputes settle on the median.
    """

    def _emit(stage: str, start: float, **details) -> dict:
        elapsed = time.monotonic() - start
        if event_log is not None:
            event_log.emit(
                EventLog.make_event(stage=stage, attempt=attempt, elapsed_s=elapsed, details=details)
            )
        return {"stage": stage, "elapsed_s": round(elapsed, 3)}

    async def evaluate_node(state: ScoringState) -> dict:
        start = time.monotonic()
        result = await panel.evaluate(state["document"])
        timing = _emit(
            "panel",
            start,
            scores={v["evaluator_role"].value: v["overall_score"] for v in result["verdicts"]},
            durations={t["role"].value: t["duration_s"] for t in result["durations"]},
        )
        return {
            "verdicts": result["verdicts"],
            "evaluator_durations": result["durations"],
            "stage_timings": [timing],
        }

    async def detect_node(state: ScoringState) -> dict:
        start = time.monotonic()
        disagreement = detect_disagreement(state["verdicts"])
        timing = _emit(
            "disagreement",
            start,
            has_disagreement=disagreement["has_disagreement"],
            disputed=[d.value for d in disagreement["disagreeing_dimensions"]],
            max_spread=disagreement["max_spread"],
        )
        return {
            "initial_disagreement": disagreement,
            "disagreement": disagreement,
            "discussion_occurred": False,
            "stage_timings": [timing],
        }

    async def discuss_node(state: ScoringState) -> dict:
        start = time.monotonic()
        output = await run_discussion_round(state["document"], state["verdicts"], discussant)
        timing = _emit("discussion", start, changes=output["changes_count"])
        return {
            "verdicts": output["revised_verdicts"],
            "discussion_occurred": True,
            "discussion_summary": output["discussion_summary"],
            "discussion_changes": output["changes"],
            "stage_timings": [timing],
        }

    async def redetect_node(state: ScoringState) -> dict:
        start = time.monotonic()
        disagreement = detect_disagreement(state["verdicts"])
        timing = _emit(
            "post_discussion_disagreement",
            start,
            has_disagreement=disagreement["has_disagreement"],
            disputed=[d.value for d in disagreement["disagreeing_dimensions"]],
            max_spread=disagreement["max_spread"],
        )
        return {"disagreement": disagreement, "stage_timings": [timing]}

    async def tiebreak_node(state: ScoringState) -> dict:
        start = time.monotonic()
        output = await run_tiebreaker(
            state["document"],
            state["verdicts"],
            state["disagreement"],
            arbiter,
            state.get("discussion_summary"),
        )
        timing = _emit(
            "tiebreaker",
            start,
            arbiter_score=output["verdict"]["overall_score"],
            resolution=output["resolution_summary"],
        )
        return {
            "arbiter_verdict": output["verdict"],
            "resolution_summary": output["resolution_summary"],
            "stage_timings": [timing],
        }

    async def finalize_node(state: ScoringState) -> dict:
        start = time.monotonic()
        arbiter_verdict = state.get("arbiter_verdict") or None
        # Blend uses the dimensions still disputed; method choice uses the first detection
        disagreement = state["disagreement"] if arbiter_verdict else state["initial_disagreement"]
        final = calculate_final_score(
            state["verdicts"],
            disagreement,
            discussion_occurred=state.get("discussion_occurred", False),
            arbiter_verdict=arbiter_verdict,
        )
        timing = _emit(
            "final_score",
            start,
            overall_score=final["overall_score"],
            method=final["consensus_method"].value,
            confidence=final["confidence"],
            needs_human_review=final["needs_human_review"],
        )
        return {"final_score": final, "stage_timings": [timing]}

    def route_after_detect(state: ScoringState) -> str:
        if not state["disagreement"]["has_disagreement"]:
            return "finalize"
        if discussant is not None:
            return "discuss"
        if arbiter is not None:
            return "tiebreak"
        return "finalize"

    def route_after_redetect(state: ScoringState) -> str:
        if state["disagreement"]["has_disagreement"] and arbiter is not None:
            return "tiebreak"
        return "finalize"

    graph = StateGraph(ScoringState)

    graph.add_node("evaluate", evaluate_node)
    graph.add_node("detect", detect_node)
    graph.add_node("discuss", discuss_node)
    graph.add_node("redetect", redetect_node)
    graph.add_node("tiebreak", tiebreak_node)
    graph.add_node("finalize", finalize_node)

    graph.set_entry_point("evaluate")
    graph.add_edge("evaluate", "detect")
    graph.add_conditional_edges(
        "detect",
        route_after_detect,
        {"discuss": "discuss", "tiebreak": "tiebreak", "finalize": "finalize"},
    )
    graph.add_edge("discuss", "redetect")
    graph.add_conditional_edges(
        "redetect",
        route_after_redetect,
        {"tiebreak": "tiebreak", "finalize": "finalize"},
    )
    graph.add_edge("tiebreak", "finalize")
    graph.add_edge("finalize", END)

    return graph.compile()


class ConsensusScorer:
    """Scoring function over the compiled graph: document in, FinalScore out.

    Each call runs a fresh cycle; the last full state is kept for inspection.
    """

    def __init__(
        self,
        panel: EvaluatorPanel,
        *,
        discussant: Discussant | None = None,
        arbiter: ArbiterJudge | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._panel = panel
        self._discussant = discussant
        self._arbiter = arbiter
        self._event_log = event_log
        self.cycles = 0
        self.last_state: dict | None = None

    async def score(self, document: str) -> FinalScore:
        graph = build_scoring_graph(
            self._panel,
            discussant=self._discussant,
            arbiter=self._arbiter,
            event_log=self._event_log,
            attempt=self.cycles,
        )
        self.cycles += 1
        state = await graph.ainvoke({"document": document, "stage_timings": []})
        self.last_state = state
        return state["final_score"]

    async def __call__(self, document: str) -> FinalScore:
        return await self.score(document)


def build_consensus_scorer(
    settings: Settings,
    *,
    event_log: EventLog | None = None,
    caller: AgentCaller | None = None,
    arbiter_caller: AgentCaller | None = None,
) -> ConsensusScorer:
    """LLM-backed scorer wired from settings."""
    caller = caller or AgentCaller(
        api_key=settings.anthropic_api_key,
        model=settings.evaluator_model,
        max_concurrent=settings.max_concurrent_requests,
        max_retries=settings.max_retries,
        fallback_model=settings.arbiter_model,
    )
    arbiter_caller = arbiter_caller or AgentCaller(
        api_key=settings.anthropic_api_key,
        model=settings.arbiter_model,
        max_concurrent=settings.max_concurrent_requests,
        max_retries=settings.max_retries,
    )
    return ConsensusScorer(
        EvaluatorPanel(LLMEvaluator(caller)),
        discussant=LLMDiscussant(caller) if settings.discussion_enabled else None,
        arbiter=LLMArbiter(arbiter_caller) if settings.tiebreaker_enabled else None,
        event_log=event_log,
    )
