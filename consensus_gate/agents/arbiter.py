"""LLM-backed arbiter: issues definitive scores for the dimensions the panel disputes."""

from __future__ import annotations

from consensus_gate.agents.base import AgentCaller
from consensus_gate.agents.personas import ARBITER
from consensus_gate.contracts import (
    DIMENSIONS,
    ArbiterResponse,
    Dimension,
    DisagreementResult,
    EvaluatorVerdict,
)
from consensus_gate.decoding import decode_arbiter_response

ARBITER_FORMAT = """\
Return your response as JSON:
{
  "disputedDimensionEvaluations": [
    {
      "dimension": "evidenceQuality",
      "evaluatorPositions": [
        {"evaluator": "Skeptic", "score": 5.0, "reasoning": "..."},
        {"evaluator": "Advocate", "score": 7.5, "reasoning": "..."},
        {"evaluator": "Generalist", "score": 6.0, "reasoning": "..."}
      ],
      "strongerArgument": "The Skeptic raises valid concerns about...",
      "definitiveScore": 6.0,
      "resolution": "While the Advocate notes the primary sources, the Skeptic's concern is valid..."
    }
  ],
  "otherDimensions": [
    {"dimension": "accessibility", "score": 7.5, "reasoning": "..."}
  ],
  "overallCritique": "A 2-3 paragraph synthesis acknowledging the disputed areas.",
  "resolutionSummary": "Brief summary of how each dispute was resolved.",
  "confidence": 0.85
}

Rules:
- Your scores carry 1.5x weight for disputed dimensions in final calculation
- Be decisive; the panel needs resolution, not more ambiguity
- Return ONLY valid JSON, no additional text."""


def format_verdict_for_arbiter(verdict: EvaluatorVerdict, disputed: list[Dimension]) -> str:
    lines = [
        f"### {verdict['evaluator_role'].value} (Overall: {verdict['overall_score']:.1f})",
        "Disputed Dimension Scores:",
    ]
    for ds in verdict["dimension_scores"]:
        if ds["dimension"] in disputed:
            lines.append(f"  - {ds['dimension'].value}: {ds['score']:.1f}")
            lines.append(f"    Reasoning: {ds['reasoning']}")
    related = [i for i in verdict["issues"] if i["dimension"] in disputed][:3]
    lines.append("")
    lines.append("Related Issues:")
    if related:
        lines.extend(f"  - [{i['severity'].value}] {i['description']}" for i in related)
    else:
        lines.append("  None")
    return "\n".join(lines)


def build_tiebreaker_prompt(
    document: str,
    verdicts: list[EvaluatorVerdict],
    disagreement: DisagreementResult,
    discussion_summary: str | None = None,
) -> str:
    disputed = list(disagreement["disagreeing_dimensions"])
    positions = "\n\n".join(format_verdict_for_arbiter(v, disputed) for v in verdicts)
    guidelines = "\n\n".join(
        f"### {d.value} (weight: {DIMENSIONS[d]['weight'] * 100:.0f}%)\n"
        f"{DIMENSIONS[d]['description']}\nScoring Guidelines:\n{DIMENSIONS[d]['guidelines']}"
        for d in disputed
    )
    discussion = f"## Discussion Round Summary\n{discussion_summary}\n\n" if discussion_summary else ""
    disputed_names = ", ".join(d.value for d in disputed) or "none (overall score spread only)"

    return f"""## Context
The evaluator panel has scored a document but strongly disagreed on certain dimensions. \
Your task is to provide definitive scores for the disputed dimensions.

## Disputed Dimensions
{disputed_names}

Maximum spread between evaluators: {disagreement['max_spread']:.1f} points

## The Document Being Evaluated
{document}

## Evaluator Positions

{positions}

{discussion}## Scoring Guidelines for Disputed Dimensions

{guidelines}

## Your Task

For EACH disputed dimension:
1. Summarize each evaluator's position and reasoning
2. Identify who has the stronger argument and why
3. Provide your definitive score (0-10) with detailed justification
4. Explain how this resolves the disagreement

For other dimensions, provide standard scores based on your assessment.

{ARBITER_FORMAT}"""


class LLMArbiter:
    """ArbiterJudge capability backed by AgentCaller."""

    def __init__(self, caller: AgentCaller, *, max_tokens: int = 4096) -> None:
        self._caller = caller
        self._max_tokens = max_tokens

    async def arbitrate(
        self,
        document: str,
        verdicts: list[EvaluatorVerdict],
        disagreement: DisagreementResult,
        discussion_summary: str | None = None,
    ) -> ArbiterResponse:
        prompt = build_tiebreaker_prompt(document, verdicts, disagreement, discussion_summary)
        data, _usage = await self._caller.call_json(
            system=ARBITER["system_prompt"],
            messages=[{"role": "user", "content": prompt}],
            agent_name="arbiter",
            max_tokens=self._max_tokens,
        )
        return decode_arbiter_response(data)
