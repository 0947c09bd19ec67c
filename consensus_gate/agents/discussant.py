"""LLM-backed discussant: an evaluator reconsiders its verdict after seeing its peers'."""

from __future__ import annotations

from consensus_gate.agents.base import AgentCaller
from consensus_gate.agents.personas import get_persona
from consensus_gate.contracts import DiscussionResponse, EvaluatorVerdict
from consensus_gate.decoding import decode_discussion_response
from consensus_gate.utils.text import truncate

DISCUSSION_FORMAT = """\
Return your response as JSON:
{
  "revisedDimensions": [
    {
      "dimension": "evidenceQuality",
      "originalScore": 6.5,
      "revisedScore": 7.0,
      "reasonForChange": "The Advocate correctly noted I overlooked the primary source in paragraph 3..."
    }
  ],
  "maintainedPositions": [
    {
      "dimension": "accessibility",
      "score": 8.0,
      "justification": "While the Skeptic rated this lower, the technical terms are adequately explained..."
    }
  ],
  "overallReflection": "After reviewing the other perspectives, I found..."
}

Return ONLY valid JSON, no additional text."""


def format_verdict(verdict: EvaluatorVerdict) -> str:
    lines = [f"### {verdict['evaluator_role'].value} (Overall: {verdict['overall_score']:.1f})"]
    for ds in verdict["dimension_scores"]:
        lines.append(
            f"  - {ds['dimension'].value}: {ds['score']:.1f} - {truncate(ds['reasoning'], 100)}"
        )
    lines.append("")
    lines.append("Key Issues Identified:")
    for issue in verdict["issues"][:3]:
        lines.append(f"  - [{issue['severity'].value}] {issue['description']}")
    return "\n".join(lines)


def build_discussion_prompt(
    document: str, own_verdict: EvaluatorVerdict, peer_verdicts: list[EvaluatorVerdict]
) -> str:
    persona = get_persona(own_verdict["evaluator_role"])
    peers = "\n\n".join(format_verdict(v) for v in peer_verdicts)
    return f"""You are {persona['name']} participating in a discussion round.

## Context
You have evaluated a document and scored it across 7 dimensions. Now you can see how \
the other evaluators scored it. Consider their perspectives and decide whether to revise \
any of your scores.

## The Document
{document}

## Your Original Assessment
{format_verdict(own_verdict)}

## Other Evaluators' Assessments
{peers}

## Your Task
Review the other evaluators' perspectives. For each dimension, decide:
1. Should you REVISE your score based on something the others noticed that you missed?
2. Should you MAINTAIN your score with clear justification for why your perspective stands?

Guidelines:
- Only revise if the others raise valid points you overlooked
- Don't revise just to converge; maintain your position if you have good reasons
- If revising, explain what specifically changed your mind
- Maximum score change should be 2 points per dimension

{DISCUSSION_FORMAT}"""


class LLMDiscussant:
    """Discussant capability backed by AgentCaller."""

    def __init__(self, caller: AgentCaller, *, max_tokens: int = 2048) -> None:
        self._caller = caller
        self._max_tokens = max_tokens

    async def reconsider(
        self,
        document: str,
        own_verdict: EvaluatorVerdict,
        peer_verdicts: list[EvaluatorVerdict],
    ) -> DiscussionResponse:
        role = own_verdict["evaluator_role"]
        data, _usage = await self._caller.call_json(
            system=get_persona(role)["system_prompt"],
            messages=[
                {
                    "role": "user",
                    "content": build_discussion_prompt(document, own_verdict, peer_verdicts),
                }
            ],
            agent_name=f"discussion_{role.value.lower()}",
            max_tokens=self._max_tokens,
        )
        return decode_discussion_response(data, role)
