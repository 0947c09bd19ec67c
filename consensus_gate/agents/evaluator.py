"""LLM-backed evaluator: one persona scores a document on all seven dimensions."""

from __future__ import annotations

from consensus_gate.agents.base import AgentCaller
from consensus_gate.contracts import DIMENSIONS, EvaluatorVerdict, Persona
from consensus_gate.decoding import decode_verdict

EVALUATION_FORMAT = """\
Provide your evaluation as JSON with this exact structure:
{
  "dimensions": [
    {
      "dimension": "firstPrinciplesCoherence",
      "score": 7.5,
      "reasoning": "The document builds from basic principles but...",
      "issues": ["Assumes growth is inherently good without justification"]
    }
  ],
  "overallCritique": "A 2-3 paragraph overall assessment of the document.",
  "issues": [
    {
      "dimension": "evidenceQuality",
      "severity": "high",
      "description": "Claims about productivity gains lack primary sources",
      "quote": "Studies show productivity increases by 25%",
      "suggestedFix": "Cite specific studies with methodology details"
    }
  ],
  "confidence": 0.85
}

Scoring Rules:
- Include all 7 dimensions exactly once
- Score each dimension 0-10 (one decimal place allowed)
- Use the full range; reserve 9-10 for truly exceptional work
- Your reasoning should cite specific examples from the document
- Severity is one of: low, medium, high
- List 3-8 specific issues found
- Confidence is 0-1 reflecting your certainty in the assessment

Return ONLY valid JSON, no additional text."""


def dimension_guidelines() -> str:
    """Markdown block describing every dimension, its weight and rubric."""
    blocks = []
    for spec in DIMENSIONS.values():
        blocks.append(
            f"### {spec['dimension'].value} (weight: {spec['weight'] * 100:.0f}%)\n"
            f"{spec['description']}\n\n"
            f"Scoring Guidelines:\n{spec['guidelines']}"
        )
    return "\n\n".join(blocks)


def build_evaluation_prompt(document: str, persona: Persona) -> str:
    focus = ", ".join(d.value for d in persona["focus_dimensions"])
    return (
        f"You are evaluating a document as {persona['name']}.\n\n"
        f"## Focus Dimensions\n"
        f"While you score all 7 dimensions, pay special attention to: {focus}\n\n"
        f"## Document to Evaluate\n\n{document}\n\n"
        f"## Scoring Dimensions\n\n{dimension_guidelines()}\n\n"
        f"## Required Output\n\n{EVALUATION_FORMAT}"
    )


class LLMEvaluator:
    """Evaluator capability backed by AgentCaller."""

    def __init__(self, caller: AgentCaller, *, max_tokens: int = 4096) -> None:
        self._caller = caller
        self._max_tokens = max_tokens

    async def evaluate(self, document: str, persona: Persona) -> EvaluatorVerdict:
        data, _usage = await self._caller.call_json(
            system=persona["system_prompt"],
            messages=[{"role": "user", "content": build_evaluation_prompt(document, persona)}],
            agent_name=f"evaluator_{persona['role'].value.lower()}",
            max_tokens=self._max_tokens,
        )
        return decode_verdict(data, persona["role"])
