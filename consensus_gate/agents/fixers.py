"""LLM-backed fixers: one targeted editor per quality dimension.

Each fixer reads the document with the critique for its dimension and
proposes at most five verbatim-anchored edits. Replies decode leniently:
incomplete edits are dropped and a bad priority becomes medium.
"""

from __future__ import annotations

import time

from consensus_gate.agents.base import AgentCaller
from consensus_gate.contracts import Dimension, FixerResult, Source
from consensus_gate.decoding import decode_fixer_response
from consensus_gate.utils.text import truncate

# (what the fixer improves, numbered checklist)
FIXER_BRIEFS: dict[Dimension, tuple[str, str]] = {
    Dimension.FIRST_PRINCIPLES_COHERENCE: (
        "improving logical coherence and first-principles reasoning",
        """\
1. **Gaps in Logical Chain**: Places where the argument jumps from A to C without explaining B.
2. **Unstated Assumptions**: Causal relationships or premises taken for granted that should be explicit.
3. **Incomplete Reasoning**: Conclusions that need stronger supporting logic or intermediate steps.
4. **Foundation Clarity**: Fundamental premises that are not clearly stated at the outset.""",
    ),
    Dimension.INTERNAL_CONSISTENCY: (
        "resolving contradictions and ensuring internal consistency",
        """\
1. **Contradictions Between Sections**: The introduction says X, but the conclusion implies not-X.
2. **Source Support Resolution**: When claims conflict, keep the version with stronger source support.
3. **Terminology Consistency**: The same concept should use the same term throughout.
4. **Narrative Coherence**: Claims made early should be supported later, not contradicted.""",
    ),
    Dimension.EVIDENCE_QUALITY: (
        "improving source usage, citations, and evidence quality",
        """\
1. **Claims Lacking Citation**: Statistics or assertions not attributed to any source.
2. **Weak or Inadequate Citations**: Outdated, secondary or opinion sources used for factual claims.
3. **Over-Reliance on Single Source**: Key claims or whole sections resting on one reference.
4. **Source-Claim Alignment**: Claims that overstate what the cited source actually says.""",
    ),
    Dimension.ACCESSIBILITY: (
        "improving clarity, readability, and plain-language accessibility",
        """\
1. **Jargon and Technical Terms**: Acronyms or specialist vocabulary used without explanation.
2. **Overly Complex Sentences**: Sentences longer than 25-30 words that could be split.
3. **Reading Level Alignment**: Academic language that could be simplified for an educated lay reader.
4. **Structural Clarity**: Ideas that need clearer transitions or ordering.""",
    ),
    Dimension.OBJECTIVITY: (
        "improving balance, perspective representation, and fair treatment of viewpoints",
        """\
1. **Underrepresented Perspectives**: Stakeholder groups whose concerns are not addressed.
2. **Missing Counterarguments**: Arguments against the main thesis that go unacknowledged.
3. **One-Sided Framing**: Strong evidence offered for one side, weak evidence for another.
4. **Balance and Proportion**: Topics given disproportionate space or emphasis.""",
    ),
    Dimension.FACTUAL_ACCURACY: (
        "verifying and correcting factual claims against provided sources",
        """\
1. **Specific Factual Claims**: Statistics, numbers, percentages and dates that can be verified.
2. **Cross-Reference Against Sources**: Claims that contradict what the provided sources say.
3. **Unsupported Claims**: Assertions presented as fact without any backing source.
4. **Corrections or Hedging**: Correct the fact when known; otherwise hedge the claim.""",
    ),
    Dimension.BIAS_DETECTION: (
        "neutralizing subtle framing bias, loaded language, and selective emphasis",
        """\
1. **Loaded Language**: Emotionally charged word choices that steer perception.
2. **Selective Emphasis**: Key facts buried in subordinate clauses or footnotes.
3. **Framing Bias**: Problem framing that presupposes a particular solution.
4. **Attribution Bias**: Credibility markers given to favorable sources but withheld from others.""",
    ),
}

FIXER_FORMAT = """\
You MUST respond with valid JSON only, no additional text or explanation.

Response format:
{
  "suggestedEdits": [
    {
      "section": "Name of the section being edited",
      "originalText": "The exact text that needs to be changed (copy verbatim from the document)",
      "suggestedText": "Your suggested replacement text",
      "rationale": "Brief explanation of why this edit improves the document",
      "priority": "critical|high|medium|low"
    }
  ],
  "confidence": 0.0-1.0
}"""


def fixer_system_prompt(dimension: Dimension) -> str:
    focus, _ = FIXER_BRIEFS[dimension]
    return f"""You are a specialized editor focused on {focus}.
Your task is to analyze a document and suggest targeted edits to improve it.

{FIXER_FORMAT}

Guidelines:
- Only suggest edits that address your specific domain ({dimension.value})
- Keep edits targeted and minimal; don't rewrite entire sections unnecessarily
- Prioritize by impact: critical=major flaw, high=significant improvement, medium=helpful, low=polish
- Be precise with originalText; it must match exactly for automated replacement
- Limit to 5 most impactful edits maximum"""


def build_fixer_prompt(
    dimension: Dimension,
    document: str,
    dimension_score: float,
    critique: str,
    sources: list[Source] | None = None,
) -> str:
    _, checklist = FIXER_BRIEFS[dimension]
    parts = [
        f"Analyze this document for {dimension.value} issues. "
        f"The current score for this dimension is {dimension_score:.1f}/10."
    ]
    if critique:
        parts.append(f'Evaluator critique: "{critique}"')
    parts.append(f"## Document Content:\n{document}")
    if sources:
        listing = "\n".join(
            f"[{i}] {s['title']} ({s['url']})"
            + (f"\n    {truncate(s['content'], 400)}" if s.get("content") else "")
            for i, s in enumerate(sources, start=1)
        )
        parts.append(f"## Available Sources:\n{listing}")
    parts.append(f"## Your Task:\nIdentify and suggest fixes for these problems:\n\n{checklist}")
    return "\n\n".join(parts)


class LLMFixer:
    """Fixer capability for a single dimension, backed by AgentCaller."""

    def __init__(self, caller: AgentCaller, fixer_type: Dimension, *, max_tokens: int = 2000) -> None:
        self._caller = caller
        self.fixer_type = Dimension(fixer_type)
        self._max_tokens = max_tokens

    async def suggest_edits(
        self,
        document: str,
        dimension_score: float,
        critique: str,
        sources: list[Source] | None = None,
    ) -> FixerResult:
        start = time.monotonic()
        prompt = build_fixer_prompt(self.fixer_type, document, dimension_score, critique, sources)
        data, _usage = await self._caller.call_json(
            system=fixer_system_prompt(self.fixer_type),
            messages=[{"role": "user", "content": prompt}],
            agent_name=f"fixer_{self.fixer_type.value}",
            max_tokens=self._max_tokens,
        )
        return decode_fixer_response(data, self.fixer_type, time.monotonic() - start)


def build_default_fixers(caller: AgentCaller) -> dict[Dimension, LLMFixer]:
    """One fixer per dimension, keyed by the dimension it repairs."""
    return {dimension: LLMFixer(caller, dimension) for dimension in Dimension}
