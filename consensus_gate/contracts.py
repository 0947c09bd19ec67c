"""Single source of truth for all types, enums, and protocols."""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, NotRequired, Protocol, TypedDict, runtime_checkable

# --- Enums ---


class Dimension(str, Enum):
    FIRST_PRINCIPLES_COHERENCE = "firstPrinciplesCoherence"
    INTERNAL_CONSISTENCY = "internalConsistency"
    EVIDENCE_QUALITY = "evidenceQuality"
    ACCESSIBILITY = "accessibility"
    OBJECTIVITY = "objectivity"
    FACTUAL_ACCURACY = "factualAccuracy"
    BIAS_DETECTION = "biasDetection"


class EvaluatorRole(str, Enum):
    SKEPTIC = "Skeptic"
    ADVOCATE = "Advocate"
    GENERALIST = "Generalist"
    ARBITER = "Arbiter"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EditPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConsensusMethod(str, Enum):
    MEDIAN = "median"
    POST_DISCUSSION = "post-discussion"
    TIEBREAKER = "tiebreaker"


class QualityTier(str, Enum):
    HIGH = "HIGH"  # >= 8.0
    ACCEPTABLE = "ACCEPTABLE"  # 6.0 - 8.0
    FAILED = "FAILED"  # < 6.0


class StopReason(str, Enum):
    ALREADY_PASSING = "already_passing"
    TARGET_REACHED = "target_reached"
    EXHAUSTED = "exhausted"
    NO_FIXERS = "no_fixers"
    NO_EDITS_SUGGESTED = "no_edits_suggested"
    NO_EDITS_APPLIED = "no_edits_applied"


# --- Dimension table ---


class DimensionSpec(TypedDict):
    dimension: Dimension
    weight: float  # all seven sum to 1.0
    description: str
    guidelines: str


DIMENSIONS: dict[Dimension, DimensionSpec] = {
    Dimension.FIRST_PRINCIPLES_COHERENCE: DimensionSpec(
        dimension=Dimension.FIRST_PRINCIPLES_COHERENCE,
        weight=0.20,
        description=(
            "How well the document builds arguments from foundational truths "
            "rather than assumptions"
        ),
        guidelines=(
            "10: Arguments derive clearly from first principles with explicit logical chains\n"
            "8-9: Strong foundational reasoning with minor gaps\n"
            "6-7: Some first principles thinking but relies on unstated assumptions\n"
            "4-5: Mostly based on conventional wisdom without questioning premises\n"
            "1-3: Arguments built on unexamined assumptions or circular reasoning"
        ),
    ),
    Dimension.INTERNAL_CONSISTENCY: DimensionSpec(
        dimension=Dimension.INTERNAL_CONSISTENCY,
        weight=0.15,
        description="Whether the document's claims and arguments align without contradictions",
        guidelines=(
            "10: Perfect logical consistency throughout; all claims support each other\n"
            "8-9: Highly consistent with no contradictions\n"
            "6-7: Generally consistent but some tension between sections\n"
            "4-5: Notable contradictions that undermine arguments\n"
            "1-3: Major internal contradictions; arguments refute each other"
        ),
    ),
    Dimension.EVIDENCE_QUALITY: DimensionSpec(
        dimension=Dimension.EVIDENCE_QUALITY,
        weight=0.20,
        description="The strength, relevance, and diversity of sources and data cited",
        guidelines=(
            "10: Primary sources, peer-reviewed research, diverse perspectives, all claims backed\n"
            "8-9: Strong evidence base with minor gaps; mostly primary/secondary sources\n"
            "6-7: Adequate evidence but relies heavily on secondary sources\n"
            "4-5: Weak evidence; few sources, mainly opinion or low-credibility outlets\n"
            "1-3: No evidence or only anecdotal support; claims are unsupported"
        ),
    ),
    Dimension.ACCESSIBILITY: DimensionSpec(
        dimension=Dimension.ACCESSIBILITY,
        weight=0.15,
        description="How easily an average educated reader can understand the content",
        guidelines=(
            "10: Crystal clear; complex topics explained simply; no jargon without definition\n"
            "8-9: Highly accessible; rare jargon is explained\n"
            "6-7: Mostly clear but some sections require domain knowledge\n"
            "4-5: Dense or technical; assumes significant prior knowledge\n"
            "1-3: Impenetrable to non-specialists; unexplained jargon throughout"
        ),
    ),
    Dimension.OBJECTIVITY: DimensionSpec(
        dimension=Dimension.OBJECTIVITY,
        weight=0.10,
        description="Whether the document presents multiple perspectives fairly without advocacy",
        guidelines=(
            "10: All major perspectives presented fairly; no detectable preference\n"
            "8-9: Strong objectivity with balanced treatment\n"
            "6-7: Generally objective but slightly favors one perspective\n"
            "4-5: Clear preference for certain viewpoints; unequal treatment\n"
            "1-3: One-sided advocacy; opposing views dismissed or strawmanned"
        ),
    ),
    Dimension.FACTUAL_ACCURACY: DimensionSpec(
        dimension=Dimension.FACTUAL_ACCURACY,
        weight=0.15,
        description="Whether stated facts, statistics, and claims are verifiably correct",
        guidelines=(
            "10: All facts verified; statistics correctly cited with context\n"
            "8-9: Highly accurate; minor issues don't affect conclusions\n"
            "6-7: Mostly accurate but some unverified claims or missing context\n"
            "4-5: Several factual errors that affect argument validity\n"
            "1-3: Major factual errors; misinformation or fabricated claims"
        ),
    ),
    Dimension.BIAS_DETECTION: DimensionSpec(
        dimension=Dimension.BIAS_DETECTION,
        weight=0.05,
        description="Identification and mitigation of cognitive, selection, or framing biases",
        guidelines=(
            "10: No detectable bias; actively addresses potential biases\n"
            "8-9: Minimal bias; diverse framing and source selection\n"
            "6-7: Some bias in framing or source selection but not severe\n"
            "4-5: Notable bias in how issues are framed or evidence selected\n"
            "1-3: Severe bias; cherry-picked evidence, loaded language, misleading framing"
        ),
    ),
}


# --- Data Types: verdicts ---


class DimensionScore(TypedDict):
    dimension: Dimension
    score: float  # 0-10
    reasoning: str
    issues: list[str]


class Issue(TypedDict):
    dimension: Dimension
    severity: Severity
    description: str
    quote: NotRequired[str]  # verbatim text exemplifying the issue
    suggested_fix: NotRequired[str]


class EvaluatorVerdict(TypedDict):
    """One judge's structured assessment.

    INVARIANT: overall_score is the weight-normalised sum of dimension_scores,
    rounded to one decimal. Exactly one DimensionScore per Dimension.
    """

    evaluator_role: EvaluatorRole
    dimension_scores: list[DimensionScore]
    overall_score: float
    critique: str
    issues: list[Issue]
    confidence: float  # 0-1
    evaluated_at: str  # ISO 8601


class Persona(TypedDict):
    name: str  # "The Skeptic"
    role: EvaluatorRole
    system_prompt: str
    focus_dimensions: list[Dimension]


class Source(TypedDict):
    title: str
    url: str
    content: NotRequired[str]


# --- Data Types: disagreement & consensus ---


class DimensionSpread(TypedDict):
    dimension: Dimension
    min_score: float
    max_score: float
    spread: float
    disagreeing: bool


class DivergentScore(TypedDict):
    dimension: Dimension
    score: float


class EvaluatorPosition(TypedDict):
    evaluator: EvaluatorRole
    overall_score: float
    divergent_dimensions: list[DivergentScore]  # own score on each disputed dimension


class DisagreementResult(TypedDict):
    has_disagreement: bool
    disagreeing_dimensions: list[Dimension]
    max_spread: float
    overall_spread: float
    evaluator_positions: list[EvaluatorPosition]
    details: list[DimensionSpread]


class FinalScore(TypedDict):
    overall_score: float  # 0-10, one decimal
    dimension_breakdown: list[DimensionScore]
    consensus_method: ConsensusMethod
    confidence: float
    critique: str
    has_disagreement: bool
    needs_human_review: bool
    review_reason: str | None
    evaluator_verdicts: list[EvaluatorVerdict]
    scored_at: str


class EvaluatorTiming(TypedDict):
    role: EvaluatorRole
    duration_s: float


class PanelResult(TypedDict):
    verdicts: list[EvaluatorVerdict]
    durations: list[EvaluatorTiming]
    total_duration_s: float


# --- Data Types: discussion ---


class DimensionRevision(TypedDict):
    dimension: Dimension
    original_score: float
    revised_score: float
    reason_for_change: str


class MaintainedPosition(TypedDict):
    dimension: Dimension
    score: float
    justification: str


class DiscussionResponse(TypedDict):
    revised_dimensions: list[DimensionRevision]
    maintained_positions: list[MaintainedPosition]
    overall_reflection: str


class ScoreChange(TypedDict):
    evaluator: EvaluatorRole
    dimension: Dimension
    before: float
    after: float


class DiscussionRoundOutput(TypedDict):
    revised_verdicts: list[EvaluatorVerdict]
    discussion_summary: str
    changes_count: int
    changes: list[ScoreChange]
    duration_s: float


# --- Data Types: tiebreaker ---


class ArbiterPosition(TypedDict):
    evaluator: str
    score: float
    reasoning: str


class DisputedDimensionEvaluation(TypedDict):
    dimension: Dimension
    evaluator_positions: list[ArbiterPosition]
    stronger_argument: str
    definitive_score: float
    resolution: str


class ArbiterDimensionScore(TypedDict):
    dimension: Dimension
    score: float
    reasoning: str


class ArbiterResponse(TypedDict):
    disputed_dimension_evaluations: list[DisputedDimensionEvaluation]
    other_dimensions: list[ArbiterDimensionScore]
    overall_critique: str
    resolution_summary: str
    confidence: float


class TiebreakerOutput(TypedDict):
    verdict: EvaluatorVerdict
    resolution_summary: str
    duration_s: float


# --- Data Types: critiques & tiers ---


class PrioritizedIssue(TypedDict):
    dimension: Dimension
    severity: Severity
    description: str
    quote: NotRequired[str]
    suggested_fix: NotRequired[str]
    agreed_by_evaluators: int
    rank: float
    priority: str  # "critical" | "high" | "medium" | "low"


class AggregatedCritique(TypedDict):
    prioritized_issues: list[PrioritizedIssue]
    top_priority: PrioritizedIssue | None
    summary: str


class QualityTierDecision(TypedDict):
    tier: QualityTier
    publishable: bool
    warning_badge: bool
    refund_required: bool
    reasoning: str


# --- Data Types: refinement ---


class SuggestedEdit(TypedDict):
    section: str
    original_text: str  # verbatim from the document
    suggested_text: str
    rationale: str
    priority: EditPriority


class FixerResult(TypedDict):
    fixer_type: Dimension
    suggested_edits: list[SuggestedEdit]
    confidence: float  # 0-1
    processing_time: float


class SkippedEdit(TypedDict):
    edit: SuggestedEdit
    reason: str


class ReconciliationResult(TypedDict):
    revised_document: str
    edits_applied: list[SuggestedEdit]
    edits_skipped: list[SkippedEdit]


class FixerFailure(TypedDict):
    fixer_type: Dimension
    error: str


class OrchestratorResult(TypedDict):
    fixers_deployed: list[Dimension]
    fixer_results: list[FixerResult]
    all_suggested_edits: list[SuggestedEdit]
    failures: list[FixerFailure]
    total_processing_time: float


class ScoreDelta(TypedDict):
    before: float
    after: float


class ScoreBeforeAfter(TypedDict):
    before: float
    after: float
    dimension_scores: dict[str, ScoreDelta]


class RefinementAttempt(TypedDict):
    attempt_number: int
    fixers_deployed: list[Dimension]
    edits_applied: list[SuggestedEdit]
    edits_skipped: list[SkippedEdit]
    score_before_after: ScoreBeforeAfter
    processing_time: float


class RefinementLoopResult(TypedDict):
    success: bool
    stop_reason: StopReason
    attempts: list[RefinementAttempt]
    final_score: float
    final_consensus: FinalScore
    final_document: str
    warning_reason: NotRequired[str]
    total_processing_time: float


class TierSnapshot(TypedDict):
    attempt: int  # 0 = initial scoring
    score: float
    tier: QualityTier


class QualityGateResult(TypedDict):
    tier: QualityTier
    final_score: float
    initial_score: float
    attempts: int  # scoring cycles run, including the initial one
    publishable: bool
    warning_badge: bool
    refund_required: bool
    decision: QualityTierDecision
    tier_history: list[TierSnapshot]
    final_document: str
    consensus: FinalScore
    refinement: RefinementLoopResult | None
    needs_human_review: bool
    review_reason: str | None


# --- Observability ---


class TokenUsage(TypedDict):
    agent: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    timestamp: str


class RunEvent(TypedDict):
    stage: str
    attempt: int
    ts: str  # ISO 8601
    elapsed_s: float
    details: dict


class GateMetrics(TypedDict):
    runs: int
    pass_rate: float
    warning_rate: float
    refund_rate: float
    avg_attempts: float
    avg_initial_score: float
    avg_final_score: float
    tier_counts: dict[str, int]


# --- Protocols ---


ScoringFunction = Callable[[str], Awaitable[FinalScore]]


@runtime_checkable
class Evaluator(Protocol):
    async def evaluate(self, document: str, persona: Persona) -> EvaluatorVerdict: ...


@runtime_checkable
class Discussant(Protocol):
    async def reconsider(
        self,
        document: str,
        own_verdict: EvaluatorVerdict,
        peer_verdicts: list[EvaluatorVerdict],
    ) -> DiscussionResponse: ...


@runtime_checkable
class ArbiterJudge(Protocol):
    async def arbitrate(
        self,
        document: str,
        verdicts: list[EvaluatorVerdict],
        disagreement: DisagreementResult,
        discussion_summary: str | None = None,
    ) -> ArbiterResponse: ...


@runtime_checkable
class Fixer(Protocol):
    fixer_type: Dimension

    async def suggest_edits(
        self,
        document: str,
        dimension_score: float,
        critique: str,
        sources: list[Source] | None = None,
    ) -> FixerResult: ...


@runtime_checkable
class Reconciler(Protocol):
    async def reconcile(
        self, original_document: str, fixer_results: list[FixerResult]
    ) -> ReconciliationResult: ...
