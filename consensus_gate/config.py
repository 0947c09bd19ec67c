"""Settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from consensus_gate.scoring.dimensions import weights_sum_to_one

RECONCILER_MODES = ("text", "model")


def _load_env() -> None:
    """Load .env from project root if it exists."""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)


_load_env()


@dataclass(frozen=True)
class Settings:
    # API Keys
    anthropic_api_key: str = field(default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", ""))

    # Models
    evaluator_model: str = field(
        default_factory=lambda: os.environ.get("EVALUATOR_MODEL", "claude-haiku-4-5-20251001")
    )
    arbiter_model: str = field(
        default_factory=lambda: os.environ.get("ARBITER_MODEL", "claude-sonnet-4-6")
    )
    fixer_model: str = field(
        default_factory=lambda: os.environ.get("FIXER_MODEL", "claude-sonnet-4-6")
    )
    reconciler_model: str = field(
        default_factory=lambda: os.environ.get("RECONCILER_MODEL", "claude-sonnet-4-6")
    )

    # Limits
    max_concurrent_requests: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENT_REQUESTS", "5"))
    )
    max_retries: int = field(default_factory=lambda: int(os.environ.get("MAX_RETRIES", "3")))

    # Quality gate
    target_score: float = field(
        default_factory=lambda: float(os.environ.get("TARGET_SCORE", "8.0"))
    )
    max_refinement_attempts: int = field(
        default_factory=lambda: int(os.environ.get("MAX_REFINEMENT_ATTEMPTS", "3"))
    )
    fixer_score_threshold: float = field(
        default_factory=lambda: float(os.environ.get("FIXER_SCORE_THRESHOLD", "7.0"))
    )

    # Deliberation
    discussion_enabled: bool = field(
        default_factory=lambda: os.environ.get("DISCUSSION_ENABLED", "true").lower() == "true"
    )
    tiebreaker_enabled: bool = field(
        default_factory=lambda: os.environ.get("TIEBREAKER_ENABLED", "true").lower() == "true"
    )

    # Refinement
    reconciler_mode: str = field(
        default_factory=lambda: os.environ.get("RECONCILER_MODE", "text")
    )

    # Run event log
    run_log_dir: str = field(default_factory=lambda: os.environ.get("RUN_LOG_DIR", "runs/"))

    def validate(self) -> list[str]:
        """Return list of validation errors. Empty list means valid."""
        errors = []
        if not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is required")
        if not 0.0 <= self.target_score <= 10.0:
            errors.append(f"TARGET_SCORE must be 0-10, got {self.target_score}")
        if self.max_refinement_attempts < 1:
            errors.append("MAX_REFINEMENT_ATTEMPTS must be >= 1")
        if not 0.0 <= self.fixer_score_threshold <= 10.0:
            errors.append(f"FIXER_SCORE_THRESHOLD must be 0-10, got {self.fixer_score_threshold}")
        if self.max_concurrent_requests < 1:
            errors.append("MAX_CONCURRENT_REQUESTS must be >= 1")
        if self.max_retries < 0:
            errors.append("MAX_RETRIES must be >= 0")
        if self.reconciler_mode not in RECONCILER_MODES:
            errors.append(
                f"RECONCILER_MODE must be 'text' or 'model', got '{self.reconciler_mode}'"
            )
        if not weights_sum_to_one():
            errors.append("Dimension weights must sum to 1.0")
        return errors

    def warnings(self) -> list[str]:
        """Return list of non-fatal configuration warnings."""
        warns: list[str] = []
        if self.fixer_score_threshold > self.target_score:
            warns.append(
                f"FIXER_SCORE_THRESHOLD={self.fixer_score_threshold} is above "
                f"TARGET_SCORE={self.target_score}; passing dimensions will still be rewritten."
            )
        if not self.discussion_enabled and not self.tiebreaker_enabled:
            warns.append(
                "Discussion and tiebreaker are both disabled. "
                "Disputed dimensions will settle on the median."
            )
        return warns


def get_settings() -> Settings:
    """Create Settings from current environment."""
    return Settings()
