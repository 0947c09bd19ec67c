"""Error types raised across the scoring pipeline."""

from __future__ import annotations


class MalformedResponseError(ValueError):
    """A judge or model payload could not be decoded into its schema.

    Raised by the strict decoders and by AgentCaller.call_json once its
    stricter-prompt retry is spent. Fatal for the panel, discussion and
    tiebreaker stages; fixer orchestration turns it into zero edits.
    """

    def __init__(self, message: str, *, agent: str = "") -> None:
        super().__init__(f"[{agent}] {message}" if agent else message)
        self.agent = agent
