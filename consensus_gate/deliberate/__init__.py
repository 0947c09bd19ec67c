"""Deliberation: the judging stages of a scoring cycle.

Stages:
  panel       - independent evaluators score the document in parallel
  discussion  - evaluators reconsider after seeing each other's verdicts
  tiebreaker  - an arbiter issues definitive scores for disputed dimensions
"""
