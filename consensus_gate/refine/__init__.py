"""Refinement: targeted fixers, edit reconciliation, and the bounded improvement loop."""
