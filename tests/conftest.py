"""Test fixtures and mocks."""

from __future__ import annotations

import pytest

from consensus_gate.contracts import Source

SAMPLE_DOCUMENT = """\
# Remote Work and Productivity

## Introduction
Remote work has become common since 2020. Studies show productivity increases by 25%.

## Evidence
A survey of managers found that most teams adapted quickly. Critics argue that
collaboration suffers, but the data is mixed.

## Conclusion
Remote work is clearly the future of all knowledge work.
"""


@pytest.fixture
def sample_document() -> str:
    return SAMPLE_DOCUMENT


@pytest.fixture
def sample_sources() -> list[Source]:
    return [
        Source(
            title="Does Working from Home Work? Evidence from a Chinese Experiment",
            url="https://academic.oup.com/qje/article/130/1/165/2337855",
            content="A randomized trial found a 13% performance increase among call-center workers.",
        ),
        Source(
            title="The Effects of Remote Work on Collaboration",
            url="https://www.nature.com/articles/s41562-021-01196-4",
        ),
    ]
