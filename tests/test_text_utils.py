"""Tests for utils.text: Jaccard scoring, grouping keys, truncation."""

from consensus_gate.utils.text import jaccard_score, normalize_key, token_set, truncate


class TestJaccardScore:
    def test_identical_strings(self):
        assert jaccard_score("hello world", "hello world") == 1.0

    def test_no_overlap(self):
        assert jaccard_score("hello world", "foo bar") == 0.0

    def test_partial_overlap(self):
        # {hello, world} & {hello, there} = {hello}
        # union = {hello, world, there} -> 1/3
        score = jaccard_score("hello world", "hello there")
        assert abs(score - 1 / 3) < 0.001

    def test_case_insensitive(self):
        assert jaccard_score("Hello World", "hello world") == 1.0

    def test_empty_string_a(self):
        assert jaccard_score("", "hello") == 0.0

    def test_both_empty(self):
        assert jaccard_score("", "") == 0.0


class TestTokenSet:
    def test_lowercases_and_splits(self):
        assert token_set("Claims  lack\tSources") == {"claims", "lack", "sources"}


class TestNormalizeKey:
    def test_strips_and_lowercases(self):
        assert normalize_key("  Introduction ") == "introduction"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("short", 10) == "short"

    def test_exact_limit_unchanged(self):
        assert truncate("abcde", 5) == "abcde"

    def test_long_text_clipped(self):
        assert truncate("one two three", 8) == "one two..."
