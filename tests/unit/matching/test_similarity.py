"""Tests for edit distance and the blended similarity metric."""

from __future__ import annotations

import pytest

from reanchor.matching.similarity import (
    edit_distance,
    similarity,
    word_array_similarity,
    words_match,
)

_PAIRS = [
    ("the quick brown fox", "the quick brown cat"),
    ("Hello, World!", "hello world"),
    ("completely different", "nothing alike here"),
    ("short", "a much longer sentence containing short"),
    ("", "something"),
    ("你好世界", "你好"),
]


class TestEditDistance:
    """Levenshtein distance."""

    def test_known_distance(self) -> None:
        assert edit_distance("kitten", "sitting") == 3

    def test_empty_side(self) -> None:
        assert edit_distance("", "abc") == 3
        assert edit_distance("abc", "") == 3

    def test_zero_only_for_equal(self) -> None:
        assert edit_distance("same", "same") == 0
        assert edit_distance("same", "sane") == 1

    @pytest.mark.parametrize(("a", "b"), _PAIRS)
    def test_symmetric(self, a: str, b: str) -> None:
        assert edit_distance(a, b) == edit_distance(b, a)


class TestSimilarity:
    """Blended word, character and substring similarity."""

    def test_identical_is_one(self) -> None:
        assert similarity("anything at all", "anything at all") == 1.0

    def test_both_empty_is_one(self) -> None:
        assert similarity("", "") == 1.0

    def test_one_empty_is_zero(self) -> None:
        assert similarity("abc", "") == 0.0
        assert similarity("", "abc") == 0.0

    def test_case_and_punctuation_only_differences(self) -> None:
        assert similarity("Hello, World!", "hello world") == 0.95

    def test_whitespace_only_differences(self) -> None:
        assert similarity("quick   brown\nfox", "quick brown fox") == 0.95

    def test_one_word_changed_is_moderate(self) -> None:
        score = similarity("the quick brown fox", "the quick brown cat")
        assert 0.5 < score < 0.7

    def test_containment_earns_bonus(self) -> None:
        contained = similarity("brown fox", "the quick brown fox")
        unrelated = similarity("green owl", "the quick brown fox")
        assert contained > unrelated

    @pytest.mark.parametrize(("a", "b"), _PAIRS)
    def test_symmetric_and_bounded(self, a: str, b: str) -> None:
        forward = similarity(a, b)
        assert forward == similarity(b, a)
        assert 0.0 <= forward <= 1.0


class TestWordArraySimilarity:
    """Position-wise word comparison used by fuzzy windows."""

    def test_different_lengths_score_zero(self) -> None:
        assert word_array_similarity(["a", "b"], ["a"]) == 0.0

    def test_empty_scores_zero(self) -> None:
        assert word_array_similarity([], []) == 0.0

    def test_case_punctuation_and_typos_match(self) -> None:
        assert word_array_similarity(["Quick,", "brwon"], ["quick", "brown"]) == 1.0

    def test_partial_match(self) -> None:
        assert word_array_similarity(["alpha", "beta"], ["alpha", "zzzzzz"]) == 0.5

    def test_containment_counts_as_match(self) -> None:
        assert words_match("foxes", "fox")
        assert not words_match("elephant", "fox")
