"""Tests for segment-local candidate generation."""

from __future__ import annotations

from reanchor.config import MatchingConfig
from reanchor.document.html import parse_document
from reanchor.document.segments import DocumentTextSegment, SegmentIndex
from reanchor.matching.strategies import (
    find_char_partial,
    find_exact,
    find_fuzzy,
    find_normalized,
    generate_all,
    generate_candidates,
)
from reanchor.models import Strategy

CONFIG = MatchingConfig()


def _segment(text: str) -> DocumentTextSegment:
    return SegmentIndex.build(parse_document(f"<p>{text}</p>"))[0]


def _matched(candidate) -> str:
    return candidate.segment.text[
        candidate.start : candidate.start + candidate.length
    ]


class TestExact:
    def test_exact_hit_scores_100(self) -> None:
        [candidate] = find_exact(_segment("The quick brown fox"), "quick brown", CONFIG)
        assert candidate.strategy is Strategy.EXACT
        assert candidate.base_score == 100
        assert candidate.start == 4
        assert candidate.length == len("quick brown")

    def test_every_occurrence_is_a_candidate(self) -> None:
        found = find_exact(_segment("abc xx abc"), "abc", CONFIG)
        assert [c.start for c in found] == [0, 7]

    def test_exact_short_circuits_other_strategies(self) -> None:
        segment = _segment("The quick brown fox")
        found = generate_candidates(segment, "quick brown", CONFIG)
        assert {c.strategy for c in found} == {Strategy.EXACT}


class TestCascade:
    """Case-insensitive, then normalised, then character prefix."""

    def test_case_insensitive(self) -> None:
        segment = _segment("The Quick Brown fox")
        found = generate_candidates(segment, "quick brown", CONFIG)
        assert [c.strategy for c in found] == [
            Strategy.CASE_INSENSITIVE,
            Strategy.FUZZY,
        ]
        assert found[0].base_score == 95
        assert found[0].start == 4
        assert _matched(found[0]) == "Quick Brown"

    def test_normalized_maps_back_over_collapsed_whitespace(self) -> None:
        found = generate_candidates(
            _segment("the quick   brown fox"), "quick brown", CONFIG
        )
        assert found[0].strategy is Strategy.NORMALIZED
        assert found[0].base_score == 90
        assert _matched(found[0]) == "quick   brown"

    def test_normalized_keeps_case(self) -> None:
        segment = _segment("The Quick   Brown fox")
        assert find_normalized(segment, "quick brown", CONFIG) == []

        found = generate_candidates(segment, "quick brown", CONFIG)
        assert found[0].strategy is Strategy.CHAR_PARTIAL
        assert found[0].base_score == 70
        assert found[0].start == 4

    def test_char_partial_ignores_punctuation(self) -> None:
        found = generate_candidates(
            _segment("Hello, world! This is it."), "hello world this is", CONFIG
        )
        assert found[0].strategy is Strategy.CHAR_PARTIAL
        assert found[0].base_score == 70
        assert found[0].start == 0
        assert _matched(found[0]) == "Hello, world! This is"

    def test_char_partial_needs_six_characters(self) -> None:
        assert find_char_partial(_segment("ab, cd"), "ab!", CONFIG) == []

    def test_empty_target_produces_nothing(self) -> None:
        assert generate_candidates(_segment("anything"), "", CONFIG) == []


class TestFuzzy:
    """Word-window matching."""

    def test_typo_in_word_still_matches(self) -> None:
        found = generate_candidates(
            _segment("the quikc brown fox jumped"), "quick brown fox", CONFIG
        )
        assert found[0].strategy is Strategy.FUZZY
        assert found[0].base_score == 70
        assert found[0].start == 4

    def test_partial_window_is_penalised(self) -> None:
        found = find_fuzzy(
            _segment("the quikc brown fox jumped"), "quick brown fox", CONFIG
        )
        assert [c.base_score for c in found] == [70, 63]

    def test_keeps_at_most_three(self) -> None:
        segment = _segment("cat sat cat sat cat sat cat sat")
        found = find_fuzzy(segment, "cat sat", CONFIG)
        assert len(found) == 3
        # Equal similarity keeps document order
        assert [c.start for c in found] == [0, 4, 8]

    def test_no_windows_when_segment_too_short(self) -> None:
        assert find_fuzzy(_segment("quick"), "quick brown", CONFIG) == []


class TestGenerateAll:
    def test_candidates_in_document_order(self) -> None:
        index = SegmentIndex.build(
            parse_document("<p>one match</p><p>nothing</p><p>two match</p>")
        )
        found = generate_all(index, "match", CONFIG)
        assert [c.segment.position for c in found] == [0, 2]
