"""Tests for candidate ranking and selection."""

from __future__ import annotations

from reanchor.document.html import parse_document
from reanchor.document.segments import SegmentIndex
from reanchor.matching.selector import rank_candidates, select_best
from reanchor.models import MatchCandidate, Strategy

SEGMENT = SegmentIndex.build(parse_document("<p>some text here</p>"))[0]


def _candidate(start: int, base: float, bonus: float = 0.0) -> MatchCandidate:
    return MatchCandidate(SEGMENT, start, 4, Strategy.FUZZY, base, context_bonus=bonus)


class TestSelectBest:
    def test_highest_score_wins(self) -> None:
        best = select_best([_candidate(0, 70), _candidate(5, 90), _candidate(10, 80)])
        assert best is not None
        assert best.start == 5

    def test_context_bonus_breaks_equal_base(self) -> None:
        best = select_best([_candidate(0, 100, 8), _candidate(5, 100, 18)])
        assert best is not None
        assert best.start == 5

    def test_ties_keep_generation_order(self) -> None:
        ranked = rank_candidates(
            [_candidate(0, 80), _candidate(5, 80), _candidate(10, 90)]
        )
        assert [c.start for c in ranked] == [10, 0, 5]

    def test_empty_selects_nothing(self) -> None:
        assert select_best([]) is None

    def test_floor_is_exclusive(self) -> None:
        assert select_best([_candidate(0, 0)]) is None
        assert select_best([_candidate(0, 50)], acceptance_floor=50) is None
        assert select_best([_candidate(0, 51)], acceptance_floor=50) is not None
