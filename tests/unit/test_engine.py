"""Tests for single-attempt resolution and anchoring."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from reanchor.config import Settings
from reanchor.document.html import parse_document
from reanchor.document.tree import Element
from reanchor.engine import AnchorEngine
from reanchor.models import HighlightRecord, Strategy

type MakeRecord = Callable[..., HighlightRecord]


def _engine(markup: str, settings: Settings) -> AnchorEngine:
    return AnchorEngine(parse_document(markup), settings)


class TestSegmentLocal:
    """Text that sits inside a single text node."""

    def test_exact_match(self, settings: Settings, make_record: MakeRecord) -> None:
        engine = _engine("<p>The quick brown fox jumps.</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown fox"))

        assert outcome.anchored
        assert outcome.strategy is Strategy.EXACT
        assert outcome.score == 100
        assert outcome.anchor_ids == ("hl-1#0",)
        [span] = engine.renderer.anchors_for("hl-1")
        assert span.text_content() == "quick brown fox"

    def test_case_insensitive(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>The Quick Brown fox</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown"))
        assert outcome.strategy is Strategy.CASE_INSENSITIVE
        assert outcome.score == 95

    def test_collapsed_whitespace(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>the quick   brown fox</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown"))
        assert outcome.strategy is Strategy.NORMALIZED
        assert outcome.score == 90
        [span] = engine.renderer.anchors_for("hl-1")
        assert span.text_content() == "quick   brown"

    def test_typo_falls_through_to_fuzzy(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>the quikc brown fox jumped</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown fox"))
        assert outcome.anchored
        assert outcome.strategy is Strategy.FUZZY
        assert outcome.score == 70


class TestCrossSegment:
    def test_inline_markup_single_span(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>quick <b>brown</b> fox</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown fox"))

        assert outcome.strategy is Strategy.CROSS_SEGMENT
        assert outcome.score == 90
        assert outcome.anchor_ids == ("hl-1#0",)
        [span] = engine.renderer.anchors_for("hl-1")
        assert span.text_content() == "quick brown fox"

    def test_partial_elements_render_in_parts(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p><i>quick </i>brown <b>fox jumps</b></p>", settings)
        outcome = engine.resolve_and_anchor(make_record("quick brown fox"))

        assert outcome.anchored
        assert outcome.anchor_ids == ("hl-1#0", "hl-1#1", "hl-1#2")
        spans = engine.renderer.anchors_for("hl-1")
        assert "".join(s.text_content() for s in spans) == "quick brown fox"


class TestContextDisambiguation:
    MARKUP = (
        "<p>Alpha intro words here. Shared sentence text.</p>"
        "<p>Beta distinct context. Shared sentence text. Gamma ending words.</p>"
    )

    def _record(self, make_record: MakeRecord) -> HighlightRecord:
        return make_record(
            "Shared sentence text.",
            before="Beta distinct context.",
            after="Gamma ending words.",
        )

    def test_candidates_ranked_by_context(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine(self.MARKUP, settings)
        candidates = engine.find_candidates(self._record(make_record))
        assert [c.score for c in candidates] == [118, 108]
        assert [c.segment.position for c in candidates] == [1, 0]

    def test_occurrence_with_matching_context_wins(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine(self.MARKUP, settings)
        outcome = engine.resolve_and_anchor(self._record(make_record))

        assert outcome.score == 118
        [span] = engine.renderer.anchors_for("hl-1")
        second = engine.document.root.children[1]
        assert isinstance(second, Element)
        assert span.parent is second


class TestIdempotency:
    def test_second_attempt_reports_existing_anchor(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>The quick brown fox jumps.</p>", settings)
        record = make_record("quick brown fox")
        first = engine.resolve_and_anchor(record)
        second = engine.resolve_and_anchor(record)

        assert first.anchored and not first.already_anchored
        assert second.anchored and second.already_anchored
        assert second.anchor_ids == first.anchor_ids
        assert len(engine.renderer.anchors_for("hl-1")) == 1


class TestFallbacks:
    def test_text_inside_existing_anchor(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>The quick brown fox jumps.</p>", settings)
        engine.resolve_and_anchor(make_record("quick brown fox", id="outer"))
        outcome = engine.resolve_and_anchor(make_record("brown", id="inner"))

        assert outcome.anchored
        assert outcome.strategy is Strategy.WITHIN_EXISTING_ANCHOR
        [inner] = engine.renderer.anchors_for("inner")
        [outer] = engine.renderer.anchors_for("outer")
        assert inner.parent is outer

    def test_hidden_text_is_not_matched(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine(
            '<p>visible words</p><div style="display: none">secret phrase</div>',
            settings,
        )
        outcome = engine.resolve_and_anchor(make_record("secret phrase"))
        assert not outcome.anchored
        assert outcome.reason == "no match"

    def test_absent_text_is_a_miss(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>nothing here</p>", settings)
        outcome = engine.resolve_and_anchor(make_record("completely different words"))
        assert not outcome.anchored
        assert outcome.reason == "no match"
        assert engine.renderer.anchored_ids() == []

    def test_empty_text_is_skipped(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>anything</p>", settings)
        outcome = engine.resolve_and_anchor(make_record(""))
        assert not outcome.anchored
        assert outcome.reason == "empty text"


class TestEditing:
    def test_remove_and_recolor(
        self, settings: Settings, make_record: MakeRecord
    ) -> None:
        engine = _engine("<p>The quick brown fox jumps.</p>", settings)
        engine.resolve_and_anchor(make_record("quick brown fox"))

        assert engine.recolor_anchor("hl-1", "blue")
        [span] = engine.renderer.anchors_for("hl-1")
        assert span.get("data-highlight-color") == "blue"

        assert engine.remove_anchor("hl-1")
        assert not engine.remove_anchor("hl-1")
        assert engine.document.text_content() == "The quick brown fox jumps."


@pytest.mark.parametrize(
    "markup",
    [
        "<p>The quick brown fox jumps.</p>",
        "<p>quick <b>brown</b> fox</p>",
        "<p><i>quick </i>brown <b>fox jumps</b></p>",
    ],
)
def test_anchoring_preserves_document_text(
    markup: str, settings: Settings, make_record: MakeRecord
) -> None:
    engine = _engine(markup, settings)
    before = engine.document.text_content()
    engine.resolve_and_anchor(make_record("quick brown fox"))
    assert engine.document.text_content() == before
