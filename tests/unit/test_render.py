"""Tests for writing, recolouring and removing anchors."""

from __future__ import annotations

import pytest

from reanchor.config import RenderConfig
from reanchor.document.html import parse_document, to_html
from reanchor.document.segments import SegmentIndex
from reanchor.document.tree import Document, Element, Range
from reanchor.errors import InvalidRangeError
from reanchor.matching.reconstruct import resolve_pieces
from reanchor.models import HighlightColor, Piece
from reanchor.render import AnchorRenderer, anchor_id
from reanchor.styles import (
    BackgroundStyle,
    CornerStyle,
    HighlightStyle,
    TextStyle,
)


def _renderer(markup: str) -> tuple[Document, AnchorRenderer]:
    document = parse_document(markup)
    return document, AnchorRenderer(document, RenderConfig())


def _pieces(document: Document, start: int, length: int) -> list[Piece]:
    index = SegmentIndex.build(document)
    return resolve_pieces(index[0], start, length)


class TestSingleSpan:
    def test_wraps_text_in_one_segment(self) -> None:
        document, renderer = _renderer("<p>hello world</p>")
        result = renderer.render("hl-1", "green", _pieces(document, 6, 5))
        assert result.ok
        assert result.anchor_ids == ("hl-1#0",)

        [span] = renderer.anchors_for("hl-1")
        assert span.tag == "span"
        assert span.text_content() == "world"
        assert span.get("data-highlight-id") == "hl-1"
        assert span.get("data-highlight-color") == "green"
        assert span.get("class") == "reanchor-highlight reanchor-highlight-green"
        assert "data-highlight-part" not in span.attrs
        assert document.text_content() == "hello world"

    def test_unknown_colour_falls_back_to_yellow(self) -> None:
        document, renderer = _renderer("<p>hello world</p>")
        renderer.render("hl-1", "purple", _pieces(document, 0, 5))
        [span] = renderer.anchors_for("hl-1")
        assert span.get("data-highlight-color") == "yellow"

    def test_zero_length_range_is_refused(self) -> None:
        document, renderer = _renderer("<p>hello world</p>")
        segment = SegmentIndex.build(document)[0]
        result = renderer.render("hl-1", "yellow", [Piece(segment, 3, 3)])
        assert not result.ok
        assert result.error == "zero-length range"
        assert renderer.anchored_ids() == []

    def test_refused_surround_falls_back_to_extract(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def refuse(self: Range, wrapper: Element) -> None:
            msg = "surround refused"
            raise InvalidRangeError(msg)

        monkeypatch.setattr(Range, "surround_contents", refuse)
        document, renderer = _renderer("<p>hello world again</p>")
        result = renderer.render("hl-1", "red", _pieces(document, 6, 5))
        assert result.anchor_ids == ("hl-1#0",)

        [span] = renderer.anchors_for("hl-1")
        assert span.text_content() == "world"
        assert document.text_content() == "hello world again"
        p = document.root.children[0]
        assert to_html(p).startswith("<p>hello <span ")
        assert to_html(p).endswith(">world</span> again</p>")


class TestCrossSegment:
    """Matches that span several text nodes."""

    def test_inline_markup_gets_one_span(self) -> None:
        document, renderer = _renderer("<p>quick <b>brown</b> fox</p>")
        result = renderer.render(
            "hl-1", "yellow", _pieces(document, 0, len("quick brown fox"))
        )
        assert result.anchor_ids == ("hl-1#0",)
        [span] = renderer.anchors_for("hl-1")
        assert span.text_content() == "quick brown fox"
        assert [c.tag for c in span.children if isinstance(c, Element)] == ["b"]

    def test_partial_element_falls_back_to_parts(self) -> None:
        document, renderer = _renderer("<p><i>quick </i>brown <b>fox jumps</b></p>")
        result = renderer.render(
            "hl-1", "blue", _pieces(document, 0, len("quick brown fox"))
        )
        assert result.anchor_ids == ("hl-1#0", "hl-1#1", "hl-1#2")

        spans = renderer.anchors_for("hl-1")
        assert [s.text_content() for s in spans] == ["quick ", "brown ", "fox"]
        assert [s.get("data-highlight-part") for s in spans] == ["0", "1", "2"]
        assert [s.parent.tag for s in spans] == ["i", "p", "b"]
        assert document.text_content() == "quick brown fox jumps"


class TestEditing:
    def test_remove_restores_markup(self) -> None:
        document, renderer = _renderer("<p><i>quick </i>brown <b>fox jumps</b></p>")
        p = document.root.children[0]
        before = to_html(p)
        renderer.render("hl-1", "blue", _pieces(document, 0, len("quick brown fox")))

        assert renderer.remove("hl-1") == 3
        assert not renderer.is_anchored("hl-1")
        assert to_html(p) == before

    def test_remove_unknown_id_is_a_no_op(self) -> None:
        _, renderer = _renderer("<p>text</p>")
        assert renderer.remove("missing") == 0

    def test_remove_all(self) -> None:
        document, renderer = _renderer("<p>one two three</p>")
        renderer.render("a", "red", _pieces(document, 0, 3))
        segment = SegmentIndex.build(document).scan_segments()[-1]
        renderer.render("b", "red", [Piece(segment, 1, 6)])
        assert sorted(renderer.anchored_ids()) == ["a", "b"]
        assert renderer.remove_all() == 2
        assert renderer.anchored_ids() == []
        assert to_html(document.root) == "<body><p>one two three</p></body>"

    def test_recolor_updates_every_part(self) -> None:
        document, renderer = _renderer("<p><i>quick </i>brown <b>fox jumps</b></p>")
        renderer.render("hl-1", "blue", _pieces(document, 0, len("quick brown fox")))
        assert renderer.recolor("hl-1", HighlightColor.RED) == 3
        for span in renderer.anchors_for("hl-1"):
            assert span.get("data-highlight-color") == "red"
            assert span.get("class") == "reanchor-highlight reanchor-highlight-red"
            assert "rgba(255, 107, 107, 0.3)" in span.get("style", "")

    def test_restyle_applies_to_all_anchors(self) -> None:
        document, renderer = _renderer("<p>hello world</p>")
        renderer.render("hl-1", "green", _pieces(document, 0, 5))
        style = HighlightStyle(
            corner=CornerStyle.ROUNDED,
            background=BackgroundStyle.SOLID,
            text=TextStyle.BOLD,
        )
        assert renderer.restyle(style) == 1
        [span] = renderer.anchors_for("hl-1")
        assert span.get("style") == (
            "background-color: rgba(76, 175, 80, 0.8); border-radius: 3px; "
            "padding: 0 1px; font-weight: bold"
        )


def test_anchor_id_format() -> None:
    assert anchor_id("abc", 2) == "abc#2"
