"""Ordered index of the document's text-bearing leaves.

Matching runs against segments rather than the tree: each segment is one
text node, and the index gives every segment its neighbours in reading
order so that text split across inline elements can be rebuilt.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from reanchor.document.tree import Document, Element, Node, TextNode

# Script-like elements whose text is never part of the readable page
_STRIP_TAGS = frozenset(("script", "style", "noscript", "template"))

# Block-level elements where whitespace-only text nodes are formatting artefacts
# (indentation between tags) and should be skipped.
_BLOCK_TAGS = frozenset(
    (
        "body",
        "table",
        "tbody",
        "thead",
        "tfoot",
        "tr",
        "td",
        "th",
        "ul",
        "ol",
        "li",
        "dl",
        "dt",
        "dd",
        "div",
        "section",
        "article",
        "aside",
        "header",
        "footer",
        "nav",
        "main",
        "figure",
        "figcaption",
        "blockquote",
    )
)

_WHITESPACE_ONLY = re.compile(r"[\s\u00a0]+")

_HIDDEN_STYLE = re.compile(
    r"display\s*:\s*none|visibility\s*:\s*hidden|opacity\s*:\s*0(?:\.0*)?\s*(?:;|$)",
    re.IGNORECASE,
)

DEFAULT_ANCHOR_ATTRIBUTE = "data-highlight-id"


def is_hidden_element(element: Element) -> bool:
    """True if ``element`` hides its own content from the reader."""
    if element.tag in _STRIP_TAGS:
        return True
    if "hidden" in element.attrs:
        return True
    if (element.get("aria-hidden") or "").lower() == "true":
        return True
    return bool(_HIDDEN_STYLE.search(element.get("style") or ""))


@dataclass(eq=False)
class DocumentTextSegment:
    """One text node plus its place in the reading order.

    ``text`` reads through to the node, so it reflects later edits. A
    segment index is a snapshot of structure only: rebuild it after the
    tree changes shape.
    """

    node: TextNode
    position: int
    hidden: bool = False
    in_anchor: bool = False
    owner: SegmentIndex | None = field(default=None, repr=False)

    @property
    def text(self) -> str:
        return self.node.data

    def next(self) -> DocumentTextSegment | None:
        if self.owner is None:
            return None
        return self.owner.at(self.position + 1)

    def previous(self) -> DocumentTextSegment | None:
        if self.owner is None:
            return None
        return self.owner.at(self.position - 1)


class SegmentIndex:
    """Text segments of a document in reading order."""

    def __init__(self, nodes: list[tuple[TextNode, bool, bool]]) -> None:
        self._segments = [
            DocumentTextSegment(node, i, hidden, in_anchor, owner=self)
            for i, (node, hidden, in_anchor) in enumerate(nodes)
        ]

    @classmethod
    def build(
        cls,
        source: Document | Element,
        *,
        include_hidden: bool = False,
        anchor_attribute: str = DEFAULT_ANCHOR_ATTRIBUTE,
    ) -> SegmentIndex:
        """Walk the tree and index its text nodes.

        Args:
            source: Document or subtree to index.
            include_hidden: Also index text inside hidden and script-like
                elements. Used only when searching inside existing anchors.
            anchor_attribute: Attribute that marks a rendered anchor.
        """
        root = source.root if isinstance(source, Document) else source
        collected: list[tuple[TextNode, bool, bool]] = []

        def _walk(node: Node, hidden: bool, in_anchor: bool) -> None:
            if isinstance(node, TextNode):
                if not node.data:
                    return
                parent = node.parent
                if (
                    parent is not None
                    and parent.tag in _BLOCK_TAGS
                    and _WHITESPACE_ONLY.fullmatch(node.data)
                ):
                    return
                collected.append((node, hidden, in_anchor))
                return

            assert isinstance(node, Element)
            if is_hidden_element(node):
                if not include_hidden:
                    return
                hidden = True
            if anchor_attribute in node.attrs:
                in_anchor = True
            for child in node.children:
                _walk(child, hidden, in_anchor)

        for child in root.children:
            _walk(child, False, anchor_attribute in root.attrs)
        return cls(collected)

    def __iter__(self) -> Iterator[DocumentTextSegment]:
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __getitem__(self, position: int) -> DocumentTextSegment:
        return self._segments[position]

    def at(self, position: int) -> DocumentTextSegment | None:
        if 0 <= position < len(self._segments):
            return self._segments[position]
        return None

    def scan_segments(self) -> list[DocumentTextSegment]:
        """Segments the segment-local strategies search by default."""
        return [s for s in self._segments if not s.in_anchor and not s.hidden]

    def anchored_segments(self) -> list[DocumentTextSegment]:
        """Segments that already sit inside a rendered anchor."""
        return [s for s in self._segments if s.in_anchor]

    def find(self, node: TextNode) -> DocumentTextSegment | None:
        for segment in self._segments:
            if segment.node is node:
                return segment
        return None

    def text(self) -> str:
        return "".join(s.text for s in self._segments)
