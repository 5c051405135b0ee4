"""Document model: tree, HTML adapter and text segment index."""

from reanchor.document.html import parse_document, parse_fragment, to_html
from reanchor.document.segments import DocumentTextSegment, SegmentIndex
from reanchor.document.tree import (
    Boundary,
    ChangeNotice,
    Document,
    Element,
    Node,
    Range,
    TextNode,
)

__all__ = [
    "Boundary",
    "ChangeNotice",
    "Document",
    "DocumentTextSegment",
    "Element",
    "Node",
    "Range",
    "SegmentIndex",
    "TextNode",
    "parse_document",
    "parse_fragment",
    "to_html",
]
