"""HTML adapter: selectolax parse tree in, reanchor tree out, and back.

Parsing goes through Lexbor so that malformed markup is repaired the way a
browser would repair it before any offsets are computed.
"""

from __future__ import annotations

import html as html_module
import logging
from typing import Any

from selectolax.lexbor import LexborHTMLParser

from reanchor.document.tree import Document, Element, Node, TextNode

logger = logging.getLogger(__name__)

# Elements that never have a closing tag
_VOID_TAGS = frozenset(
    (
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    )
)

# Elements whose text is emitted without entity escaping
_RAW_TEXT_TAGS = frozenset(("script", "style"))


def _convert(node: Any) -> Node | None:
    """Convert one selectolax node (and its subtree) into a tree node."""
    tag = node.tag

    # Text node: selectolax uses "-text" as the tag
    if tag == "-text":
        return TextNode(node.text_content or "")

    # Comments, doctype and other pseudo nodes carry no content
    if not tag or not tag[0].isalpha():
        return None

    attrs = {name: value or "" for name, value in node.attributes.items()}
    element = Element(tag, attrs)
    child = node.child
    while child is not None:
        converted = _convert(child)
        if converted is not None:
            element.append(converted)
        child = child.next
    return element


def _body_of(markup: str) -> Any:
    tree = LexborHTMLParser(markup)
    body = tree.body
    return body if body is not None else tree.root


def parse_fragment(markup: str) -> list[Node]:
    """Parse an HTML fragment into detached tree nodes."""
    if not markup:
        return []
    body = _body_of(markup)
    if body is None:
        return []
    nodes: list[Node] = []
    child = body.child
    while child is not None:
        converted = _convert(child)
        if converted is not None:
            nodes.append(converted)
        child = child.next
    return nodes


def parse_document(markup: str, url: str | None = None) -> Document:
    """Parse a page (or fragment) into a Document rooted at ``<body>``."""
    root = Element("body")
    body = _body_of(markup) if markup else None
    if body is not None and body.tag == "body":
        root.attrs.update(
            {name: value or "" for name, value in body.attributes.items()}
        )
    for node in parse_fragment(markup):
        root.append(node)
    logger.debug(
        "[DOCUMENT] Parsed %d chars of HTML into %d top-level nodes",
        len(markup),
        len(root.children),
    )
    return Document(root, url=url)


def extract_head(markup: str) -> str:
    """Return the serialised ``<head>`` of a page, or an empty string."""
    if not markup:
        return ""
    head = LexborHTMLParser(markup).head
    return head.html if head is not None and head.html else ""


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def _serialize(node: Node, parts: list[str], raw: bool) -> None:
    if isinstance(node, TextNode):
        parts.append(node.data if raw else html_module.escape(node.data, quote=False))
        return
    assert isinstance(node, Element)
    parts.append(f"<{node.tag}")
    for name, value in node.attrs.items():
        parts.append(f' {name}="{html_module.escape(value, quote=True)}"')
    parts.append(">")
    if node.tag in _VOID_TAGS:
        return
    child_raw = node.tag in _RAW_TEXT_TAGS
    for child in node.children:
        _serialize(child, parts, child_raw)
    parts.append(f"</{node.tag}>")


def to_html(node: Node) -> str:
    """Serialise ``node`` including its own tag."""
    parts: list[str] = []
    _serialize(node, parts, raw=False)
    return "".join(parts)


def render_page(document: Document, head_html: str = "") -> str:
    """Serialise a whole page around the document body."""
    return f"<!DOCTYPE html><html>{head_html}{to_html(document.root)}</html>"
