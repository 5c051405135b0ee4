"""Mutable document tree with DOM-style ranges.

The engine needs three things from a document that an HTML parser does not
give it: parent links for walking outward from a text node, in-place
mutation for wrapping and unwrapping anchors, and range operations with the
same failure modes a browser has (a wrap that would split an element is
refused). This module provides exactly that and nothing more.

Nodes compare by identity. Two text nodes with the same data are different
nodes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from reanchor.errors import DocumentDetachedError, InvalidRangeError

logger = logging.getLogger(__name__)


class Node:
    """Common base for elements and text nodes."""

    def __init__(self) -> None:
        self.parent: Element | None = None

    @property
    def index(self) -> int:
        """Position among the parent's children."""
        if self.parent is None:
            msg = "detached node has no index"
            raise ValueError(msg)
        for i, child in enumerate(self.parent.children):
            if child is self:
                return i
        msg = "node is not among its parent's children"
        raise ValueError(msg)

    def ancestors(self) -> Iterator[Element]:
        """Yield the parent, grandparent, ... up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def remove(self) -> None:
        """Detach this node from its parent."""
        if self.parent is not None:
            del self.parent.children[self.index]
            self.parent = None

    def text_content(self) -> str:
        raise NotImplementedError


class TextNode(Node):
    """A run of character data."""

    def __init__(self, data: str = "") -> None:
        super().__init__()
        self.data = data

    def __repr__(self) -> str:
        return f"TextNode({self.data!r})"

    def __len__(self) -> int:
        return len(self.data)

    def text_content(self) -> str:
        return self.data

    def clone(self) -> TextNode:
        return TextNode(self.data)

    def split(self, offset: int) -> TextNode:
        """Split at ``offset``; this node keeps the head, the tail is returned.

        The tail is inserted right after this node.
        """
        if not 0 <= offset <= len(self.data):
            msg = f"split offset {offset} outside text of length {len(self.data)}"
            raise InvalidRangeError(msg)
        tail = TextNode(self.data[offset:])
        self.data = self.data[:offset]
        if self.parent is not None:
            self.parent.insert(self.index + 1, tail)
        return tail


class Element(Node):
    """An element with a tag name, attributes and ordered children."""

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str] = dict(attrs or {})
        self.children: list[Node] = []
        for child in children or ():
            self.append(child)

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, {self.attrs!r}, children={len(self.children)})"

    # -- attributes ---------------------------------------------------------

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    # -- structure ----------------------------------------------------------

    def insert(self, index: int, child: Node) -> None:
        """Insert ``child`` at ``index``, detaching it from any old parent."""
        if child is self or (isinstance(child, Element) and self._is_inside(child)):
            msg = "cannot insert a node into itself"
            raise InvalidRangeError(msg)
        if child.parent is not None:
            if child.parent is self and child.index < index:
                index -= 1
            child.remove()
        child.parent = self
        self.children.insert(index, child)

    def append(self, child: Node) -> None:
        self.insert(len(self.children), child)

    def insert_after(self, child: Node, reference: Node) -> None:
        if reference.parent is not self:
            msg = "reference node is not a child of this element"
            raise InvalidRangeError(msg)
        self.insert(reference.index + 1, child)

    def _is_inside(self, other: Element) -> bool:
        return any(ancestor is other for ancestor in self.ancestors())

    def iter_descendants(self) -> Iterator[Node]:
        """Yield every descendant in document order."""
        for child in self.children:
            yield child
            if isinstance(child, Element):
                yield from child.iter_descendants()

    def iter_text_nodes(self) -> Iterator[TextNode]:
        for node in self.iter_descendants():
            if isinstance(node, TextNode):
                yield node

    def find_all(self, predicate: Callable[[Element], bool]) -> list[Element]:
        return [
            node
            for node in self.iter_descendants()
            if isinstance(node, Element) and predicate(node)
        ]

    def text_content(self) -> str:
        return "".join(node.data for node in self.iter_text_nodes())

    def clone(self) -> Element:
        """Shallow copy: same tag and attributes, no children."""
        return Element(self.tag, self.attrs)

    def unwrap(self) -> Element:
        """Replace this element with its children. Returns the old parent."""
        parent = self.parent
        if parent is None:
            msg = "cannot unwrap a detached element"
            raise InvalidRangeError(msg)
        position = self.index
        for child in list(self.children):
            parent.insert(position, child)
            position += 1
        self.remove()
        return parent

    def normalize(self) -> None:
        """Merge adjacent text nodes and drop empty ones, recursively."""
        merged: list[Node] = []
        for child in self.children:
            if isinstance(child, TextNode):
                if not child.data:
                    child.parent = None
                    continue
                if merged and isinstance(merged[-1], TextNode):
                    previous = merged[-1]
                    assert isinstance(previous, TextNode)
                    previous.data += child.data
                    child.parent = None
                    continue
            elif isinstance(child, Element):
                child.normalize()
            merged.append(child)
        self.children = merged


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Boundary:
    """A position between two characters of a text node."""

    node: TextNode
    offset: int


def _tree_path(node: Node) -> tuple[int, ...]:
    path: list[int] = []
    while node.parent is not None:
        path.append(node.index)
        node = node.parent
    return tuple(reversed(path))


def _child_containing(ancestor: Element, node: Node) -> Node:
    """The child of ``ancestor`` that is ``node`` or contains it."""
    current = node
    while current.parent is not ancestor:
        if current.parent is None:
            msg = "node is not inside the given ancestor"
            raise InvalidRangeError(msg)
        current = current.parent
    return current


class Range:
    """A span of the document between two text boundaries.

    Mirrors the subset of the DOM Range interface the renderer relies on,
    including its failure mode: ``surround_contents`` refuses to wrap a
    range that only partially contains some element.
    """

    def __init__(self, start: Boundary, end: Boundary) -> None:
        for boundary in (start, end):
            if not 0 <= boundary.offset <= len(boundary.node.data):
                msg = (
                    f"offset {boundary.offset} outside text node of length "
                    f"{len(boundary.node.data)}"
                )
                raise InvalidRangeError(msg)
        if start.node is end.node:
            if end.offset < start.offset:
                msg = "range end precedes its start"
                raise InvalidRangeError(msg)
        elif _tree_path(end.node) < _tree_path(start.node):
            msg = "range end precedes its start"
            raise InvalidRangeError(msg)
        self.start = start
        self.end = end
        # Set once contents have been extracted from a multi-node range.
        self._insert_point: tuple[Element, int] | None = None

    @classmethod
    def within(cls, node: TextNode, start: int, end: int) -> Range:
        return cls(Boundary(node, start), Boundary(node, end))

    @property
    def collapsed(self) -> bool:
        return self.start.node is self.end.node and self.start.offset == self.end.offset

    def text_nodes(self) -> list[TextNode]:
        """Text nodes touched by the range, in document order."""
        if self.start.node is self.end.node:
            return [self.start.node]
        root: Node = self.start.node
        for ancestor in self.start.node.ancestors():
            root = ancestor
        if not isinstance(root, Element):
            return [self.start.node]
        nodes: list[TextNode] = []
        inside = False
        for text in root.iter_text_nodes():
            if text is self.start.node:
                inside = True
            if inside:
                nodes.append(text)
            if text is self.end.node:
                break
        return nodes

    def to_string(self) -> str:
        if self.start.node is self.end.node:
            return self.start.node.data[self.start.offset : self.end.offset]
        parts: list[str] = []
        for text in self.text_nodes():
            data = text.data
            if text is self.end.node:
                data = data[: self.end.offset]
            if text is self.start.node:
                data = data[self.start.offset :]
            parts.append(data)
        return "".join(parts)

    def common_ancestor(self) -> Node:
        if self.start.node is self.end.node:
            return self.start.node
        start_chain = {id(a) for a in self.start.node.ancestors()}
        for ancestor in self.end.node.ancestors():
            if id(ancestor) in start_chain:
                return ancestor
        msg = "range boundaries are in different trees"
        raise InvalidRangeError(msg)

    def partially_contained(self) -> list[Element]:
        """Elements that contain one boundary of the range but not the other."""
        if self.start.node is self.end.node:
            return []
        ancestor = self.common_ancestor()
        partial: list[Element] = []
        for boundary in (self.start, self.end):
            for element in boundary.node.ancestors():
                if element is ancestor:
                    break
                partial.append(element)
        return partial

    def extract_contents(self) -> list[Node]:
        """Remove the range's contents from the tree and return them.

        Elements that straddle a boundary are split: the part inside the range
        is returned as a shallow clone holding the extracted children, the
        original keeps the rest. Afterwards the range is collapsed at the
        point where the contents used to start.
        """
        start, end = self.start, self.end
        if start.node is end.node:
            node = start.node
            extracted = TextNode(node.data[start.offset : end.offset])
            node.data = node.data[: start.offset] + node.data[end.offset :]
            self.end = start
            return [extracted]

        ancestor = self.common_ancestor()
        assert isinstance(ancestor, Element)
        first = _child_containing(ancestor, start.node)
        last = _child_containing(ancestor, end.node)
        first_index = first.index
        between = ancestor.children[first_index + 1 : last.index]

        fragment = [_extract_tail(first, start)]
        for node in between:
            node.remove()
            fragment.append(node)
        fragment.append(_extract_head(last, end))

        self._insert_point = (ancestor, first_index + 1)
        self.end = Boundary(start.node, start.offset)
        self.start = self.end
        return fragment

    def insert_node(self, node: Node) -> None:
        """Insert ``node`` at the start of the range."""
        if self._insert_point is not None:
            parent, position = self._insert_point
            parent.insert(position, node)
            self._insert_point = (parent, position + 1)
            return
        text = self.start.node
        if text.parent is None:
            msg = "cannot insert next to a detached text node"
            raise InvalidRangeError(msg)
        text.split(self.start.offset)
        text.parent.insert_after(node, text)

    def surround_contents(self, wrapper: Element) -> None:
        """Move the range's contents into ``wrapper`` and put it in their place.

        Raises:
            InvalidRangeError: if an element is only partly inside the range.
        """
        partial = self.partially_contained()
        if partial:
            msg = f"range partially contains <{partial[0].tag}>"
            raise InvalidRangeError(msg, partial_tag=partial[0].tag)
        for child in list(wrapper.children):
            child.remove()
        for node in self.extract_contents():
            wrapper.append(node)
        self.insert_node(wrapper)


def _extract_tail(node: Node, start: Boundary) -> Node:
    """Cut everything from ``start`` to the end of ``node`` out of it."""
    if isinstance(node, TextNode):
        tail = TextNode(node.data[start.offset :])
        node.data = node.data[: start.offset]
        return tail
    assert isinstance(node, Element)
    clone = node.clone()
    child = _child_containing(node, start.node)
    following = node.children[child.index + 1 :]
    clone.append(_extract_tail(child, start))
    for sibling in following:
        clone.append(sibling)
    return clone


def _extract_head(node: Node, end: Boundary) -> Node:
    """Cut everything from the start of ``node`` up to ``end`` out of it."""
    if isinstance(node, TextNode):
        head = TextNode(node.data[: end.offset])
        node.data = node.data[end.offset :]
        return head
    assert isinstance(node, Element)
    clone = node.clone()
    child = _child_containing(node, end.node)
    preceding = node.children[: child.index]
    for sibling in preceding:
        clone.append(sibling)
    clone.append(_extract_head(child, end))
    return clone


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChangeNotice:
    """The host added content to the document."""

    added_chars: int


type ChangeListener = Callable[[ChangeNotice], None]


class Document:
    """A page the engine resolves highlights against.

    Host-side loading goes through ``insert_html`` (or ``notify_changed`` for
    hosts that mutate the tree themselves) so that subscribers learn about
    late content. Changes the renderer makes are not announced.
    """

    def __init__(self, root: Element, url: str | None = None) -> None:
        self._root = root
        self.url = url
        self._listeners: list[ChangeListener] = []
        self._detached = False

    @property
    def root(self) -> Element:
        if self._detached:
            msg = "document has been torn down"
            raise DocumentDetachedError(msg)
        return self._root

    @property
    def detached(self) -> bool:
        return self._detached

    def detach(self) -> None:
        """Tear the document down. Later access to ``root`` raises."""
        self._detached = True
        self._listeners.clear()

    def text_content(self) -> str:
        return self.root.text_content()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register for change notices. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify_changed(self, added_chars: int) -> None:
        notice = ChangeNotice(added_chars=added_chars)
        for listener in list(self._listeners):
            listener(notice)

    def insert_html(
        self, markup: str, parent: Element | None = None, index: int | None = None
    ) -> list[Node]:
        """Parse ``markup`` and insert it under ``parent`` (the root by default)."""
        from reanchor.document.html import parse_fragment

        target = parent if parent is not None else self.root
        position = len(target.children) if index is None else index
        nodes = parse_fragment(markup)
        added = 0
        for node in nodes:
            target.insert(position, node)
            position += 1
            added += len(node.text_content())
        logger.debug("[DOCUMENT] Inserted %d nodes (%d chars)", len(nodes), added)
        self.notify_changed(added)
        return nodes
