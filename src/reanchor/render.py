"""Write anchors into the document, and take them out again.

An anchor is one or more ``<span>`` elements carrying the highlight id.
Text inside one inline context gets a single span. Text that crosses
element boundaries gets one span per segment, each marked with its part
number.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from reanchor.config import RenderConfig
from reanchor.document.tree import Boundary, Document, Element, Range
from reanchor.errors import DocumentError, InvalidRangeError
from reanchor.models import AnchorRenderResult, HighlightColor, Piece
from reanchor.styles import HighlightStyle, coerce_color, inline_style

logger = logging.getLogger(__name__)


def anchor_id(highlight_id: str, part: int) -> str:
    """Identifier of one rendered span of a highlight."""
    return f"{highlight_id}#{part}"


class AnchorRenderer:
    """Renders, recolours and removes anchors in one document."""

    def __init__(self, document: Document, config: RenderConfig) -> None:
        self.document = document
        self.config = config
        self.style: HighlightStyle = config.style

    # -- queries ------------------------------------------------------------

    def anchors_for(self, highlight_id: str) -> list[Element]:
        """Rendered spans of ``highlight_id``, in document order."""
        attribute = self.config.id_attribute
        return self.document.root.find_all(
            lambda el: el.get(attribute) == highlight_id
        )

    def is_anchored(self, highlight_id: str) -> bool:
        return bool(self.anchors_for(highlight_id))

    def anchored_ids(self) -> list[str]:
        attribute = self.config.id_attribute
        seen: dict[str, None] = {}
        for element in self.document.root.find_all(lambda el: attribute in el.attrs):
            seen[element.attrs[attribute]] = None
        return list(seen)

    # -- rendering ----------------------------------------------------------

    def _class_for(self, color: HighlightColor) -> str:
        prefix = self.config.class_prefix
        return f"{prefix} {prefix}-{color}"

    def _wrapper(
        self, highlight_id: str, color: HighlightColor, part: int | None
    ) -> Element:
        attrs = {
            "class": self._class_for(color),
            self.config.id_attribute: highlight_id,
            self.config.color_attribute: str(color),
            "style": inline_style(color, self.style),
        }
        if part is not None:
            attrs[self.config.part_attribute] = str(part)
        return Element(self.config.tag, attrs)

    def _wrap(self, rng: Range, wrapper: Element) -> None:
        """Surround ``rng`` with ``wrapper``, falling back to extract-and-insert."""
        try:
            rng.surround_contents(wrapper)
        except DocumentError as exc:
            logger.debug("[RENDER] surround failed (%s), extracting instead", exc)
            for node in rng.extract_contents():
                wrapper.append(node)
            rng.insert_node(wrapper)

    def render(
        self,
        highlight_id: str,
        color: str | HighlightColor,
        pieces: Sequence[Piece],
    ) -> AnchorRenderResult:
        """Wrap ``pieces`` (one contiguous match) in anchor spans."""
        colour = coerce_color(color)
        pieces = [p for p in pieces if p.end > p.start]
        if not pieces:
            logger.warning("[RENDER] Refusing zero-length range for %s", highlight_id)
            return AnchorRenderResult(highlight_id, error="zero-length range")

        if len(pieces) == 1:
            piece = pieces[0]
            try:
                self._wrap(
                    Range.within(piece.segment.node, piece.start, piece.end),
                    self._wrapper(highlight_id, colour, None),
                )
            except DocumentError as exc:
                logger.warning("[RENDER] Could not wrap %s: %s", highlight_id, exc)
                return AnchorRenderResult(highlight_id, error=str(exc))
            return AnchorRenderResult(highlight_id, (anchor_id(highlight_id, 0),))

        first, last = pieces[0], pieces[-1]
        try:
            Range(
                Boundary(first.segment.node, first.start),
                Boundary(last.segment.node, last.end),
            ).surround_contents(self._wrapper(highlight_id, colour, None))
        except InvalidRangeError as exc:
            logger.debug(
                "[RENDER] Single span for %s rejected (%s), wrapping %d parts",
                highlight_id,
                exc,
                len(pieces),
            )
        else:
            return AnchorRenderResult(highlight_id, (anchor_id(highlight_id, 0),))

        return self._render_parts(highlight_id, colour, pieces)

    def _render_parts(
        self, highlight_id: str, color: HighlightColor, pieces: Sequence[Piece]
    ) -> AnchorRenderResult:
        # Ranges are built up front; wrapping one part only splits its own node.
        ranges = [Range.within(p.segment.node, p.start, p.end) for p in pieces]
        wrapped: list[Element] = []
        for part, rng in enumerate(ranges):
            wrapper = self._wrapper(highlight_id, color, part)
            try:
                self._wrap(rng, wrapper)
            except DocumentError as exc:
                logger.warning(
                    "[RENDER] Part %d of %s failed (%s), rolling back",
                    part,
                    highlight_id,
                    exc,
                )
                self._unwrap_all(wrapped)
                return AnchorRenderResult(highlight_id, error=str(exc))
            wrapped.append(wrapper)
        return AnchorRenderResult(
            highlight_id,
            tuple(anchor_id(highlight_id, part) for part in range(len(wrapped))),
        )

    # -- editing ------------------------------------------------------------

    def _unwrap_all(self, elements: Sequence[Element]) -> None:
        parents = []
        for element in elements:
            if element.parent is not None:
                parents.append(element.unwrap())
        for parent in parents:
            parent.normalize()

    def remove(self, highlight_id: str) -> int:
        """Unwrap every span of ``highlight_id``. Returns how many were removed."""
        anchors = self.anchors_for(highlight_id)
        self._unwrap_all(anchors)
        if anchors:
            logger.info("[RENDER] Removed %d spans of %s", len(anchors), highlight_id)
        return len(anchors)

    def remove_all(self) -> int:
        attribute = self.config.id_attribute
        anchors = self.document.root.find_all(lambda el: attribute in el.attrs)
        self._unwrap_all(anchors)
        return len(anchors)

    def recolor(self, highlight_id: str, color: str | HighlightColor) -> int:
        """Change the colour of every span of ``highlight_id``."""
        colour = coerce_color(color)
        anchors = self.anchors_for(highlight_id)
        for element in anchors:
            element.attrs["class"] = self._class_for(colour)
            element.attrs[self.config.color_attribute] = str(colour)
            element.attrs["style"] = inline_style(colour, self.style)
        return len(anchors)

    def restyle(self, style: HighlightStyle) -> int:
        """Apply ``style`` to every anchor in the document."""
        self.style = style
        attribute = self.config.id_attribute
        anchors = self.document.root.find_all(lambda el: attribute in el.attrs)
        for element in anchors:
            colour = coerce_color(element.get(self.config.color_attribute) or "")
            element.attrs["style"] = inline_style(colour, style)
        return len(anchors)
