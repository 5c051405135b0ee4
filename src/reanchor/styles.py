"""Visual styling of rendered anchors.

Colours are rendered as translucent or solid backgrounds over the host
page's own styling, so the palette is kept as RGB triples and the alpha is
chosen by the background style.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from reanchor.models import HighlightColor

_PALETTE: dict[HighlightColor, tuple[int, int, int]] = {
    HighlightColor.RED: (255, 107, 107),
    HighlightColor.ORANGE: (255, 167, 38),
    HighlightColor.YELLOW: (255, 235, 59),
    HighlightColor.GREEN: (76, 175, 80),
    HighlightColor.BLUE: (33, 150, 243),
}

_TRANSPARENT_ALPHA = 0.3
_SOLID_ALPHA = 0.8


class CornerStyle(StrEnum):
    RECTANGULAR = "rectangular"
    ROUNDED = "rounded"


class BackgroundStyle(StrEnum):
    TRANSPARENT = "transparent"
    SOLID = "solid"


class TextStyle(StrEnum):
    DEFAULT = "default"
    BOLD = "bold"


class HighlightStyle(BaseModel):
    """User-selectable appearance applied to every anchor on a page."""

    corner: CornerStyle = CornerStyle.RECTANGULAR
    background: BackgroundStyle = BackgroundStyle.TRANSPARENT
    text: TextStyle = TextStyle.DEFAULT


def coerce_color(value: str | HighlightColor) -> HighlightColor:
    """Return ``value`` as a palette colour, falling back to yellow."""
    try:
        return HighlightColor(value)
    except ValueError:
        return HighlightColor.YELLOW


def background_rgba(color: str | HighlightColor, style: HighlightStyle) -> str:
    """CSS ``rgba()`` background for ``color`` under ``style``."""
    r, g, b = _PALETTE[coerce_color(color)]
    solid = style.background is BackgroundStyle.SOLID
    alpha = _SOLID_ALPHA if solid else _TRANSPARENT_ALPHA
    return f"rgba({r}, {g}, {b}, {alpha})"


def inline_style(color: str | HighlightColor, style: HighlightStyle) -> str:
    """Build the inline ``style`` attribute for an anchor span."""
    declarations = [f"background-color: {background_rgba(color, style)}"]
    if style.corner is CornerStyle.ROUNDED:
        declarations.append("border-radius: 3px")
        declarations.append("padding: 0 1px")
    if style.text is TextStyle.BOLD:
        declarations.append("font-weight: bold")
    return "; ".join(declarations)
