"""Text normalisation with a way back to the original offsets.

Matching compares normalised text, but anchors have to be placed in the
raw text. ``NormalizedText`` remembers, for every normalised character, the
offset of the raw character it came from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

# Whitespace pattern including \u00a0 (nbsp)
_WHITESPACE_RUN = re.compile(r"[\s\u00a0]+")

# Word characters kept by matching normalisation. \w already covers most of
# these; the CJK blocks are listed so the intent survives a regex engine swap.
_KEEP_CHARS = (
    "\\w\\s\u00a0"
    "\u4e00-\u9fff"
    "\u3400-\u4dbf"
    "\U00020000-\U0002a6df"
    "\U0002a700-\U0002b73f"
    "\U0002b740-\U0002b81f"
    "\U0002b820-\U0002ceaf"
)
_DROP_CHAR = re.compile(f"[^{_KEEP_CHARS}]")


class Mode(StrEnum):
    """What a ``NormalizedText`` strips from the original."""

    # Whitespace runs collapsed, ends trimmed, case kept
    WHITESPACE = "whitespace"
    # Lowercased, punctuation and symbols removed, whitespace collapsed
    MATCHING = "matching"


def fold_case(text: str) -> str:
    """Lowercase ``text`` without changing its length.

    Characters whose lowercase form is longer than one character are left
    as they are, so offsets into the result are offsets into ``text``.
    """
    return "".join(c if len(low := c.lower()) != 1 else low for c in text)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to one space and trim the ends."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def normalize_for_matching(text: str) -> str:
    """Lowercase, drop non-word characters, collapse whitespace, trim."""
    return NormalizedText.build(text, Mode.MATCHING).text


@dataclass(frozen=True)
class NormalizedText:
    """Normalised text plus the raw offset of each of its characters.

    Attributes:
        original: The raw text.
        text: The normalised text.
        offsets: ``offsets[i]`` is the index in ``original`` that produced
            ``text[i]``. A collapsed whitespace run maps to its first
            character.
    """

    original: str
    text: str
    offsets: tuple[int, ...]

    @classmethod
    def build(cls, original: str, mode: Mode = Mode.WHITESPACE) -> NormalizedText:
        chars: list[str] = []
        offsets: list[int] = []
        space_at: int | None = None

        for i, raw in enumerate(original):
            if mode is Mode.MATCHING:
                produced = [c for c in raw.lower() if not _DROP_CHAR.match(c)]
            else:
                produced = [raw]
            for c in produced:
                if _WHITESPACE_RUN.match(c):
                    if space_at is None:
                        space_at = i
                    continue
                if space_at is not None and chars:
                    chars.append(" ")
                    offsets.append(space_at)
                space_at = None
                chars.append(c)
                offsets.append(i)

        return cls(original, "".join(chars), tuple(offsets))

    def to_original(self, pos: int) -> int | None:
        """Raw offset of the normalised character at ``pos``."""
        if 0 <= pos < len(self.offsets):
            return self.offsets[pos]
        return None

    def end_to_original(self, end: int) -> int | None:
        """Raw exclusive end for a normalised exclusive end ``end``."""
        if 0 < end <= len(self.offsets):
            return self.offsets[end - 1] + 1
        return None

    def span_to_original(self, start: int, end: int) -> tuple[int, int] | None:
        """Map a normalised ``[start, end)`` span back to the raw text."""
        raw_start = self.to_original(start)
        raw_end = self.end_to_original(end)
        if raw_start is None or raw_end is None or raw_end <= raw_start:
            return None
        return raw_start, raw_end
