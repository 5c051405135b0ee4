"""Data types shared by matching, rendering and restoration.

``HighlightRecord`` is the persisted shape of a highlight. Everything else
here is transient: it lives for one resolution attempt or one restoration
session and is never written back to the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from reanchor.document.segments import DocumentTextSegment


class HighlightColor(StrEnum):
    """Palette a highlight can be rendered in."""

    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"


class HighlightRecord(BaseModel):
    """A stored highlight.

    ``text`` is the exact selected text, whitespace included. The context
    fields hold up to thirty words on either side of the selection and are
    only used to tell repeated occurrences apart. The matching engine never
    modifies the text or the context; ``retry_count`` is the only field the
    scheduler updates.
    """

    model_config = ConfigDict(use_enum_values=False)

    id: str = Field(frozen=True)
    text: str = Field(frozen=True)
    context_before: str = Field(default="", frozen=True)
    context_after: str = Field(default="", frozen=True)
    color: HighlightColor = HighlightColor.YELLOW
    retry_count: int = 0

    url: str | None = None
    page_title: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Strategy(StrEnum):
    """How a candidate was found.

    The first five are segment-local and run against one text segment at a
    time. The last two only run when every segment-local strategy came up
    empty.
    """

    EXACT = "exact"
    CASE_INSENSITIVE = "case_insensitive"
    NORMALIZED = "normalized"
    CHAR_PARTIAL = "char_partial"
    FUZZY = "fuzzy"
    CROSS_SEGMENT = "cross_segment"
    WITHIN_EXISTING_ANCHOR = "within_existing_anchor"


@dataclass
class MatchCandidate:
    """One possible location for a highlight.

    Attributes:
        segment: The text segment the match starts in.
        start: Offset of the first matched character within ``segment``.
        length: Number of characters to cover, or None to use the
            length of the stored text.
        strategy: Which strategy produced the candidate.
        base_score: Score assigned by the strategy.
        context_bonus: Added by the context scorer.
        reconstructed_text: The text assembled across segments, for
            cross-segment candidates.
        similarity: Similarity of the matched text to the stored text,
            where the strategy computed one.
    """

    segment: DocumentTextSegment
    start: int
    length: int | None
    strategy: Strategy
    base_score: float
    context_bonus: float = 0.0
    reconstructed_text: str | None = None
    similarity: float | None = None

    @property
    def score(self) -> float:
        return self.base_score + self.context_bonus


@dataclass(frozen=True)
class Piece:
    """A contiguous run of characters inside a single text segment."""

    segment: DocumentTextSegment
    start: int
    end: int

    @property
    def text(self) -> str:
        return self.segment.text[self.start : self.end]


@dataclass(frozen=True)
class AnchorRenderResult:
    """Outcome of rendering one highlight into the document.

    Attributes:
        highlight_id: The record the render was for.
        anchor_ids: Identifiers of the spans created, one per part.
        error: Why rendering failed, None on success.
    """

    highlight_id: str
    anchor_ids: tuple[str, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.anchor_ids)


@dataclass(frozen=True)
class AnchorOutcome:
    """Result of ``AnchorEngine.resolve_and_anchor``."""

    anchored: bool
    anchor_ids: tuple[str, ...] = ()
    score: float | None = None
    strategy: Strategy | None = None
    already_anchored: bool = False
    reason: str | None = None


class RecordState(StrEnum):
    """Where a record is in its restoration lifecycle."""

    SCANNING = "scanning"
    PENDING = "pending"
    RETRYING = "retrying"
    ANCHORED = "anchored"
    ABANDONED = "abandoned"


class SessionState(StrEnum):
    """Lifecycle of a restoration session for one document."""

    IDLE = "idle"
    SCANNING = "scanning"
    WATCHING = "watching"


@dataclass(frozen=True)
class AnchoredEvent:
    """Emitted once when a record is rendered into the document."""

    id: str
    anchor_ids: tuple[str, ...]


@dataclass(frozen=True)
class AbandonedEvent:
    """Emitted once when a record runs out of retries."""

    id: str
    reason: str = "exhausted-retries"

