"""Turn a selection in a live document into a storable highlight record.

The stored context is what later tells repeated occurrences apart, so it is
collected from readable text only: UI chrome, counters and inline code are
filtered out before the nearest words on each side are kept.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import UTC, datetime

from reanchor.config import ContextConfig, Settings, get_settings
from reanchor.document.segments import DocumentTextSegment, SegmentIndex
from reanchor.document.tree import Document, Range
from reanchor.errors import InvalidSelectionError
from reanchor.models import HighlightColor, HighlightRecord

logger = logging.getLogger(__name__)

_NON_CONTENT_PATTERNS = (
    re.compile(r"^(?:menu|navigation|nav|click|button|link)$"),
    re.compile(r"^(?:login|logout|sign in|sign up|register)$"),
    re.compile(r"^(?:home|about|contact|privacy|terms)$"),
    re.compile(r"^(?:share|like|follow|subscribe)$"),
    re.compile(r"^(?:loading|error|warning|alert)$"),
    re.compile(r"^(?:more|read more|continue|next|previous)$"),
    re.compile(r"^[0-9]+$"),
    re.compile(r"^[0-9]+\s*(?:comments?|views?|likes?|shares?|votes?)$"),
)

# Code, tracking and styling fragments that leak into page text
_NOISE_PATTERNS = (
    re.compile(r"\b(?:function|var|let|const)\s+\w+\s*[=(][^;{}]*[;}]"),
    re.compile(r"window\s*[=.\[].+?[;\]]"),
    re.compile(r"triggerPrebid[^\"']*[\"']?\s*[^,}]*", re.IGNORECASE),
    re.compile(
        r"(?:labelClasses|adLocation|trackingKey|renderAd|observeFromUAC|pageId)[^,}]*",
        re.IGNORECASE,
    ),
    re.compile(r"['\"]\w+['\"]:\s*[^,}]+,?\s*"),
    re.compile(r"https?://[^\s\"']+"),
    re.compile(r"[a-zA-Z-]+:\s*[^;]+;\s*"),
    re.compile(r"\{[^}]*\}"),
    re.compile(r"\w+\([^)]*\)\s*[;,]?"),
)
_PUNCTUATION_RUN = re.compile(r"[{}\[\]();,=&|'\"]{2,}")
_HAS_LETTER = re.compile(r"[a-zA-Z]")
_MAX_WORD_LENGTH = 30
_MIN_CONTENT_LENGTH = 3


def is_non_content_text(text: str) -> bool:
    """True for navigation labels, counters and other page chrome."""
    trimmed = text.strip().lower()
    if len(trimmed) < _MIN_CONTENT_LENGTH:
        return True
    return any(pattern.match(trimmed) for pattern in _NON_CONTENT_PATTERNS)


def context_words(text: str) -> list[str]:
    """Readable words of ``text`` with code and markup noise removed."""
    cleaned = text
    for pattern in _NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _PUNCTUATION_RUN.sub(" ", cleaned)
    return [
        word
        for word in cleaned.split()
        if _HAS_LETTER.search(word) and len(word) <= _MAX_WORD_LENGTH
    ]


def _collect(
    segment: DocumentTextSegment, offset: int, config: ContextConfig, *, after: bool
) -> str:
    own = segment.text[offset:] if after else segment.text[:offset]
    parts = [own]
    words = len(own.split())
    current = segment
    for _ in range(config.capture_max_segments):
        if words >= config.capture_words:
            break
        neighbour = current.next() if after else current.previous()
        if neighbour is None:
            break
        text = neighbour.text
        if text.strip() and not is_non_content_text(text):
            if after:
                parts.append(text)
            else:
                parts.insert(0, text)
            words += len(text.split())
        current = neighbour

    kept = context_words(" ".join(parts))
    kept = kept[: config.capture_words] if after else kept[-config.capture_words :]
    return " ".join(kept)


def capture_selection(
    document: Document,
    selection: Range,
    color: HighlightColor = HighlightColor.YELLOW,
    *,
    settings: Settings | None = None,
    page_title: str | None = None,
    highlight_id: str | None = None,
) -> HighlightRecord:
    """Build a record for ``selection``, including its surrounding context.

    Raises:
        InvalidSelectionError: if the selection is empty or lies outside
            the document's readable text.
    """
    settings = settings if settings is not None else get_settings()
    text = "" if selection.collapsed else selection.to_string()
    if not text.strip():
        msg = "selection contains no text"
        raise InvalidSelectionError(msg)

    index = SegmentIndex.build(
        document, anchor_attribute=settings.render.id_attribute
    )
    first = index.find(selection.start.node)
    last = index.find(selection.end.node)
    if first is None or last is None:
        msg = "selection is not inside readable document text"
        raise InvalidSelectionError(msg)

    record = HighlightRecord(
        id=highlight_id or str(uuid.uuid4()),
        text=text,
        context_before=_collect(
            first, selection.start.offset, settings.context, after=False
        ),
        context_after=_collect(
            last, selection.end.offset, settings.context, after=True
        ),
        color=color,
        url=document.url,
        page_title=page_title,
        timestamp=datetime.now(UTC),
    )
    logger.debug(
        "[CAPTURE] Captured %s (%d chars, %d/%d context words)",
        record.id,
        len(text),
        len(record.context_before.split()),
        len(record.context_after.split()),
    )
    return record
