"""Disambiguate repeated text by the words around it."""

from __future__ import annotations

from collections.abc import Iterable

from reanchor.config import ContextConfig
from reanchor.matching.normalize import fold_case, normalize_whitespace
from reanchor.matching.reconstruct import resolve_pieces
from reanchor.models import HighlightRecord, MatchCandidate, Piece

_EQUAL = 1.0
_CONTAINED = 0.8


def text_before(piece: Piece, config: ContextConfig) -> str:
    """Roughly ``window_chars`` characters of text ending where ``piece`` starts."""
    parts = [piece.segment.text[: piece.start]]
    total = len(parts[0])
    current = piece.segment
    for _ in range(config.max_segments):
        if total >= config.window_chars:
            break
        previous = current.previous()
        if previous is None:
            break
        parts.insert(0, previous.text)
        total += len(previous.text)
        current = previous
    return " ".join(parts)


def text_after(piece: Piece, config: ContextConfig) -> str:
    """Roughly ``window_chars`` characters of text starting where ``piece`` ends."""
    parts = [piece.segment.text[piece.end :]]
    total = len(parts[0])
    current = piece.segment
    for _ in range(config.max_segments):
        if total >= config.window_chars:
            break
        following = current.next()
        if following is None:
            break
        parts.append(following.text)
        total += len(following.text)
        current = following
    return " ".join(parts)


def _comparable(text: str) -> str:
    return normalize_whitespace(fold_case(text))


def context_match(stored: str, extracted: str, config: ContextConfig) -> float:
    """Score in [0, 1] of how well extracted context agrees with stored context."""
    a = _comparable(stored)
    b = _comparable(extracted)
    if not a or not b:
        return 0.0
    if a == b:
        return _EQUAL
    if a in b or b in a:
        return _CONTAINED

    words_a = a.split()
    words_b = b.split()
    stored_words = set(words_a)
    # Repeats in the extracted text each count
    common = [
        w for w in words_b if len(w) >= config.min_word_length and w in stored_words
    ]
    return len(common) / max(len(words_a), len(words_b))


def context_bonus(
    candidate: MatchCandidate, record: HighlightRecord, config: ContextConfig
) -> float:
    """Bonus added to a candidate's score for agreeing context."""
    length = candidate.length if candidate.length is not None else len(record.text)
    pieces = resolve_pieces(candidate.segment, candidate.start, length)
    if not pieces:
        return 0.0
    before = text_before(pieces[0], config)
    after = text_after(pieces[-1], config)
    return (
        context_match(record.context_before, before, config)
        + context_match(record.context_after, after, config)
    ) * config.weight


def score_candidates(
    candidates: Iterable[MatchCandidate],
    record: HighlightRecord,
    config: ContextConfig,
) -> list[MatchCandidate]:
    """Fill in ``context_bonus`` on every candidate and return them."""
    scored = []
    for candidate in candidates:
        candidate.context_bonus = context_bonus(candidate, record, config)
        scored.append(candidate)
    return scored
