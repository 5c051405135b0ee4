"""Segment-local candidate generation.

Each strategy is a plain function ``(segment, target, config) -> candidates``
and the cascade is a table of them. Exact hits end the search for that
segment. The case-insensitive, normalised and character-prefix strategies
are tried in order until one produces something. Fuzzy word windows run
for every segment without an exact hit.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Iterable

from reanchor.config import MatchingConfig
from reanchor.document.segments import DocumentTextSegment
from reanchor.matching.normalize import Mode, NormalizedText, fold_case
from reanchor.matching.similarity import similarity, word_array_similarity
from reanchor.models import MatchCandidate, Strategy

logger = logging.getLogger(__name__)

type SegmentStrategy = Callable[
    [DocumentTextSegment, str, MatchingConfig], list[MatchCandidate]
]

_WORD = re.compile(r"\S+")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _occurrences(haystack: str, needle: str) -> Iterable[int]:
    """Start offsets of every (possibly overlapping) occurrence."""
    if not needle:
        return
    pos = haystack.find(needle)
    while pos != -1:
        yield pos
        pos = haystack.find(needle, pos + 1)


def refine_length(
    segment: DocumentTextSegment,
    start: int,
    target: str,
    config: MatchingConfig,
    fallback: int | None = None,
) -> int:
    """Pick the match length at ``start`` whose text best resembles ``target``.

    Lengths from a few characters shorter to somewhat longer than the target
    are tried; the most similar one above ``refine_min_similarity`` wins.
    Without a winner the fallback (or the target length) is used, clipped to
    the segment.
    """
    available = len(segment.text) - start
    shortest = max(config.refine_min_length, len(target) - config.refine_shorter_by)
    longest = min(available, len(target) + config.refine_longer_by)

    best_length: int | None = None
    best_score = config.refine_min_similarity
    for length in range(shortest, longest + 1):
        score = similarity(segment.text[start : start + length], target)
        if score > best_score:
            best_score = score
            best_length = length

    if best_length is not None:
        return best_length
    return min(fallback if fallback is not None else len(target), available)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def find_exact(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    return [
        MatchCandidate(
            segment,
            pos,
            len(target),
            Strategy.EXACT,
            config.exact_score,
            similarity=1.0,
        )
        for pos in _occurrences(segment.text, target)
    ]


def find_case_insensitive(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    return [
        MatchCandidate(
            segment,
            pos,
            len(target),
            Strategy.CASE_INSENSITIVE,
            config.case_insensitive_score,
        )
        for pos in _occurrences(fold_case(segment.text), fold_case(target))
    ]


def find_normalized(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    """Match with whitespace runs collapsed on both sides."""
    needle = NormalizedText.build(target, Mode.WHITESPACE).text
    haystack = NormalizedText.build(segment.text, Mode.WHITESPACE)
    candidates = []
    for pos in _occurrences(haystack.text, needle):
        span = haystack.span_to_original(pos, pos + len(needle))
        if span is None:
            continue
        start, end = span
        candidates.append(
            MatchCandidate(
                segment,
                start,
                end - start,
                Strategy.NORMALIZED,
                config.normalized_score,
            )
        )
    return candidates


def find_char_partial(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    """Match the leading part of the target with punctuation ignored."""
    needle = NormalizedText.build(target, Mode.MATCHING).text
    if len(needle) < config.char_partial_min_length:
        return []
    prefix_length = max(
        config.char_partial_min_length,
        math.floor(len(needle) * config.char_partial_ratio),
    )
    prefix = needle[:prefix_length]
    haystack = NormalizedText.build(segment.text, Mode.MATCHING)

    candidates = []
    for pos in _occurrences(haystack.text, prefix):
        start = haystack.to_original(pos)
        if start is None:
            continue
        length = refine_length(segment, start, target, config)
        if length <= 0:
            continue
        candidates.append(
            MatchCandidate(
                segment, start, length, Strategy.CHAR_PARTIAL, config.char_partial_score
            )
        )
    return candidates


def find_fuzzy(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    """Slide word windows over the segment and keep the closest few."""
    target_words = target.split()
    spans = [m.span() for m in _WORD.finditer(segment.text)]
    words = [segment.text[s:e] for s, e in spans]
    n = len(target_words)
    if not n or len(words) < min(n, 2):
        return []

    scored: list[tuple[float, MatchCandidate]] = []

    for i in range(len(words) - n + 1):
        sim = word_array_similarity(words[i : i + n], target_words)
        if sim > config.fuzzy_threshold:
            start = spans[i][0]
            span_length = spans[i + n - 1][1] - start
            length = refine_length(segment, start, target, config, span_length)
            scored.append(
                (
                    sim,
                    MatchCandidate(
                        segment,
                        start,
                        length,
                        Strategy.FUZZY,
                        _round_half_up(config.fuzzy_weight * sim),
                        similarity=sim,
                    ),
                )
            )

    partial = max(2, math.floor(n * config.fuzzy_partial_ratio))
    if n >= 2 and partial < n:
        head = target_words[:partial]
        for i in range(len(words) - partial + 1):
            sim = word_array_similarity(words[i : i + partial], head)
            if sim > config.fuzzy_partial_threshold:
                sim *= config.fuzzy_partial_penalty
                start = spans[i][0]
                length = refine_length(segment, start, target, config)
                scored.append(
                    (
                        sim,
                        MatchCandidate(
                            segment,
                            start,
                            length,
                            Strategy.FUZZY,
                            _round_half_up(config.fuzzy_weight * sim),
                            similarity=sim,
                        ),
                    )
                )

    scored.sort(key=lambda item: item[0], reverse=True)
    return [candidate for _, candidate in scored[: config.fuzzy_max_candidates]]


# Tried in order after an exact miss; the first that produces candidates wins.
_FALLBACK_CASCADE: tuple[tuple[Strategy, SegmentStrategy], ...] = (
    (Strategy.CASE_INSENSITIVE, find_case_insensitive),
    (Strategy.NORMALIZED, find_normalized),
    (Strategy.CHAR_PARTIAL, find_char_partial),
)


def generate_candidates(
    segment: DocumentTextSegment, target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    """All segment-local candidates for ``target`` in one segment."""
    if not target or not segment.text:
        return []

    exact = find_exact(segment, target, config)
    if exact:
        return exact

    candidates: list[MatchCandidate] = []
    for strategy, finder in _FALLBACK_CASCADE:
        found = finder(segment, target, config)
        if found:
            logger.debug(
                "[MATCH] %s produced %d candidates in segment %d",
                strategy,
                len(found),
                segment.position,
            )
            candidates.extend(found)
            break

    candidates.extend(find_fuzzy(segment, target, config))
    return candidates


def generate_all(
    segments: Iterable[DocumentTextSegment], target: str, config: MatchingConfig
) -> list[MatchCandidate]:
    """Segment-local candidates across ``segments``, in document order."""
    candidates: list[MatchCandidate] = []
    for segment in segments:
        candidates.extend(generate_candidates(segment, target, config))
    return candidates
