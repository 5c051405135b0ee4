"""Rebuild text that inline markup has split across several segments.

``<p>quick <b>brown</b> fox</p>`` holds "quick brown fox" in three text
nodes, so no single segment contains it. The reconstructor stitches
neighbouring segments together, looks for the stored text in the result,
and maps a hit back to a list of per-segment pieces for rendering.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from reanchor.config import ReconstructionConfig
from reanchor.document.segments import DocumentTextSegment
from reanchor.matching.normalize import fold_case, normalize_whitespace
from reanchor.matching.similarity import similarity
from reanchor.models import MatchCandidate, Piece, Strategy

logger = logging.getLogger(__name__)

# A segment starting with one of these attaches to the previous one directly
_CLOSING_PUNCTUATION = frozenset(".,;:!?)]}'\"»”’…%")


def needs_separator(left: str, right: str) -> bool:
    """Whether a space is implied between two adjacent segments."""
    if not left or not right:
        return False
    if left[-1].isspace() or right[0].isspace():
        return False
    return right[0] not in _CLOSING_PUNCTUATION


def reconstruct_forward(
    segment: DocumentTextSegment,
    offset: int,
    max_segments: int,
    max_chars: int,
) -> str:
    """Concatenate text from ``offset`` onwards across following segments.

    Stops after ``max_segments`` segments or once ``max_chars`` characters
    have been collected, whichever comes first.
    """
    left = segment.text[offset:]
    parts = [left]
    total = len(left)
    current = segment
    used = 1
    while used < max_segments and total < max_chars:
        following = current.next()
        if following is None:
            break
        if needs_separator(left, following.text):
            parts.append(" ")
            total += 1
        parts.append(following.text)
        total += len(following.text)
        left = following.text
        current = following
        used += 1
    return "".join(parts)


def resolve_pieces(
    segment: DocumentTextSegment, start: int, length: int
) -> list[Piece]:
    """Walk forward from ``start`` and consume ``length`` characters.

    An implied separator between segments consumes one character without
    producing a piece. The walk stops early if the document runs out.
    """
    pieces: list[Piece] = []
    remaining = length
    current: DocumentTextSegment | None = segment
    offset = start
    while current is not None and remaining > 0:
        take = min(len(current.text) - offset, remaining)
        if take > 0:
            pieces.append(Piece(current, offset, offset + take))
            remaining -= take
        if remaining <= 0:
            break
        following = current.next()
        if following is None:
            break
        if needs_separator(current.text[offset:], following.text):
            remaining -= 1
        current = following
        offset = 0
    return pieces


def _probes(words: list[str], config: ReconstructionConfig) -> list[str]:
    most = min(config.max_probe_words, len(words))
    least = min(config.min_probe_words, len(words))
    return [" ".join(words[:k]) for k in range(most, least - 1, -1)]


def reconstruct_automatic(
    segments: Iterable[DocumentTextSegment],
    target: str,
    config: ReconstructionConfig,
) -> list[MatchCandidate]:
    """Find starts by the target's first word and compare rebuilt windows."""
    words = fold_case(target).split()
    if not words:
        return []
    first_word = words[0]
    probes = _probes(words, config)
    max_chars = math.ceil(len(target) * config.length_factor)

    candidates = []
    for segment in segments:
        folded = fold_case(segment.text)
        pos = folded.find(first_word)
        starts = 0
        while pos != -1 and starts < config.max_starts_per_segment:
            starts += 1
            rebuilt = reconstruct_forward(segment, pos, config.max_segments, max_chars)
            collapsed = normalize_whitespace(fold_case(rebuilt))
            if any(collapsed.startswith(probe) for probe in probes):
                window = rebuilt[: len(target)]
                sim = similarity(window, target)
                if sim > config.auto_min_similarity:
                    candidates.append(
                        MatchCandidate(
                            segment,
                            pos,
                            len(target),
                            Strategy.CROSS_SEGMENT,
                            config.auto_base_score
                            + config.auto_similarity_weight * sim,
                            reconstructed_text=window,
                            similarity=sim,
                        )
                    )
            pos = folded.find(first_word, pos + 1)
    return candidates


def reconstruct_anchored(
    segments: Iterable[DocumentTextSegment],
    target: str,
    config: ReconstructionConfig,
) -> list[MatchCandidate]:
    """Find starts by the target's verbatim opening characters."""
    prefix = target[: config.anchored_prefix_chars]
    if not prefix.strip():
        return []
    check = normalize_whitespace(target[: config.anchored_check_chars])
    max_chars = max(
        math.ceil(len(target) * config.length_factor), config.anchored_check_chars
    )

    candidates = []
    for segment in segments:
        pos = segment.text.find(prefix)
        starts = 0
        while pos != -1 and starts < config.max_starts_per_segment:
            starts += 1
            rebuilt = reconstruct_forward(segment, pos, config.max_segments, max_chars)
            if check in normalize_whitespace(rebuilt):
                window = rebuilt[: len(target)]
                candidates.append(
                    MatchCandidate(
                        segment,
                        pos,
                        len(target),
                        Strategy.CROSS_SEGMENT,
                        config.anchored_score,
                        reconstructed_text=window,
                        similarity=similarity(window, target),
                    )
                )
            pos = segment.text.find(prefix, pos + 1)
    return candidates


def reconstruct(
    segments: Iterable[DocumentTextSegment],
    target: str,
    config: ReconstructionConfig,
) -> list[MatchCandidate]:
    """Cross-segment candidates from both the automatic and anchored passes."""
    segments = list(segments)
    candidates = reconstruct_automatic(segments, target, config)
    candidates.extend(reconstruct_anchored(segments, target, config))
    if candidates:
        logger.debug(
            "[MATCH] Cross-segment reconstruction produced %d candidates",
            len(candidates),
        )
    return candidates
