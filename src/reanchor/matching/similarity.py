"""String similarity used by every fuzzy decision in the engine."""

from __future__ import annotations

import re
from collections.abc import Sequence

from rapidfuzz.distance import Levenshtein

from reanchor.matching.normalize import normalize_for_matching

_NON_WORD = re.compile(r"[^\w]")

# Loose-equality score for strings that differ only in case or punctuation
_NORMALIZED_EQUAL = 0.95

_WORD_WEIGHT = 0.4
_CHAR_WEIGHT = 0.4
_SUBSTRING_WEIGHT = 0.2
_SUBSTRING_BONUS = 0.8

# Word pairs this close count as the same word in a fuzzy window
_WORD_EDIT_TOLERANCE = 2


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between ``a`` and ``b``."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Score in [0, 1] of how alike two strings are.

    Identical strings score 1.0 and strings that differ only in case,
    punctuation or whitespace score 0.95. Anything else is a weighted
    blend of shared-word ratio, character edit similarity and a bonus
    when one string contains the other.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    na = normalize_for_matching(a)
    nb = normalize_for_matching(b)
    if na == nb:
        return _NORMALIZED_EQUAL

    words_a = set(na.split())
    words_b = set(nb.split())
    union = words_a | words_b
    word_overlap = len(words_a & words_b) / len(union) if union else 0.0

    longest = max(len(na), len(nb))
    char_similarity = 1.0 - edit_distance(na, nb) / longest if longest else 0.0

    contains = bool(na and nb) and (na in nb or nb in na)
    substring_bonus = _SUBSTRING_BONUS if contains else 0.0

    score = (
        _WORD_WEIGHT * word_overlap
        + _CHAR_WEIGHT * char_similarity
        + _SUBSTRING_WEIGHT * substring_bonus
    )
    return min(1.0, score)


def _clean_word(word: str) -> str:
    return _NON_WORD.sub("", word.lower())


def words_match(a: str, b: str) -> bool:
    """Whether two words count as the same word in a fuzzy window."""
    ca, cb = _clean_word(a), _clean_word(b)
    if ca == cb or ca in cb or cb in ca:
        return True
    return edit_distance(ca, cb) <= _WORD_EDIT_TOLERANCE


def word_array_similarity(seq_a: Sequence[str], seq_b: Sequence[str]) -> float:
    """Fraction of position-wise word pairs that match.

    Sequences of different length, or empty ones, score 0.0.
    """
    if len(seq_a) != len(seq_b) or not seq_a:
        return 0.0
    matched = sum(1 for a, b in zip(seq_a, seq_b, strict=True) if words_match(a, b))
    return matched / len(seq_a)
