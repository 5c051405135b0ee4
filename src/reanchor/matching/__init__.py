"""Candidate generation, scoring and selection."""

from reanchor.matching.normalize import (
    NormalizedText,
    normalize_for_matching,
    normalize_whitespace,
)
from reanchor.matching.similarity import (
    edit_distance,
    similarity,
    word_array_similarity,
)

__all__ = [
    "NormalizedText",
    "edit_distance",
    "normalize_for_matching",
    "normalize_whitespace",
    "similarity",
    "word_array_similarity",
]
