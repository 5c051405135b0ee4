"""Pick the winning candidate."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from reanchor.models import MatchCandidate

logger = logging.getLogger(__name__)


def rank_candidates(candidates: Iterable[MatchCandidate]) -> list[MatchCandidate]:
    """Candidates by descending score; ties keep generation order."""
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def select_best(
    candidates: Iterable[MatchCandidate], acceptance_floor: float = 0.0
) -> MatchCandidate | None:
    """Highest-scoring candidate if it clears ``acceptance_floor``, else None."""
    ranked = rank_candidates(candidates)
    if not ranked:
        return None
    best = ranked[0]
    if best.score <= acceptance_floor:
        logger.debug(
            "[MATCH] Best candidate scored %.1f, not above floor %.1f",
            best.score,
            acceptance_floor,
        )
        return None
    return best
