"""Resolution entry point: find where a stored highlight belongs and anchor it.

One call to ``AnchorEngine.resolve_and_anchor`` is one attempt. It builds
a fresh segment index, runs the segment-local strategies, falls back to
cross-segment reconstruction and then to text already inside anchors,
scores the candidates by context and renders the winner. A miss is an
ordinary outcome. The scheduler decides whether to try again.
"""

from __future__ import annotations

import logging

from reanchor.config import Settings, get_settings
from reanchor.document.segments import SegmentIndex
from reanchor.document.tree import Document
from reanchor.matching.context import score_candidates
from reanchor.matching.reconstruct import reconstruct, resolve_pieces
from reanchor.matching.selector import rank_candidates, select_best
from reanchor.matching.strategies import generate_all
from reanchor.models import (
    AnchorOutcome,
    HighlightColor,
    HighlightRecord,
    MatchCandidate,
    Strategy,
)
from reanchor.render import AnchorRenderer, anchor_id

logger = logging.getLogger(__name__)


class AnchorEngine:
    """Resolves highlight records against one document."""

    def __init__(self, document: Document, settings: Settings | None = None) -> None:
        self.document = document
        self.settings = settings if settings is not None else get_settings()
        self.renderer = AnchorRenderer(document, self.settings.render)

    def _index(self, *, include_hidden: bool = False) -> SegmentIndex:
        return SegmentIndex.build(
            self.document,
            include_hidden=include_hidden,
            anchor_attribute=self.settings.render.id_attribute,
        )

    def find_candidates(self, record: HighlightRecord) -> list[MatchCandidate]:
        """All scored candidates for ``record``, best first."""
        target = record.text
        if not target:
            return []
        matching = self.settings.matching

        index = self._index()
        scan = index.scan_segments()
        candidates = generate_all(scan, target, matching)
        if not candidates:
            candidates = reconstruct(scan, target, self.settings.reconstruction)
        if not candidates:
            hidden_index = self._index(include_hidden=True)
            candidates = generate_all(
                hidden_index.anchored_segments(), target, matching
            )
            for candidate in candidates:
                candidate.strategy = Strategy.WITHIN_EXISTING_ANCHOR

        score_candidates(candidates, record, self.settings.context)
        return rank_candidates(candidates)

    def resolve_and_anchor(self, record: HighlightRecord) -> AnchorOutcome:
        """Locate ``record`` in the document and render it.

        Safe to call repeatedly: an id that is already rendered is reported
        as anchored without matching or rendering anything.
        """
        existing = self.renderer.anchors_for(record.id)
        if existing:
            return AnchorOutcome(
                anchored=True,
                anchor_ids=tuple(
                    anchor_id(record.id, part) for part in range(len(existing))
                ),
                already_anchored=True,
            )

        if not record.text:
            logger.warning("[MATCH] Highlight %s has empty text, skipping", record.id)
            return AnchorOutcome(anchored=False, reason="empty text")

        candidates = self.find_candidates(record)
        best = select_best(candidates, self.settings.matching.acceptance_floor)
        if best is None:
            logger.debug(
                "[MATCH] No acceptable candidate for %s (%d considered)",
                record.id,
                len(candidates),
            )
            return AnchorOutcome(anchored=False, reason="no match")

        length = best.length if best.length is not None else len(record.text)
        pieces = resolve_pieces(best.segment, best.start, length)
        result = self.renderer.render(record.id, record.color, pieces)
        if not result.ok:
            return AnchorOutcome(
                anchored=False,
                score=best.score,
                strategy=best.strategy,
                reason=result.error,
            )

        logger.info(
            "[MATCH] Anchored %s via %s (score %.1f, %d part(s))",
            record.id,
            best.strategy,
            best.score,
            len(result.anchor_ids),
        )
        return AnchorOutcome(
            anchored=True,
            anchor_ids=result.anchor_ids,
            score=best.score,
            strategy=best.strategy,
        )

    def remove_anchor(self, highlight_id: str) -> bool:
        """Remove every rendered span of ``highlight_id``."""
        return self.renderer.remove(highlight_id) > 0

    def recolor_anchor(self, highlight_id: str, color: str | HighlightColor) -> bool:
        """Recolour every rendered span of ``highlight_id``."""
        return self.renderer.recolor(highlight_id, color) > 0
