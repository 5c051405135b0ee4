"""Restoration scheduling for one document lifetime.

Pages keep loading after the first paint, so a highlight that cannot be
placed now may be placeable in a second. A ``RestorationSession`` makes one
pass over every stored record, keeps the misses in a pending queue and
retries them on three triggers:

- a fixed backoff ladder measured from the initial scan,
- document change notices, debounced,
- a periodic sweep that runs while anything is pending.

Each failed attempt bumps the record's ``retry_count``. Once it passes
``max_retries`` the record is abandoned and reported to the listener.
Navigating to another document cancels everything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from reanchor.clock import AsyncioClock, Clock, TimerHandle
from reanchor.config import Settings, get_settings
from reanchor.document.tree import ChangeNotice, Document
from reanchor.engine import AnchorEngine
from reanchor.errors import DocumentDetachedError, StoreUnavailableError
from reanchor.models import (
    AbandonedEvent,
    AnchoredEvent,
    HighlightColor,
    HighlightRecord,
    RecordState,
    SessionState,
)
from reanchor.store import HighlightStore, PageKey

logger = logging.getLogger(__name__)


class RestorationListener(Protocol):
    """Receives the terminal outcome of each record."""

    def on_anchored(self, event: AnchoredEvent) -> None: ...

    def on_abandoned(self, event: AbandonedEvent) -> None: ...


class RestorationSession:
    """Restores a page's highlights and keeps retrying the stragglers.

    The pending queue and the set of anchored ids belong to the session, so
    two documents never share restoration state.
    """

    def __init__(
        self,
        document: Document,
        store: HighlightStore | None = None,
        page_key: PageKey | None = None,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
        listener: RestorationListener | None = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self.store = store
        self.page_key = page_key
        self.clock: Clock = clock if clock is not None else AsyncioClock()
        self.listener = listener

        self.document = document
        self.engine = AnchorEngine(document, self.settings)
        self.state = SessionState.IDLE

        self._pending: dict[str, HighlightRecord] = {}
        self._record_states: dict[str, RecordState] = {}
        self._anchored: set[str] = set()
        self._ladder: list[TimerHandle] = []
        self._debounce: TimerHandle | None = None
        self._sweep: TimerHandle | None = None
        self._unsubscribe: Callable[[], None] | None = None

    # -- inspection ---------------------------------------------------------

    @property
    def pending_ids(self) -> list[str]:
        return list(self._pending)

    @property
    def anchored_ids(self) -> set[str]:
        return set(self._anchored)

    def state_of(self, highlight_id: str) -> RecordState | None:
        return self._record_states.get(highlight_id)

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Load this page's records from the store and restore them."""
        if self.store is None or self.page_key is None:
            logger.debug("[RESTORE] No store configured, nothing to load")
            return
        try:
            records = await self.store.load(self.page_key)
        except (StoreUnavailableError, OSError) as exc:
            logger.warning(
                "[RESTORE] Could not load highlights for %s: %s",
                self.page_key.page,
                exc,
            )
            return
        logger.info(
            "[RESTORE] Loaded %d highlights for %s", len(records), self.page_key.page
        )
        self.restore(records)

    def restore(self, records: Iterable[HighlightRecord]) -> None:
        """Attempt every record once, in order, and queue the misses."""
        if self.document.detached:
            logger.warning("[RESTORE] Document already torn down, skipping restore")
            return
        if self._unsubscribe is None:
            self._unsubscribe = self.document.subscribe(self.notify_change)

        self.state = SessionState.SCANNING
        try:
            for record in records:
                if record.id in self._anchored or record.id in self._pending:
                    continue
                if self._record_states.get(record.id) is RecordState.ABANDONED:
                    continue
                self._record_states[record.id] = RecordState.SCANNING
                self._attempt(record)
        except DocumentDetachedError as exc:
            logger.warning("[RESTORE] Document torn down during scan: %s", exc)
            self.close()
            return
        self.state = SessionState.WATCHING

        if self._pending:
            logger.info(
                "[RESTORE] %d highlights pending after initial scan", len(self._pending)
            )
            self._schedule_ladder()
            self._ensure_sweep()

    def close(self) -> None:
        """Cancel every timer, drop the queue and stop observing the document."""
        for handle in self._ladder:
            handle.cancel()
        self._ladder.clear()
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None
        if self._sweep is not None:
            self._sweep.cancel()
            self._sweep = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._pending.clear()
        self._record_states.clear()
        self._anchored.clear()
        self.state = SessionState.IDLE

    def navigate(self, document: Document, page_key: PageKey | None = None) -> None:
        """Switch to a new document, discarding all state for the old one."""
        logger.info("[RESTORE] Navigated, resetting restoration state")
        self.close()
        self.document = document
        self.engine = AnchorEngine(document, self.settings)
        if page_key is not None:
            self.page_key = page_key

    # -- attempts -----------------------------------------------------------

    def _attempt(self, record: HighlightRecord) -> None:
        outcome = self.engine.resolve_and_anchor(record)
        if outcome.anchored:
            self._pending.pop(record.id, None)
            self._record_states[record.id] = RecordState.ANCHORED
            if record.id not in self._anchored:
                self._anchored.add(record.id)
                if self.listener is not None:
                    self.listener.on_anchored(
                        AnchoredEvent(id=record.id, anchor_ids=outcome.anchor_ids)
                    )
            return

        record.retry_count += 1
        if record.retry_count > self.settings.scheduler.max_retries:
            self._abandon(record)
            return
        self._pending[record.id] = record
        self._record_states[record.id] = RecordState.PENDING

    def _abandon(self, record: HighlightRecord) -> None:
        self._pending.pop(record.id, None)
        self._record_states[record.id] = RecordState.ABANDONED
        logger.info(
            "[RETRY] Giving up on %s after %d attempts", record.id, record.retry_count
        )
        if self.listener is not None:
            self.listener.on_abandoned(AbandonedEvent(id=record.id))

    def retry_pending(self, trigger: str = "manual") -> None:
        """Re-attempt every pending record once."""
        if not self._pending:
            return
        logger.debug("[RETRY] %s: retrying %d highlights", trigger, len(self._pending))
        try:
            for record in list(self._pending.values()):
                self._record_states[record.id] = RecordState.RETRYING
                self._attempt(record)
        except DocumentDetachedError as exc:
            logger.warning("[RETRY] Document torn down, stopping: %s", exc)
            self.close()
            return
        if not self._pending and self._sweep is not None:
            self._sweep.cancel()
            self._sweep = None

    # -- triggers -----------------------------------------------------------

    def _schedule_ladder(self) -> None:
        for handle in self._ladder:
            handle.cancel()
        self._ladder = [
            self.clock.call_later(
                delay, lambda d=delay: self.retry_pending(f"ladder +{d:g}s")
            )
            for delay in self.settings.scheduler.retry_ladder
        ]

    def _ensure_sweep(self) -> None:
        if self._sweep is None:
            self._sweep = self.clock.call_later(
                self.settings.scheduler.sweep_interval, self._on_sweep
            )

    def _on_sweep(self) -> None:
        self._sweep = None
        self.retry_pending("sweep")
        if self._pending and self.state is SessionState.WATCHING:
            self._ensure_sweep()

    def notify_change(self, notice: ChangeNotice) -> None:
        """Schedule a debounced retry after the host added content."""
        if not self._pending:
            return
        config = self.settings.scheduler
        significant = notice.added_chars >= config.significant_change_chars
        delay = config.debounce_significant if significant else config.debounce_default
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = self.clock.call_later(delay, self._on_debounce)

    def _on_debounce(self) -> None:
        self._debounce = None
        self.retry_pending("document change")

    # -- user edits ---------------------------------------------------------

    async def add_highlight(self, record: HighlightRecord) -> None:
        """Persist a newly captured highlight and restore it like any other."""
        self.restore([record])
        if self.store is not None and self.page_key is not None:
            try:
                await self.store.save(self.page_key, record)
            except (StoreUnavailableError, OSError) as exc:
                logger.warning("[RESTORE] Could not save %s: %s", record.id, exc)

    async def remove_highlight(self, highlight_id: str) -> bool:
        """Remove a highlight from the document and the store."""
        removed = self.engine.remove_anchor(highlight_id)
        self._pending.pop(highlight_id, None)
        self._anchored.discard(highlight_id)
        self._record_states.pop(highlight_id, None)
        if self.store is not None and self.page_key is not None:
            try:
                await self.store.delete(self.page_key, highlight_id)
            except (StoreUnavailableError, OSError) as exc:
                logger.warning(
                    "[RESTORE] Could not delete %s from store: %s", highlight_id, exc
                )
        return removed

    async def recolor_highlight(
        self, highlight_id: str, color: HighlightColor
    ) -> bool:
        """Change a highlight's colour in the document and the store."""
        recolored = self.engine.recolor_anchor(highlight_id, color)
        pending = self._pending.get(highlight_id)
        if pending is not None:
            pending.color = color
        if self.store is not None and self.page_key is not None:
            try:
                await self.store.update_color(self.page_key, highlight_id, color)
            except (StoreUnavailableError, OSError) as exc:
                logger.warning(
                    "[RESTORE] Could not recolour %s in store: %s", highlight_id, exc
                )
        return recolored
