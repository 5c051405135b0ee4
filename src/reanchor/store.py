"""Persistence of highlight records, keyed by site and page.

The engine only reads records at the start of a session and writes back
user edits (removal, recolouring). Everything else about storage belongs to
the host, so the interface is a small async protocol.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

from pydantic import TypeAdapter, ValidationError

from reanchor.errors import StoreUnavailableError
from reanchor.models import HighlightColor, HighlightRecord

logger = logging.getLogger(__name__)

type StoreData = dict[str, dict[str, list[HighlightRecord]]]

_STORE_ADAPTER: TypeAdapter[StoreData] = TypeAdapter(StoreData)


@dataclass(frozen=True)
class PageKey:
    """Where a set of highlights belongs.

    Attributes:
        site: Host name, e.g. ``example.com``.
        page: The page URL with its fragment removed.
    """

    site: str
    page: str

    @classmethod
    def from_url(cls, url: str) -> PageKey:
        parts = urlsplit(url)
        page = urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
        return cls(site=parts.hostname or "", page=page)


class HighlightStore(Protocol):
    """Async access to stored highlights."""

    async def load(self, key: PageKey) -> list[HighlightRecord]: ...

    async def save(self, key: PageKey, record: HighlightRecord) -> None: ...

    async def delete(self, key: PageKey, highlight_id: str) -> bool: ...

    async def update_color(
        self, key: PageKey, highlight_id: str, color: HighlightColor
    ) -> bool: ...


def _upsert(records: list[HighlightRecord], record: HighlightRecord) -> None:
    for i, existing in enumerate(records):
        if existing.id == record.id:
            records[i] = record
            return
    records.append(record)


class MemoryHighlightStore:
    """In-process store for embedding hosts and tests."""

    def __init__(self, data: StoreData | None = None) -> None:
        self._data: StoreData = data if data is not None else {}

    def _records(self, key: PageKey) -> list[HighlightRecord]:
        return self._data.setdefault(key.site, {}).setdefault(key.page, [])

    async def load(self, key: PageKey) -> list[HighlightRecord]:
        return [r.model_copy() for r in self._data.get(key.site, {}).get(key.page, [])]

    async def save(self, key: PageKey, record: HighlightRecord) -> None:
        _upsert(self._records(key), record.model_copy())

    async def delete(self, key: PageKey, highlight_id: str) -> bool:
        records = self._records(key)
        kept = [r for r in records if r.id != highlight_id]
        removed = len(kept) != len(records)
        records[:] = kept
        return removed

    async def update_color(
        self, key: PageKey, highlight_id: str, color: HighlightColor
    ) -> bool:
        for record in self._records(key):
            if record.id == highlight_id:
                record.color = color
                return True
        return False


class JsonFileHighlightStore:
    """Store backed by a single JSON file of ``{site: {page: [records]}}``.

    A missing file is an empty store. An unreadable or malformed file raises
    ``StoreUnavailableError`` and is never overwritten.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def _read(self) -> StoreData:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_bytes()
            return _STORE_ADAPTER.validate_json(raw) if raw.strip() else {}
        except (OSError, ValidationError, ValueError) as exc:
            msg = f"cannot read highlight store {self.path}: {exc}"
            raise StoreUnavailableError(msg, path=str(self.path)) from exc

    def _write(self, data: StoreData) -> None:
        payload = _STORE_ADAPTER.dump_python(data, mode="json")
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
            os.replace(tmp, self.path)
        except OSError as exc:
            msg = f"cannot write highlight store {self.path}: {exc}"
            raise StoreUnavailableError(msg, path=str(self.path)) from exc

    async def load(self, key: PageKey) -> list[HighlightRecord]:
        data = await asyncio.to_thread(self._read)
        records = data.get(key.site, {}).get(key.page, [])
        logger.debug("[STORE] Loaded %d highlights for %s", len(records), key.page)
        return records

    async def save(self, key: PageKey, record: HighlightRecord) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            _upsert(data.setdefault(key.site, {}).setdefault(key.page, []), record)
            await asyncio.to_thread(self._write, data)

    async def delete(self, key: PageKey, highlight_id: str) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            records = data.get(key.site, {}).get(key.page, [])
            kept = [r for r in records if r.id != highlight_id]
            if len(kept) == len(records):
                return False
            data[key.site][key.page] = kept
            await asyncio.to_thread(self._write, data)
            return True

    async def update_color(
        self, key: PageKey, highlight_id: str, color: HighlightColor
    ) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            for record in data.get(key.site, {}).get(key.page, []):
                if record.id == highlight_id:
                    record.color = color
                    await asyncio.to_thread(self._write, data)
                    return True
            return False
