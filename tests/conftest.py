"""Shared pytest fixtures for reanchor tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from dotenv import load_dotenv

from reanchor.config import Settings, get_settings
from reanchor.models import HighlightColor, HighlightRecord

load_dotenv()


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Keep the cached Settings singleton from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any developer .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def make_record() -> Callable[..., HighlightRecord]:
    """Factory for highlight records with sensible defaults."""

    def _make(
        text: str,
        *,
        id: str = "hl-1",
        before: str = "",
        after: str = "",
        color: HighlightColor = HighlightColor.YELLOW,
        **extra: Any,
    ) -> HighlightRecord:
        return HighlightRecord(
            id=id,
            text=text,
            context_before=before,
            context_after=after,
            color=color,
            **extra,
        )

    return _make
