"""Centralised engine configuration using pydantic-settings.

Every threshold, score and delay the engine uses is a named field here.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reanchor.styles import HighlightStyle

logger = logging.getLogger(__name__)

# src/reanchor/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class MatchingConfig(BaseModel):
    """Segment-local strategy scores and thresholds."""

    exact_score: float = 100
    case_insensitive_score: float = 95
    normalized_score: float = 90
    char_partial_score: float = 70
    char_partial_min_length: int = 6
    char_partial_ratio: float = 0.8
    fuzzy_weight: float = 70
    fuzzy_threshold: float = 0.8
    fuzzy_partial_threshold: float = 0.7
    fuzzy_partial_ratio: float = 0.6
    fuzzy_partial_penalty: float = 0.9
    fuzzy_max_candidates: int = 3
    refine_shorter_by: int = 5
    refine_longer_by: int = 20
    refine_min_length: int = 5
    refine_min_similarity: float = 0.8
    acceptance_floor: float = 0.0


class ReconstructionConfig(BaseModel):
    """Rebuilding text that spans several segments."""

    max_segments: int = 10
    length_factor: float = 1.5
    min_probe_words: int = 2
    max_probe_words: int = 4
    max_starts_per_segment: int = 5
    auto_min_similarity: float = 0.6
    auto_base_score: float = 80
    auto_similarity_weight: float = 10
    anchored_prefix_chars: int = 20
    anchored_check_chars: int = 30
    anchored_score: float = 85


class ContextConfig(BaseModel):
    """Disambiguation by surrounding text."""

    window_chars: int = 200
    max_segments: int = 10
    weight: float = 10
    min_word_length: int = 4
    capture_words: int = 30
    capture_max_segments: int = 20


class SchedulerConfig(BaseModel):
    """Retry timing for highlights whose text has not appeared yet.

    ``retry_ladder`` holds delays in seconds measured from the initial scan.
    """

    retry_ladder: tuple[float, ...] = (0.5, 1.0, 2.0, 3.0, 5.0, 8.0, 12.0)
    debounce_significant: float = 0.1
    debounce_default: float = 0.2
    significant_change_chars: int = 100
    sweep_interval: float = 5.0
    max_retries: int = 10

    @field_validator("retry_ladder")
    @classmethod
    def ladder_is_ascending(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if any(b < a for a, b in zip(value, value[1:], strict=False)):
            msg = "SCHEDULER__RETRY_LADDER must be in ascending order"
            raise ValueError(msg)
        return value


class RenderConfig(BaseModel):
    """Markup written into the document for each anchor."""

    tag: str = "span"
    class_prefix: str = "reanchor-highlight"
    id_attribute: str = "data-highlight-id"
    color_attribute: str = "data-highlight-color"
    part_attribute: str = "data-highlight-part"
    style: HighlightStyle = HighlightStyle()


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Engine settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``MATCHING__FUZZY_THRESHOLD``, ``SCHEDULER__MAX_RETRIES``,
    ``RENDER__STYLE__CORNER`` etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    matching: MatchingConfig = MatchingConfig()
    reconstruction: ReconstructionConfig = ReconstructionConfig()
    context: ContextConfig = ContextConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    render: RenderConfig = RenderConfig()

    @model_validator(mode="after")
    def probe_words_ordered(self) -> Settings:
        r = self.reconstruction
        if r.min_probe_words < 1 or r.min_probe_words > r.max_probe_words:
            msg = (
                "RECONSTRUCTION__MIN_PROBE_WORDS must be between 1 and "
                "RECONSTRUCTION__MAX_PROBE_WORDS"
            )
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
