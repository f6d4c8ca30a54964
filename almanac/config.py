"""Runtime settings for the recurrence engine and the query service."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field

_ENV_PREFIX = "ALMANAC_"


class EngineSettings(BaseModel):
    # Day-by-day scans (moon, range) stop after this many steps.
    iteration_ceiling: int = Field(default=10_000, gt=0)
    # Lazy random scans walk further since most days are misses.
    random_iteration_ceiling: int = Field(default=50_000, gt=0)
    # Cap used when counting occurrences for ordinals.
    count_ceiling: int = Field(default=1_000_000, gt=0)
    default_cap: int = Field(default=100, gt=0)
    max_link_depth: int = Field(default=8, ge=1)
    random_cache_limit: int = Field(default=500, gt=0)
    random_cache_iterations: int = Field(default=50_000, gt=0)
    calendar_path: str | None = None
    log_level: str = "INFO"


def load_settings(environ: dict[str, str] | None = None) -> EngineSettings:
    """Build settings from ``ALMANAC_*`` environment variables.

    Unset variables keep their defaults; malformed values raise a pydantic
    ``ValidationError``.
    """
    env = os.environ if environ is None else environ
    values = {}
    for name in EngineSettings.model_fields:
        raw = env.get(_ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            values[name] = raw
    return EngineSettings.model_validate(values)


def configure_logging(settings: EngineSettings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
