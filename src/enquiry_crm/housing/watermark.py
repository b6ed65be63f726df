"""Persisted "last successful fetch" watermark for the scheduled sync.

The watermark is one epoch-seconds value stored under a fixed key in the
system_config table. Neither read nor write failures are fatal:
- An unreadable or missing watermark falls back to ``now - 24h``; a wider
  window only costs extra dedup work.
- A failed write is logged and swallowed; the leads are already synced and
  the next cycle simply re-covers an overlapping window.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from src.enquiry_crm.core.monitoring import record_watermark
from src.enquiry_crm.housing.store import LeadStore

logger = structlog.get_logger(__name__)

WATERMARK_KEY = "housing_last_fetch"
DEFAULT_LOOKBACK_SECONDS = 24 * 3600


class WatermarkStore:
    """Reads and writes the sync watermark through a LeadStore.

    Args:
        store: Persistence backend exposing the system_config table.
        key: system_config key holding the watermark.
        default_lookback_seconds: Fallback window when no watermark is available.
        clock: Returns current epoch seconds; defaults to time.time.
    """

    def __init__(
        self,
        store: LeadStore,
        key: str = WATERMARK_KEY,
        default_lookback_seconds: int = DEFAULT_LOOKBACK_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._default_lookback = default_lookback_seconds
        self._clock = clock or time.time

    def _default_timestamp(self) -> int:
        return int(self._clock()) - self._default_lookback

    async def get_last_fetch_timestamp(self) -> int:
        """Return the stored watermark, or ``now - lookback`` if unavailable."""
        try:
            value = await self._store.get_config_value(self._key)
        except Exception as exc:
            default = self._default_timestamp()
            logger.warning(
                "watermark.read_failed",
                key=self._key,
                error=str(exc),
                fallback_timestamp=default,
            )
            return default

        if value:
            try:
                return int(str(value).strip())
            except ValueError:
                logger.warning("watermark.unparseable", key=self._key, value=value)

        default = self._default_timestamp()
        logger.info(
            "watermark.default_used",
            key=self._key,
            fallback_timestamp=default,
            lookback_seconds=self._default_lookback,
        )
        return default

    async def update_last_fetch_timestamp(self, timestamp: int) -> None:
        """Persist the watermark. Failures are logged, never raised."""
        try:
            await self._store.upsert_config_value(self._key, str(timestamp))
        except Exception as exc:
            logger.warning(
                "watermark.persist_failed",
                key=self._key,
                timestamp=timestamp,
                error=str(exc),
                impact="next cycle re-covers an overlapping window",
            )
            return

        record_watermark(timestamp)
        logger.info("watermark.updated", key=self._key, timestamp=timestamp)
