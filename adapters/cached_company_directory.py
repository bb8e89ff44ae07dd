"""
TTL-cached company directory.

Wraps any CompanyDirectoryPort source with a read-mostly cache. On a source
failure the last good list is served (or the hardcoded fallback list when
nothing was ever loaded) and the refresh timestamp is not advanced, so the
next call retries the source.
"""

from __future__ import annotations

from typing import List, Optional

from assistant_core.control_plane.signals import FALLBACK_COMPANIES
from ports.clock import ClockPort
from ports.company_directory import CompanyDirectoryPort
from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.ADAPTER)


class CachedCompanyDirectory:
    def __init__(
        self,
        *,
        source: CompanyDirectoryPort,
        clock: ClockPort,
        ttl_seconds: float = Defaults.COMPANY_CACHE_TTL_SECONDS,
    ) -> None:
        self._source = source
        self._clock = clock
        self._ttl = ttl_seconds
        self._names: Optional[List[str]] = None
        self._loaded_at: Optional[float] = None

    def _is_fresh(self, now: float) -> bool:
        return self._loaded_at is not None and now - self._loaded_at < self._ttl

    async def list_company_names(self) -> List[str]:
        now = self._clock.now()
        if self._names is not None and self._is_fresh(now):
            return list(self._names)

        try:
            names = await self._source.list_company_names()
        except Exception as e:
            logger.warning(
                "company_directory_refresh_failed",
                error=str(e),
                serving="last_good" if self._names is not None else "fallback",
            )
            return list(self._names) if self._names is not None else list(FALLBACK_COMPANIES)

        self._names = [n for n in names if n]
        self._loaded_at = now
        logger.debug("company_directory_refreshed", count=len(self._names))
        return list(self._names)

    def invalidate(self) -> None:
        self._loaded_at = None
