"""Read-through cache with fresh and stale tiers around a lexicon provider.

A *fresh* record is served without touching the provider. Once it ages out
the provider is called again; if that call fails, a *stale* record (kept
much longer) is served as the last known good answer instead.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import structlog

from ..matching.lexicon import LexiconEntry
from ..matching.normalizer import normalize
from ..observability.events import MatchEvent
from ..observability.metrics import LEXICON_CACHE_LOOKUPS
from .base import LexiconProvider

_logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: Tuple[LexiconEntry, ...]
    fresh_until: float
    stale_until: float


class CachedLexiconProvider(LexiconProvider):
    """Decorates another provider; keys are normalized utterances."""

    def __init__(
        self,
        inner: LexiconProvider,
        fresh_ttl: float = 300.0,
        stale_ttl: float = 3600.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if stale_ttl < fresh_ttl:
            raise ValueError("stale_ttl must be greater than or equal to fresh_ttl")
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.inner = inner
        self.fresh_ttl = fresh_ttl
        self.stale_ttl = stale_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._store)

    def _lookup(self, key: str, now: float) -> Optional[CacheEntry]:
        entry = self._store.get(key)
        if entry is not None and entry.stale_until <= now:
            # Lazy eviction.
            self._store.pop(key, None)
            return None
        return entry

    def _write(self, key: str, value: Tuple[LexiconEntry, ...], now: float) -> None:
        # One record carries both tiers, so they are replaced together.
        self._store.pop(key, None)
        self._store[key] = CacheEntry(value=value, fresh_until=now + self.fresh_ttl, stale_until=now + self.stale_ttl)
        while len(self._store) > self.max_entries:
            oldest = next(iter(self._store))
            del self._store[oldest]

    async def get_lexicon(self, utterance: str) -> Tuple[LexiconEntry, ...]:
        key = normalize(utterance)
        now = self._clock()
        entry = self._lookup(key, now)
        if entry is not None and entry.fresh_until > now:
            LEXICON_CACHE_LOOKUPS.labels(result="fresh").inc()
            _logger.debug(MatchEvent.CACHE_FRESH_HIT.value, key=key)
            return entry.value

        LEXICON_CACHE_LOOKUPS.labels(result="miss").inc()
        try:
            result = tuple(await self.inner.get_lexicon(utterance))
        except Exception as exc:
            stale = self._lookup(key, self._clock())
            if stale is None:
                raise
            LEXICON_CACHE_LOOKUPS.labels(result="stale").inc()
            _logger.warning(MatchEvent.CACHE_STALE_SERVED.value, key=key, error=type(exc).__name__)
            return stale.value

        self._write(key, result, self._clock())
        return result

    async def aclose(self) -> None:
        await self.inner.aclose()
