"""Wiring of provider, cache, policy and matcher from settings."""
from __future__ import annotations

from typing import Optional

from .config import Settings
from .lexicon.base import LexiconProvider
from .lexicon.cached import CachedLexiconProvider
from .lexicon.http import HttpLexiconProvider
from .lexicon.simulated import RandomFailureInjector, SimulatedLexiconProvider
from .matching.keyword import KeywordTaskMatcher
from .matching.matcher import TaskMatcher, TwoTierTaskMatcher
from .resilience import create_lexicon_policy


def build_provider(settings: Settings) -> LexiconProvider:
    """Raw external provider wrapped in the fresh/stale cache."""
    inner: LexiconProvider
    if settings.lexicon_backend == "http":
        if not settings.lexicon_base_url:
            raise ValueError("SUGGEST_LEXICON_BASE_URL is required when lexicon_backend is 'http'")
        inner = HttpLexiconProvider(settings.lexicon_base_url, timeout=settings.lexicon_http_timeout)
    elif settings.lexicon_backend == "simulated":
        inner = SimulatedLexiconProvider(
            failures=RandomFailureInjector(settings.simulated_failure_rate),
            latency=settings.simulated_latency_seconds,
        )
    else:
        raise ValueError(f"Unsupported lexicon backend: {settings.lexicon_backend}")
    return CachedLexiconProvider(
        inner,
        fresh_ttl=settings.cache_fresh_ttl_seconds,
        stale_ttl=settings.cache_stale_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )


def build_matcher(settings: Settings, provider: Optional[LexiconProvider] = None) -> TaskMatcher:
    if settings.matcher_mode == "keyword":
        return KeywordTaskMatcher()
    policy = create_lexicon_policy(
        attempt_timeout=settings.attempt_timeout_seconds,
        retry_count=settings.retry_count,
        median_first_delay=settings.retry_median_first_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )
    return TwoTierTaskMatcher(provider or build_provider(settings), policy=policy)
