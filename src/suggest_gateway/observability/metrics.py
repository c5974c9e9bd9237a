"""Prometheus counters for matching and the external lexicon."""
from __future__ import annotations

from prometheus_client import Counter

MATCH_OUTCOMES = Counter(
    "suggest_match_outcomes_total", "Match results by the tier that produced them", ["tier"]
)
LEXICON_CACHE_LOOKUPS = Counter(
    "suggest_lexicon_cache_lookups_total", "External lexicon cache lookups", ["result"]
)
LEXICON_ATTEMPT_FAILURES = Counter(
    "suggest_lexicon_attempt_failures_total", "Failed external lexicon attempts", ["error"]
)
LEXICON_FALLBACKS = Counter(
    "suggest_lexicon_fallbacks_total", "External lexicon calls answered by the fallback", ["error"]
)


__all__ = ["MATCH_OUTCOMES", "LEXICON_CACHE_LOOKUPS", "LEXICON_ATTEMPT_FAILURES", "LEXICON_FALLBACKS"]
