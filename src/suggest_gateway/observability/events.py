"""Catalog of structured event names emitted across the gateway."""
from __future__ import annotations

from enum import Enum


class MatchEvent(str, Enum):
    INTERNAL_MATCH = "match.internal"
    EXTERNAL_MATCH = "match.external"
    NO_MATCH = "match.none"
    ATTEMPT_FAILED = "lexicon.attempt_failed"
    FALLBACK = "lexicon.fallback"
    CACHE_FRESH_HIT = "lexicon.cache_fresh_hit"
    CACHE_STALE_SERVED = "lexicon.cache_stale_served"


class RequestEvent(str, Enum):
    STARTED = "request.started"
    COMPLETED = "request.completed"
    FAILED = "request.failed"
    VALIDATION_FAILED = "request.validation_failed"
    UNHANDLED_ERROR = "request.unhandled_error"
    ENRICHED = "request.enriched"
