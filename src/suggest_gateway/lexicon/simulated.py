"""Simulated external lexicon provider.

Returns a richer phrase set per task (core keys, colloquial variants and
common misspellings) and can be told to fail or stall to exercise the
timeout, retry and cache behaviour around it.
"""
from __future__ import annotations

import asyncio
import random
from typing import Iterable, Optional, Protocol, Tuple

import structlog

from ..matching.lexicon import LexiconEntry
from ..matching.normalizer import normalize
from .base import LexiconProvider, TransientLexiconError

_logger = structlog.get_logger(__name__)

RESET_PASSWORD_PHRASES = (
    # core
    "reset password",
    "forgot password",
    # variants
    "i forgot my password",
    "password reset",
    "change my password",
    "resetting my password",
    "reset my pass",
    "recover my account",
    "account recovery",
    "cant login to my account",
    "can't log in to my account",
    "cant log into my account",
    "can't log into my account",
    "pass code",
    "passcode",
    # typos
    "reser password",
    "rest password",
    "reset pasword",
    "reset passwrod",
    "forgor password",
    "forgot pasword",
    "forgot passwrod",
    "i fogrot my password",
    "pssword reset",
    "pass codee",
)

CHECK_ORDER_PHRASES = (
    # core
    "check order",
    "track order",
    # variants
    "where is my order",
    "order status",
    "track my package",
    "package status",
    "delivery status",
    "shipping status",
    "parcel",
    "track shipment",
    "where is my shipment",
    "tracking number",
    # typos
    "chek order",
    "check oder",
    "chcek order",
    "trak order",
    "trakc order",
    "tarck order",
    "track orde",
    "track pacakge",
    "pakage status",
    "shiping status",
    "delivary status",
    "parsel",
    "traking number",
    "where is my shipmet",
)


def _normalized_unique(phrases: Iterable[str]) -> Tuple[str, ...]:
    seen: dict[str, None] = {}
    for phrase in phrases:
        normalized = normalize(phrase)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


DEFAULT_LEXICON: Tuple[LexiconEntry, ...] = (
    LexiconEntry("ResetPasswordTask", _normalized_unique(RESET_PASSWORD_PHRASES)),
    LexiconEntry("CheckOrderStatusTask", _normalized_unique(CHECK_ORDER_PHRASES)),
)


class FailureInjector(Protocol):
    def should_fail(self) -> bool:
        ...


class NoFailures:
    def should_fail(self) -> bool:
        return False


class RandomFailureInjector:
    """Fails a fixed fraction of calls."""

    def __init__(self, rate: float = 0.3, rng: Optional[random.Random] = None) -> None:
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"failure rate must be within [0, 1], got {rate}")
        self.rate = rate
        self._rng = rng or random.Random()

    def should_fail(self) -> bool:
        return self._rng.random() < self.rate


class SimulatedLexiconProvider(LexiconProvider):
    """In-process stand-in for a remote lexicon service."""

    def __init__(
        self,
        entries: Tuple[LexiconEntry, ...] = DEFAULT_LEXICON,
        failures: Optional[FailureInjector] = None,
        latency: float = 0.0,
    ) -> None:
        self.entries = entries
        self.failures = failures or NoFailures()
        self.latency = latency

    async def get_lexicon(self, utterance: str) -> Tuple[LexiconEntry, ...]:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        if self.failures.should_fail():
            _logger.debug("simulated lexicon failure")
            raise TransientLexiconError("External lexicon failed (simulated).")
        return self.entries
