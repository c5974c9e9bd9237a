"""External lexicon providers and the caching decorator around them."""
from __future__ import annotations

from .base import LexiconProvider, LexiconProviderError, TransientLexiconError
from .cached import CachedLexiconProvider
from .http import HttpLexiconProvider
from .simulated import NoFailures, RandomFailureInjector, SimulatedLexiconProvider

__all__ = [
    "CachedLexiconProvider",
    "HttpLexiconProvider",
    "LexiconProvider",
    "LexiconProviderError",
    "NoFailures",
    "RandomFailureInjector",
    "SimulatedLexiconProvider",
    "TransientLexiconError",
]
