"""Lexicon provider abstractions."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

from ..matching.lexicon import LexiconEntry


class LexiconProviderError(Exception):
    """The external lexicon could not answer and retrying will not help."""


class TransientLexiconError(LexiconProviderError):
    """The external lexicon failed in a way that may succeed on retry."""


class LexiconProvider(ABC):
    """Supplies ``task -> phrases`` entries for an utterance.

    Implementations must be safe to call concurrently and should return
    semantically equivalent entries for repeated calls with the same utterance.
    """

    @abstractmethod
    async def get_lexicon(self, utterance: str) -> Tuple[LexiconEntry, ...]:
        ...

    async def aclose(self) -> None:
        return None
