from __future__ import annotations

from typing import Any, List

import pytest

from suggest_gateway.lexicon.base import LexiconProvider
from suggest_gateway.matching.lexicon import LexiconEntry


class ScriptedProvider(LexiconProvider):
    """Plays back scripted outcomes (entries or exceptions) and records every call."""

    def __init__(self, *outcomes: Any, default: Any = ()) -> None:
        self.calls: List[str] = []
        self._outcomes = list(outcomes)
        self._default = default

    async def get_lexicon(self, utterance: str):
        self.calls.append(utterance)
        outcome = self._outcomes.pop(0) if self._outcomes else self._default
        if isinstance(outcome, BaseException):
            raise outcome
        return tuple(outcome)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


ORDER_ENTRY = LexiconEntry("CheckOrderStatusTask", ("check order", "chek order", "order status"))
RESET_ENTRY = LexiconEntry("ResetPasswordTask", ("reset password", "forgot password", "i forgot my password"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1000.0)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
