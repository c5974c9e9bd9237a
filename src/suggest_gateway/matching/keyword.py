"""Internal keyword map: the fast, always-available matching tier."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import structlog

from ..observability.events import MatchEvent
from ..observability.metrics import MATCH_OUTCOMES
from .lexicon import NO_TASK_FOUND, TaskId
from .normalizer import normalize

_logger = structlog.get_logger(__name__)

# Ordered on purpose: keys can overlap under substring matching, first key wins.
INTERNAL_MAP: Tuple[Tuple[str, TaskId], ...] = (
    # Password
    ("reset password", "ResetPasswordTask"),
    ("forgot password", "ResetPasswordTask"),
    ("i forgot my password", "ResetPasswordTask"),
    ("password reset", "ResetPasswordTask"),
    ("change my password", "ResetPasswordTask"),
    ("pass code", "ResetPasswordTask"),
    ("reset my pass", "ResetPasswordTask"),
    # Order
    ("check order", "CheckOrderStatusTask"),
    ("track order", "CheckOrderStatusTask"),
    ("where is my order", "CheckOrderStatusTask"),
    ("order status", "CheckOrderStatusTask"),
    ("track my package", "CheckOrderStatusTask"),
    ("delivery status", "CheckOrderStatusTask"),
    ("shipping status", "CheckOrderStatusTask"),
    ("parcel", "CheckOrderStatusTask"),
)


class KeywordTaskMatcher:
    """Substring lookup over an ordered list of ``(key, task)`` pairs. Never does I/O."""

    def __init__(self, keywords: Sequence[Tuple[str, TaskId]] = INTERNAL_MAP) -> None:
        self._keywords: list[tuple[str, str, TaskId]] = []
        for key, task in keywords:
            normalized = normalize(key)
            if normalized:
                self._keywords.append((normalized, key, task))

    def find(self, normalized_utterance: str) -> Optional[tuple[TaskId, str]]:
        """Return ``(task, key)`` for the first key contained in the utterance."""
        if not normalized_utterance:
            return None
        for normalized_key, key, task in self._keywords:
            if normalized_key in normalized_utterance:
                return task, key
        return None

    async def match(self, utterance: Optional[str]) -> TaskId:
        hit = self.find(normalize(utterance))
        if hit is None:
            MATCH_OUTCOMES.labels(tier="none").inc()
            _logger.info(MatchEvent.NO_MATCH.value)
            return NO_TASK_FOUND
        task, key = hit
        MATCH_OUTCOMES.labels(tier="internal").inc()
        _logger.info(MatchEvent.INTERNAL_MATCH.value, task=task, key=key)
        return task
