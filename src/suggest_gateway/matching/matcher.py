"""Two-tier matching strategy.

1. Internal keyword map: fast, always available, no I/O.
2. External lexicon, called through a resilience policy (timeout, retry,
   fallback) around a cached provider.

If neither tier matches the answer is ``NO_TASK_FOUND``.
"""
from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

import structlog

from ..lexicon.base import LexiconProvider
from ..observability.events import MatchEvent
from ..observability.metrics import MATCH_OUTCOMES
from ..resilience import Policy, create_lexicon_policy
from .keyword import INTERNAL_MAP, KeywordTaskMatcher
from .lexicon import NO_TASK_FOUND, LexiconEntry, TaskId
from .normalizer import normalize

_logger = structlog.get_logger(__name__)


class TaskMatcher(Protocol):
    async def match(self, utterance: Optional[str]) -> TaskId:
        ...


def find_in_lexicon(normalized_utterance: str, entries: Sequence[LexiconEntry]) -> Optional[Tuple[TaskId, str]]:
    """First ``(task, phrase)`` whose phrase the utterance contains, in entry then phrase order."""
    for entry in entries:
        for phrase in entry.phrases:
            # Providers normalize already; normalize again so comparison stays symmetric.
            normalized = normalize(phrase)
            if normalized and normalized in normalized_utterance:
                return entry.task, phrase
    return None


class TwoTierTaskMatcher:
    """Matches against the internal map first and the external lexicon on a miss.

    The matcher holds no mutable state; anything shared between calls lives
    in the provider it is given (usually a cache). Errors the policy lets
    through propagate to the caller.
    """

    def __init__(
        self,
        external: LexiconProvider,
        policy: Optional[Policy] = None,
        internal: Optional[KeywordTaskMatcher] = None,
    ) -> None:
        self.external = external
        self.policy = policy or create_lexicon_policy()
        self.internal = internal or KeywordTaskMatcher(INTERNAL_MAP)

    async def match(self, utterance: Optional[str]) -> TaskId:
        normalized = normalize(utterance)
        if not normalized:
            MATCH_OUTCOMES.labels(tier="none").inc()
            _logger.info(MatchEvent.NO_MATCH.value, reason="empty")
            return NO_TASK_FOUND
        _logger.debug("utterance normalized", normalized=normalized)

        hit = self.internal.find(normalized)
        if hit is not None:
            task, key = hit
            MATCH_OUTCOMES.labels(tier="internal").inc()
            _logger.info(MatchEvent.INTERNAL_MATCH.value, task=task, key=key)
            return task

        # Providers key and normalize on their own, so pass the raw utterance.
        raw = utterance or ""
        entries = await self.policy.execute(lambda: self.external.get_lexicon(raw))

        hit = find_in_lexicon(normalized, entries)
        if hit is not None:
            task, phrase = hit
            MATCH_OUTCOMES.labels(tier="external").inc()
            _logger.info(MatchEvent.EXTERNAL_MATCH.value, task=task, phrase=phrase)
            return task

        MATCH_OUTCOMES.labels(tier="none").inc()
        _logger.info(MatchEvent.NO_MATCH.value, reason="no_phrase")
        return NO_TASK_FOUND
