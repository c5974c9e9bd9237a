"""Utterance normalization and the internal keyword tier.

The two-tier matcher lives in :mod:`suggest_gateway.matching.matcher`.
"""
from __future__ import annotations

from .keyword import INTERNAL_MAP, KeywordTaskMatcher
from .lexicon import NO_TASK_FOUND, LexiconEntry, TaskId
from .normalizer import normalize

__all__ = [
    "INTERNAL_MAP",
    "KeywordTaskMatcher",
    "LexiconEntry",
    "NO_TASK_FOUND",
    "TaskId",
    "normalize",
]
