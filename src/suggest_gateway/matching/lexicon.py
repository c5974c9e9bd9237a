"""Lexicon value types shared by providers and matchers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

TaskId = str

NO_TASK_FOUND: TaskId = "NoTaskFound"


@dataclass(frozen=True)
class LexiconEntry:
    """One task and the ordered phrases that should trigger it.

    Frozen so a single instance can be cached and read by concurrent requests.
    """

    task: TaskId
    phrases: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of phrases but always store a tuple.
        if not isinstance(self.phrases, tuple):
            object.__setattr__(self, "phrases", tuple(self.phrases))
