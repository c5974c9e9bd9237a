"""Composable resilience policies for calls to the external lexicon.

Each policy runs a zero-argument coroutine function. They nest freely;
the lexicon uses ``fallback(retry(timeout(call)))``::

    policy = wrap(FallbackPolicy(tuple), RetryPolicy(retry_count=3), TimeoutPolicy(1.0))
    entries = await policy.execute(lambda: provider.get_lexicon(utterance))
"""
from __future__ import annotations

import asyncio
import functools
import math
import random
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Type, TypeVar

import structlog

from .lexicon.base import TransientLexiconError
from .matching.lexicon import LexiconEntry
from .observability.events import MatchEvent
from .observability.metrics import LEXICON_ATTEMPT_FAILURES, LEXICON_FALLBACKS

_logger = structlog.get_logger(__name__)

T = TypeVar("T")
Operation = Callable[[], Awaitable[T]]
ExceptionTypes = Tuple[Type[BaseException], ...]


class AttemptTimeoutError(TransientLexiconError, asyncio.TimeoutError):
    """A single attempt ran past its deadline and was abandoned."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"attempt exceeded {seconds:g}s")
        self.seconds = seconds


TRANSIENT_ERRORS: ExceptionTypes = (TransientLexiconError, asyncio.TimeoutError, ConnectionError)


def decorrelated_jitter_backoff(
    median_first_delay: float,
    retry_count: int,
    max_delay: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> List[float]:
    """Delays (seconds) before each retry, spread so concurrent callers do not retry in step.

    Each delay is the increment of ``2**t * tanh(sqrt(4 * t))`` between
    successive jittered points ``t = attempt + U[0, 1)``, scaled so the
    median first delay is roughly ``median_first_delay``.
    """
    if median_first_delay < 0:
        raise ValueError("median_first_delay must not be negative")
    if retry_count < 0:
        raise ValueError("retry_count must not be negative")

    rng = rng or random.Random()
    delays: List[float] = []
    previous = 0.0
    for attempt in range(retry_count):
        t = attempt + rng.random()
        current = 2**t * math.tanh(math.sqrt(4.0 * t))
        delay = (current - previous) / 1.4 * median_first_delay
        previous = current
        if max_delay is not None:
            delay = min(delay, max_delay)
        delays.append(delay)
    return delays


class Policy(ABC):
    """Runs an operation under some failure-handling rule."""

    @abstractmethod
    async def execute(self, operation: Operation[T]) -> T:
        ...


class NoOpPolicy(Policy):
    async def execute(self, operation: Operation[T]) -> T:
        return await operation()


class TimeoutPolicy(Policy):
    """Abandons an attempt that runs longer than ``seconds``."""

    def __init__(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("timeout must be positive")
        self.seconds = seconds

    async def execute(self, operation: Operation[T]) -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=self.seconds)
        except asyncio.TimeoutError as exc:
            if isinstance(exc, AttemptTimeoutError):
                raise
            raise AttemptTimeoutError(self.seconds) from exc


def _log_retry(attempt: int, delay: float, exc: BaseException) -> None:
    error = type(exc).__name__
    LEXICON_ATTEMPT_FAILURES.labels(error=error).inc()
    _logger.warning(MatchEvent.ATTEMPT_FAILED.value, attempt=attempt, delay=round(delay, 4), error=error, message=str(exc))


def _log_fallback(exc: BaseException) -> None:
    error = type(exc).__name__
    LEXICON_FALLBACKS.labels(error=error).inc()
    _logger.error(MatchEvent.FALLBACK.value, error=error, message=str(exc))


class RetryPolicy(Policy):
    """Retries transient failures after jittered, growing delays.

    ``retry_count`` counts retries, so an operation runs at most
    ``retry_count + 1`` times. ``on_retry(attempt, delay, exc)`` is called
    before each wait with the 1-based number of the failed attempt.
    """

    def __init__(
        self,
        retry_count: int = 3,
        median_first_delay: float = 0.15,
        max_delay: Optional[float] = None,
        retry_on: ExceptionTypes = TRANSIENT_ERRORS,
        on_retry: Optional[Callable[[int, float, BaseException], None]] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if retry_count < 0:
            raise ValueError("retry_count must not be negative")
        self.retry_count = retry_count
        self.median_first_delay = median_first_delay
        self.max_delay = max_delay
        self.retry_on = retry_on
        self.on_retry = on_retry or _log_retry
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def execute(self, operation: Operation[T]) -> T:
        delays = decorrelated_jitter_backoff(self.median_first_delay, self.retry_count, self.max_delay, self._rng)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except self.retry_on as exc:
                if attempt > len(delays):
                    raise
                delay = delays[attempt - 1]
                self.on_retry(attempt, delay, exc)
                await self._sleep(delay)


class FallbackPolicy(Policy):
    """Turns a failure into a substitute value built by ``fallback()``."""

    def __init__(
        self,
        fallback: Callable[[], Any],
        handle: ExceptionTypes = (Exception,),
        on_fallback: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self.fallback = fallback
        self.handle = handle
        self.on_fallback = on_fallback or _log_fallback

    async def execute(self, operation: Operation[T]) -> T:
        try:
            return await operation()
        except self.handle as exc:
            self.on_fallback(exc)
            return self.fallback()


class PolicyWrap(Policy):
    """Nests policies; the first one given is the outermost."""

    def __init__(self, *policies: Policy) -> None:
        if not policies:
            raise ValueError("PolicyWrap needs at least one policy")
        self.policies: Sequence[Policy] = policies

    async def execute(self, operation: Operation[T]) -> T:
        call: Operation[T] = operation
        for policy in reversed(self.policies):
            call = functools.partial(policy.execute, call)
        return await call()


def wrap(*policies: Policy) -> PolicyWrap:
    return PolicyWrap(*policies)


def _empty_lexicon() -> Tuple[LexiconEntry, ...]:
    return ()


def create_lexicon_policy(
    attempt_timeout: float = 1.0,
    retry_count: int = 3,
    median_first_delay: float = 0.15,
    max_delay: Optional[float] = None,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PolicyWrap:
    """fallback(retry(timeout)): never raises, answers an empty lexicon when upstream is down."""
    return wrap(
        FallbackPolicy(_empty_lexicon),
        RetryPolicy(
            retry_count=retry_count,
            median_first_delay=median_first_delay,
            max_delay=max_delay,
            rng=rng,
            sleep=sleep,
        ),
        TimeoutPolicy(attempt_timeout),
    )
