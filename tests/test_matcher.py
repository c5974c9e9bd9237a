import asyncio

import pytest

from suggest_gateway.lexicon.base import LexiconProviderError, TransientLexiconError
from suggest_gateway.lexicon.cached import CachedLexiconProvider
from suggest_gateway.lexicon.simulated import SimulatedLexiconProvider
from suggest_gateway.matching.keyword import KeywordTaskMatcher
from suggest_gateway.matching.lexicon import NO_TASK_FOUND, LexiconEntry
from suggest_gateway.matching.matcher import TwoTierTaskMatcher, find_in_lexicon
from suggest_gateway.resilience import NoOpPolicy, PolicyWrap, RetryPolicy, create_lexicon_policy

from .conftest import ORDER_ENTRY, RESET_ENTRY, ScriptedProvider


def two_tier(provider, policy=None):
    return TwoTierTaskMatcher(provider, policy=policy or NoOpPolicy())


@pytest.mark.asyncio
async def test_internal_map_matches_without_external_call():
    external = ScriptedProvider(default=RuntimeError("external must not be called"))
    matcher = two_tier(external)

    assert await matcher.match("I FORGOT my password!!") == "ResetPasswordTask"
    assert external.calls == []


@pytest.mark.asyncio
async def test_internal_map_wins_over_external_data():
    external = ScriptedProvider(default=[LexiconEntry("SomethingElseTask", ("track order",))])
    matcher = two_tier(external)

    assert await matcher.match("please TRACK ORDER 42") == "CheckOrderStatusTask"
    assert external.calls == []


@pytest.mark.asyncio
async def test_external_lexicon_matches_when_internal_misses():
    utterance = "pls chek order asap"
    external = ScriptedProvider([ORDER_ENTRY])
    matcher = two_tier(external)

    assert await matcher.match(utterance) == "CheckOrderStatusTask"
    assert external.calls == [utterance]


@pytest.mark.asyncio
async def test_no_match_returns_sentinel():
    external = ScriptedProvider([])
    matcher = two_tier(external)

    assert await matcher.match("how to open a new account") == NO_TASK_FOUND
    assert len(external.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("utterance", [None, "", "   ", "\n\t"])
async def test_blank_utterance_returns_sentinel_without_external_call(utterance):
    external = ScriptedProvider(default=RuntimeError("external must not be called"))
    matcher = two_tier(external)

    assert await matcher.match(utterance) == NO_TASK_FOUND
    assert external.calls == []


@pytest.mark.asyncio
async def test_retry_then_success_calls_provider_failures_plus_one_times(sleep):
    utterance = "chek order please"
    external = ScriptedProvider(
        TransientLexiconError("transient-1"),
        TransientLexiconError("transient-2"),
        [LexiconEntry("CheckOrderStatusTask", ("chek order", "check order"))],
    )
    matcher = two_tier(external, RetryPolicy(retry_count=2, median_first_delay=0.001, sleep=sleep))

    assert await matcher.match(utterance) == "CheckOrderStatusTask"
    assert external.calls == [utterance] * 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_always_failing_provider_falls_back_to_sentinel(sleep):
    external = ScriptedProvider(default=TransientLexiconError("down"))
    matcher = two_tier(external, create_lexicon_policy(retry_count=3, sleep=sleep))

    assert await matcher.match("pls chek order asap") == NO_TASK_FOUND
    assert len(external.calls) == 4


@pytest.mark.asyncio
async def test_non_transient_failure_falls_back_without_retry(sleep):
    external = ScriptedProvider(default=LexiconProviderError("bad request"))
    matcher = two_tier(external, create_lexicon_policy(retry_count=3, sleep=sleep))

    assert await matcher.match("pls chek order asap") == NO_TASK_FOUND
    assert len(external.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_failing_provider_still_allows_internal_match(sleep):
    external = ScriptedProvider(default=TransientLexiconError("down"))
    matcher = two_tier(external, create_lexicon_policy(sleep=sleep))

    assert await matcher.match("where is my order??") == "CheckOrderStatusTask"
    assert external.calls == []


@pytest.mark.asyncio
async def test_errors_not_handled_by_policy_propagate():
    external = ScriptedProvider(default=TransientLexiconError("down"))
    matcher = two_tier(external, NoOpPolicy())

    with pytest.raises(TransientLexiconError):
        await matcher.match("pls chek order asap")


@pytest.mark.asyncio
async def test_cached_provider_is_called_once_for_repeated_utterance():
    external = ScriptedProvider(default=[ORDER_ENTRY])
    matcher = two_tier(CachedLexiconProvider(external))

    first = await matcher.match("chek order asap")
    second = await matcher.match("chek order asap")

    assert first == second == "CheckOrderStatusTask"
    assert len(external.calls) == 1


@pytest.mark.asyncio
async def test_match_is_idempotent():
    external = ScriptedProvider(default=[RESET_ENTRY, ORDER_ENTRY])
    matcher = two_tier(external)

    results = {await matcher.match("i need to chek order 7") for _ in range(3)}
    assert results == {"CheckOrderStatusTask"}


@pytest.mark.asyncio
async def test_external_phrases_are_normalized_before_comparison():
    external = ScriptedProvider([[LexiconEntry("CheckOrderStatusTask", ("  Chék   ORDER ",))]])
    matcher = two_tier(external)

    assert await matcher.match("could you chek order 12") == "CheckOrderStatusTask"


@pytest.mark.asyncio
async def test_internal_keys_are_matched_in_order():
    matcher = KeywordTaskMatcher([("order", "FirstTask"), ("check order", "SecondTask")])

    assert await matcher.match("check order") == "FirstTask"
    assert matcher.find("nothing here") is None
    assert await matcher.match("   ") == NO_TASK_FOUND


def test_external_entries_are_matched_in_entry_then_phrase_order():
    entries = [
        LexiconEntry("FirstTask", ("zzz", "foo")),
        LexiconEntry("SecondTask", ("foo bar",)),
    ]

    assert find_in_lexicon("foo bar baz", entries) == ("FirstTask", "foo")
    assert find_in_lexicon("nothing", entries) is None


def test_default_policy_is_the_composed_lexicon_policy():
    matcher = TwoTierTaskMatcher(ScriptedProvider())

    assert isinstance(matcher.policy, PolicyWrap)


@pytest.mark.asyncio
async def test_concurrent_matches_share_the_cache():
    provider = CachedLexiconProvider(SimulatedLexiconProvider(latency=0.01))
    matcher = TwoTierTaskMatcher(provider, policy=create_lexicon_policy())

    results = await asyncio.gather(*(matcher.match("where is my shipmet") for _ in range(20)))

    assert set(results) == {"CheckOrderStatusTask"}
    assert len(provider) == 1
