import pytest

from suggest_gateway.config import Settings
from suggest_gateway.dependencies import build_matcher, build_provider
from suggest_gateway.lexicon.cached import CachedLexiconProvider
from suggest_gateway.lexicon.http import HttpLexiconProvider
from suggest_gateway.lexicon.simulated import SimulatedLexiconProvider
from suggest_gateway.matching.keyword import KeywordTaskMatcher
from suggest_gateway.matching.matcher import TwoTierTaskMatcher


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("SUGGEST_RETRY_COUNT", "5")
    monkeypatch.setenv("SUGGEST_MATCHER_MODE", "keyword")

    settings = Settings()

    assert settings.retry_count == 5
    assert settings.matcher_mode == "keyword"
    assert settings.attempt_timeout_seconds == 1.0
    assert settings.cache_stale_ttl_seconds >= settings.cache_fresh_ttl_seconds


def test_default_wiring_is_cached_simulated_two_tier():
    settings = Settings(simulated_failure_rate=0.0, cache_fresh_ttl_seconds=10, cache_stale_ttl_seconds=20)
    matcher = build_matcher(settings)

    assert isinstance(matcher, TwoTierTaskMatcher)
    assert isinstance(matcher.external, CachedLexiconProvider)
    assert isinstance(matcher.external.inner, SimulatedLexiconProvider)
    assert matcher.external.fresh_ttl == 10


def test_keyword_mode_has_no_external_tier():
    assert isinstance(build_matcher(Settings(matcher_mode="keyword")), KeywordTaskMatcher)


@pytest.mark.asyncio
async def test_http_backend_requires_base_url():
    with pytest.raises(ValueError):
        build_provider(Settings(lexicon_backend="http"))

    provider = build_provider(Settings(lexicon_backend="http", lexicon_base_url="http://lexicon.test"))
    assert isinstance(provider.inner, HttpLexiconProvider)
    await provider.aclose()


@pytest.mark.asyncio
async def test_wired_matcher_answers_from_simulated_lexicon():
    matcher = build_matcher(Settings(simulated_failure_rate=0.0))

    assert await matcher.match("I need the traking number") == "CheckOrderStatusTask"
