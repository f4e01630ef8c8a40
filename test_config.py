"""
Configuration System Tests

Tests for the YAML profile loader and factory functions.
"""

import asyncio
from pathlib import Path

import pytest

from deep_research.config import (
    MockLLMProvider,
    MockSearchProvider,
    ResearchConfig,
    create_feedback_generator,
    create_from_profile,
    create_llm_provider,
    create_search_provider,
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    load_profiles,
)
from deep_research.config.loader import DEFAULT_CONFIG_PATH, LLMConfig, WebSearchConfig


def test_load_config_from_yaml():
    """Shipped profiles load and validate."""
    print("=" * 60)
    print("TEST 1: Load configuration from YAML")
    print("=" * 60)

    profile = load_config_from_yaml(DEFAULT_CONFIG_PATH, "test")
    print(f"\nLoaded profile: test")
    print(f"  LLM provider: {profile.llm.provider}")
    print(f"  Search provider: {profile.web_search.provider}")

    assert profile.llm.provider == "mock"
    assert profile.web_search.provider == "mock"
    assert profile.research.breadth == 2
    print("\n[PASS] test profile loaded correctly")

    profile = load_config_from_yaml(DEFAULT_CONFIG_PATH, "openrouter")
    assert profile.llm.provider == "openrouter"
    assert profile.llm.model == "deepseek/deepseek-r1"
    print("[PASS] openrouter profile loaded correctly")

    assert {"default", "openrouter", "deepseek", "anthropic", "test"} <= set(load_profiles())


def test_unknown_profile_raises():
    with pytest.raises(KeyError, match="Available profiles"):
        load_config_from_yaml(DEFAULT_CONFIG_PATH, "does-not-exist")


def test_env_var_expansion(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("MY_SEARCH_KEY", "tvly-from-env")
    monkeypatch.delenv("UNSET_MODEL_VAR", raising=False)

    config_path = tmp_path / "profiles.yaml"
    config_path.write_text(
        "profiles:\n"
        "  custom:\n"
        "    llm:\n"
        "      provider: deepseek\n"
        "      model: ${UNSET_MODEL_VAR}\n"
        "    web_search:\n"
        "      provider: tavily\n"
        "      api_key: ${MY_SEARCH_KEY}\n"
        "    research:\n"
        "      breadth: 5\n"
    )

    profile = load_config_from_yaml(config_path, "custom")
    assert profile.web_search.api_key == "tvly-from-env"
    assert profile.llm.model is None
    assert profile.research.breadth == 5
    assert profile.research.depth == 2


def test_research_defaults():
    config = ResearchConfig()
    assert config.breadth == 3
    assert config.depth == 2
    assert config.concurrency_limit == 2
    assert config.num_learnings == 3
    assert config.max_search_results == 5
    assert config.processing_timeout == 60.0
    assert config.content_token_budget == 25000
    assert config.report_token_budget == 150000


def test_load_config_env_fallback(monkeypatch):
    """Environment variables are used when no config file exists."""
    monkeypatch.setenv("LLM_PROVIDER", "deepseek")
    monkeypatch.delenv("WEB_SEARCH_PROVIDER", raising=False)

    profile = load_config_from_env()
    assert profile.llm.provider == "deepseek"
    assert profile.web_search.provider == "tavily"

    profile = load_config(config_path=Path("/nonexistent/profiles.yaml"))
    assert profile.llm.provider == "deepseek"


def test_load_config_uses_profile_env_var(monkeypatch):
    monkeypatch.setenv("RESEARCH_PROFILE", "test")
    assert load_config().llm.provider == "mock"


def test_factory_creates_mocks():
    profile = load_config(profile="test")

    assert isinstance(create_llm_provider(profile.llm), MockLLMProvider)
    assert isinstance(create_search_provider(profile.web_search), MockSearchProvider)


def test_factory_creates_real_adapters():
    from deep_research.llm import DeepSeekAdapter
    from deep_research.web_search import FirecrawlAdapter

    llm = create_llm_provider(LLMConfig(provider="deepseek", api_key="sk-test"))
    assert isinstance(llm, DeepSeekAdapter)
    assert llm.model == "deepseek-reasoner"
    assert llm.base_url == "https://api.deepseek.com/v1"

    search = create_search_provider(WebSearchConfig(provider="firecrawl", api_key="fc-test"))
    assert isinstance(search, FirecrawlAdapter)


def test_create_from_profile_runs_research():
    """All backends from the test profile work together."""
    print("\n" + "=" * 60)
    print("TEST: Factory - create_from_profile")
    print("=" * 60)

    profile = load_config(profile="test")
    llm, search, researcher, synthesizer = create_from_profile(profile)

    # Report budget never exceeds the model context
    assert synthesizer.token_budget == int(profile.llm.context_size * 0.8)

    async def run():
        async with llm, search:
            result = await researcher.research("test topic", breadth=2, max_depth=1)
            questions = await create_feedback_generator(llm).generate("test topic", 2)
            return result, questions

    result, questions = asyncio.run(run())
    print(f"\nLearnings: {len(result.learnings)}")
    print(f"Questions: {questions}")

    assert len(result.learnings) == 4
    assert len(questions) == 2
    print("\n[PASS] create_from_profile works correctly")


def test_factory_rejects_unknown_provider():
    from deep_research.errors import ConfigurationError

    with pytest.raises(ConfigurationError):
        create_llm_provider(LLMConfig.model_construct(provider="carrier-pigeon"))
