"""Configuration module for provider profiles."""

from .loader import (
    ConfigFile,
    LLMConfig,
    ProfileConfig,
    ResearchConfig,
    WebSearchConfig,
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    load_profiles,
)
from .factory import (
    MockLLMProvider,
    MockSearchProvider,
    create_feedback_generator,
    create_from_profile,
    create_llm_provider,
    create_report_synthesizer,
    create_researcher,
    create_search_provider,
    create_token_estimator,
)

__all__ = [
    # Loader
    "ConfigFile",
    "LLMConfig",
    "ProfileConfig",
    "ResearchConfig",
    "WebSearchConfig",
    "load_config",
    "load_config_from_env",
    "load_config_from_yaml",
    "load_profiles",
    # Factory
    "MockLLMProvider",
    "MockSearchProvider",
    "create_feedback_generator",
    "create_from_profile",
    "create_llm_provider",
    "create_report_synthesizer",
    "create_researcher",
    "create_search_provider",
    "create_token_estimator",
]
