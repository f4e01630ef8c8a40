"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"


class LLMConfig(BaseModel):
    """Configuration for the language model backend."""

    provider: Literal["openai-compatible", "openrouter", "deepseek", "anthropic", "mock"] = (
        "openai-compatible"
    )
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float | None = None
    context_size: int = 128000
    use_tiktoken: bool = False  # Exact token counts (needs tiktoken encodings)


class WebSearchConfig(BaseModel):
    """Configuration for the web search backend."""

    provider: Literal["tavily", "firecrawl", "mock"] = "tavily"
    api_key: str | None = None
    base_url: str | None = None


class ResearchConfig(BaseModel):
    """Configuration for the research orchestrator."""

    breadth: int = 3
    depth: int = 2
    concurrency_limit: int = 2  # Global, across the whole research tree
    num_learnings: int = 3
    max_search_results: int = 5
    processing_timeout: float = 60.0  # Seconds per result-processing call
    content_token_budget: int = 25000  # Per search result
    report_token_budget: int = 150000  # All learnings in the final report
    num_feedback_questions: int = 3


class ProfileConfig(BaseModel):
    """Configuration profile containing all backend configs."""

    llm: LLMConfig = LLMConfig()
    web_search: WebSearchConfig = WebSearchConfig()
    research: ResearchConfig = ResearchConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Unset variables are left as-is.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    def replacer(match):
        return os.environ.get(match.group(1), match.group(0))

    return re.sub(r"\$\{([^}]+)\}", replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _drop_unexpanded(data):
    """Replace strings that still hold a ${VAR} reference with None."""
    if isinstance(data, dict):
        return {k: _drop_unexpanded(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_drop_unexpanded(item) for item in data]
    elif isinstance(data, str) and re.fullmatch(r"\$\{[^}]+\}", data):
        return None
    return data


def load_profiles(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, ProfileConfig]:
    """Load every profile defined in a YAML config file."""
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = _drop_unexpanded(expand_env_vars_recursive(raw_data))
    return ConfigFile(**expanded_data).profiles


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    profiles = load_profiles(config_path)

    if profile_name not in profiles:
        available = ", ".join(profiles.keys())
        raise KeyError(f"Profile '{profile_name}' not found. Available profiles: {available}")

    return profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Returns:
        ProfileConfig constructed from environment variables
    """
    llm = LLMConfig(
        provider=os.environ.get("LLM_PROVIDER", "openai-compatible"),
        model=os.environ.get("DEFAULT_MODEL"),
        api_key=os.environ.get("OPENAI_API_KEY"),
        base_url=os.environ.get("OPENAI_BASE_URL"),
    )

    web_search = WebSearchConfig(
        provider=os.environ.get("WEB_SEARCH_PROVIDER", "tavily"),
    )

    return ProfileConfig(llm=llm, web_search=web_search, research=ResearchConfig())


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    Tries the YAML config file first and falls back to environment
    variables if the file doesn't exist or can't be loaded.

    Args:
        profile: Profile name to load. If None, uses RESEARCH_PROFILE env var
                or "default".
        config_path: Path to config file. If None, uses the profiles.yaml
                    shipped with the package.

    Returns:
        ProfileConfig with all backend configurations
    """
    if profile is None:
        profile = os.environ.get("RESEARCH_PROFILE", "default")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            return load_config_from_yaml(config_path, profile)
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.warning("Falling back to environment variables")
            return load_config_from_env()
    else:
        logger.info(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()
