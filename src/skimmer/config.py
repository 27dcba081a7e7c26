"""Skimmer configuration — loads environment variables into a typed singleton.

Usage:
    from skimmer.config import config
    print(config.model_name)

Model credentials are deliberately *not* required here: the completion relay
checks for the active provider's key before its first call and raises
``ConfigError`` when it is missing.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROVIDERS = ("openai", "anthropic")

_DEFAULT_MODELS = {
    "openai": "gpt-4.1",
    "anthropic": "claude-3-5-sonnet-20240620",
}


def _find_env_file() -> Path | None:
    """Search for .env file starting from the project root, then the working directory."""
    current = Path(__file__).resolve().parent.parent.parent  # project root (above src/)
    candidates = [
        current / ".env",
        Path.cwd() / ".env",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    # Deployment environment (development / production)
    environment: str

    # Completion provider and model
    llm_provider: str
    model_name: str

    # Provider credentials (validated lazily by the relay)
    openai_api_key: str
    openai_base_url: str
    anthropic_api_key: str

    # Timeouts in seconds
    fetch_timeout: float = 15.0
    completion_timeout: float = 120.0

    # Article text budget passed to the model
    max_article_chars: int = 100_000

    @property
    def model_api_key(self) -> str:
        """Return the API key of the active provider (empty if unset)."""
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _load_config() -> Config:
    """Load and validate configuration from environment."""
    env_file = _find_env_file()
    if env_file:
        load_dotenv(env_file, override=False)

    provider = os.environ.get("LLM_PROVIDER", "openai").strip().lower()
    if provider not in PROVIDERS:
        print(
            f"Error: Unsupported LLM_PROVIDER {provider!r} (expected one of: {', '.join(PROVIDERS)})",
            file=sys.stderr,
        )
        sys.exit(1)

    return Config(
        environment=os.environ.get("APP_ENV", "development"),
        llm_provider=provider,
        model_name=os.environ.get("MODEL_NAME") or _DEFAULT_MODELS[provider],
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        openai_base_url=os.environ.get("OPENAI_BASE_URL", ""),
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        fetch_timeout=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "15")),
        completion_timeout=float(os.environ.get("COMPLETION_TIMEOUT_SECONDS", "120")),
        max_article_chars=int(os.environ.get("MAX_ARTICLE_CHARS", "100000")),
    )


# Singleton, imported as `from skimmer.config import config`
config = _load_config()
