# /llmrouter/config/settings.py

import logging
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from llmrouter.models.llm import LLMProvider

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App Behavior
    environment: str = Field(default="production")
    api_version: str = "v1"
    workers: int = 4

    # Provider credentials (server side; the proxy never accepts keys from callers)
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None

    # Provider selection
    default_provider: LLMProvider = LLMProvider.CLAUDE
    claude_model: str = "claude-3-5-sonnet-20240620"
    openai_model: str = "gpt-4"

    # Upstream endpoints
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_version: str = "2023-06-01"
    openai_base_url: str = "https://api.openai.com/v1"

    # Generation defaults
    default_temperature: float = 0.7
    default_max_tokens: int = 2000

    # Networking. None disables the timeout entirely.
    http_timeout: float | None = None
    proxy_connect_retries: int = 3
    proxy_retry_wait_seconds: float = 1.0

    # Flow persistence
    flows_storage_path: str = "data/flows.json"
    flows_storage_prefix: str = "chatbot_flows_"

    # Comma-separated list of allowed origins
    cors_allowed_origins: str = "*"

    # ---------------- Validators ---------------- #

    @field_validator("environment")
    @classmethod
    def environment_must_be_known(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"development", "test", "staging", "production"}:
            raise ValueError(f"Unknown ENVIRONMENT '{v}'")
        return v

    @field_validator("default_provider", mode="before")
    @classmethod
    def normalize_default_provider(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def get_api_key(self, provider: LLMProvider) -> str | None:
        if provider == LLMProvider.CLAUDE:
            return self.anthropic_api_key
        return self.openai_api_key

    def get_model(self, provider: LLMProvider) -> str:
        if provider == LLMProvider.CLAUDE:
            return self.claude_model
        return self.openai_model

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def validate_environment(settings_obj: Settings) -> Settings:
    """Log configuration problems that leave the service degraded but still bootable."""
    if not settings_obj.anthropic_api_key and not settings_obj.openai_api_key:
        logger.warning("No provider API key configured; chat and flow endpoints will fail until one is set.")
    elif not settings_obj.get_api_key(settings_obj.default_provider):
        logger.warning(
            f"Default provider '{settings_obj.default_provider.value}' has no API key; "
            "falling back to the other provider."
        )
    return settings_obj


settings = Settings()
