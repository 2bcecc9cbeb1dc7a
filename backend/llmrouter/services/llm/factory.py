# /llmrouter/services/llm/factory.py

import logging
from typing import Callable, Dict, Optional

import httpx

from llmrouter.config.settings import Settings
from llmrouter.models.llm import LLMProvider
from llmrouter.services.llm.base import LLMClient
from llmrouter.services.llm.claude_client import ClaudeClient
from llmrouter.services.llm.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

ClientBuilder = Callable[[Settings, Optional[str], Optional[httpx.AsyncClient]], LLMClient]


def _build_claude(settings_obj: Settings, model: Optional[str], http_client: Optional[httpx.AsyncClient]) -> LLMClient:
    return ClaudeClient(
        api_key=settings_obj.anthropic_api_key,
        model=model or settings_obj.claude_model,
        base_url=settings_obj.anthropic_base_url,
        anthropic_version=settings_obj.anthropic_version,
        http_client=http_client,
        timeout=settings_obj.http_timeout,
    )


def _build_openai(settings_obj: Settings, model: Optional[str], http_client: Optional[httpx.AsyncClient]) -> LLMClient:
    return OpenAIClient(
        api_key=settings_obj.openai_api_key,
        model=model or settings_obj.openai_model,
        base_url=settings_obj.openai_base_url,
        http_client=http_client,
        timeout=settings_obj.http_timeout,
    )


# The closed set of backends. Adding a provider means adding an enum member
# and a row here.
CLIENT_BUILDERS: Dict[LLMProvider, ClientBuilder] = {
    LLMProvider.CLAUDE: _build_claude,
    LLMProvider.OPENAI: _build_openai,
}


def create_llm_client(
    provider: LLMProvider,
    settings_obj: Settings,
    model: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> LLMClient:
    """Build the client for `provider` from server configuration."""
    return CLIENT_BUILDERS[LLMProvider(provider)](settings_obj, model, http_client)


def create_default_client(
    settings_obj: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[LLMClient]:
    """
    Prefer the configured default provider; otherwise fall back to whichever
    provider has a key (OpenAI first). Returns None when no key is configured.
    """
    preferred = settings_obj.default_provider
    if settings_obj.get_api_key(preferred):
        return create_llm_client(preferred, settings_obj, http_client=http_client)

    for provider in (LLMProvider.OPENAI, LLMProvider.CLAUDE):
        if settings_obj.get_api_key(provider):
            logger.info(f"Default provider '{preferred.value}' has no key, using '{provider.value}'")
            return create_llm_client(provider, settings_obj, http_client=http_client)

    return None
