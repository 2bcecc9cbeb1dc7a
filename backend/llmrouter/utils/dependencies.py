# /llmrouter/utils/dependencies.py

import httpx
import structlog
from fastapi import Depends, HTTPException, status

from llmrouter.config.settings import Settings, settings
from llmrouter.models.llm import LLMProvider
from llmrouter.services.http_client import get_http_client
from llmrouter.services.llm.base import LLMClient
from llmrouter.services.llm.factory import create_default_client, create_llm_client
from llmrouter.services.proxy_service import ProxyService, proxy_service

log = structlog.get_logger(__name__)


def get_settings() -> Settings:
    return settings


def get_proxy_service() -> ProxyService:
    return proxy_service


class ClientResolver:
    """
    Turns an optional (provider, model) pair from a request into a client.
    Routes depend on this rather than on the factory so tests can swap in
    fake clients.
    """

    def __init__(self, settings_obj: Settings, http_client: httpx.AsyncClient):
        self.settings = settings_obj
        self.http_client = http_client

    def resolve(self, provider: LLMProvider | None = None, model: str | None = None) -> LLMClient:
        if provider is not None:
            return create_llm_client(provider, self.settings, model=model, http_client=self.http_client)

        client = create_default_client(self.settings, http_client=self.http_client)
        if client is None:
            log.error("No LLM provider configured for request.")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="No LLM provider API key is configured",
            )
        if model:
            client.update_model(model)
        return client


def get_client_resolver(
    settings_obj: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> ClientResolver:
    return ClientResolver(settings_obj, http_client)
