# /llmrouter/services/http_client.py

import logging
from typing import Optional

import httpx

from llmrouter.config.settings import settings

# A single pooled AsyncClient shared by the provider clients and the proxy.
# Created lazily, closed by the application lifespan.

logger = logging.getLogger(__name__)


class SharedHttpClient:
    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    def get(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.info("Shared HTTP client closed.")
        self._client = None


shared_http_client = SharedHttpClient(timeout=settings.http_timeout)


def get_http_client() -> httpx.AsyncClient:
    """FastAPI dependency returning the shared client."""
    return shared_http_client.get()
