# /llmrouter/services/proxy_service.py

import httpx
import logging
import tenacity
from typing import Any, Callable, Dict, List, Tuple

from llmrouter.config.settings import Settings, settings
from llmrouter.models.api import ProxyChatRequest
from llmrouter.models.llm import LLMProvider, Message
from llmrouter.services.http_client import shared_http_client
from llmrouter.services.llm.base import read_error_message
from llmrouter.services.llm.claude_client import to_claude_payload

# Thin relay in front of the two providers: the caller names provider and
# model, the server supplies the key, and the upstream answer (JSON or the raw
# SSE byte stream) is passed back untouched.

logger = logging.getLogger(__name__)

PROVIDER_LABELS = {LLMProvider.CLAUDE: "Claude", LLMProvider.OPENAI: "OpenAI"}


class ProxyError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProxyService:
    def __init__(self, settings_obj: Settings, http_client_factory: Callable[[], httpx.AsyncClient]):
        self.settings = settings_obj
        self.http_client_factory = http_client_factory

    def build_upstream_request(
        self, provider: LLMProvider, body: ProxyChatRequest
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, payload) for the upstream call."""
        messages: List[Message] = list(body.messages or [])
        api_key = self.settings.get_api_key(provider)
        if not api_key:
            raise ProxyError(f"{PROVIDER_LABELS[provider]} API key not configured", status_code=500)

        if provider == LLMProvider.CLAUDE:
            url = f"{self.settings.anthropic_base_url.rstrip('/')}/messages"
            headers = {
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": self.settings.anthropic_version,
            }
            payload = {"model": body.model, **to_claude_payload(messages)}
        else:
            url = f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"
            headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
            payload = {"model": body.model, "messages": [m.model_dump() for m in messages]}

        payload["temperature"] = body.temperature
        payload["max_tokens"] = body.max_tokens
        payload["stream"] = body.stream
        return url, headers, payload

    async def _send(self, request: httpx.Request) -> httpx.Response:
        """Send with stream=True, retrying only failures to establish the connection."""
        retrying = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception_type(httpx.ConnectError),
            stop=tenacity.stop_after_attempt(self.settings.proxy_connect_retries),
            wait=tenacity.wait_exponential(multiplier=self.settings.proxy_retry_wait_seconds, max=10),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.http_client_factory().send(request, stream=True)

    async def open_upstream(self, provider: LLMProvider, body: ProxyChatRequest) -> httpx.Response:
        """
        Send the request and return the upstream response with its body still
        unread. The caller owns the response and must close it.

        Raises:
            ProxyError: missing server key, or a non-2xx upstream answer
            httpx.HTTPError: the upstream could not be reached
        """
        url, headers, payload = self.build_upstream_request(provider, body)
        request = self.http_client_factory().build_request("POST", url, json=payload, headers=headers)
        response = await self._send(request)

        if not response.is_success:
            try:
                message = await read_error_message(response, f"{PROVIDER_LABELS[provider]} API request failed")
            finally:
                await response.aclose()
            logger.warning(f"Upstream {provider.value} rejected proxied request: {response.status_code} - {message}")
            raise ProxyError(message, status_code=response.status_code)

        return response


proxy_service = ProxyService(settings, shared_http_client.get)
