# /llmrouter/services/llm/openai_client.py

import httpx
import logging
from typing import Any, AsyncIterator, Dict, Optional

from llmrouter.models.llm import ChatRequest, ChatResponse, LLMProvider, StreamChunk, Usage
from llmrouter.services.llm.base import (
    StreamCallback,
    consume_stream,
    iter_sse_data,
    parse_sse_json,
    read_error_message,
    wants_stream,
)
from llmrouter.services.llm.errors import (
    CredentialMissingError,
    ProviderError,
    StreamUnreadableError,
    TransportError,
    UpstreamRequestError,
)
from llmrouter.utils.metrics import llm_requests_counter

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4"

# OpenAI terminates a stream with this literal instead of a JSON event.
STREAM_DONE_SENTINEL = "[DONE]"


class OpenAIClient:
    provider = LLMProvider.OPENAI

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = "https://api.openai.com/v1",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key or ''}"}

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise CredentialMissingError("OpenAI API key is required", self.provider)

    def _build_body(self, request: ChatRequest, model: str, stream: bool) -> Dict[str, Any]:
        # OpenAI accepts system messages inline, so the conversation is sent untouched.
        return {
            "model": model,
            "messages": [m.model_dump() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": stream,
        }

    async def chat(self, request: ChatRequest, on_stream_chunk: Optional[StreamCallback] = None) -> ChatResponse:
        mode = "stream" if wants_stream(request, on_stream_chunk) else "complete"
        try:
            if mode == "stream":
                model = self.model
                content = await consume_stream(self._stream_chunks(request, model), on_stream_chunk)
                response = ChatResponse(content=content, provider=self.provider, model=model)
            else:
                response = await self._complete(request)
        except ProviderError:
            llm_requests_counter.labels(provider=self.provider.value, mode=mode, status="error").inc()
            raise
        llm_requests_counter.labels(provider=self.provider.value, mode=mode, status="success").inc()
        return response

    def stream_chat(self, request: ChatRequest) -> AsyncIterator[StreamChunk]:
        return self._stream_chunks(request, self.model)

    async def _stream_chunks(self, request: ChatRequest, model: str) -> AsyncIterator[StreamChunk]:
        self._require_api_key()
        body = self._build_body(request, model, stream=True)
        try:
            async with self.http_client.stream(
                "POST", f"{self.base_url}/chat/completions", json=body, headers=self._headers()
            ) as response:
                if not response.is_success:
                    message = await read_error_message(response, "OpenAI API request failed")
                    raise UpstreamRequestError(message, self.provider, response.status_code)

                try:
                    async for data in iter_sse_data(response):
                        if data.strip() == STREAM_DONE_SENTINEL:
                            yield StreamChunk(done=True)
                            return
                        event = parse_sse_json(data, self.provider)
                        if event is None:
                            continue
                        choices = event.get("choices") or [{}]
                        text = ((choices[0] or {}).get("delta") or {}).get("content") or ""
                        if text:
                            yield StreamChunk(content=text)
                except httpx.TransportError as e:
                    raise TransportError(str(e) or "Connection lost while streaming", self.provider) from e
                except (httpx.HTTPError, httpx.StreamError) as e:
                    raise StreamUnreadableError(f"Response body is not readable: {e}", self.provider) from e

                logger.warning(f"OpenAI stream for {model} closed without a [DONE] sentinel")
        except httpx.HTTPError as e:
            raise TransportError(str(e) or "Unknown error occurred", self.provider) from e

    async def _complete(self, request: ChatRequest) -> ChatResponse:
        self._require_api_key()
        model = self.model
        body = self._build_body(request, model, stream=False)
        try:
            response = await self.http_client.post(
                f"{self.base_url}/chat/completions", json=body, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise TransportError(str(e) or "Unknown error occurred", self.provider) from e

        if not response.is_success:
            message = await read_error_message(response, "OpenAI API request failed")
            raise UpstreamRequestError(message, self.provider, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                "OpenAI API returned an unreadable response body", self.provider, response.status_code
            ) from e

        choices = data.get("choices") or [{}]
        content = ((choices[0] or {}).get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return ChatResponse(
            content=content,
            provider=self.provider,
            model=model,
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            ),
        )

    async def validate_api_key(self) -> bool:
        if not self.api_key:
            return False
        try:
            response = await self.http_client.get(
                f"{self.base_url}/models", headers={"Authorization": f"Bearer {self.api_key}"}
            )
        except httpx.HTTPError as e:
            logger.warning(f"OpenAI key validation failed: {e}")
            return False
        return response.is_success

    def update_model(self, model: str) -> None:
        self.model = model

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()
