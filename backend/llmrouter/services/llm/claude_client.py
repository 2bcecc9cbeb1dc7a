# /llmrouter/services/llm/claude_client.py

import httpx
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from llmrouter.models.llm import ChatRequest, ChatResponse, LLMProvider, Message, StreamChunk, Usage
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

DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20240620"


def to_claude_payload(messages: List[Message]) -> Dict[str, Any]:
    """
    Split a conversation into Anthropic's shape.

    Anthropic takes a single top-level system prompt: the first system message
    is used and any further ones are dropped. Everything else becomes
    user/assistant turns.
    """
    system_messages = [m for m in messages if m.role == "system"]
    conversation = [m for m in messages if m.role != "system"]
    payload: Dict[str, Any] = {
        "messages": [
            {"role": "user" if m.role == "user" else "assistant", "content": m.content}
            for m in conversation
        ]
    }
    if system_messages:
        payload["system"] = system_messages[0].content
    return payload


class ClaudeClient:
    provider = LLMProvider.CLAUDE

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_CLAUDE_MODEL,
        base_url: str = "https://api.anthropic.com/v1",
        anthropic_version: str = "2023-06-01",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.anthropic_version = anthropic_version
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key or "",
            "anthropic-version": self.anthropic_version,
        }

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise CredentialMissingError("Anthropic API key is required", self.provider)

    def _build_body(self, request: ChatRequest, model: str, stream: bool) -> Dict[str, Any]:
        body = {"model": model, **to_claude_payload(list(request.messages))}
        body["temperature"] = request.temperature
        body["max_tokens"] = request.max_tokens
        body["stream"] = stream
        return body

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
                "POST", f"{self.base_url}/messages", json=body, headers=self._headers()
            ) as response:
                if not response.is_success:
                    message = await read_error_message(response, "Anthropic API request failed")
                    raise UpstreamRequestError(message, self.provider, response.status_code)

                try:
                    async for data in iter_sse_data(response):
                        event = parse_sse_json(data, self.provider)
                        if event is None:
                            continue
                        event_type = event.get("type")
                        if event_type == "content_block_delta":
                            text = (event.get("delta") or {}).get("text") or ""
                            if text:
                                yield StreamChunk(content=text)
                        elif event_type == "message_stop":
                            yield StreamChunk(done=True)
                            return
                        elif event_type == "error":
                            error = event.get("error") or {}
                            raise UpstreamRequestError(
                                error.get("message") or "Anthropic stream reported an error", self.provider
                            )
                except httpx.TransportError as e:
                    raise TransportError(str(e) or "Connection lost while streaming", self.provider) from e
                except (httpx.HTTPError, httpx.StreamError) as e:
                    raise StreamUnreadableError(f"Response body is not readable: {e}", self.provider) from e

                logger.warning(f"Claude stream for {model} closed without a message_stop event")
        except httpx.HTTPError as e:
            raise TransportError(str(e) or "Unknown error occurred", self.provider) from e

    async def _complete(self, request: ChatRequest) -> ChatResponse:
        self._require_api_key()
        model = self.model
        body = self._build_body(request, model, stream=False)
        try:
            response = await self.http_client.post(f"{self.base_url}/messages", json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(str(e) or "Unknown error occurred", self.provider) from e

        if not response.is_success:
            message = await read_error_message(response, "Anthropic API request failed")
            raise UpstreamRequestError(message, self.provider, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                "Anthropic API returned an unreadable response body", self.provider, response.status_code
            ) from e

        blocks = data.get("content") or []
        content = ((blocks[0] or {}).get("text") or "") if blocks else ""
        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens") or 0
        output_tokens = usage.get("output_tokens") or 0
        return ChatResponse(
            content=content,
            provider=self.provider,
            model=model,
            usage=Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )

    async def validate_api_key(self) -> bool:
        """
        Send the smallest possible request. A 400 still proves the key was
        accepted (the request itself is what Anthropic rejected).
        """
        if not self.api_key:
            return False
        try:
            response = await self.http_client.post(
                f"{self.base_url}/messages",
                json={"model": self.model, "messages": [{"role": "user", "content": "test"}], "max_tokens": 1},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Claude key validation failed: {e}")
            return False
        return response.is_success or response.status_code == 400

    def update_model(self, model: str) -> None:
        self.model = model

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()
