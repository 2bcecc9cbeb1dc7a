# /llmrouter/services/llm/base.py

"""
Shared contract and wire helpers for the provider clients.

Each backend is a standalone class that satisfies LLMClient structurally;
there is no common base class. The factory picks the variant from an
LLMProvider value.

Streaming contract:
- stream_chat() yields StreamChunk deltas in arrival order and yields a single
  done=True chunk when (and only when) the provider sends its terminal marker.
- chat(request, on_stream_chunk) drives stream_chat() when an observer is given,
  forwards every chunk to it, and returns the accumulated content.
- The upstream response is closed on every exit path, including a consumer
  that stops iterating early.
"""

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol, runtime_checkable

import httpx

from llmrouter.models.llm import ChatRequest, ChatResponse, LLMProvider, StreamChunk

logger = logging.getLogger(__name__)

StreamCallback = Callable[[StreamChunk], None]

SSE_DATA_PREFIX = "data: "


@runtime_checkable
class LLMClient(Protocol):
    provider: LLMProvider
    model: str

    async def chat(self, request: ChatRequest, on_stream_chunk: Optional[StreamCallback] = None) -> ChatResponse:
        ...

    def stream_chat(self, request: ChatRequest) -> AsyncIterator[StreamChunk]:
        ...

    async def validate_api_key(self) -> bool:
        ...

    def update_model(self, model: str) -> None:
        ...


def wants_stream(request: ChatRequest, on_stream_chunk: Optional[StreamCallback]) -> bool:
    """Stream only when someone is listening and the request did not opt out."""
    return on_stream_chunk is not None and request.stream is not False


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    """
    Yield the payload of every `data: ` line of a server-sent event stream.

    aiter_lines() decodes incrementally, so a multi-byte character split across
    two network chunks comes out whole, and a line split across chunks is
    reassembled before it is seen here.
    """
    async for line in response.aiter_lines():
        if not line.strip():
            continue
        if line.startswith(SSE_DATA_PREFIX):
            yield line[len(SSE_DATA_PREFIX):]


def parse_sse_json(data: str, provider: LLMProvider) -> Optional[Dict[str, Any]]:
    """Decode one event payload; malformed payloads are logged and skipped."""
    try:
        parsed = json.loads(data)
    except ValueError as e:
        logger.warning(f"Failed to parse {provider.value} streaming chunk: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


async def read_error_message(response: httpx.Response, default: str) -> str:
    """Best-effort extraction of `error.message` from an upstream error body."""
    try:
        await response.aread()
        data = response.json()
    except (ValueError, httpx.HTTPError, httpx.StreamError):
        return "Unknown error"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return default


async def consume_stream(chunks: AsyncIterator[StreamChunk], on_stream_chunk: StreamCallback) -> str:
    """Forward every chunk to the observer and return the concatenated deltas."""
    parts = []
    async with aclosing(chunks) as stream:
        async for chunk in stream:
            if chunk.content:
                parts.append(chunk.content)
            on_stream_chunk(chunk)
    return "".join(parts)
