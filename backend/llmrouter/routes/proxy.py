# /llmrouter/routes/proxy.py

import httpx
from typing import AsyncIterator
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from llmrouter.models.api import ProxyChatRequest
from llmrouter.models.llm import LLMProvider
from llmrouter.services.proxy_service import ProxyError, ProxyService
from llmrouter.utils.dependencies import get_proxy_service
from llmrouter.utils.metrics import proxy_requests_counter
from llmrouter.utils.sse import SSE_HEADERS

# The browser-facing chat proxy. Callers never hold provider keys: they send
# provider, model and messages, and the server attaches its own credentials.
# Error bodies are always {"error": "..."}.

router = APIRouter(tags=["Proxy"])

log = structlog.get_logger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _relay_stream(upstream: httpx.Response, provider: LLMProvider) -> AsyncIterator[bytes]:
    """Pass upstream bytes through; a broken upstream ends the stream after what was already sent."""
    try:
        async for chunk in upstream.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        log.error("Upstream stream failed mid-relay.", provider=provider.value, error=str(e))


@router.api_route("/api/chat", methods=ALL_METHODS)
async def chat_proxy(request: Request, proxy: ProxyService = Depends(get_proxy_service)):
    """Relay a chat completion to the selected provider, streaming or not."""
    if request.method == "OPTIONS":
        return Response(status_code=200)
    if request.method != "POST":
        return _error("Method not allowed", 405)

    try:
        data = await request.json()
    except ValueError:
        return _error("Invalid JSON body", 400)

    if not isinstance(data, dict) or not data.get("provider") or not data.get("model") or data.get("messages") is None:
        return _error("Missing required fields", 400)

    try:
        provider = LLMProvider(data["provider"])
    except ValueError:
        return _error("Invalid provider", 400)

    try:
        body = ProxyChatRequest.model_validate(data)
    except ValidationError as e:
        log.warning("Rejected malformed proxy request.", errors=e.errors(include_url=False))
        return _error("Invalid request body", 400)

    try:
        upstream = await proxy.open_upstream(provider, body)
    except ProxyError as e:
        proxy_requests_counter.labels(provider=provider.value, status="error").inc()
        return _error(e.message, e.status_code)
    except httpx.HTTPError as e:
        proxy_requests_counter.labels(provider=provider.value, status="error").inc()
        log.error("Proxy request to upstream failed.", provider=provider.value, error=str(e))
        return _error(str(e) or "Internal server error", 500)

    proxy_requests_counter.labels(provider=provider.value, status="success").inc()

    if body.stream:
        return StreamingResponse(
            _relay_stream(upstream, provider),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
            background=BackgroundTask(upstream.aclose),
        )

    try:
        await upstream.aread()
        payload = upstream.json()
    except (ValueError, httpx.HTTPError) as e:
        log.error("Upstream returned an unreadable body.", provider=provider.value, error=str(e))
        return _error(str(e) or "Internal server error", 500)
    finally:
        await upstream.aclose()

    return JSONResponse(payload, status_code=200)
