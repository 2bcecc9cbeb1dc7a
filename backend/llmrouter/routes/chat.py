# /llmrouter/routes/chat.py

from contextlib import aclosing
from typing import AsyncIterator, List

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from llmrouter.config.settings import settings
from llmrouter.models.api import ChatMessageRequest
from llmrouter.models.llm import ChatRequest, Message
from llmrouter.services.llm.base import LLMClient
from llmrouter.services.llm.errors import ProviderError
from llmrouter.services.model_commands import get_available_commands, parse_model_command
from llmrouter.utils.dependencies import ClientResolver, get_client_resolver
from llmrouter.utils.sse import SSE_HEADERS, format_sse

router = APIRouter(tags=["Chat"])

log = structlog.get_logger(__name__)


def apply_model_command(messages: List[Message]):
    """
    Strip a leading @command from the last user message.

    Returns (messages, override); override is None when the message carries
    no known command.
    """
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            parsed = parse_model_command(messages[index].content)
            if parsed.model_override is None:
                return messages, None
            updated = list(messages)
            updated[index] = Message(role="user", content=parsed.content)
            return updated, parsed.model_override
    return messages, None


async def _sse_chat(client: LLMClient, request: ChatRequest) -> AsyncIterator[str]:
    try:
        async with aclosing(client.stream_chat(request)) as chunks:
            async for chunk in chunks:
                yield format_sse(chunk.model_dump_json(), event="delta")
    except ProviderError as e:
        log.warning("Streaming chat failed.", provider=e.provider.value, error=e.message)
        yield format_sse({"error": e.message}, event="error")


@router.post("/chat")
async def chat(payload: ChatMessageRequest, resolver: ClientResolver = Depends(get_client_resolver)):
    """Chat with server-side credentials. `@gpt4 ...` style prefixes pick the model."""
    messages, override = apply_model_command(list(payload.messages))
    provider, model = payload.provider, payload.model
    if override is not None:
        provider, model = override.provider, override.model
        log.info("Model command applied.", provider=provider.value, model=model)

    client = resolver.resolve(provider, model)
    request = ChatRequest(
        messages=tuple(messages),
        temperature=payload.temperature,
        max_tokens=payload.max_tokens,
        stream=payload.stream,
    )

    if payload.stream:
        return StreamingResponse(_sse_chat(client, request), media_type="text/event-stream", headers=SSE_HEADERS)

    response = await client.chat(request)
    return response.model_dump(mode="json")


@router.get("/chat/commands")
async def list_model_commands():
    return {"commands": get_available_commands(), "default_provider": settings.default_provider.value}
