# /llmrouter/routes/flows.py

import asyncio
import contextlib
from typing import AsyncIterator, Optional, Tuple

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse, StreamingResponse

from llmrouter.config.settings import settings
from llmrouter.models.api import (
    FlowImportRequest,
    FlowParseRequest,
    FlowRunRequest,
    SavedFlowCreate,
    SavedFlowUpdate,
)
from llmrouter.models.flow import FlowExecution, ParsedFlow
from llmrouter.models.llm import StreamChunk
from llmrouter.services.flow_storage import FlowStorage, get_flow_storage
from llmrouter.services.llm.errors import ProviderError
from llmrouter.utils.dependencies import ClientResolver, get_client_resolver
from llmrouter.utils.sse import SSE_HEADERS, format_sse
from llmrouter.workflows.definitions import EXAMPLE_FLOWS
from llmrouter.workflows.engine import FlowExecutor
from llmrouter.workflows.parser import parse_flow_description
from llmrouter.workflows.validator import ensure_valid_flow, validate_flow

# Prompt flows: parse a plain-language description into steps, run them one
# after another through an LLM, and keep user-authored flows.

router = APIRouter(prefix="/flows", tags=["Flows"])

log = structlog.get_logger(__name__)


def _resolve_flow(payload: FlowRunRequest, storage: FlowStorage) -> Tuple[ParsedFlow, str]:
    """Return the validated flow to run and its initial input."""
    if payload.flow_id:
        saved = storage.get_flow(payload.flow_id)
        if saved is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
        description = saved.description
        initial_input = payload.initial_input if payload.initial_input is not None else saved.initial_input
    elif payload.description:
        description = payload.description
        initial_input = payload.initial_input
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Either description or flow_id is required")

    flow = parse_flow_description(description)
    ensure_valid_flow(flow)
    return flow, initial_input or ""


def _build_executor(resolver: ClientResolver, payload: FlowRunRequest) -> FlowExecutor:
    client = resolver.resolve(payload.provider, payload.model)
    return FlowExecutor(client, temperature=settings.default_temperature, max_tokens=settings.default_max_tokens)


# --- Parsing & running ---

@router.post("/parse")
async def parse_flow(payload: FlowParseRequest):
    """Parse a description and report whether the result can be run."""
    flow = parse_flow_description(payload.description)
    result = validate_flow(flow)
    return {"flow": flow.model_dump(mode="json"), "validation": result}


@router.post("/run")
async def run_flow(
    payload: FlowRunRequest,
    storage: FlowStorage = Depends(get_flow_storage),
    resolver: ClientResolver = Depends(get_client_resolver),
):
    """Run a flow to completion and return the final execution snapshot."""
    flow, initial_input = _resolve_flow(payload, storage)
    executor = _build_executor(resolver, payload)
    execution = await executor.execute(flow, initial_input)
    return execution.model_dump(mode="json")


async def _stream_flow_run(executor: FlowExecutor, flow: ParsedFlow, initial_input: str) -> AsyncIterator[str]:
    queue: asyncio.Queue[Optional[str]] = asyncio.Queue()

    def on_progress(execution: FlowExecution) -> None:
        queue.put_nowait(format_sse(execution.model_dump_json(), event="progress"))

    def on_step_stream(chunk: StreamChunk) -> None:
        if chunk.content:
            queue.put_nowait(format_sse(chunk.model_dump_json(), event="delta"))

    async def run() -> None:
        try:
            await executor.execute(flow, initial_input, on_progress=on_progress, on_step_stream=on_step_stream)
        except ProviderError as e:
            queue.put_nowait(format_sse({"error": e.message}, event="error"))
        except Exception as e:
            log.exception("Streamed flow run failed unexpectedly.")
            queue.put_nowait(format_sse({"error": str(e) or "Internal server error"}, event="error"))
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


@router.post("/run/stream")
async def run_flow_stream(
    payload: FlowRunRequest,
    storage: FlowStorage = Depends(get_flow_storage),
    resolver: ClientResolver = Depends(get_client_resolver),
):
    """Same as /run, as server-sent events: `progress` snapshots, `delta` tokens, `error`."""
    flow, initial_input = _resolve_flow(payload, storage)
    executor = _build_executor(resolver, payload)
    return StreamingResponse(
        _stream_flow_run(executor, flow, initial_input),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/examples")
async def list_example_flows():
    return {"examples": EXAMPLE_FLOWS}


# --- Saved flows ---

@router.get("")
async def list_flows(storage: FlowStorage = Depends(get_flow_storage)):
    return {"flows": [f.model_dump() for f in storage.get_all_flows()]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_flow(payload: SavedFlowCreate, storage: FlowStorage = Depends(get_flow_storage)):
    saved = storage.save_flow(payload.name, payload.description, payload.initial_input)
    log.info("Flow saved.", flow_id=saved.id)
    return saved.model_dump()


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_flow(payload: FlowImportRequest, storage: FlowStorage = Depends(get_flow_storage)):
    imported = storage.import_flow(payload.data)
    if imported is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid flow data")
    return imported.model_dump()


@router.get("/{flow_id}")
async def get_flow(flow_id: str, storage: FlowStorage = Depends(get_flow_storage)):
    flow = storage.get_flow(flow_id)
    if flow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
    return flow.model_dump()


@router.put("/{flow_id}")
async def update_flow(flow_id: str, payload: SavedFlowUpdate, storage: FlowStorage = Depends(get_flow_storage)):
    updates = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key == "initial_input"
    }
    updated = storage.update_flow(flow_id, updates)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
    return updated.model_dump()


@router.delete("/{flow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flow(flow_id: str, storage: FlowStorage = Depends(get_flow_storage)):
    if not storage.delete_flow(flow_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")


@router.get("/{flow_id}/export")
async def export_flow(flow_id: str, storage: FlowStorage = Depends(get_flow_storage)):
    exported = storage.export_flow(flow_id)
    if exported is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
    return PlainTextResponse(exported, media_type="application/json")
