# backend/tests/unit/test_engine.py
import pytest
from pydantic import ValidationError

from llmrouter.models.flow import FlowStatus, ParsedFlow, StepStatus
from llmrouter.models.llm import LLMProvider
from llmrouter.services.llm.errors import UpstreamRequestError
from llmrouter.workflows.engine import FlowExecutor
from llmrouter.workflows.parser import parse_flow_description
from llmrouter.workflows.validator import FlowValidationError

from tests.fakes import FakeLLMClient

THREE_STEPS = "First write a short story then summarize this then translate it to French"


@pytest.mark.asyncio
async def test_successful_flow_completes_every_step():
    client = FakeLLMClient(replies=["story", "summary", "resume"])
    snapshots = []

    final = await FlowExecutor(client).execute(parse_flow_description(THREE_STEPS), "", on_progress=snapshots.append)

    assert final.status == FlowStatus.COMPLETED
    assert final.current_step_index == 2
    assert final.end_time is not None
    assert [s.status for s in final.steps] == [StepStatus.COMPLETED] * 3
    assert [s.output for s in final.steps] == ["story", "summary", "resume"]
    assert all(s.start_time and s.end_time for s in final.steps)
    # initial + (running, completed) per step + final
    assert len(snapshots) == 2 + 2 * 3
    assert snapshots[-1] == final


@pytest.mark.asyncio
async def test_each_step_receives_previous_output():
    client = FakeLLMClient(replies=["Once upon a time", "A tale", "Un conte"])

    await FlowExecutor(client).execute(parse_flow_description(THREE_STEPS), "ignored input")

    prompts = [r.messages[0].content for r in client.requests]
    assert prompts[0] == "write a short story"
    assert prompts[1] == "Given this content:\n\nOnce upon a time\n\nsummarize this"
    assert prompts[2] == "Given this content:\n\nA tale\n\ntranslate it to French"
    assert all(len(r.messages) == 1 and r.messages[0].role == "user" for r in client.requests)


@pytest.mark.asyncio
@pytest.mark.parametrize("fail_at", [0, 1, 2])
async def test_failure_stops_the_flow_at_failing_step(fail_at):
    error = UpstreamRequestError("Rate limit exceeded", LLMProvider.OPENAI, 429)
    client = FakeLLMClient(fail_at=fail_at, error=error)
    snapshots = []

    with pytest.raises(UpstreamRequestError) as excinfo:
        await FlowExecutor(client).execute(parse_flow_description(THREE_STEPS), "", on_progress=snapshots.append)

    assert excinfo.value is error
    assert len(client.requests) == fail_at + 1
    assert len(snapshots) == 1 + 2 * (fail_at + 1)

    last = snapshots[-1]
    assert last.status == FlowStatus.ERROR
    assert last.end_time is not None
    assert last.current_step_index == fail_at
    assert [s.status for s in last.steps[:fail_at]] == [StepStatus.COMPLETED] * fail_at
    assert last.steps[fail_at].status == StepStatus.ERROR
    assert last.steps[fail_at].error == "Rate limit exceeded"
    assert [s.status for s in last.steps[fail_at + 1:]] == [StepStatus.PENDING] * (2 - fail_at)


@pytest.mark.asyncio
async def test_snapshots_are_independent_and_frozen():
    snapshots = []

    await FlowExecutor(FakeLLMClient()).execute(parse_flow_description(THREE_STEPS), "", on_progress=snapshots.append)

    initial = snapshots[0]
    assert initial.status == FlowStatus.RUNNING
    assert [s.status for s in initial.steps] == [StepStatus.PENDING] * 3
    assert snapshots[1].steps[0].status == StepStatus.RUNNING
    assert snapshots[2].steps[0].status == StepStatus.COMPLETED

    with pytest.raises(ValidationError):
        initial.status = FlowStatus.COMPLETED


@pytest.mark.asyncio
async def test_invalid_flow_is_rejected_before_anything_runs():
    client = FakeLLMClient()
    snapshots = []

    with pytest.raises(FlowValidationError):
        await FlowExecutor(client).execute(ParsedFlow(steps=()), "input", on_progress=snapshots.append)

    assert snapshots == []
    assert client.requests == []


@pytest.mark.asyncio
async def test_step_streaming_forwards_chunks():
    client = FakeLLMClient(replies=["alpha", "beta"])
    chunks = []

    await FlowExecutor(client).execute(
        parse_flow_description("First write alpha then write beta"), "", on_step_stream=chunks.append
    )

    assert all(r.stream is True for r in client.requests)
    assert [c.content for c in chunks if not c.done] == ["alpha", "beta"]


@pytest.mark.asyncio
async def test_without_stream_observer_requests_are_not_streamed():
    client = FakeLLMClient()

    await FlowExecutor(client).execute(parse_flow_description("First write alpha then write beta"), "")

    assert all(r.stream is False for r in client.requests)


@pytest.mark.asyncio
async def test_update_client_only_affects_later_runs():
    first = FakeLLMClient()
    second = FakeLLMClient()
    executor = FlowExecutor(first)

    def swap_on_first_snapshot(execution):
        executor.update_client(second)

    await executor.execute(parse_flow_description(THREE_STEPS), "", on_progress=swap_on_first_snapshot)
    assert len(first.requests) == 3
    assert second.requests == []

    await executor.execute(parse_flow_description(THREE_STEPS), "")
    assert len(second.requests) == 3


@pytest.mark.asyncio
async def test_generation_settings_are_passed_to_every_step():
    client = FakeLLMClient()

    await FlowExecutor(client, temperature=0.2, max_tokens=256).execute(parse_flow_description(THREE_STEPS), "")

    assert {(r.temperature, r.max_tokens) for r in client.requests} == {(0.2, 256)}
