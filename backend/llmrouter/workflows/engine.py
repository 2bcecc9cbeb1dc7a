# /llmrouter/workflows/engine.py

"""
Flow execution engine.

Drives a validated ParsedFlow through an LLM client one step at a time:

- Steps run strictly in order; each step's output is the next step's input
- Each step goes pending -> running -> completed | error
- The first failing step stops the flow and its error is re-raised unchanged
- No retries happen here

Every state transition produces a fresh, frozen FlowExecution snapshot that is
handed to the progress observer synchronously, in order:
one initial all-pending snapshot, then a "running" and a terminal snapshot per
attempted step, then (on success) a final "completed" snapshot.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog

from llmrouter.models.flow import FlowExecution, FlowStatus, ParsedFlow, StepExecution, StepStatus
from llmrouter.models.llm import ChatRequest, Message
from llmrouter.services.llm.base import LLMClient, StreamCallback
from llmrouter.utils.metrics import flow_runs_counter, flow_steps_counter
from llmrouter.workflows.parser import format_step_prompt
from llmrouter.workflows.validator import ensure_valid_flow

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[FlowExecution], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or "Unknown error"


class FlowExecutor:
    def __init__(self, llm_client: LLMClient, temperature: float = 0.7, max_tokens: int = 2000):
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def update_client(self, llm_client: LLMClient) -> None:
        """Swap the client for later runs. A run already in progress keeps its client."""
        self.llm_client = llm_client

    async def execute(
        self,
        flow: ParsedFlow,
        initial_input: str,
        on_progress: Optional[ProgressCallback] = None,
        on_step_stream: Optional[StreamCallback] = None,
    ) -> FlowExecution:
        """
        Run every step of `flow`, threading outputs forward.

        Args:
            flow: The parsed flow; validated before anything runs
            initial_input: Content handed to the first step that consumes previous output
            on_progress: Receives a FlowExecution snapshot on every transition
            on_step_stream: When given, each step streams and its chunks are forwarded here

        Returns:
            The final FlowExecution snapshot (status completed)

        Raises:
            FlowValidationError: The flow cannot be run; nothing was executed or notified
            Exception: Whatever the client raised for the failing step
        """
        ensure_valid_flow(flow)

        client = self.llm_client
        steps: List[StepExecution] = [StepExecution(step=step) for step in flow.steps]
        start_time = _now()

        def snapshot(status: FlowStatus, current_index: int, end_time: Optional[datetime] = None) -> FlowExecution:
            return FlowExecution(
                steps=tuple(steps),
                status=status,
                current_step_index=current_index,
                start_time=start_time,
                end_time=end_time,
            )

        def notify(execution: FlowExecution) -> FlowExecution:
            if on_progress is not None:
                on_progress(execution)
            return execution

        log.info("flow_started", steps=len(steps), provider=client.provider.value, model=client.model)
        notify(snapshot(FlowStatus.RUNNING, 0))

        previous_output = initial_input

        for index in range(len(steps)):
            steps[index] = steps[index].model_copy(
                update={"status": StepStatus.RUNNING, "start_time": _now()}
            )
            notify(snapshot(FlowStatus.RUNNING, index))

            try:
                prompt = format_step_prompt(steps[index].step, previous_output)
                request = ChatRequest(
                    messages=(Message(role="user", content=prompt),),
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    stream=on_step_stream is not None,
                )
                response = await client.chat(request, on_step_stream)
            except Exception as e:
                end_time = _now()
                steps[index] = steps[index].model_copy(
                    update={"status": StepStatus.ERROR, "error": _error_message(e), "end_time": end_time}
                )
                notify(snapshot(FlowStatus.ERROR, index, end_time))
                flow_steps_counter.labels(status="error").inc()
                flow_runs_counter.labels(status="error").inc()
                log.warning("flow_step_failed", step=index + 1, error=_error_message(e))
                raise

            steps[index] = steps[index].model_copy(
                update={"status": StepStatus.COMPLETED, "output": response.content, "end_time": _now()}
            )
            previous_output = response.content
            notify(snapshot(FlowStatus.RUNNING, index))
            flow_steps_counter.labels(status="completed").inc()
            log.info("flow_step_completed", step=index + 1, output_chars=len(response.content))

        final = notify(snapshot(FlowStatus.COMPLETED, len(steps) - 1, _now()))
        flow_runs_counter.labels(status="completed").inc()
        log.info("flow_completed", steps=len(steps))
        return final
