# /llmrouter/models/flow.py

from enum import Enum
from typing import Optional, Tuple
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class FlowStep(BaseModel):
    """One instruction of a parsed flow. Immutable once parsed."""
    model_config = ConfigDict(frozen=True)

    order: int = Field(..., ge=1, description="1-based position in the flow")
    instruction: str
    uses_previous_output: bool = False


class ParsedFlow(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: Tuple[FlowStep, ...] = ()
    raw_description: str = ""


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class FlowStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class StepExecution(BaseModel):
    """
    Execution record of a single step.

    Snapshots are frozen: the executor replaces a record rather than editing it,
    so observers can keep any snapshot they receive.
    """
    model_config = ConfigDict(frozen=True)

    step: FlowStep
    status: StepStatus = StepStatus.PENDING
    output: Optional[str] = None
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class FlowExecution(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: Tuple[StepExecution, ...]
    status: FlowStatus = FlowStatus.RUNNING
    current_step_index: int = 0
    start_time: datetime
    end_time: Optional[datetime] = None


class SavedFlow(BaseModel):
    """A user-authored flow definition as kept by the persistence port."""
    id: str
    name: str
    description: str
    initial_input: Optional[str] = None
    created_at: int = Field(..., description="Epoch milliseconds")
    updated_at: int = Field(..., description="Epoch milliseconds")
