# /llmrouter/models/api.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from llmrouter.models.llm import LLMProvider, Message

# This file contains Pydantic models that define the structure of data for
# API requests and responses, ensuring type safety and validation.


class ProxyChatRequest(BaseModel):
    """
    Body of POST /api/chat. Fields are optional here so the route can answer
    missing ones with its own 400 instead of a validation 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    provider: Optional[str] = None
    model: Optional[str] = None
    messages: Optional[List[Message]] = None
    temperature: float = 0.7
    max_tokens: int = Field(default=2000, alias="maxTokens", gt=0)
    stream: bool = False


class ChatMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[Message] = Field(..., min_length=1)
    provider: Optional[LLMProvider] = None
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = Field(default=2000, alias="maxTokens", gt=0)
    stream: bool = False


class FlowParseRequest(BaseModel):
    description: str


class FlowRunRequest(BaseModel):
    """Run either an inline description or a saved flow (flow_id wins when both are given)."""
    model_config = ConfigDict(populate_by_name=True)

    description: Optional[str] = None
    flow_id: Optional[str] = Field(default=None, alias="flowId")
    initial_input: Optional[str] = Field(default=None, alias="initialInput")
    provider: Optional[LLMProvider] = None
    model: Optional[str] = None


class SavedFlowCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    initial_input: Optional[str] = Field(default=None, alias="initialInput")


class SavedFlowUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    initial_input: Optional[str] = Field(default=None, alias="initialInput")


class FlowImportRequest(BaseModel):
    data: str


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
