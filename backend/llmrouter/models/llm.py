# /llmrouter/models/llm.py

from enum import Enum
from typing import Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

# Provider-neutral chat types shared by both backends, the proxy and the flow engine.


class LLMProvider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"


Role = Literal["user", "assistant", "system"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatRequest(BaseModel):
    """
    One chat completion call. Built fresh for every call and never reused.

    stream=None lets the client decide: it streams when a chunk observer is given.
    """
    model_config = ConfigDict(frozen=True)

    messages: Tuple[Message, ...]
    temperature: float = 0.7
    max_tokens: int = Field(default=2000, gt=0)
    stream: Optional[bool] = None


class Usage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    provider: LLMProvider
    model: str
    usage: Optional[Usage] = None


class StreamChunk(BaseModel):
    """An incremental piece of a streamed reply. content is the delta, not the running total."""
    model_config = ConfigDict(frozen=True)

    content: str = ""
    done: bool = False
