# /llmrouter/services/model_commands.py

import re
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from llmrouter.models.llm import LLMProvider

# A chat message may start with an @command ("@gpt4 explain this") that
# routes just that message to a specific provider/model.


class ModelOverride(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: LLMProvider
    model: str
    display_name: str


class ParsedMessage(BaseModel):
    content: str
    model_override: Optional[ModelOverride] = None


_CLAUDE_SONNET = ModelOverride(provider=LLMProvider.CLAUDE, model="claude-3-5-sonnet-20241022", display_name="Claude 3.5 Sonnet")
_GPT4 = ModelOverride(provider=LLMProvider.OPENAI, model="gpt-4", display_name="GPT-4")
_GPT35 = ModelOverride(provider=LLMProvider.OPENAI, model="gpt-3.5-turbo", display_name="GPT-3.5 Turbo")

MODEL_COMMANDS: Dict[str, ModelOverride] = {
    "@claude": _CLAUDE_SONNET,
    "@sonnet": _CLAUDE_SONNET,
    "@gpt4": _GPT4,
    "@gpt-4": _GPT4,
    "@gpt3.5": _GPT35,
    "@gpt-3.5": _GPT35,
    "@gpt4-turbo": ModelOverride(provider=LLMProvider.OPENAI, model="gpt-4-turbo-preview", display_name="GPT-4 Turbo"),
}

COMMAND_PATTERN = re.compile(r"^(@[a-zA-Z0-9.-]+)\s+(.+)$", re.DOTALL)


def parse_model_command(message: str) -> ParsedMessage:
    """
    Strip a leading @command from `message`.

    Unknown commands, or a command with no text after it, leave the message
    untouched and return no override.
    """
    match = COMMAND_PATTERN.match(message.strip())
    if not match:
        return ParsedMessage(content=message)

    command, rest = match.groups()
    override = MODEL_COMMANDS.get(command.lower())
    if override is None:
        return ParsedMessage(content=message)

    return ParsedMessage(content=rest.strip(), model_override=override)


def is_valid_model_command(command: str) -> bool:
    return command.lower() in MODEL_COMMANDS


def get_available_commands() -> List[str]:
    return list(MODEL_COMMANDS.keys())


def get_model_commands_help() -> str:
    return "Available model commands:\n" + ", ".join(get_available_commands())
