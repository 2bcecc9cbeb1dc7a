# backend/tests/unit/test_model_commands.py
import pytest

from llmrouter.models.llm import LLMProvider
from llmrouter.services.model_commands import (
    get_available_commands,
    get_model_commands_help,
    is_valid_model_command,
    parse_model_command,
)


@pytest.mark.parametrize("command,provider,model", [
    ("@claude", LLMProvider.CLAUDE, "claude-3-5-sonnet-20241022"),
    ("@sonnet", LLMProvider.CLAUDE, "claude-3-5-sonnet-20241022"),
    ("@gpt4", LLMProvider.OPENAI, "gpt-4"),
    ("@gpt-3.5", LLMProvider.OPENAI, "gpt-3.5-turbo"),
    ("@gpt4-turbo", LLMProvider.OPENAI, "gpt-4-turbo-preview"),
])
def test_known_command_sets_override(command, provider, model):
    parsed = parse_model_command(f"{command} explain recursion")

    assert parsed.content == "explain recursion"
    assert parsed.model_override.provider == provider
    assert parsed.model_override.model == model


def test_command_is_case_insensitive():
    assert parse_model_command("@GPT4 hi").model_override.model == "gpt-4"


def test_unknown_command_leaves_message_untouched():
    parsed = parse_model_command("@llama tell me a joke")

    assert parsed.content == "@llama tell me a joke"
    assert parsed.model_override is None


def test_command_without_text_is_not_a_command():
    assert parse_model_command("@gpt4").model_override is None
    assert parse_model_command("hello @gpt4 there").model_override is None


def test_command_keeps_multiline_body():
    parsed = parse_model_command("@claude line one\nline two")

    assert parsed.content == "line one\nline two"


def test_command_listing():
    assert is_valid_model_command("@Sonnet")
    assert not is_valid_model_command("@unknown")
    assert "@gpt3.5" in get_available_commands()
    assert get_model_commands_help().startswith("Available model commands:")
