import pytest

from shellmate.core.generator import (
    REFUSAL_TEXT,
    CommandGenerator,
    GeneratedCommand,
    GenerationRefusal,
    build_context_messages,
    enhance_ls_command,
)
from shellmate.core.types import ConversationEntry
from shellmate.errors import CompletionError


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("ls", "ls -F"),
        ("ls -la", "ls -laF"),
        ("ls -l ~/Documents", "ls -lF ~/Documents"),
        ("ls ~/Downloads", "ls -F ~/Downloads"),
        ("ls --all", "ls -F --all"),
        ("ls -F", "ls -F"),
        ("ls -lF", "ls -lF"),
        ("ls -f", "ls -f"),
        ("ls -la --classify", "ls -la --classify"),
        ("ls -l ~/my-files", "ls -lF ~/my-files"),
        ("ls ~/data-files", "ls -F ~/data-files"),
        ("lsof -i", "lsof -i"),
        ("pwd", "pwd"),
    ],
)
def test_enhance_ls_command(command: str, expected: str) -> None:
    assert enhance_ls_command(command) == expected


@pytest.mark.parametrize(
    "command", ["ls", "ls -la", "ls -lF", "ls -Fa ~/Desktop", "ls -l ~/my-files", "ls ~/Desktop", "cat notes.txt"]
)
def test_enhance_ls_command_is_idempotent(command: str) -> None:
    once = enhance_ls_command(command)
    assert enhance_ls_command(once) == once


def test_context_uses_last_five_entries() -> None:
    history = [ConversationEntry(role="user", text=f"request {index}") for index in range(7)]

    messages = build_context_messages(history)

    assert [message["content"] for message in messages] == [f"request {index}" for index in range(2, 7)]


def test_context_rewrites_executed_commands() -> None:
    history = [
        ConversationEntry(role="user", text="how much disk is free"),
        ConversationEntry(role="assistant", text="Running: df -h"),
        ConversationEntry(role="assistant", text="About 40 GB free.", command="df -h"),
    ]

    messages = build_context_messages(history)

    assert messages == [
        {"role": "user", "content": "how much disk is free"},
        {"role": "assistant", "content": "I executed the command: df -h. Result: About 40 GB free."},
    ]


def test_context_notes_started_command_without_result() -> None:
    history = [
        ConversationEntry(role="user", text="where am i"),
        ConversationEntry(role="assistant", text="Running: pwd"),
        ConversationEntry(role="assistant", text="Sorry, an error occurred. Details: Failed to get explanation: timeout"),
    ]

    messages = build_context_messages(history)

    assert [message["content"] for message in messages] == [
        "where am i",
        "I started running the command: pwd.",
        "Sorry, an error occurred. Details: Failed to get explanation: timeout",
    ]


@pytest.mark.asyncio
async def test_generate_uses_command_model(completion, tiers) -> None:
    completion.queue(tiers.command, "```bash\nls -l\n```")
    generator = CommandGenerator(completion, tiers)

    result = await generator.generate("list files with details")

    assert result == GeneratedCommand(command="ls -lF", raw="```bash\nls -l\n```")
    request = completion.requests[0]
    assert request.model == tiers.command
    assert request.max_tokens == 150
    assert request.temperature == 0.7
    assert request.messages[0]["role"] == "system"
    assert REFUSAL_TEXT in request.messages[0]["content"]
    assert request.messages[-1] == {"role": "user", "content": "list files with details"}


@pytest.mark.asyncio
async def test_generate_passes_through_refusal(completion, tiers) -> None:
    completion.queue(tiers.command, "Error: Ambiguous or unsafe request.")
    generator = CommandGenerator(completion, tiers)

    result = await generator.generate("do the thing")

    assert result == GenerationRefusal(message="Error: Ambiguous or unsafe request.")


@pytest.mark.asyncio
async def test_generate_rejects_blank_command(completion, tiers) -> None:
    completion.queue(tiers.command, "```\n```")
    generator = CommandGenerator(completion, tiers)

    with pytest.raises(CompletionError):
        await generator.generate("list files")


@pytest.mark.asyncio
async def test_generate_propagates_completion_errors(completion, tiers) -> None:
    generator = CommandGenerator(completion, tiers)

    with pytest.raises(CompletionError):
        await generator.generate("list files")
