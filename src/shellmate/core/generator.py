"""Shell command generation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from shellmate.core.commands import long_flags, normalize_generated_command, short_flag_letters, split_tokens
from shellmate.core.prompts import (
    EXECUTED_COMMAND_CONTEXT,
    GENERATOR_SYSTEM_PROMPT,
    RUNNING_PREFIX,
    STARTED_COMMAND_CONTEXT,
)
from shellmate.core.types import ConversationEntry
from shellmate.errors import CompletionError
from shellmate.integrations.completion import (
    CompletionRequest,
    CompletionService,
    Message,
    ModelTiers,
    assistant_message,
    system_message,
    user_message,
)

REFUSAL_PREFIX = "Error:"
REFUSAL_TEXT = "Error: Ambiguous or unsafe request."
GENERATOR_MAX_TOKENS = 150
CONTEXT_WINDOW = 5
TYPE_SUFFIX_FLAG = "F"
CLASSIFY_FLAG = "--classify"


@dataclass(frozen=True)
class GeneratedCommand:
    command: str
    raw: str


@dataclass(frozen=True)
class GenerationRefusal:
    message: str


GenerationResult = GeneratedCommand | GenerationRefusal


def enhance_ls_command(command: str) -> str:
    """Make bare ``ls`` invocations emit type suffixes (``-F``).

    Directory, executable and symlink suffixes are what the listing parser
    keys on. Applying this twice yields the same string as applying it once.
    """

    trimmed = command.strip()
    tokens = split_tokens(trimmed)
    if not tokens or tokens[0] != "ls":
        return command
    letters = short_flag_letters(trimmed)
    if TYPE_SUFFIX_FLAG in letters or "f" in letters:
        return command
    if any(flag.split("=", 1)[0] == CLASSIFY_FLAG for flag in long_flags(trimmed)):
        return command

    if len(tokens) > 1 and tokens[1].startswith("-") and not tokens[1].startswith("--"):
        existing_flags = tokens[1]
        return trimmed.replace(existing_flags, existing_flags + TYPE_SUFFIX_FLAG, 1)
    return "ls -F" + trimmed[len("ls") :]


def build_context_messages(history: Sequence[ConversationEntry]) -> list[Message]:
    window = list(history)[-CONTEXT_WINDOW:]
    executed = {entry.command for entry in window if entry.command}
    messages: list[Message] = []
    for entry in window:
        if entry.is_user:
            messages.append(user_message(entry.text))
            continue
        if entry.command:
            messages.append(assistant_message(EXECUTED_COMMAND_CONTEXT.format(command=entry.command, text=entry.text)))
        elif entry.text.startswith(RUNNING_PREFIX):
            started = entry.text[len(RUNNING_PREFIX) :]
            # the executed entry that follows already names this command
            if started not in executed:
                messages.append(assistant_message(STARTED_COMMAND_CONTEXT.format(command=started)))
        else:
            messages.append(assistant_message(entry.text))
    return messages


class CommandGenerator:
    """Builds the generation prompt, calls the large model, and normalizes the result."""

    def __init__(self, completion: CompletionService, tiers: ModelTiers) -> None:
        self._completion = completion
        self._tiers = tiers

    async def generate(self, request: str, history: Sequence[ConversationEntry] = ()) -> GenerationResult:
        messages = [
            system_message(GENERATOR_SYSTEM_PROMPT.format(refusal=REFUSAL_TEXT)),
            *build_context_messages(history),
            user_message(request),
        ]
        raw = await self._completion.complete(
            CompletionRequest(
                messages=messages,
                model=self._tiers.command,
                max_tokens=GENERATOR_MAX_TOKENS,
                temperature=self._tiers.temperature,
            )
        )
        command = normalize_generated_command(raw)
        if not command:
            raise CompletionError("model returned an empty command")
        if command.startswith(REFUSAL_PREFIX):
            logger.info("generator.refused message={!r}", command)
            return GenerationRefusal(message=command)

        enhanced = enhance_ls_command(command)
        logger.info("generator.command raw={!r} command={!r}", raw, enhanced)
        return GeneratedCommand(command=enhanced, raw=raw)
