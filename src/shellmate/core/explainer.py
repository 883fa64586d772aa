"""Natural-language explanations of commands and their outcomes."""

from __future__ import annotations

from loguru import logger

from shellmate.core.prompts import (
    COMMAND_EXPLANATION_FALLBACK,
    COMMAND_EXPLANATION_SYSTEM_PROMPT,
    OUTCOME_SYSTEM_PROMPT,
)
from shellmate.errors import CompletionError
from shellmate.integrations.completion import CompletionRequest, CompletionService, ModelTiers, system_message

OUTCOME_MAX_TOKENS = 200
COMMAND_MAX_TOKENS = 100
MISSING_STREAM = "None"


class Explainer:
    def __init__(self, completion: CompletionService, tiers: ModelTiers) -> None:
        self._completion = completion
        self._tiers = tiers

    async def explain_outcome(
        self,
        *,
        user_prompt: str,
        command: str,
        output: str | None,
        error: str | None,
    ) -> str:
        """Summarize an execution for the user. Raises ``CompletionError`` on failure."""
        prompt = OUTCOME_SYSTEM_PROMPT.format(
            user_prompt=user_prompt,
            command=command,
            output=output or MISSING_STREAM,
            error=error or MISSING_STREAM,
        )
        text = await self._completion.complete(
            CompletionRequest(
                messages=[system_message(prompt)],
                model=self._tiers.fast,
                max_tokens=OUTCOME_MAX_TOKENS,
                temperature=self._tiers.temperature,
            )
        )
        return text.strip()

    async def explain_command(self, command: str) -> str:
        """Describe a pending command; never fails."""
        try:
            text = await self._completion.complete(
                CompletionRequest(
                    messages=[system_message(COMMAND_EXPLANATION_SYSTEM_PROMPT.format(command=command))],
                    model=self._tiers.fast,
                    max_tokens=COMMAND_MAX_TOKENS,
                    temperature=self._tiers.temperature,
                )
            )
        except CompletionError as exc:
            logger.warning("explainer.command.failed error={}", exc)
            return COMMAND_EXPLANATION_FALLBACK
        return text.strip()
