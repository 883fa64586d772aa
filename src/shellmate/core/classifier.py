"""Request classification."""

from __future__ import annotations

from loguru import logger

from shellmate.core.prompts import CLASSIFIER_SYSTEM_PROMPT
from shellmate.core.types import RequestKind
from shellmate.errors import CompletionError
from shellmate.integrations.completion import (
    CompletionRequest,
    CompletionService,
    ModelTiers,
    system_message,
    user_message,
)

CLASSIFIER_MAX_TOKENS = 10
LOG_QUERY_KEYWORDS: tuple[str, ...] = (
    "show command log",
    "command log",
    "command history",
    "show commands",
    "recent commands",
    "commands run",
    "executed commands",
    "command list",
    "log of commands",
    "what commands",
    "commands from",
    "show log",
)


def is_command_log_request(text: str) -> bool:
    """Detect "what have you run" style requests without a model call."""

    lowered = text.lower()
    return any(keyword in lowered for keyword in LOG_QUERY_KEYWORDS)


def label_from_response(response: str) -> RequestKind:
    if "SEARCH" in response.strip().upper():
        return RequestKind.SEARCH
    return RequestKind.COMMAND


class RequestClassifier:
    """Labels a request as a command task or a general search query."""

    def __init__(self, completion: CompletionService, tiers: ModelTiers) -> None:
        self._completion = completion
        self._tiers = tiers

    async def classify(self, text: str) -> RequestKind:
        if is_command_log_request(text):
            return RequestKind.LOG_QUERY

        request = CompletionRequest(
            messages=[system_message(CLASSIFIER_SYSTEM_PROMPT), user_message(text)],
            model=self._tiers.fast,
            max_tokens=CLASSIFIER_MAX_TOKENS,
            temperature=self._tiers.temperature,
        )
        try:
            response = await self._completion.complete(request)
        except CompletionError as exc:
            logger.warning("classifier.failed error={} fallback=COMMAND", exc)
            return RequestKind.COMMAND
        kind = label_from_response(response)
        logger.info("classifier.result kind={} raw={!r}", kind, response.strip())
        return kind
