"""Completion service backed by Republic."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger
from republic import LLM

from shellmate.config import Settings
from shellmate.errors import CompletionError

Message = dict[str, str]


@dataclass(frozen=True)
class CompletionRequest:
    """One request to the completion service."""

    messages: list[Message]
    model: str
    max_tokens: int
    temperature: float = 0.7


@dataclass(frozen=True)
class ModelTiers:
    """Model identifiers for the two tiers the pipeline uses."""

    command: str
    fast: str
    temperature: float = 0.7


class CompletionService(Protocol):
    async def complete(self, request: CompletionRequest) -> str: ...


def system_message(content: str) -> Message:
    return {"role": "system", "content": content}


def user_message(content: str) -> Message:
    return {"role": "user", "content": content}


def assistant_message(content: str) -> Message:
    return {"role": "assistant", "content": content}


@dataclass
class RepublicCompletionService:
    """Completion service with one Republic client per model id."""

    api_key: str | None
    api_base: str | None = None
    timeout_seconds: float | None = 30
    _clients: dict[str, LLM] = field(default_factory=dict, init=False, repr=False)

    async def complete(self, request: CompletionRequest) -> str:
        llm = self._client(request.model)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                text = await llm.chat_async(
                    messages=request.messages,
                    max_tokens=request.max_tokens,
                    temperature=request.temperature,
                )
        except TimeoutError as exc:
            logger.warning("completion.timeout model={} timeout={}", request.model, self.timeout_seconds)
            raise CompletionError(f"no response within {self.timeout_seconds}s") from exc
        except Exception as exc:
            # Provider adapters raise non-uniform exceptions; normalize them at this boundary.
            logger.opt(exception=True).warning("completion.error model={}", request.model)
            raise CompletionError(f"{exc!s}") from exc

        if not isinstance(text, str) or not text.strip():
            raise CompletionError("No choices in response or malformed data")
        return text

    def _client(self, model: str) -> LLM:
        if model not in self._clients:
            self._clients[model] = LLM(model, api_key=self.api_key, api_base=self.api_base)
        return self._clients[model]


def build_completion_service(settings: Settings) -> RepublicCompletionService:
    """Build the Republic-backed completion service for the configured provider."""

    return RepublicCompletionService(
        api_key=settings.resolved_api_key,
        api_base=settings.api_base,
        timeout_seconds=settings.model_timeout_seconds,
    )


def build_model_tiers(settings: Settings) -> ModelTiers:
    return ModelTiers(
        command=settings.command_model,
        fast=settings.fast_model,
        temperature=settings.temperature,
    )
