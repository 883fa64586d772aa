from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from shellmate.core.classifier import RequestClassifier
from shellmate.core.explainer import Explainer
from shellmate.core.generator import CommandGenerator
from shellmate.core.orchestrator import Orchestrator
from shellmate.core.search import SearchHandler
from shellmate.errors import CompletionError
from shellmate.integrations.completion import CompletionRequest, ModelTiers
from shellmate.shell.host import ProcessResult
from shellmate.store.command_log import CommandLogStore
from shellmate.store.preferences import PreferenceStore

LARGE_MODEL = "test:large"
SMALL_MODEL = "test:small"


class ScriptedCompletion:
    """Answers each model tier from its own queue of replies."""

    def __init__(self, replies: dict[str, list[str | Exception]] | None = None) -> None:
        self.replies: dict[str, list[str | Exception]] = replies or {}
        self.requests: list[CompletionRequest] = []

    def queue(self, model: str, *replies: str | Exception) -> None:
        self.replies.setdefault(model, []).extend(replies)

    def requests_for(self, model: str) -> list[CompletionRequest]:
        return [request for request in self.requests if request.model == model]

    async def complete(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        pending = self.replies.get(request.model)
        if not pending:
            raise CompletionError("no scripted reply")
        reply = pending.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class FakeProcessHost:
    results: list[ProcessResult] = field(default_factory=list)
    calls: list[tuple[str, str]] = field(default_factory=list)
    gate: asyncio.Event | None = None
    started: asyncio.Event = field(default_factory=asyncio.Event)

    async def run(self, command: str, cwd: str) -> ProcessResult:
        self.calls.append((command, cwd))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            return self.results.pop(0)
        return ProcessResult(stdout=None, stderr=None, exit_code=0)


@dataclass
class RecordingOpener:
    urls: list[str] = field(default_factory=list)

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return True


@pytest.fixture
def tiers() -> ModelTiers:
    return ModelTiers(command=LARGE_MODEL, fast=SMALL_MODEL)


@pytest.fixture
def completion() -> ScriptedCompletion:
    return ScriptedCompletion()


@pytest.fixture
def host() -> FakeProcessHost:
    return FakeProcessHost()


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()


@pytest.fixture
def preferences(tmp_path: Path) -> PreferenceStore:
    return PreferenceStore(tmp_path / "state" / "preferences.json")


@pytest.fixture
def log_store(preferences: PreferenceStore) -> CommandLogStore:
    return CommandLogStore(preferences)


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
    tiers: ModelTiers,
    completion: ScriptedCompletion,
    host: FakeProcessHost,
    log_store: CommandLogStore,
    opener: RecordingOpener,
) -> Callable[..., Orchestrator]:
    def _make(**overrides: Any) -> Orchestrator:
        options: dict[str, Any] = {
            "classifier": RequestClassifier(completion, tiers),
            "generator": CommandGenerator(completion, tiers),
            "explainer": Explainer(completion, tiers),
            "host": host,
            "log_store": log_store,
            "search": SearchHandler(opener=opener),
            "home": tmp_path,
        }
        options.update(overrides)
        return Orchestrator(**options)

    return _make
