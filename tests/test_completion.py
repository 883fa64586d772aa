import asyncio
import importlib
from typing import Any

import pytest

from shellmate.config import Settings
from shellmate.errors import CompletionError
from shellmate.integrations.completion import (
    CompletionRequest,
    RepublicCompletionService,
    build_model_tiers,
    system_message,
    user_message,
)

completion_module = importlib.import_module("shellmate.integrations.completion")


class FakeLLM:
    instances: list["FakeLLM"] = []
    reply: Any = "ls -F"
    delay: float = 0.0
    error: Exception | None = None

    def __init__(self, model: str, *, api_key: str | None = None, api_base: str | None = None) -> None:
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.calls: list[dict[str, Any]] = []
        FakeLLM.instances.append(self)

    async def chat_async(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> type[FakeLLM]:
    FakeLLM.instances = []
    FakeLLM.reply = "ls -F"
    FakeLLM.delay = 0.0
    FakeLLM.error = None
    monkeypatch.setattr(completion_module, "LLM", FakeLLM)
    return FakeLLM


def _request(model: str = "groq:large") -> CompletionRequest:
    return CompletionRequest(
        messages=[system_message("be brief"), user_message("list files")],
        model=model,
        max_tokens=150,
        temperature=0.7,
    )


@pytest.mark.asyncio
async def test_complete_forwards_request(fake_llm: type[FakeLLM]) -> None:
    service = RepublicCompletionService(api_key="sk-test", api_base="https://api.example.com")

    text = await service.complete(_request())

    assert text == "ls -F"
    llm = fake_llm.instances[0]
    assert (llm.model, llm.api_key, llm.api_base) == ("groq:large", "sk-test", "https://api.example.com")
    assert llm.calls == [
        {
            "messages": [
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "list files"},
            ],
            "max_tokens": 150,
            "temperature": 0.7,
        }
    ]


@pytest.mark.asyncio
async def test_one_client_per_model(fake_llm: type[FakeLLM]) -> None:
    service = RepublicCompletionService(api_key="sk-test")

    await service.complete(_request("groq:large"))
    await service.complete(_request("groq:large"))
    await service.complete(_request("groq:small"))

    assert [llm.model for llm in fake_llm.instances] == ["groq:large", "groq:small"]


@pytest.mark.asyncio
async def test_provider_errors_become_completion_errors(fake_llm: type[FakeLLM]) -> None:
    fake_llm.error = RuntimeError("401 unauthorized")
    service = RepublicCompletionService(api_key="bad")

    with pytest.raises(CompletionError, match="401 unauthorized"):
        await service.complete(_request())


@pytest.mark.parametrize("reply", ["", "   ", None])
@pytest.mark.asyncio
async def test_empty_reply_is_malformed(fake_llm: type[FakeLLM], reply: Any) -> None:
    fake_llm.reply = reply
    service = RepublicCompletionService(api_key="sk-test")

    with pytest.raises(CompletionError, match="malformed"):
        await service.complete(_request())


@pytest.mark.asyncio
async def test_slow_reply_times_out(fake_llm: type[FakeLLM]) -> None:
    fake_llm.delay = 1.0
    service = RepublicCompletionService(api_key="sk-test", timeout_seconds=0.05)

    with pytest.raises(CompletionError, match="no response"):
        await service.complete(_request())


def test_model_tiers_follow_settings() -> None:
    settings = Settings(command_model="openai:gpt-4o", fast_model="openai:gpt-4o-mini", temperature=0.2)

    tiers = build_model_tiers(settings)

    assert (tiers.command, tiers.fast, tiers.temperature) == ("openai:gpt-4o", "openai:gpt-4o-mini", 0.2)
