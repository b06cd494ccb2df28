"""Tests for sitegen.llm_client — the SDK client is replaced by a fake."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from sitegen.errors import GenerationError
from sitegen.llm_client import LLMClient


def _reply(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _fake_sdk(*replies):
    create = AsyncMock(side_effect=list(replies))
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return sdk, create


@pytest.mark.asyncio
async def test_complete_returns_text_and_sends_system_prompt():
    sdk, create = _fake_sdk(_reply("<h1>Hello</h1>"))
    client = LLMClient(client=sdk)

    text = await client.complete("be brief", "say hi", model="m-1")

    assert text == "<h1>Hello</h1>"
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "m-1"
    assert kwargs["messages"][0] == {"role": "system", "content": "be brief"}
    assert "response_format" not in kwargs


@pytest.mark.asyncio
async def test_complete_json_parses_first_reply():
    sdk, create = _fake_sdk(_reply('```json\n{"primary": "#112233"}\n```'))
    client = LLMClient(client=sdk)

    assert await client.complete_json("sys", "prompt") == {"primary": "#112233"}
    assert create.call_count == 1
    assert create.call_args.kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_complete_json_retries_once_with_correction():
    sdk, create = _fake_sdk(_reply("not json"), _reply('{"ok": true}'))
    client = LLMClient(client=sdk)

    assert await client.complete_json("sys", "prompt") == {"ok": True}
    assert create.call_count == 2
    retry_messages = create.call_args.kwargs["messages"]
    assert retry_messages[-2] == {"role": "assistant", "content": "not json"}
    assert "not valid JSON" in retry_messages[-1]["content"]


@pytest.mark.asyncio
async def test_complete_json_gives_up_after_retry():
    sdk, _ = _fake_sdk(_reply("nope"), _reply("still nope"))
    client = LLMClient(client=sdk)

    assert await client.complete_json("sys", "prompt") is None


@pytest.mark.asyncio
async def test_sdk_failure_becomes_generation_error():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://llm.test"))
    sdk, _ = _fake_sdk(error)
    client = LLMClient(client=sdk)

    with pytest.raises(GenerationError) as exc_info:
        await client.complete("sys", "prompt")
    assert exc_info.value.code == "GENERATION_FAILED"


@pytest.mark.asyncio
async def test_empty_choices_is_generation_error():
    sdk, _ = _fake_sdk(SimpleNamespace(choices=[]))
    client = LLMClient(client=sdk)

    with pytest.raises(GenerationError):
        await client.complete("sys", "prompt")
