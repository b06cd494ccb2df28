"""
Generative collaborator client.

Uses the OpenAI-compatible SDK (defaults to the Gemini compatibility
endpoint). Transport retries and timeouts are owned by the SDK; every
SDK failure surfaces as ``GenerationError`` so the calling stage aborts.
"""

from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from sitegen.errors import GenerationError
from sitegen.settings import settings
from sitegen.structured_output import extract_json

logger = logging.getLogger("sitegen.llm_client")

_RETRY_PROMPT = (
    "Your previous response was not valid JSON. "
    "Return ONLY a valid JSON object matching the requested structure. "
    "No code fences, no extra text."
)


class LLMClient:
    """Async wrapper around an OpenAI-compatible chat completions API."""

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self._client = client or AsyncOpenAI(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            timeout=settings.llm_timeout,
            max_retries=settings.llm_max_retries,
        )

    async def complete(
        self,
        system: str,
        prompt: str,
        *,
        model: str | None = None,
        json_mode: bool = False,
    ) -> str:
        """Send one system + user message pair and return the raw reply text."""
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        return await self._call(messages, model=model, json_mode=json_mode)

    async def complete_json(
        self,
        system: str,
        prompt: str,
        *,
        model: str | None = None,
    ) -> dict[str, Any] | None:
        """Request a JSON object; retry once with a correction prompt.

        Returns ``None`` when neither reply contains a JSON object.
        """
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

        raw = await self._call(messages, model=model, json_mode=True)
        result = extract_json(raw)
        if result is not None:
            return result

        logger.warning("LLM returned invalid JSON, retrying with correction prompt")
        messages.append({"role": "assistant", "content": raw})
        messages.append({"role": "user", "content": _RETRY_PROMPT})

        raw_retry = await self._call(messages, model=model, json_mode=True)
        result = extract_json(raw_retry)
        if result is None:
            logger.error("LLM retry also returned invalid JSON")
        return result

    async def _call(
        self,
        messages: list[dict],
        *,
        model: str | None,
        json_mode: bool,
    ) -> str:
        """Make the chat completion request and return raw text."""
        kwargs: dict[str, Any] = {
            "model": model or settings.llm_model,
            "messages": messages,
            "max_tokens": settings.llm_max_tokens,
            "temperature": settings.llm_temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            logger.error("LLM call failed: %s", exc)
            raise GenerationError(
                "The content generation service failed to respond.",
                details=str(exc)[:300],
            ) from exc

        if not response.choices:
            raise GenerationError("The content generation service returned no choices.")
        content = response.choices[0].message.content or ""
        logger.debug("LLM raw response (first 500 chars): %s", content[:500])
        return content

    async def aclose(self) -> None:
        await self._client.close()
