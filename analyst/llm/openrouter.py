"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from analyst.config import Settings
from analyst.errors import ModelUnavailableError
from analyst.llm.base import LLMProvider
from analyst.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = [5, 15, 45]


class OpenRouterProvider(LLMProvider):
    """LLM provider using OpenRouter's OpenAI-compatible chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": self._settings.openrouter_model,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        if response_format:
            payload["response_format"] = response_format

        try:
            data = await self._post(payload)
        except httpx.HTTPStatusError as exc:
            raise ModelUnavailableError(
                f"OpenRouter returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ModelUnavailableError(f"OpenRouter request failed: {exc!r}") from exc

        try:
            choice = data["choices"][0]["message"]
            finish_reason = data["choices"][0].get("finish_reason")
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ModelUnavailableError("OpenRouter response has no choices") from exc
        if not isinstance(choice, dict):
            raise ModelUnavailableError("OpenRouter response message is not an object")

        content = choice.get("content") or ""
        if not isinstance(content, str):
            raise ModelUnavailableError("OpenRouter response content is not text")
        raw_tool_calls = choice.get("tool_calls") or []
        if not isinstance(raw_tool_calls, list):
            raise ModelUnavailableError("OpenRouter response tool_calls is not a list")
        _LOGGER.info(
            "LLM response: finish_reason=%r content=%r tool_calls=%r",
            finish_reason,
            content[:200] if content else "",
            raw_tool_calls,
        )

        parsed_tool_calls: list[LLMToolCall] = []
        for tool_call in raw_tool_calls:
            if not isinstance(tool_call, dict):
                _LOGGER.warning("Skipping malformed tool call: %r", tool_call)
                continue
            # A call without a usable function name is left for registry validation to reject.
            function_data = tool_call.get("function")
            if not isinstance(function_data, dict):
                function_data = {}
            name = function_data.get("name")
            call_id = tool_call.get("id")
            parsed_tool_calls.append(
                LLMToolCall(
                    name=name if isinstance(name, str) else "",
                    arguments=_safe_json_loads(function_data.get("arguments") or "{}"),
                    call_id=call_id if isinstance(call_id, str) else None,
                )
            )

        return LLMResponse(content=content, tool_calls=parsed_tool_calls, raw=data)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.openrouter_base_url, timeout=timeout) as client:
            waited = 0.0
            for attempt in range(_MAX_RETRIES + 1):
                response = await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.openrouter_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                if response.status_code == 429 and attempt < _MAX_RETRIES:
                    wait = _RETRY_BACKOFF_SECONDS[attempt]
                    # Backoff never outlasts the request timeout; past it the 429 is raised.
                    if waited + wait < self._settings.request_timeout_seconds:
                        _LOGGER.warning(
                            "OpenRouter rate limited (429), retrying in %ds (attempt %d/%d)",
                            wait,
                            attempt + 1,
                            _MAX_RETRIES,
                        )
                        await asyncio.sleep(wait)
                        waited += wait
                        continue
                    _LOGGER.warning("OpenRouter rate limited (429), backoff would exceed request timeout")
                response.raise_for_status()
                break
        try:
            return response.json()
        except ValueError as exc:
            raise ModelUnavailableError("OpenRouter returned a non-JSON body") from exc


def _safe_json_loads(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}
