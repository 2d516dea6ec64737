"""OpenAI-compatible gateway client exposed through a messages-style adapter."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from consumer_insights.config import Settings
from consumer_insights.errors import (
    ConfigurationError,
    PipelineError,
    QuotaExceededError,
    RateLimitError,
    UpstreamError,
)


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class TextBlock:
    type: str
    text: str


@dataclass
class ToolUseBlock:
    type: str
    id: str
    name: str
    input: dict[str, Any]


@dataclass
class MessageResponse:
    content: list[Any]
    usage: Usage

    @property
    def text(self) -> str:
        return "\n".join(b.text for b in self.content if getattr(b, "type", None) == "text").strip()

    def tool_input(self, name: str) -> dict[str, Any] | None:
        for block in self.content:
            if getattr(block, "type", None) == "tool_use" and block.name == name:
                return block.input
        return None


def translate_provider_error(exc: Exception) -> Exception:
    """Map `openai` SDK exceptions onto the pipeline's error taxonomy."""
    import openai

    if isinstance(exc, PipelineError):
        return exc
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError(details={"provider": "llm"})
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code == 402:
            return QuotaExceededError(details={"provider": "llm"})
        return UpstreamError(
            f"LLM request failed with status {exc.status_code}",
            details={"provider": "llm", "status": exc.status_code},
        )
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamError("LLM request timed out", details={"provider": "llm"})
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamError(f"LLM connection failed: {exc}", details={"provider": "llm"})
    return exc


class OpenRouterMessagesAdapter:
    def __init__(self, openai_client: Any | None, *, temperature: float = 0.3):
        self._client = openai_client
        self._temperature = temperature

    def _temperature_for_model(self, model: str) -> float:
        # Some OpenAI GPT-5-compatible gateways reject anything but the default.
        lowered = (model or "").lower()
        if "gpt-5" in lowered:
            return 1
        return self._temperature

    @staticmethod
    def _to_openai_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        openai_messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
        for message in messages:
            content = message["content"]
            if not isinstance(content, str):
                content = json.dumps(content, ensure_ascii=False)
            openai_messages.append({"role": message["role"], "content": content})
        return openai_messages

    @staticmethod
    def _to_openai_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t.get("description", ""),
                    "parameters": t.get("input_schema", {"type": "object", "properties": {}}),
                },
            }
            for t in tools
        ]

    @staticmethod
    def _from_openai_response(response: Any) -> MessageResponse:
        choice = response.choices[0].message
        content: list[Any] = []

        text = getattr(choice, "content", None)
        if text:
            content.append(TextBlock(type="text", text=text))

        for tc in getattr(choice, "tool_calls", []) or []:
            args = getattr(tc.function, "arguments", "{}") or "{}"
            try:
                parsed_args = json.loads(args)
            except json.JSONDecodeError:
                parsed_args = {}
            content.append(
                ToolUseBlock(
                    type="tool_use",
                    id=tc.id,
                    name=tc.function.name,
                    input=parsed_args if isinstance(parsed_args, dict) else {},
                )
            )

        usage = getattr(response, "usage", None)
        mapped_usage = Usage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        return MessageResponse(content=content, usage=mapped_usage)

    async def create(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        json_mode: bool = False,
    ) -> MessageResponse:
        if self._client is None:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": self._to_openai_messages(system, messages),
            "max_tokens": max_tokens,
            "temperature": self._temperature_for_model(model),
        }
        if tools:
            kwargs["tools"] = self._to_openai_tools(tools)
            if tool_choice:
                kwargs["tool_choice"] = {"type": "function", "function": {"name": tool_choice}}
            else:
                kwargs["tool_choice"] = "auto"
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            translated = translate_provider_error(exc)
            if translated is exc:
                raise
            raise translated from exc
        return self._from_openai_response(response)


class OpenRouterClientAdapter:
    def __init__(self, openai_client: Any | None, *, temperature: float = 0.3):
        self._openai_client = openai_client
        self.messages = OpenRouterMessagesAdapter(openai_client, temperature=temperature)

    def ensure_configured(self) -> None:
        if self._openai_client is None:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

    async def aclose(self) -> None:
        if self._openai_client is not None:
            await self._openai_client.close()


def get_client(settings: Settings) -> OpenRouterClientAdapter:
    """Build the gateway client; an unconfigured key defers the failure to first use."""
    if not settings.openrouter_api_key:
        return OpenRouterClientAdapter(None, temperature=settings.llm_temperature)

    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
        timeout=settings.llm_timeout_seconds,
    )
    return OpenRouterClientAdapter(openai_client, temperature=settings.llm_temperature)
