from __future__ import annotations

import json
import time
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from consumer_insights.errors import MalformedResponseError
from consumer_insights.llm_client import MessageResponse, OpenRouterClientAdapter
from consumer_insights.services import logger as log_service

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Parse a JSON object from model output, tolerating markdown code fences."""
    text = (raw_text or "").strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise json.JSONDecodeError("object not found", text, 0)
    parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed


def validate_payload(model_cls: type[PayloadT], data: Any, *, caller: str) -> PayloadT:
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"{caller} returned a response that does not match the expected schema",
            details={"errors": exc.errors(include_url=False)[:5]},
        ) from exc


class BaseAgent:
    """Shared plumbing for the single-shot LLM stages.

    Subclasses set `name` and call `_complete` / `_complete_json`; every call is
    timed and logged, and provider errors arrive already translated into the
    pipeline's error taxonomy by the client adapter.
    """

    name: str = "base"
    max_tokens: int = 4096

    def __init__(self, client: OpenRouterClientAdapter, model: str):
        self.client = client
        self.model = model

    async def _complete(
        self,
        system: str,
        user: str,
        *,
        json_mode: bool = False,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> MessageResponse:
        t0 = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=[{"role": "user", "content": user}],
                tools=tools,
                tool_choice=tool_choice,
                json_mode=json_mode,
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise

        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return response

    async def _complete_json(self, system: str, user: str, *, json_mode: bool = True) -> dict[str, Any]:
        response = await self._complete(system, user, json_mode=json_mode)
        try:
            return extract_json_object(response.text)
        except json.JSONDecodeError as exc:
            log_service.log_event(
                event_type="malformed_response",
                message=f"{self.name} returned non-JSON output",
                preview=response.text[:300],
            )
            raise MalformedResponseError(f"{self.name} returned non-JSON output") from exc

    async def _complete_tool(
        self,
        system: str,
        user: str,
        tool: dict[str, Any],
    ) -> dict[str, Any]:
        response = await self._complete(system, user, tools=[tool], tool_choice=tool["name"])
        arguments = response.tool_input(tool["name"])
        if arguments is None:
            raise MalformedResponseError(f"{self.name} did not call {tool['name']}")
        return arguments
