"""Error taxonomy shared by the pipeline, the HTTP layer and the CLI."""
from __future__ import annotations

from typing import Any

import httpx


class PipelineError(Exception):
    """Base error carrying an HTTP-equivalent status and a stable reason code."""

    status_code: int = 500
    reason: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.partial: dict[str, Any] = {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "reason": self.reason}
        if self.details is not None:
            payload["details"] = self.details
        payload.update(self.partial)
        return payload


class ConfigurationError(PipelineError):
    status_code = 500
    reason = "configuration"


class RateLimitError(PipelineError):
    status_code = 429
    reason = "rate_limited"

    def __init__(self, message: str = "요청 한도를 초과했습니다. 잠시 후 다시 시도해주세요.", **kwargs: Any):
        super().__init__(message, **kwargs)


class QuotaExceededError(PipelineError):
    status_code = 402
    reason = "quota_exhausted"

    def __init__(self, message: str = "크레딧이 부족합니다. 크레딧을 충전한 뒤 다시 시도해주세요.", **kwargs: Any):
        super().__init__(message, **kwargs)


class UpstreamError(PipelineError):
    status_code = 502
    reason = "upstream_error"


class MalformedResponseError(PipelineError):
    status_code = 502
    reason = "malformed_response"


class EmptyQueryError(PipelineError):
    status_code = 400
    reason = "empty_query"

    def __init__(self, message: str = "검색할 키워드를 입력해주세요.", **kwargs: Any):
        super().__init__(message, **kwargs)


class MissingSelectionError(PipelineError):
    status_code = 400
    reason = "missing_selection"


class EmptyContentError(PipelineError):
    status_code = 422
    reason = "empty_content"


class NoDataAvailableError(PipelineError):
    status_code = 404
    reason = "no_data_available"


class DocumentNotFoundError(PipelineError):
    status_code = 404
    reason = "not_found"


def raise_for_provider_status(response: httpx.Response, provider: str) -> None:
    """Map a provider's non-2xx response onto the error taxonomy."""
    if response.is_success:
        return
    body = response.text[:500]
    if response.status_code == 429:
        raise RateLimitError(details={"provider": provider, "body": body})
    if response.status_code == 402:
        raise QuotaExceededError(details={"provider": provider, "body": body})
    raise UpstreamError(
        f"{provider} request failed with status {response.status_code}",
        details={"provider": provider, "status": response.status_code, "body": body},
    )


def wrap_transport_error(exc: httpx.HTTPError, provider: str) -> UpstreamError:
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamError(f"{provider} request timed out", details={"provider": provider})
    return UpstreamError(f"{provider} request failed: {exc}", details={"provider": provider})
