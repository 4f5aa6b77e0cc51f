from __future__ import annotations

import logging
from typing import Any, Protocol, Type, TypeVar

import httpx
from pydantic import ValidationError

from .models.bulk_interview import (
    BulkEstimateFromInterviewRequest,
    BulkEstimateFromInterviewResponse,
    BulkInterviewRequest,
    BulkInterviewResponse,
)
from .models.interview import (
    EstimationFromInterviewRequest,
    EstimationFromInterviewResponse,
    RequirementInterviewRequest,
    RequirementInterviewResponse,
    WireModel,
)
from .models.suggestion import ActivitySuggestion, ActivitySuggestionRequest

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=WireModel)

RATE_LIMITED_MESSAGE = "Too many requests. Please retry shortly."
TIMEOUT_MESSAGE = "The AI service timed out. Try reducing the size of the input."
NETWORK_MESSAGE = "Network error. Check the connection and retry."
MALFORMED_MESSAGE = "The AI service returned a malformed response."


class InterviewCollaborator(Protocol):
    async def generate_questions(self, request: RequirementInterviewRequest) -> RequirementInterviewResponse:
        ...

    async def generate_bulk_questions(self, request: BulkInterviewRequest) -> BulkInterviewResponse:
        ...

    async def generate_estimate(self, request: EstimationFromInterviewRequest) -> EstimationFromInterviewResponse:
        ...

    async def generate_bulk_estimates(
        self, request: BulkEstimateFromInterviewRequest
    ) -> BulkEstimateFromInterviewResponse:
        ...

    async def suggest_activities(self, request: ActivitySuggestionRequest) -> ActivitySuggestion:
        ...


def error_message_for_status(status_code: int, body: dict[str, Any]) -> str:
    if status_code == 429:
        return body.get("message") or RATE_LIMITED_MESSAGE
    if status_code == 504:
        return TIMEOUT_MESSAGE
    return body.get("message") or body.get("error") or f"Server error ({status_code}). Please retry."


class InterviewApiClient:
    """Async client for the serverless AI interview endpoints.

    Failures never raise: every HTTP or transport error comes back as a
    response model with ``success=False`` and a user-facing ``error``.
    """

    QUESTIONS_ENDPOINT = "ai-requirement-interview"
    BULK_QUESTIONS_ENDPOINT = "ai-bulk-interview"
    ESTIMATE_ENDPOINT = "ai-estimate-from-interview"
    BULK_ESTIMATE_ENDPOINT = "ai-bulk-estimate-with-answers"
    SUGGEST_ENDPOINT = "ai-suggest"

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str | None = None,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def generate_questions(self, request: RequirementInterviewRequest) -> RequirementInterviewResponse:
        return await self._call(self.QUESTIONS_ENDPOINT, request, RequirementInterviewResponse)

    async def generate_bulk_questions(self, request: BulkInterviewRequest) -> BulkInterviewResponse:
        return await self._call(self.BULK_QUESTIONS_ENDPOINT, request, BulkInterviewResponse)

    async def generate_estimate(self, request: EstimationFromInterviewRequest) -> EstimationFromInterviewResponse:
        if not request.answers:
            return EstimationFromInterviewResponse(success=False, error="Interview answers are required.")
        return await self._call(self.ESTIMATE_ENDPOINT, request, EstimationFromInterviewResponse)

    async def generate_bulk_estimates(
        self, request: BulkEstimateFromInterviewRequest
    ) -> BulkEstimateFromInterviewResponse:
        if not request.answers:
            return BulkEstimateFromInterviewResponse(success=False, error="Interview answers are required.")
        return await self._call(self.BULK_ESTIMATE_ENDPOINT, request, BulkEstimateFromInterviewResponse)

    async def suggest_activities(self, request: ActivitySuggestionRequest) -> ActivitySuggestion:
        return await self._call(self.SUGGEST_ENDPOINT, request, ActivitySuggestion)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _call(self, endpoint: str, request: WireModel, response_model: Type[R]) -> R:
        url = f"{self.base_url}/{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(url, json=request.to_wire(), headers=self._headers())
        except httpx.TimeoutException:
            logger.warning("AI endpoint timed out", extra={"endpoint": endpoint})
            return response_model(success=False, error=TIMEOUT_MESSAGE)
        except httpx.HTTPError:
            logger.error("AI endpoint unreachable", exc_info=True, extra={"endpoint": endpoint})
            return response_model(success=False, error=NETWORK_MESSAGE)

        if response.is_error:
            body = _json_or_empty(response)
            logger.warning(
                "AI endpoint returned an error status",
                extra={"endpoint": endpoint, "status_code": response.status_code},
            )
            return response_model(success=False, error=error_message_for_status(response.status_code, body))

        try:
            parsed = response_model.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.error("Failed to parse AI endpoint response", exc_info=True, extra={"endpoint": endpoint})
            return response_model(success=False, error=MALFORMED_MESSAGE)

        logger.info("AI endpoint call completed", extra={"endpoint": endpoint, "success": parsed.success})
        return parsed


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


__all__ = [
    "InterviewApiClient",
    "InterviewCollaborator",
    "error_message_for_status",
]
