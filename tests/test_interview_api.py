import asyncio
import json
from datetime import datetime, timezone

import httpx

from estimation_workbench.interview_api import (
    MALFORMED_MESSAGE,
    NETWORK_MESSAGE,
    RATE_LIMITED_MESSAGE,
    TIMEOUT_MESSAGE,
    InterviewApiClient,
    error_message_for_status,
)
from estimation_workbench.models.interview import (
    ActivityPayload,
    EstimationFromInterviewRequest,
    InterviewAnswer,
    RequirementInterviewRequest,
)
from estimation_workbench.models.suggestion import ActivitySuggestionRequest, PresetPayload

QUESTIONS_REQUEST = RequirementInterviewRequest(
    description="Expose an API that syncs customer orders with the ERP.",
    tech_preset_id="preset-backend",
    tech_category="BACKEND",
)


def make_client(handler, **kwargs) -> InterviewApiClient:
    return InterviewApiClient(
        base_url="https://ai.example.test/functions/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_questions_call_sends_camel_case_and_parses_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "questions": [
                    {
                        "id": "q1",
                        "type": "single-choice",
                        "category": "INTEGRATION",
                        "question": "Which ERP?",
                        "technicalContext": "Connector availability",
                        "required": True,
                        "options": [{"id": "sap", "label": "SAP"}],
                    }
                ],
                "estimatedComplexity": "HIGH",
            },
        )

    client = make_client(handler, api_token="secret")
    response = asyncio.run(client.generate_questions(QUESTIONS_REQUEST))

    assert seen["url"] == "https://ai.example.test/functions/ai-requirement-interview"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["techPresetId"] == "preset-backend"
    assert "projectContext" not in seen["body"]
    assert response.success
    assert response.questions[0].technical_context == "Connector availability"
    assert response.estimated_complexity == "HIGH"


def test_status_codes_map_to_user_messages():
    cases = [
        (httpx.Response(429, json={}), RATE_LIMITED_MESSAGE),
        (httpx.Response(429, json={"message": "Slow down"}), "Slow down"),
        (httpx.Response(504, text="gateway timeout"), TIMEOUT_MESSAGE),
        (httpx.Response(500, json={"error": "boom"}), "boom"),
        (httpx.Response(502, text="bad gateway"), "Server error (502). Please retry."),
    ]
    for canned, expected in cases:
        client = make_client(lambda request, canned=canned: canned)
        response = asyncio.run(client.generate_questions(QUESTIONS_REQUEST))
        assert not response.success
        assert response.error == expected


def test_transport_errors_become_failed_responses():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def stall(request):
        raise httpx.ReadTimeout("timed out", request=request)

    assert asyncio.run(make_client(refuse).generate_questions(QUESTIONS_REQUEST)).error == NETWORK_MESSAGE
    assert asyncio.run(make_client(stall).generate_questions(QUESTIONS_REQUEST)).error == TIMEOUT_MESSAGE


def test_malformed_payload_is_reported():
    client = make_client(lambda request: httpx.Response(200, json={"questions": "nope"}))
    response = asyncio.run(client.generate_questions(QUESTIONS_REQUEST))
    assert not response.success
    assert response.error == MALFORMED_MESSAGE


def test_estimate_requires_answers_before_calling():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"success": True})

    client = make_client(handler)
    request = EstimationFromInterviewRequest(
        description="Nightly order sync",
        tech_preset_id="preset-backend",
        tech_category="BACKEND",
        answers={},
        activities=[],
    )

    response = asyncio.run(client.generate_estimate(request))

    assert not response.success
    assert calls == []

    answered = request.model_copy(
        update={
            "answers": {
                "q1": InterviewAnswer(
                    question_id="q1", category="INTEGRATION", value="SAP", timestamp=datetime.now(timezone.utc)
                )
            }
        }
    )
    assert asyncio.run(client.generate_estimate(answered)).success
    body = json.loads(calls[0].content)
    assert body["answers"]["q1"]["questionId"] == "q1"


def test_error_message_for_unknown_status():
    assert error_message_for_status(503, {}) == "Server error (503). Please retry."


def test_suggest_call_sends_snake_case_catalog_and_parses_camel_case():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"isValidRequirement": True, "activityCodes": ["BE_API"], "reasoning": "One endpoint"},
        )

    request = ActivitySuggestionRequest(
        description="Expose the open orders of a customer.",
        preset=PresetPayload(id="preset-backend", name="Backend API", tech_category="BACKEND"),
        activities=[
            ActivityPayload(code="BE_API", name="REST endpoint", base_hours=16, group="DEV", tech_category="BACKEND")
        ],
    )
    response = asyncio.run(make_client(handler).suggest_activities(request))

    assert seen["url"] == "https://ai.example.test/functions/ai-suggest"
    assert seen["body"]["action"] == "suggest-activities"
    assert seen["body"]["preset"]["tech_category"] == "BACKEND"
    assert seen["body"]["activities"][0]["base_hours"] == 16
    assert response.success
    assert response.is_valid_requirement
    assert response.activity_codes == ["BE_API"]


def test_suggest_call_maps_rate_limit_to_failed_suggestion():
    request = ActivitySuggestionRequest(
        description="Expose the open orders of a customer.",
        preset=PresetPayload(id="preset-backend", name="Backend API", tech_category="BACKEND"),
        activities=[],
    )
    client = make_client(lambda request: httpx.Response(429, json={}))

    response = asyncio.run(client.suggest_activities(request))

    assert not response.success
    assert response.error == RATE_LIMITED_MESSAGE
