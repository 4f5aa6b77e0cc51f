import asyncio
import json

import pytest

from estimation_workbench.catalog_repository import FallbackCatalogRepository, LocalCatalogRepository
from estimation_workbench.errors import CollaboratorError, InterviewBusyError
from estimation_workbench.interview import NO_ACTIVITIES_MESSAGE, InterviewPhase, RequirementInterview
from estimation_workbench.models.estimate import ValueSource
from estimation_workbench.models.interview import (
    EstimationFromInterviewResponse,
    RequirementInterviewResponse,
    SelectedActivityWithReason,
    SuggestedDriver,
    TechnicalQuestion,
)

DESCRIPTION = "Expose an API that syncs customer orders with the ERP every night."


def make_questions():
    return [
        TechnicalQuestion(id="q1", type="single-choice", category="INTEGRATION", question="Which ERP?", required=True),
        TechnicalQuestion(id="q2", type="text", category="DATA", question="Data volume?"),
        TechnicalQuestion(id="q3", type="range", category="PERFORMANCE", question="Latency budget?", required=True),
    ]


class FakeCollaborator:
    def __init__(self, *, questions=None, estimate=None, error=None):
        self.questions_response = questions or RequirementInterviewResponse(
            success=True, questions=make_questions(), reasoning="ERP integration", estimated_complexity="HIGH"
        )
        self.estimate_response = estimate or EstimationFromInterviewResponse(
            success=True,
            generated_title="Nightly ERP order sync",
            activities=[
                SelectedActivityWithReason(code="BE_API", reason="endpoint"),
                SelectedActivityWithReason(code="BE_INTEGRATION", reason="ERP"),
                SelectedActivityWithReason(code="FE_PAGE", reason="not for this stack"),
            ],
            confidence_score=0.8,
            suggested_drivers=[SuggestedDriver(code="INTEGRATION", suggested_value="HIGH")],
        )
        self.error = error
        self.requests = []

    async def generate_questions(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.questions_response

    async def generate_estimate(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.estimate_response


def make_interview(collaborator=None, repository=None):
    return RequirementInterview(
        collaborator=collaborator or FakeCollaborator(),
        catalog_repository=repository or FallbackCatalogRepository(None),
    )


def test_generate_questions_moves_to_interviewing():
    collaborator = FakeCollaborator()
    interview = make_interview(collaborator)

    ok = asyncio.run(interview.generate_questions(f"<b>{DESCRIPTION}</b>", "preset-backend", "BACKEND"))

    assert ok
    assert interview.phase == InterviewPhase.interviewing
    assert len(interview.questions) == 3
    assert interview.current_question_index == 0
    assert interview.estimated_complexity == "HIGH"
    assert collaborator.requests[0].description == f"b{DESCRIPTION}/b"


def test_short_description_fails_without_calling_collaborator():
    collaborator = FakeCollaborator()
    interview = make_interview(collaborator)

    ok = asyncio.run(interview.generate_questions("too short", "preset-backend", "BACKEND"))

    assert not ok
    assert interview.phase == InterviewPhase.error
    assert interview.error
    assert collaborator.requests == []


def test_collaborator_failure_moves_to_error():
    failed = RequirementInterviewResponse(success=False, error="Too many requests. Please retry shortly.")
    interview = make_interview(FakeCollaborator(questions=failed))

    assert not asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))
    assert interview.phase == InterviewPhase.error
    assert interview.error == "Too many requests. Please retry shortly."


def test_collaborator_exception_moves_to_error():
    interview = make_interview(FakeCollaborator(error=CollaboratorError("model unavailable")))

    assert not asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))
    assert interview.phase == InterviewPhase.error
    assert interview.error == "model unavailable"


def test_navigation_and_progress():
    interview = make_interview()
    asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))

    assert interview.is_first_question
    assert not interview.can_proceed
    interview.previous_question()
    assert interview.current_question_index == 0

    interview.answer_question("q1", "SAP")
    assert interview.can_proceed
    interview.next_question()
    assert interview.can_proceed
    interview.go_to_question(2)
    assert interview.is_last_question
    assert interview.progress == pytest.approx(100.0)
    interview.next_question()
    interview.go_to_question(7)
    assert interview.current_question_index == 2

    assert not interview.required_answered
    interview.answer_question("q3", 200)
    assert interview.required_answered
    assert interview.answered_count == 2


def test_answers_are_upserted_and_unknown_ids_ignored():
    interview = make_interview()
    asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))

    interview.answer_question("q1", "SAP")
    interview.answer_question("q1", "Dynamics")
    interview.answer_question("q-missing", "x")

    assert list(interview.answers) == ["q1"]
    answer = interview.answers["q1"]
    assert answer.value == "Dynamics"
    assert answer.category == "INTEGRATION"
    assert answer.timestamp.tzinfo is not None


def test_generate_estimate_finalizes_compatible_activities():
    collaborator = FakeCollaborator()
    interview = make_interview(collaborator)
    asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))
    interview.answer_question("q1", "SAP")

    estimate = asyncio.run(interview.generate_estimate(DESCRIPTION, "preset-backend", "BACKEND"))

    assert interview.phase == InterviewPhase.complete
    request = collaborator.requests[-1]
    assert {activity.tech_category for activity in request.activities} == {"BACKEND", "MULTI"}
    assert set(request.answers) == {"q1"}

    finalized = estimate.finalized
    assert [activity.code for activity in finalized.selected_activities] == ["BE_API", "BE_INTEGRATION"]
    assert finalized.base_days == 6.0
    assert finalized.driver_source == ValueSource.suggested
    assert finalized.risk_source == ValueSource.preset
    assert finalized.driver_multiplier == pytest.approx(1.3)
    assert finalized.risk_score == 5
    assert estimate.response.generated_title == "Nightly ERP order sync"


def test_generate_estimate_without_activities_fails(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"activities": [], "drivers": [], "risks": [], "presets": []}), encoding="utf-8")
    collaborator = FakeCollaborator()
    interview = make_interview(collaborator, LocalCatalogRepository(path=path))

    estimate = asyncio.run(interview.generate_estimate(DESCRIPTION, "preset-backend", "BACKEND"))

    assert estimate is None
    assert interview.phase == InterviewPhase.error
    assert interview.error == NO_ACTIVITIES_MESSAGE
    assert collaborator.requests == []


def test_busy_interview_rejects_overlapping_calls():
    interview = None
    captured = []

    class ReentrantCollaborator(FakeCollaborator):
        async def generate_questions(self, request):
            try:
                await interview.generate_estimate(DESCRIPTION, "preset-backend", "BACKEND")
            except InterviewBusyError as exc:
                captured.append(exc)
            return await super().generate_questions(request)

    interview = make_interview(ReentrantCollaborator())

    assert asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))
    assert captured and captured[0].phase == "loading-questions"
    assert interview.phase == InterviewPhase.interviewing


def test_reset_returns_to_idle():
    interview = make_interview()
    asyncio.run(interview.generate_questions(DESCRIPTION, "preset-backend", "BACKEND"))
    interview.answer_question("q1", "SAP")

    interview.reset()

    assert interview.phase == InterviewPhase.idle
    assert interview.questions == []
    assert interview.answers == {}
    assert interview.current_question is None
    assert interview.progress == 0.0
