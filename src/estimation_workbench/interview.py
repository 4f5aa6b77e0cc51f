"""Single-requirement technical interview.

Flow: generate questions from the description, collect answers, then ask the
AI collaborator for an activity selection and finalise it into an estimate.
Failures never raise out of the network-bound actions: they move the
interview to the ``error`` phase with a message, and the caller retries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, Sequence, TypeVar

from .catalog_repository import CatalogRepository, load_catalog
from .errors import InterviewBusyError, RequirementValidationError
from .finalizer import interview_finalize_estimation
from .models.catalog import Activity
from .models.estimate import FinalizedEstimation
from .models.interview import (
    ActivityPayload,
    AnswerValue,
    Complexity,
    EstimationFromInterviewRequest,
    EstimationFromInterviewResponse,
    InterviewAnswer,
    ProjectContext,
    RequirementInterviewRequest,
    TechnicalQuestion,
)
from .interview_api import InterviewCollaborator
from .sanitize import sanitize_prompt_input, validate_description

logger = logging.getLogger(__name__)

Q = TypeVar("Q")
A = TypeVar("A")

NO_ACTIVITIES_MESSAGE = "No activities are available for this technology."


class InterviewPhase(str, Enum):
    idle = "idle"
    loading_questions = "loading-questions"
    interviewing = "interviewing"
    generating_estimate = "generating-estimate"
    complete = "complete"
    error = "error"


@dataclass
class InterviewEstimate:
    response: EstimationFromInterviewResponse
    finalized: FinalizedEstimation


def to_activity_payload(activity: Activity) -> ActivityPayload:
    return ActivityPayload(
        code=activity.code,
        name=activity.name,
        description=activity.description,
        base_hours=activity.base_hours,
        group=activity.group,
        tech_category=activity.tech_category,
    )


class QuestionSession(Generic[Q, A]):
    """Question list, answers keyed by question id and the cursor between them."""

    def __init__(self) -> None:
        self.questions: list[Q] = []
        self.answers: dict[str, A] = {}
        self.current_question_index = 0
        self.error: str | None = None

    @property
    def current_question(self) -> Q | None:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def progress(self) -> float:
        if not self.questions:
            return 0.0
        return (self.current_question_index + 1) / len(self.questions) * 100

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def required_answered(self) -> bool:
        return all(q.id in self.answers for q in self.questions if q.required)

    @property
    def can_proceed(self) -> bool:
        question = self.current_question
        if question is None:
            return False
        return not question.required or question.id in self.answers

    @property
    def is_first_question(self) -> bool:
        return self.current_question_index == 0

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == len(self.questions) - 1

    def find_question(self, question_id: str) -> Q | None:
        return next((q for q in self.questions if q.id == question_id), None)

    def answers_record(self) -> dict[str, A]:
        return dict(self.answers)

    def next_question(self) -> None:
        if self.current_question_index < len(self.questions) - 1:
            self.current_question_index += 1

    def previous_question(self) -> None:
        if self.current_question_index > 0:
            self.current_question_index -= 1

    def go_to_question(self, index: int) -> None:
        if 0 <= index < len(self.questions):
            self.current_question_index = index

    def _start_questions(self, questions: Sequence[Q]) -> None:
        self.questions = list(questions)
        self.answers = {}
        self.current_question_index = 0


class RequirementInterview(QuestionSession[TechnicalQuestion, InterviewAnswer]):
    BUSY_PHASES = frozenset({InterviewPhase.loading_questions, InterviewPhase.generating_estimate})

    def __init__(self, *, collaborator: InterviewCollaborator, catalog_repository: CatalogRepository) -> None:
        super().__init__()
        self._collaborator = collaborator
        self._catalog_repository = catalog_repository
        self.phase = InterviewPhase.idle
        self.reasoning: str | None = None
        self.estimated_complexity: Complexity | None = None
        self.suggested_activities: list[str] = []
        self.estimate: InterviewEstimate | None = None

    @property
    def is_busy(self) -> bool:
        return self.phase in self.BUSY_PHASES

    async def generate_questions(
        self,
        description: str,
        tech_preset_id: str,
        tech_category: str,
        project_context: ProjectContext | None = None,
    ) -> bool:
        self._ensure_idle()
        try:
            sanitized = validate_description(description, tech_category)
        except RequirementValidationError as exc:
            self._fail(str(exc))
            return False

        self.phase = InterviewPhase.loading_questions
        self.error = None
        try:
            response = await self._collaborator.generate_questions(
                RequirementInterviewRequest(
                    description=sanitized,
                    tech_preset_id=tech_preset_id,
                    tech_category=tech_category,
                    project_context=project_context,
                )
            )
        except Exception as exc:
            logger.error("Question generation failed", exc_info=True)
            self._fail(str(exc) or "Question generation failed.")
            return False

        if not response.success or not response.questions:
            self._fail(response.error or "Could not generate questions. Please retry.")
            return False

        self._start_questions(response.questions)
        self.reasoning = response.reasoning
        self.estimated_complexity = response.estimated_complexity
        self.suggested_activities = list(response.suggested_activities)
        self.phase = InterviewPhase.interviewing
        logger.info(
            "Interview questions ready",
            extra={"questions": len(self.questions), "complexity": self.estimated_complexity},
        )
        return True

    def answer_question(self, question_id: str, value: AnswerValue) -> None:
        question = self.find_question(question_id)
        if question is None:
            logger.warning("Answer for unknown question ignored", extra={"question_id": question_id})
            return
        self.answers[question_id] = InterviewAnswer(
            question_id=question_id,
            category=question.category,
            value=value,
            timestamp=datetime.now(timezone.utc),
        )

    async def generate_estimate(
        self,
        description: str,
        tech_preset_id: str,
        tech_category: str,
    ) -> InterviewEstimate | None:
        self._ensure_idle()
        self.phase = InterviewPhase.generating_estimate
        self.error = None
        try:
            catalog = await asyncio.to_thread(load_catalog, self._catalog_repository)
            activities = catalog.activities_for_category(tech_category)
            if not activities:
                self._fail(NO_ACTIVITIES_MESSAGE)
                return None

            response = await self._collaborator.generate_estimate(
                EstimationFromInterviewRequest(
                    description=sanitize_prompt_input(description),
                    tech_preset_id=tech_preset_id,
                    tech_category=tech_category,
                    answers=self.answers_record(),
                    activities=[to_activity_payload(activity) for activity in activities],
                )
            )
            if not response.success:
                self._fail(response.error or "Could not generate the estimate. Please retry.")
                return None

            preset = catalog.preset_by_id(tech_preset_id)
            finalized = interview_finalize_estimation(
                [activity.code for activity in response.activities],
                activities=activities,
                drivers=catalog.drivers,
                risks=catalog.risks,
                suggested_drivers=response.suggested_drivers,
                suggested_risks=response.suggested_risks,
                preset=preset,
            )
        except Exception as exc:
            logger.error("Estimate generation failed", exc_info=True)
            self._fail(str(exc) or "Estimate generation failed.")
            return None

        if response.activities and not finalized.selected_activities:
            logger.warning(
                "None of the suggested activities exist in the catalog",
                extra={"codes": [activity.code for activity in response.activities]},
            )

        self.estimate = InterviewEstimate(response=response, finalized=finalized)
        self.phase = InterviewPhase.complete
        logger.info(
            "Interview estimate ready",
            extra={
                "total_days": finalized.total_days,
                "driver_source": finalized.driver_source.value,
                "risk_source": finalized.risk_source.value,
            },
        )
        return self.estimate

    def reset(self) -> None:
        self._start_questions([])
        self.phase = InterviewPhase.idle
        self.reasoning = None
        self.estimated_complexity = None
        self.suggested_activities = []
        self.error = None
        self.estimate = None

    def _ensure_idle(self) -> None:
        if self.is_busy:
            raise InterviewBusyError(self.phase.value)

    def _fail(self, message: str) -> None:
        self.error = message
        self.phase = InterviewPhase.error
        logger.warning("Interview moved to error phase", extra={"error": message})



__all__ = [
    "InterviewEstimate",
    "InterviewPhase",
    "QuestionSession",
    "RequirementInterview",
    "to_activity_payload",
]
