"""Bulk interview across several requirements sharing one tech category."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from .catalog_repository import CatalogRepository, load_catalog
from .errors import InterviewBusyError, RequirementValidationError
from .finalizer import interview_finalize_estimation
from .interview import NO_ACTIVITIES_MESSAGE, QuestionSession, to_activity_payload
from .interview_api import InterviewCollaborator
from .models.bulk_interview import (
    BulkEstimateFromInterviewRequest,
    BulkEstimateSummary,
    BulkInterviewAnswer,
    BulkInterviewQuestion,
    BulkInterviewRequest,
    BulkQuestionSummary,
    BulkRequirementEstimation,
    BulkRequirementInput,
    RequirementAnalysis,
)
from .models.estimate import FinalizedEstimation
from .models.interview import AnswerValue, ProjectContext
from .sanitize import validate_bulk_requirements

logger = logging.getLogger(__name__)


class BulkInterviewPhase(str, Enum):
    idle = "idle"
    analyzing = "analyzing"
    interviewing = "interviewing"
    generating = "generating"
    reviewing = "reviewing"
    error = "error"


@dataclass
class BulkEstimateOutcome:
    """One requirement's estimation; ``finalized`` is None when it failed."""

    estimation: BulkRequirementEstimation
    finalized: FinalizedEstimation | None = None


class BulkInterview(QuestionSession[BulkInterviewQuestion, BulkInterviewAnswer]):
    BUSY_PHASES = frozenset({BulkInterviewPhase.analyzing, BulkInterviewPhase.generating})

    def __init__(self, *, collaborator: InterviewCollaborator, catalog_repository: CatalogRepository) -> None:
        super().__init__()
        self._collaborator = collaborator
        self._catalog_repository = catalog_repository
        self.phase = BulkInterviewPhase.idle
        self.requirements: list[BulkRequirementInput] = []
        self.requirement_analysis: list[RequirementAnalysis] = []
        self.reasoning: str | None = None
        self.tech_preset_id: str | None = None
        self.outcomes: list[BulkEstimateOutcome] = []
        self.estimate_summary: BulkEstimateSummary | None = None

    @property
    def is_busy(self) -> bool:
        return self.phase in self.BUSY_PHASES

    @property
    def summary(self) -> BulkQuestionSummary:
        scopes = [question.scope for question in self.questions]
        scores = [analysis.ambiguity_score for analysis in self.requirement_analysis]
        return BulkQuestionSummary(
            total_requirements=len(self.requirements),
            global_questions=scopes.count("global"),
            multi_req_questions=scopes.count("multi-requirement"),
            specific_questions=scopes.count("specific"),
            avg_ambiguity_score=sum(scores) / len(scores) if scores else 0.0,
        )

    async def analyze_requirements(
        self,
        requirements: Sequence[BulkRequirementInput],
        tech_category: str,
        tech_preset_id: str | None = None,
        project_context: ProjectContext | None = None,
    ) -> bool:
        self._ensure_idle()
        try:
            valid = validate_bulk_requirements(requirements, tech_category)
        except RequirementValidationError as exc:
            self._fail(str(exc))
            return False

        skipped = len(requirements) - len(valid)
        if skipped:
            logger.info("Skipped requirements with short descriptions", extra={"skipped": skipped})

        self.phase = BulkInterviewPhase.analyzing
        self.error = None
        try:
            response = await self._collaborator.generate_bulk_questions(
                BulkInterviewRequest(
                    requirements=valid,
                    tech_category=tech_category,
                    tech_preset_id=tech_preset_id,
                    project_context=project_context,
                )
            )
        except Exception as exc:
            logger.error("Bulk analysis failed", exc_info=True)
            self._fail(str(exc) or "Requirement analysis failed.")
            return False

        if not response.success or not response.questions:
            self._fail(response.error or "Could not analyse the requirements. Please retry.")
            return False

        self.requirements = valid
        self.tech_preset_id = tech_preset_id
        self._start_questions(response.questions)
        self.requirement_analysis = list(response.requirement_analysis)
        self.reasoning = response.reasoning
        self.phase = BulkInterviewPhase.interviewing
        logger.info(
            "Bulk interview questions ready",
            extra={"requirements": len(valid), "questions": len(self.questions)},
        )
        return True

    def answer_question(self, question_id: str, value: AnswerValue) -> None:
        question = self.find_question(question_id)
        if question is None:
            logger.warning("Answer for unknown question ignored", extra={"question_id": question_id})
            return
        self.answers[question_id] = BulkInterviewAnswer(
            question_id=question_id,
            scope=question.scope,
            affected_requirement_ids=list(question.affected_requirement_ids),
            category=question.category,
            value=value,
            timestamp=datetime.now(timezone.utc),
        )

    async def generate_estimates(self, tech_category: str) -> list[BulkEstimateOutcome] | None:
        self._ensure_idle()
        self.phase = BulkInterviewPhase.generating
        self.error = None
        try:
            catalog = await asyncio.to_thread(load_catalog, self._catalog_repository)
            activities = catalog.activities_for_category(tech_category)
            if not activities:
                self._fail(NO_ACTIVITIES_MESSAGE)
                return None

            response = await self._collaborator.generate_bulk_estimates(
                BulkEstimateFromInterviewRequest(
                    requirements=self.requirements,
                    tech_category=tech_category,
                    answers=self.answers_record(),
                    activities=[to_activity_payload(activity) for activity in activities],
                )
            )
            if not response.success:
                self._fail(response.error or "Could not generate the estimates. Please retry.")
                return None

            outcomes = []
            for estimation in response.estimations:
                if not estimation.success:
                    logger.warning(
                        "Requirement estimation failed",
                        extra={"requirement_id": estimation.requirement_id, "error": estimation.error},
                    )
                    outcomes.append(BulkEstimateOutcome(estimation=estimation))
                    continue
                finalized = interview_finalize_estimation(
                    [activity.code for activity in estimation.activities],
                    activities=activities,
                    drivers=catalog.drivers,
                    risks=catalog.risks,
                    suggested_drivers=estimation.suggested_drivers,
                    suggested_risks=estimation.suggested_risks,
                )
                outcomes.append(BulkEstimateOutcome(estimation=estimation, finalized=finalized))
        except Exception as exc:
            logger.error("Bulk estimate generation failed", exc_info=True)
            self._fail(str(exc) or "Estimate generation failed.")
            return None

        self.outcomes = outcomes
        self.estimate_summary = response.summary
        self.phase = BulkInterviewPhase.reviewing
        logger.info(
            "Bulk estimates ready",
            extra={
                "successful": sum(1 for outcome in outcomes if outcome.finalized is not None),
                "failed": sum(1 for outcome in outcomes if outcome.finalized is None),
            },
        )
        return outcomes

    def reset(self) -> None:
        self._start_questions([])
        self.phase = BulkInterviewPhase.idle
        self.requirements = []
        self.requirement_analysis = []
        self.reasoning = None
        self.tech_preset_id = None
        self.outcomes = []
        self.estimate_summary = None
        self.error = None

    def _ensure_idle(self) -> None:
        if self.is_busy:
            raise InterviewBusyError(self.phase.value)

    def _fail(self, message: str) -> None:
        self.error = message
        self.phase = BulkInterviewPhase.error
        logger.warning("Bulk interview moved to error phase", extra={"error": message})


__all__ = ["BulkEstimateOutcome", "BulkInterview", "BulkInterviewPhase"]
