from __future__ import annotations

from datetime import datetime
from typing import Literal, Mapping, Sequence

from pydantic import Field

from .interview import (
    ActivityPayload,
    AnswerValue,
    Complexity,
    ProjectContext,
    QuestionCategory,
    QuestionOption,
    SelectedActivityWithReason,
    SuggestedDriver,
    WireModel,
)

QuestionScope = Literal["global", "multi-requirement", "specific"]
BulkQuestionType = Literal["single-choice", "multiple-choice", "range"]


class BulkRequirementInput(WireModel):
    id: str
    req_id: str
    title: str = ""
    description: str
    tech_preset_id: str | None = None


class BulkInterviewQuestion(WireModel):
    id: str
    scope: QuestionScope
    affected_requirement_ids: Sequence[str] = Field(default_factory=list)
    type: BulkQuestionType
    category: QuestionCategory
    question: str
    technical_context: str = ""
    impact_on_estimate: str = ""
    options: Sequence[QuestionOption] | None = None
    required: bool = False
    min: float | None = None
    max: float | None = None
    step: float | None = None
    unit: str | None = None


class RequirementAnalysis(WireModel):
    requirement_id: str
    req_code: str
    complexity: Complexity = "MEDIUM"
    ambiguity_score: float = Field(default=0.0, ge=0, le=1)
    topics: Sequence[str] = Field(default_factory=list)
    relevant_question_ids: Sequence[str] = Field(default_factory=list)


class BulkInterviewRequest(WireModel):
    requirements: Sequence[BulkRequirementInput]
    tech_category: str
    tech_preset_id: str | None = None
    project_context: ProjectContext | None = None


class BulkQuestionSummary(WireModel):
    total_requirements: int = 0
    global_questions: int = 0
    multi_req_questions: int = 0
    specific_questions: int = 0
    avg_ambiguity_score: float = 0.0


class BulkInterviewResponse(WireModel):
    success: bool
    questions: Sequence[BulkInterviewQuestion] = Field(default_factory=list)
    requirement_analysis: Sequence[RequirementAnalysis] = Field(default_factory=list)
    reasoning: str = ""
    summary: BulkQuestionSummary = Field(default_factory=BulkQuestionSummary)
    error: str | None = None


class BulkInterviewAnswer(WireModel):
    question_id: str
    scope: QuestionScope
    affected_requirement_ids: Sequence[str] = Field(default_factory=list)
    category: QuestionCategory
    value: AnswerValue
    timestamp: datetime


class BulkRequirementEstimation(WireModel):
    requirement_id: str
    req_code: str
    generated_title: str | None = None
    activities: Sequence[SelectedActivityWithReason] = Field(default_factory=list)
    total_base_days: float = 0.0
    confidence_score: float = Field(default=0.0, ge=0, le=1)
    reasoning: str = ""
    suggested_drivers: Sequence[SuggestedDriver] | None = None
    suggested_risks: Sequence[str] | None = None
    success: bool
    error: str | None = None


class BulkEstimateFromInterviewRequest(WireModel):
    requirements: Sequence[BulkRequirementInput]
    tech_category: str
    answers: Mapping[str, BulkInterviewAnswer]
    activities: Sequence[ActivityPayload]


class BulkEstimateSummary(WireModel):
    total_requirements: int = 0
    successful_estimations: int = 0
    failed_estimations: int = 0
    total_base_days: float = 0.0
    avg_confidence_score: float = 0.0


class BulkEstimateFromInterviewResponse(WireModel):
    success: bool
    estimations: Sequence[BulkRequirementEstimation] = Field(default_factory=list)
    summary: BulkEstimateSummary = Field(default_factory=BulkEstimateSummary)
    error: str | None = None


__all__ = [
    "BulkEstimateFromInterviewRequest",
    "BulkEstimateFromInterviewResponse",
    "BulkEstimateSummary",
    "BulkInterviewAnswer",
    "BulkInterviewQuestion",
    "BulkInterviewRequest",
    "BulkInterviewResponse",
    "BulkQuestionSummary",
    "BulkQuestionType",
    "BulkRequirementEstimation",
    "BulkRequirementInput",
    "QuestionScope",
    "RequirementAnalysis",
]
