from __future__ import annotations

from datetime import datetime
from typing import Literal, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

QuestionCategory = Literal[
    "INTEGRATION",
    "DATA",
    "SECURITY",
    "PERFORMANCE",
    "UI_UX",
    "ARCHITECTURE",
    "TESTING",
    "DEPLOYMENT",
]
QuestionType = Literal["single-choice", "multiple-choice", "text", "range"]
Complexity = Literal["LOW", "MEDIUM", "HIGH"]
AnswerValue = Union[str, list[str], int, float]


class WireModel(BaseModel):
    """Base for collaborator payloads, which travel with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuestionOption(WireModel):
    id: str
    label: str
    description: str | None = None
    impact_multiplier: float | None = None


class TechnicalQuestion(WireModel):
    id: str
    type: QuestionType
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
    placeholder: str | None = None
    max_length: int | None = None


class ProjectContext(WireModel):
    name: str
    description: str
    owner: str | None = None


class InterviewAnswer(WireModel):
    question_id: str
    category: QuestionCategory
    value: AnswerValue
    timestamp: datetime


class RequirementInterviewRequest(WireModel):
    description: str
    tech_preset_id: str
    tech_category: str
    project_context: ProjectContext | None = None


class RequirementInterviewResponse(WireModel):
    success: bool
    questions: Sequence[TechnicalQuestion] = Field(default_factory=list)
    reasoning: str | None = None
    estimated_complexity: Complexity | None = None
    suggested_activities: Sequence[str] = Field(default_factory=list)
    error: str | None = None


class ActivityPayload(BaseModel):
    """Activity as handed to the estimate collaborators (snake_case on the wire)."""

    code: str
    name: str
    description: str = ""
    base_hours: float
    group: str
    tech_category: str


class SelectedActivityWithReason(WireModel):
    code: str
    name: str = ""
    base_hours: float = 0.0
    reason: str = ""
    from_answer: str | None = None
    from_question_id: str | None = None


class SuggestedDriver(WireModel):
    code: str
    suggested_value: str
    reason: str = ""
    from_question_id: str | None = None


class EstimationFromInterviewRequest(WireModel):
    description: str
    tech_preset_id: str
    tech_category: str
    answers: Mapping[str, InterviewAnswer]
    activities: Sequence[ActivityPayload]


class EstimationFromInterviewResponse(WireModel):
    success: bool
    generated_title: str | None = None
    activities: Sequence[SelectedActivityWithReason] = Field(default_factory=list)
    total_base_days: float = 0.0
    reasoning: str = ""
    confidence_score: float = Field(default=0.0, ge=0, le=1)
    suggested_drivers: Sequence[SuggestedDriver] | None = None
    suggested_risks: Sequence[str] | None = None
    error: str | None = None


__all__ = [
    "ActivityPayload",
    "AnswerValue",
    "Complexity",
    "EstimationFromInterviewRequest",
    "EstimationFromInterviewResponse",
    "InterviewAnswer",
    "ProjectContext",
    "QuestionCategory",
    "QuestionOption",
    "QuestionType",
    "RequirementInterviewRequest",
    "RequirementInterviewResponse",
    "SelectedActivityWithReason",
    "SuggestedDriver",
    "TechnicalQuestion",
    "WireModel",
]
