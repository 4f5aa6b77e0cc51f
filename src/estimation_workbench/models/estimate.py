from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ValueSource(str, Enum):
    manual = "manual"
    suggested = "suggested"
    preset = "preset"


class SelectedActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    base_days: float
    is_ai_suggested: bool = False
    group: str | None = None
    tech_category: str | None = None


class SelectedDriver(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    value: str
    multiplier: float


class SelectedRisk(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    weight: int


class EstimationInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    activities: Sequence[SelectedActivity] = Field(default_factory=tuple)
    drivers: Sequence[SelectedDriver] = Field(default_factory=tuple)
    risks: Sequence[SelectedRisk] = Field(default_factory=tuple)


class EstimationBreakdown(BaseModel):
    by_group: Mapping[str, float] = Field(default_factory=dict)
    by_tech: Mapping[str, float] = Field(default_factory=dict)


class EstimationResult(BaseModel):
    base_days: float
    driver_multiplier: float
    subtotal: float
    risk_score: int
    contingency_percent: float
    contingency_days: float
    total_days: float
    breakdown: EstimationBreakdown = Field(default_factory=EstimationBreakdown)


class ActivityDetail(BaseModel):
    code: str
    name: str
    base_days: float
    is_ai_suggested: bool


class FinalizedEstimation(EstimationResult):
    driver_source: ValueSource
    risk_source: ValueSource
    selected_activities: Sequence[ActivityDetail] = Field(default_factory=list)
    applied_drivers: Sequence[SelectedDriver] = Field(default_factory=list)
    applied_risks: Sequence[SelectedRisk] = Field(default_factory=list)


__all__ = [
    "ActivityDetail",
    "EstimationBreakdown",
    "EstimationInput",
    "EstimationResult",
    "FinalizedEstimation",
    "SelectedActivity",
    "SelectedDriver",
    "SelectedRisk",
    "ValueSource",
]
