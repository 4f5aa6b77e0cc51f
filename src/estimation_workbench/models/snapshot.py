from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from pydantic import BaseModel, Field

from .estimate import ActivityDetail, FinalizedEstimation, SelectedDriver, SelectedRisk, ValueSource


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EstimationSnapshot(BaseModel):
    id: str
    requirement_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    scenario_name: str = "Default"
    created_by: str | None = None
    total_days: float
    base_days: float
    driver_multiplier: float
    subtotal: float
    risk_score: int
    contingency_percent: float
    contingency_days: float
    driver_source: ValueSource
    risk_source: ValueSource
    selected_activities: Sequence[ActivityDetail] = Field(default_factory=list)
    applied_drivers: Sequence[SelectedDriver] = Field(default_factory=list)
    applied_risks: Sequence[SelectedRisk] = Field(default_factory=list)
    ai_reasoning: str | None = None

    @classmethod
    def from_finalized(
        cls,
        *,
        snapshot_id: str,
        requirement_id: str,
        finalized: FinalizedEstimation,
        scenario_name: str = "Default",
        created_by: str | None = None,
        ai_reasoning: str | None = None,
    ) -> "EstimationSnapshot":
        return cls(
            id=snapshot_id,
            requirement_id=requirement_id,
            scenario_name=scenario_name,
            created_by=created_by,
            total_days=finalized.total_days,
            base_days=finalized.base_days,
            driver_multiplier=finalized.driver_multiplier,
            subtotal=finalized.subtotal,
            risk_score=finalized.risk_score,
            contingency_percent=finalized.contingency_percent,
            contingency_days=finalized.contingency_days,
            driver_source=finalized.driver_source,
            risk_source=finalized.risk_source,
            selected_activities=list(finalized.selected_activities),
            applied_drivers=list(finalized.applied_drivers),
            applied_risks=list(finalized.applied_risks),
            ai_reasoning=ai_reasoning,
        )


__all__ = ["EstimationSnapshot"]
