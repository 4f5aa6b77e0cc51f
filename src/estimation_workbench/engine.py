"""Deterministic estimation arithmetic.

Base days are the sum of the selected activities, the driver multiplier is the
product of the resolved drivers and the risk score is the sum of the selected
risk weights. Contingency is a step function of the risk score:

    0-10  -> 10%
    11-20 -> 15%
    21-30 -> 20%
    31+   -> 25%

Total days = subtotal + subtotal * contingency. Values are rounded only when
the result is assembled.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .models.estimate import (
    EstimationBreakdown,
    EstimationInput,
    EstimationResult,
    SelectedActivity,
    SelectedDriver,
    SelectedRisk,
)

CONTINGENCY_BANDS: tuple[tuple[int, float], ...] = (
    (10, 0.10),
    (20, 0.15),
    (30, 0.20),
)
MAX_CONTINGENCY = 0.25


def calculate_base_days(activities: Iterable[SelectedActivity]) -> float:
    return sum((activity.base_days for activity in activities), 0.0)


def calculate_driver_multiplier(drivers: Iterable[SelectedDriver]) -> float:
    multiplier = 1.0
    for driver in drivers:
        multiplier *= driver.multiplier
    return multiplier


def calculate_risk_score(risks: Iterable[SelectedRisk]) -> int:
    return sum(risk.weight for risk in risks)


def calculate_contingency(risk_score: int) -> float:
    for upper_bound, percent in CONTINGENCY_BANDS:
        if risk_score <= upper_bound:
            return percent
    return MAX_CONTINGENCY


def calculate_breakdown(activities: Iterable[SelectedActivity]) -> EstimationBreakdown:
    by_group: dict[str, float] = defaultdict(float)
    by_tech: dict[str, float] = defaultdict(float)
    for activity in activities:
        if activity.group:
            by_group[activity.group] += activity.base_days
        if activity.tech_category:
            by_tech[activity.tech_category] += activity.base_days
    return EstimationBreakdown(
        by_group={key: round(value, 2) for key, value in sorted(by_group.items())},
        by_tech={key: round(value, 2) for key, value in sorted(by_tech.items())},
    )


def calculate_estimation(estimation_input: EstimationInput) -> EstimationResult:
    base_days = calculate_base_days(estimation_input.activities)
    driver_multiplier = calculate_driver_multiplier(estimation_input.drivers)
    subtotal = base_days * driver_multiplier

    risk_score = calculate_risk_score(estimation_input.risks)
    contingency = calculate_contingency(risk_score)
    contingency_days = subtotal * contingency
    total_days = subtotal + contingency_days

    return EstimationResult(
        base_days=round(base_days, 2),
        driver_multiplier=round(driver_multiplier, 3),
        subtotal=round(subtotal, 2),
        risk_score=risk_score,
        contingency_percent=round(contingency * 100, 2),
        contingency_days=round(contingency_days, 2),
        total_days=round(total_days, 2),
        breakdown=calculate_breakdown(estimation_input.activities),
    )


__all__ = [
    "calculate_base_days",
    "calculate_breakdown",
    "calculate_contingency",
    "calculate_driver_multiplier",
    "calculate_estimation",
    "calculate_risk_score",
]
