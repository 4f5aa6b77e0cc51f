"""Resolve competing driver/risk sources into one estimation input.

The same finalisation runs behind every entry flow (quick estimate,
single-requirement interview, bulk interview) so that drivers and risks are
applied consistently. Drivers and risks are resolved independently, each as a
whole group taken from the first non-empty source:

    1. explicit values supplied by the caller  (manual)
    2. AI suggestions from an interview        (suggested)
    3. technology preset defaults              (preset)
    4. neutral defaults: first option of every driver, no risks
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from .engine import calculate_estimation
from .models.catalog import Activity, Driver, Risk, TechnologyPreset
from .models.estimate import (
    ActivityDetail,
    EstimationInput,
    FinalizedEstimation,
    SelectedActivity,
    SelectedDriver,
    SelectedRisk,
    ValueSource,
)
from .models.interview import SuggestedDriver

logger = logging.getLogger(__name__)


def _unique(codes: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for code in codes:
        if code not in seen:
            seen.add(code)
            ordered.append(code)
    return ordered


def resolve_driver_values(
    *,
    driver_values: Mapping[str, str] | None,
    suggested_drivers: Sequence[SuggestedDriver] | None,
    preset: TechnologyPreset | None,
) -> tuple[dict[str, str], ValueSource]:
    if driver_values:
        return dict(driver_values), ValueSource.manual
    if suggested_drivers:
        return {d.code: d.suggested_value for d in suggested_drivers}, ValueSource.suggested
    if preset is not None and preset.default_driver_values:
        return dict(preset.default_driver_values), ValueSource.preset
    return {}, ValueSource.preset


def resolve_risk_codes(
    *,
    risk_codes: Sequence[str] | None,
    suggested_risks: Sequence[str] | None,
    preset: TechnologyPreset | None,
) -> tuple[list[str], ValueSource]:
    if risk_codes:
        return _unique(risk_codes), ValueSource.manual
    if suggested_risks:
        return _unique(suggested_risks), ValueSource.suggested
    if preset is not None and preset.default_risks:
        return _unique(preset.default_risks), ValueSource.preset
    return [], ValueSource.preset


def _select_drivers(drivers: Sequence[Driver], values: Mapping[str, str]) -> list[SelectedDriver]:
    selected: list[SelectedDriver] = []
    for driver in drivers:
        value = values.get(driver.code)
        if not value:
            option = driver.neutral_option
            if option is None:
                continue
        else:
            option = driver.option_for(value)
            if option is None:
                logger.debug(
                    "Dropping driver value with no matching option",
                    extra={"driver": driver.code, "value": value},
                )
                continue
        selected.append(
            SelectedDriver(code=driver.code, value=option.value, multiplier=option.multiplier)
        )
    return selected


def _select_risks(risks: Sequence[Risk], codes: Sequence[str]) -> list[SelectedRisk]:
    by_code = {risk.code: risk for risk in risks}
    selected: list[SelectedRisk] = []
    for code in codes:
        risk = by_code.get(code)
        if risk is None:
            logger.debug("Dropping unknown risk code", extra={"risk": code})
            continue
        selected.append(SelectedRisk(code=code, weight=risk.weight))
    return selected


def finalize_estimation(
    activity_codes: Sequence[str],
    *,
    activities: Sequence[Activity],
    drivers: Sequence[Driver],
    risks: Sequence[Risk],
    driver_values: Mapping[str, str] | None = None,
    risk_codes: Sequence[str] | None = None,
    preset: TechnologyPreset | None = None,
    suggested_drivers: Sequence[SuggestedDriver] | None = None,
    suggested_risks: Sequence[str] | None = None,
    is_ai_suggested: bool = True,
) -> FinalizedEstimation:
    by_code = {activity.code: activity for activity in activities}
    matched: list[Activity] = []
    for code in _unique(activity_codes):
        activity = by_code.get(code)
        if activity is None:
            logger.debug("Dropping unknown activity code", extra={"activity": code})
            continue
        matched.append(activity)

    applied_values, driver_source = resolve_driver_values(
        driver_values=driver_values,
        suggested_drivers=suggested_drivers,
        preset=preset,
    )
    applied_risk_codes, risk_source = resolve_risk_codes(
        risk_codes=risk_codes,
        suggested_risks=suggested_risks,
        preset=preset,
    )

    selected_drivers = _select_drivers(drivers, applied_values)
    selected_risks = _select_risks(risks, applied_risk_codes)
    estimation_input = EstimationInput(
        activities=[
            SelectedActivity(
                code=activity.code,
                base_days=activity.base_days,
                is_ai_suggested=is_ai_suggested,
                group=activity.group,
                tech_category=activity.tech_category,
            )
            for activity in matched
        ],
        drivers=selected_drivers,
        risks=selected_risks,
    )
    result = calculate_estimation(estimation_input)

    return FinalizedEstimation(
        **result.model_dump(),
        driver_source=driver_source,
        risk_source=risk_source,
        selected_activities=[
            ActivityDetail(
                code=activity.code,
                name=activity.name,
                base_days=activity.base_days,
                is_ai_suggested=is_ai_suggested,
            )
            for activity in matched
        ],
        applied_drivers=selected_drivers,
        applied_risks=selected_risks,
    )


def quick_finalize_estimation(
    activity_codes: Sequence[str],
    *,
    activities: Sequence[Activity],
    preset: TechnologyPreset,
    drivers: Sequence[Driver],
    risks: Sequence[Risk],
) -> FinalizedEstimation:
    """Quick estimate flow: drivers and risks come from the preset."""
    return finalize_estimation(
        activity_codes,
        activities=activities,
        drivers=drivers,
        risks=risks,
        preset=preset,
    )


def interview_finalize_estimation(
    activity_codes: Sequence[str],
    *,
    activities: Sequence[Activity],
    drivers: Sequence[Driver],
    risks: Sequence[Risk],
    suggested_drivers: Sequence[SuggestedDriver] | None = None,
    suggested_risks: Sequence[str] | None = None,
    preset: TechnologyPreset | None = None,
) -> FinalizedEstimation:
    """Interview flow: AI suggestions first, the preset when the AI suggested nothing."""
    return finalize_estimation(
        activity_codes,
        activities=activities,
        drivers=drivers,
        risks=risks,
        suggested_drivers=suggested_drivers,
        suggested_risks=suggested_risks,
        preset=preset,
    )


__all__ = [
    "finalize_estimation",
    "interview_finalize_estimation",
    "quick_finalize_estimation",
    "resolve_driver_values",
    "resolve_risk_codes",
]
