"""Live selection for one estimation session.

The selection is keyed by catalog ids. Driver values arriving from presets or
AI suggestions may be keyed by code instead; they are normalised once, at the
boundary, by :func:`normalize_driver_values`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from .engine import calculate_estimation
from .models.catalog import Activity, Catalog, TechnologyPreset
from .models.estimate import (
    EstimationInput,
    EstimationResult,
    SelectedActivity,
    SelectedDriver,
    SelectedRisk,
)

logger = logging.getLogger(__name__)


class SelectionSignal(str, Enum):
    unknown_activity = "UNKNOWN_ACTIVITY"
    activity_incompatible = "ACTIVITY_INCOMPATIBLE"
    preset_not_found = "PRESET_NOT_FOUND"
    preset_activities_missing = "PRESET_ACTIVITIES_MISSING"
    preset_unusable = "PRESET_UNUSABLE"
    suggestions_filtered = "SUGGESTIONS_FILTERED"
    suggestions_incompatible = "SUGGESTIONS_INCOMPATIBLE"
    unknown_driver_key = "UNKNOWN_DRIVER_KEY"
    unknown_risk_key = "UNKNOWN_RISK_KEY"


@dataclass(frozen=True)
class SelectionOutcome:
    accepted: bool
    signals: tuple[SelectionSignal, ...] = ()
    dropped: tuple[str, ...] = ()

    @property
    def has_warnings(self) -> bool:
        return bool(self.signals)


def is_activity_allowed(activity: Activity, preset: TechnologyPreset | None) -> bool:
    return activity.applies_to(preset.tech_category if preset else None)


def normalize_driver_values(
    catalog: Catalog, values: Mapping[str, str]
) -> tuple[dict[str, str], list[str]]:
    """Convert id- or code-keyed driver values to id-keyed form.

    Returns the normalised mapping and the keys that matched no driver.
    """
    normalized: dict[str, str] = {}
    unknown: list[str] = []
    for key, value in values.items():
        driver = catalog.driver_by_id(key) or catalog.driver_by_code(key)
        if driver is None:
            unknown.append(key)
            continue
        normalized[driver.id] = value
    return normalized, unknown


def normalize_risk_ids(catalog: Catalog, keys: Sequence[str]) -> tuple[list[str], list[str]]:
    normalized: list[str] = []
    unknown: list[str] = []
    for key in keys:
        risk = catalog.risk_by_id(key) or next((r for r in catalog.risks if r.code == key), None)
        if risk is None:
            unknown.append(key)
        elif risk.id not in normalized:
            normalized.append(risk.id)
    return normalized, unknown


def compute_selection_result(
    catalog: Catalog,
    *,
    activity_ids: Sequence[str],
    ai_suggested_ids: Sequence[str],
    driver_values: Mapping[str, str],
    risk_ids: Sequence[str],
) -> EstimationResult | None:
    if not activity_ids:
        return None

    activities = [
        SelectedActivity(
            code=activity.code,
            base_days=activity.base_days,
            is_ai_suggested=activity.id in ai_suggested_ids,
            group=activity.group,
            tech_category=activity.tech_category,
        )
        for activity in catalog.activities
        if activity.id in activity_ids
    ]

    drivers: list[SelectedDriver] = []
    for driver in catalog.drivers:
        value = driver_values.get(driver.id)
        option = driver.option_for(value) if value else driver.neutral_option
        if option is None:
            continue
        drivers.append(SelectedDriver(code=driver.code, value=option.value, multiplier=option.multiplier))

    risks = [
        SelectedRisk(code=risk.code, weight=risk.weight)
        for risk in catalog.risks
        if risk.id in risk_ids
    ]

    return calculate_estimation(EstimationInput(activities=activities, drivers=drivers, risks=risks))


class SelectionState:
    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self.selected_preset_id: str | None = None
        self._activity_ids: list[str] = []
        self._ai_suggested_ids: list[str] = []
        self._driver_values: dict[str, str] = {}
        self._risk_ids: list[str] = []

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def selected_activity_ids(self) -> tuple[str, ...]:
        return tuple(self._activity_ids)

    @property
    def ai_suggested_ids(self) -> tuple[str, ...]:
        return tuple(self._ai_suggested_ids)

    @property
    def selected_driver_values(self) -> dict[str, str]:
        return dict(self._driver_values)

    @property
    def selected_risk_ids(self) -> tuple[str, ...]:
        return tuple(self._risk_ids)

    @property
    def selected_preset(self) -> TechnologyPreset | None:
        if self.selected_preset_id is None:
            return None
        return self._catalog.preset_by_id(self.selected_preset_id)

    @property
    def has_selections(self) -> bool:
        return bool(self._activity_ids or self._driver_values or self._risk_ids)

    @property
    def is_valid(self) -> bool:
        return self.selected_preset is not None and bool(self._activity_ids)

    @property
    def estimation_result(self) -> EstimationResult | None:
        return compute_selection_result(
            self._catalog,
            activity_ids=self._activity_ids,
            ai_suggested_ids=self._ai_suggested_ids,
            driver_values=self._driver_values,
            risk_ids=self._risk_ids,
        )

    def select_preset(self, preset_id: str) -> SelectionOutcome:
        if self._catalog.preset_by_id(preset_id) is None:
            return self._reject(SelectionSignal.preset_not_found, preset_id)
        self.selected_preset_id = preset_id
        return SelectionOutcome(accepted=True)

    def toggle_activity(self, activity_id: str) -> SelectionOutcome:
        if activity_id in self._activity_ids:
            self._activity_ids.remove(activity_id)
            if activity_id in self._ai_suggested_ids:
                self._ai_suggested_ids.remove(activity_id)
            return SelectionOutcome(accepted=True)

        activity = self._catalog.activity_by_id(activity_id)
        if activity is None:
            return self._reject(SelectionSignal.unknown_activity, activity_id)
        if not is_activity_allowed(activity, self.selected_preset):
            return self._reject(SelectionSignal.activity_incompatible, activity_id)
        self._activity_ids.append(activity_id)
        return SelectionOutcome(accepted=True)

    def set_driver_value(self, driver_key: str, value: str) -> SelectionOutcome:
        """Set one driver, keyed by id or code; the last write wins."""
        normalized, unknown = normalize_driver_values(self._catalog, {driver_key: value})
        if unknown:
            return self._reject(SelectionSignal.unknown_driver_key, driver_key)
        self._driver_values.update(normalized)
        return SelectionOutcome(accepted=True)

    def toggle_risk(self, risk_key: str) -> SelectionOutcome:
        normalized, unknown = normalize_risk_ids(self._catalog, [risk_key])
        if unknown:
            return self._reject(SelectionSignal.unknown_risk_key, risk_key)
        risk_id = normalized[0]
        if risk_id in self._risk_ids:
            self._risk_ids.remove(risk_id)
        else:
            self._risk_ids.append(risk_id)
        return SelectionOutcome(accepted=True)

    def apply_preset_defaults(self, preset_id: str) -> SelectionOutcome:
        preset = self._catalog.preset_by_id(preset_id)
        if preset is None:
            return self._reject(SelectionSignal.preset_not_found, preset_id)

        signals: list[SelectionSignal] = []
        dropped: list[str] = []

        activity_ids: list[str] = []
        for code in preset.default_activity_codes:
            activity = self._catalog.activity_by_code(code)
            if activity is None:
                dropped.append(code)
            elif activity.id not in activity_ids:
                activity_ids.append(activity.id)
        if dropped:
            signals.append(SelectionSignal.preset_activities_missing)
            if not activity_ids:
                signals.append(SelectionSignal.preset_unusable)

        driver_values, unknown_drivers = normalize_driver_values(
            self._catalog, preset.default_driver_values
        )
        if unknown_drivers:
            signals.append(SelectionSignal.unknown_driver_key)
            dropped.extend(unknown_drivers)

        risk_ids, unknown_risks = normalize_risk_ids(self._catalog, preset.default_risks)
        if unknown_risks:
            signals.append(SelectionSignal.unknown_risk_key)
            dropped.extend(unknown_risks)

        self.selected_preset_id = preset_id
        self._activity_ids = activity_ids
        self._driver_values = driver_values
        self._risk_ids = risk_ids
        self._ai_suggested_ids = []

        outcome = SelectionOutcome(accepted=True, signals=tuple(signals), dropped=tuple(dropped))
        if outcome.has_warnings:
            logger.warning(
                "Preset defaults applied with gaps",
                extra={
                    "preset_id": preset_id,
                    "signals": [signal.value for signal in signals],
                    "dropped": dropped,
                },
            )
        return outcome

    def apply_ai_suggestions(
        self,
        activity_ids: Sequence[str],
        driver_values: Mapping[str, str] | None = None,
        risk_ids: Sequence[str] | None = None,
    ) -> SelectionOutcome:
        """Replace the selection with AI suggestions.

        Omitted driver values or risks reset those sections to empty: the
        suggestions replace the selection, they are never merged into it.
        """
        preset = self.selected_preset
        accepted_ids: list[str] = []
        dropped: list[str] = []
        for activity_id in activity_ids:
            activity = self._catalog.activity_by_id(activity_id)
            if activity is None or not is_activity_allowed(activity, preset):
                dropped.append(activity_id)
            elif activity_id not in accepted_ids:
                accepted_ids.append(activity_id)

        if activity_ids and not accepted_ids:
            return self._reject(SelectionSignal.suggestions_incompatible, *dropped)

        signals: list[SelectionSignal] = []
        if dropped:
            signals.append(SelectionSignal.suggestions_filtered)

        normalized_drivers, unknown_drivers = normalize_driver_values(self._catalog, driver_values or {})
        if unknown_drivers:
            signals.append(SelectionSignal.unknown_driver_key)
            dropped.extend(unknown_drivers)

        normalized_risks, unknown_risks = normalize_risk_ids(self._catalog, risk_ids or [])
        if unknown_risks:
            signals.append(SelectionSignal.unknown_risk_key)
            dropped.extend(unknown_risks)

        self._activity_ids = accepted_ids
        self._ai_suggested_ids = list(accepted_ids)
        self._driver_values = normalized_drivers
        self._risk_ids = normalized_risks

        outcome = SelectionOutcome(accepted=True, signals=tuple(signals), dropped=tuple(dropped))
        if outcome.has_warnings:
            logger.warning(
                "AI suggestions applied with gaps",
                extra={"signals": [signal.value for signal in signals], "dropped": dropped},
            )
        return outcome

    def reset_selections(self) -> None:
        self.selected_preset_id = None
        self._activity_ids = []
        self._ai_suggested_ids = []
        self._driver_values = {}
        self._risk_ids = []

    def _reject(self, signal: SelectionSignal, *keys: str) -> SelectionOutcome:
        logger.warning(
            "Selection change rejected",
            extra={"signal": signal.value, "keys": list(keys), "preset_id": self.selected_preset_id},
        )
        return SelectionOutcome(accepted=False, signals=(signal,), dropped=tuple(keys))


__all__ = [
    "SelectionOutcome",
    "SelectionSignal",
    "SelectionState",
    "compute_selection_result",
    "is_activity_allowed",
    "normalize_driver_values",
    "normalize_risk_ids",
]
