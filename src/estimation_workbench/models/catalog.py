from __future__ import annotations

from typing import Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field

WILDCARD_TECH_CATEGORY = "MULTI"


class Activity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    description: str = ""
    base_days: float = Field(ge=0)
    group: str = "DEV"
    tech_category: str = WILDCARD_TECH_CATEGORY
    active: bool = True

    @property
    def base_hours(self) -> float:
        return round(self.base_days * 8, 2)

    def applies_to(self, tech_category: str | None) -> bool:
        if tech_category is None or self.tech_category == WILDCARD_TECH_CATEGORY:
            return True
        return self.tech_category == tech_category


class DriverOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    multiplier: float = Field(ge=0)


class Driver(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    description: str = ""
    options: Sequence[DriverOption] = Field(default_factory=tuple)

    def option_for(self, value: str) -> DriverOption | None:
        return next((option for option in self.options if option.value == value), None)

    @property
    def neutral_option(self) -> DriverOption | None:
        return self.options[0] if self.options else None


class Risk(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    description: str = ""
    weight: int = Field(ge=0)


class TechnologyPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str = ""
    name: str = ""
    description: str = ""
    tech_category: str
    default_activity_codes: Sequence[str] = Field(default_factory=tuple)
    default_driver_values: Mapping[str, str] = Field(default_factory=dict)
    default_risks: Sequence[str] = Field(default_factory=tuple)


class Catalog(BaseModel):
    """Read-only reference data shared by one estimation session."""

    model_config = ConfigDict(frozen=True)

    activities: Sequence[Activity] = Field(default_factory=tuple)
    drivers: Sequence[Driver] = Field(default_factory=tuple)
    risks: Sequence[Risk] = Field(default_factory=tuple)
    presets: Sequence[TechnologyPreset] = Field(default_factory=tuple)

    def activity_by_id(self, activity_id: str) -> Activity | None:
        return next((a for a in self.activities if a.id == activity_id), None)

    def activity_by_code(self, code: str) -> Activity | None:
        return next((a for a in self.activities if a.code == code), None)

    def driver_by_id(self, driver_id: str) -> Driver | None:
        return next((d for d in self.drivers if d.id == driver_id), None)

    def driver_by_code(self, code: str) -> Driver | None:
        return next((d for d in self.drivers if d.code == code), None)

    def risk_by_id(self, risk_id: str) -> Risk | None:
        return next((r for r in self.risks if r.id == risk_id), None)

    def preset_by_id(self, preset_id: str) -> TechnologyPreset | None:
        return next((p for p in self.presets if p.id == preset_id), None)

    def activities_for_category(self, tech_category: str) -> list[Activity]:
        """Active activities of one technology category plus the wildcard ones."""
        return [a for a in self.activities if a.active and a.applies_to(tech_category)]


__all__ = [
    "Activity",
    "Catalog",
    "Driver",
    "DriverOption",
    "Risk",
    "TechnologyPreset",
    "WILDCARD_TECH_CATEGORY",
]
