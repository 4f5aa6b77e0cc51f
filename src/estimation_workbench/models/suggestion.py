from __future__ import annotations

from typing import Literal, Mapping, Sequence

from pydantic import BaseModel, Field

from .catalog import TechnologyPreset
from .interview import ActivityPayload, WireModel


class PresetPayload(BaseModel):
    """Preset as handed to the suggestion collaborator (snake_case on the wire)."""

    id: str
    name: str
    description: str = ""
    tech_category: str
    default_activity_codes: Sequence[str] = Field(default_factory=list)
    default_driver_values: Mapping[str, str] = Field(default_factory=dict)
    default_risks: Sequence[str] = Field(default_factory=list)

    @classmethod
    def from_preset(cls, preset: TechnologyPreset) -> "PresetPayload":
        return cls(
            id=preset.id,
            name=preset.name,
            description=preset.description,
            tech_category=preset.tech_category,
            default_activity_codes=list(preset.default_activity_codes),
            default_driver_values=dict(preset.default_driver_values),
            default_risks=list(preset.default_risks),
        )


class ActivitySuggestionRequest(WireModel):
    action: Literal["suggest-activities"] = "suggest-activities"
    description: str
    preset: PresetPayload
    activities: Sequence[ActivityPayload]


class ActivitySuggestion(WireModel):
    success: bool = True
    is_valid_requirement: bool = False
    activity_codes: Sequence[str] = Field(default_factory=list)
    suggested_drivers: Mapping[str, str] | None = None
    suggested_risks: Sequence[str] | None = None
    reasoning: str = ""
    generated_title: str | None = None
    error: str | None = None


__all__ = ["ActivitySuggestion", "ActivitySuggestionRequest", "PresetPayload"]
