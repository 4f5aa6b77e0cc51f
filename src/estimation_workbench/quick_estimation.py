"""One-shot estimate from a description and a technology preset.

The AI collaborator picks activities from the preset's category; drivers and
risks always come from the preset defaults.
"""

from __future__ import annotations

import asyncio
import logging

from .catalog_repository import CatalogRepository, load_catalog
from .errors import InterviewBusyError
from .finalizer import quick_finalize_estimation
from .interview import to_activity_payload
from .interview_api import InterviewCollaborator
from .models.estimate import ActivityDetail, FinalizedEstimation
from .models.suggestion import ActivitySuggestionRequest, PresetPayload
from .sanitize import sanitize_prompt_input

logger = logging.getLogger(__name__)

MIN_QUICK_DESCRIPTION_LENGTH = 10

SHORT_DESCRIPTION_MESSAGE = (
    f"Please provide a more detailed description (at least {MIN_QUICK_DESCRIPTION_LENGTH} characters)."
)
UNKNOWN_PRESET_MESSAGE = "The selected technology preset does not exist."
NO_PRESET_ACTIVITIES_MESSAGE = (
    "No activities available for the selected technology preset. Please choose another preset."
)
INVALID_REQUIREMENT_MESSAGE = (
    "The requirement description is not valid for estimation. Please provide a clearer technical target."
)
INCOMPATIBLE_SUGGESTION_REASONING = (
    "Suggested activities are not compatible with the selected technology. Falling back to preset defaults."
)
NO_COMPATIBLE_ACTIVITIES_MESSAGE = (
    "No compatible activities found for this preset. Please provide more details or choose another preset."
)


class QuickEstimation:
    def __init__(self, *, collaborator: InterviewCollaborator, catalog_repository: CatalogRepository) -> None:
        self._collaborator = collaborator
        self._catalog_repository = catalog_repository
        self.calculating = False
        self.result: FinalizedEstimation | None = None
        self.selected_activities: list[ActivityDetail] = []
        self.reasoning = ""
        self.error: str | None = None

    async def calculate(self, description: str, tech_preset_id: str) -> bool:
        """Suggest activities and finalise them with the preset's drivers and risks.

        Returns False with ``error`` set when no estimate could be produced.
        """
        if self.calculating:
            raise InterviewBusyError("calculating")

        sanitized = sanitize_prompt_input(description)
        if len(sanitized) < MIN_QUICK_DESCRIPTION_LENGTH:
            self.error = SHORT_DESCRIPTION_MESSAGE
            return False

        self.calculating = True
        self.error = None
        try:
            return await self._calculate(sanitized, tech_preset_id)
        except Exception as exc:
            logger.error("Quick estimate failed", exc_info=True)
            self.error = str(exc) or "Failed to calculate estimate."
            return False
        finally:
            self.calculating = False

    async def _calculate(self, description: str, tech_preset_id: str) -> bool:
        catalog = await asyncio.to_thread(load_catalog, self._catalog_repository)
        preset = catalog.preset_by_id(tech_preset_id)
        if preset is None:
            self.error = UNKNOWN_PRESET_MESSAGE
            return False

        allowed = catalog.activities_for_category(preset.tech_category)
        if not allowed:
            self.error = NO_PRESET_ACTIVITIES_MESSAGE
            return False

        suggestion = await self._collaborator.suggest_activities(
            ActivitySuggestionRequest(
                description=description,
                preset=PresetPayload.from_preset(preset),
                activities=[to_activity_payload(activity) for activity in allowed],
            )
        )
        if not suggestion.success:
            self.error = suggestion.error or "Could not suggest activities. Please retry."
            return False
        if not suggestion.is_valid_requirement:
            self._clear_result()
            self.reasoning = suggestion.reasoning
            self.error = suggestion.reasoning or INVALID_REQUIREMENT_MESSAGE
            return False

        allowed_codes = {activity.code for activity in allowed}
        reasoning = suggestion.reasoning
        chosen = [code for code in suggestion.activity_codes if code in allowed_codes]
        if suggestion.activity_codes and not chosen:
            logger.warning(
                "Suggested activities do not match the preset category",
                extra={"codes": list(suggestion.activity_codes), "tech_category": preset.tech_category},
            )
            reasoning = INCOMPATIBLE_SUGGESTION_REASONING
        if not chosen:
            chosen = [code for code in preset.default_activity_codes if code in allowed_codes]
            if not chosen:
                self.error = suggestion.reasoning or NO_COMPATIBLE_ACTIVITIES_MESSAGE
                return False

        finalized = quick_finalize_estimation(
            chosen,
            activities=allowed,
            preset=preset,
            drivers=catalog.drivers,
            risks=catalog.risks,
        )
        self.result = finalized
        self.selected_activities = list(finalized.selected_activities)
        self.reasoning = reasoning
        logger.info(
            "Quick estimate ready",
            extra={"preset_id": preset.id, "activities": len(chosen), "total_days": finalized.total_days},
        )
        return True

    def reset(self) -> None:
        self._clear_result()
        self.error = None

    def _clear_result(self) -> None:
        self.result = None
        self.selected_activities = []
        self.reasoning = ""


__all__ = ["MIN_QUICK_DESCRIPTION_LENGTH", "QuickEstimation"]
