import asyncio
import json

import pytest

from estimation_workbench.catalog_repository import FallbackCatalogRepository, LocalCatalogRepository
from estimation_workbench.errors import InterviewBusyError
from estimation_workbench.models.estimate import ValueSource
from estimation_workbench.models.suggestion import ActivitySuggestion
from estimation_workbench.quick_estimation import QuickEstimation

DESCRIPTION = "Expose a REST endpoint that returns the open orders of a customer."


class FakeSuggester:
    def __init__(self, suggestion=None, error=None):
        self.suggestion = suggestion or ActivitySuggestion(
            success=True,
            is_valid_requirement=True,
            activity_codes=["ANL_REQ", "BE_API", "BE_DB_SCHEMA"],
            reasoning="Endpoint over an existing table",
        )
        self.error = error
        self.requests = []

    async def suggest_activities(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.suggestion


def make_quick(suggester=None, repository=None):
    return QuickEstimation(
        collaborator=suggester or FakeSuggester(),
        catalog_repository=repository or FallbackCatalogRepository(None),
    )


def test_suggested_activities_are_finalised_with_preset_defaults():
    suggester = FakeSuggester()
    quick = make_quick(suggester)

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    assert ok
    assert quick.error is None
    assert quick.reasoning == "Endpoint over an existing table"
    assert [a.code for a in quick.selected_activities] == ["ANL_REQ", "BE_API", "BE_DB_SCHEMA"]
    assert quick.result.base_days == pytest.approx(4.5)
    assert quick.result.driver_source == ValueSource.preset
    assert quick.result.risk_source == ValueSource.preset
    assert [r.code for r in quick.result.applied_risks] == ["R_THIRD_PARTY"]
    assert quick.calculating is False


def test_only_category_and_wildcard_activities_are_offered():
    suggester = FakeSuggester()
    quick = make_quick(suggester)

    asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    request = suggester.requests[0]
    codes = {activity.code for activity in request.activities}
    assert "BE_API" in codes
    assert "ANL_REQ" in codes
    assert "FE_PAGE" not in codes
    assert "PP_FLOW" not in codes
    assert request.preset.id == "preset-backend"
    assert request.to_wire()["action"] == "suggest-activities"


def test_incompatible_suggestion_falls_back_to_preset_defaults():
    suggester = FakeSuggester(
        ActivitySuggestion(is_valid_requirement=True, activity_codes=["FE_PAGE", "PP_FLOW"], reasoning="UI work")
    )
    quick = make_quick(suggester)

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    assert ok
    assert [a.code for a in quick.selected_activities] == [
        "ANL_REQ",
        "ANL_DESIGN",
        "BE_API",
        "BE_DB_SCHEMA",
        "BE_UNIT_TESTS",
        "OPS_DEPLOY",
    ]
    assert quick.result.base_days == pytest.approx(8.0)
    assert "Falling back to preset defaults" in quick.reasoning


def test_empty_suggestion_uses_preset_defaults_and_keeps_reasoning():
    suggester = FakeSuggester(ActivitySuggestion(is_valid_requirement=True, activity_codes=[], reasoning="Generic"))
    quick = make_quick(suggester)

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-frontend"))

    assert ok
    assert [a.code for a in quick.selected_activities][0] == "ANL_REQ"
    assert quick.reasoning == "Generic"


def test_invalid_requirement_sets_error_and_clears_result():
    quick = make_quick()
    assert asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    quick._collaborator = FakeSuggester(
        ActivitySuggestion(is_valid_requirement=False, reasoning="Looks like test data")
    )
    ok = asyncio.run(quick.calculate("asdf asdf qwerty", "preset-backend"))

    assert not ok
    assert quick.error == "Looks like test data"
    assert quick.result is None
    assert quick.selected_activities == []


def test_invalid_requirement_without_reasoning_uses_default_message():
    quick = make_quick(FakeSuggester(ActivitySuggestion(is_valid_requirement=False)))

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    assert not ok
    assert "not valid for estimation" in quick.error


def test_short_description_never_reaches_the_collaborator():
    suggester = FakeSuggester()
    quick = make_quick(suggester)

    ok = asyncio.run(quick.calculate("  too short ", "preset-backend"))

    assert not ok
    assert "at least 10 characters" in quick.error
    assert suggester.requests == []


def test_unknown_preset_is_reported():
    quick = make_quick()

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-missing"))

    assert not ok
    assert quick.error == "The selected technology preset does not exist."


def test_preset_without_category_activities_is_reported(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "activities": [
                    {"id": "a1", "code": "FE_PAGE", "name": "Page", "base_days": 2, "group": "DEV",
                     "tech_category": "FRONTEND"}
                ],
                "drivers": [],
                "risks": [],
                "presets": [
                    {"id": "p1", "name": "Backend", "tech_category": "BACKEND", "default_activity_codes": ["BE_API"]}
                ],
            }
        )
    )
    suggester = FakeSuggester()
    quick = make_quick(suggester, LocalCatalogRepository(path=path))

    ok = asyncio.run(quick.calculate(DESCRIPTION, "p1"))

    assert not ok
    assert "No activities available" in quick.error
    assert suggester.requests == []


def test_failed_suggestion_surfaces_the_collaborator_error():
    quick = make_quick(FakeSuggester(ActivitySuggestion(success=False, error="Too many requests.")))

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    assert not ok
    assert quick.error == "Too many requests."


def test_collaborator_exception_is_captured():
    quick = make_quick(FakeSuggester(error=RuntimeError("boom")))

    ok = asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))

    assert not ok
    assert quick.error == "boom"
    assert quick.calculating is False


def test_calculate_is_rejected_while_calculating():
    quick = make_quick()
    quick.calculating = True

    with pytest.raises(InterviewBusyError):
        asyncio.run(quick.calculate(DESCRIPTION, "preset-backend"))
