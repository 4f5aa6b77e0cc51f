import pytest

from estimation_workbench.demo_catalog import DEMO_ACTIVITIES, DEMO_CATALOG, DEMO_DRIVERS, DEMO_RISKS
from estimation_workbench.finalizer import quick_finalize_estimation
from estimation_workbench.models.catalog import Catalog, TechnologyPreset
from estimation_workbench.selection import SelectionSignal, SelectionState


def test_toggle_activity_respects_preset_category():
    state = SelectionState(DEMO_CATALOG)
    state.select_preset("preset-backend")

    rejected = state.toggle_activity("act-fe-page")
    accepted = state.toggle_activity("act-analysis")

    assert not rejected.accepted
    assert rejected.signals == (SelectionSignal.activity_incompatible,)
    assert accepted.accepted
    assert state.selected_activity_ids == ("act-analysis",)


def test_removing_an_activity_is_always_allowed():
    state = SelectionState(DEMO_CATALOG)
    state.toggle_activity("act-fe-page")
    state.select_preset("preset-backend")

    outcome = state.toggle_activity("act-fe-page")

    assert outcome.accepted
    assert state.selected_activity_ids == ()


def test_unknown_activity_and_preset_are_rejected():
    state = SelectionState(DEMO_CATALOG)

    assert state.toggle_activity("act-missing").signals == (SelectionSignal.unknown_activity,)
    assert state.select_preset("preset-missing").signals == (SelectionSignal.preset_not_found,)
    assert state.selected_preset_id is None


def test_apply_preset_defaults_normalises_codes_to_ids():
    state = SelectionState(DEMO_CATALOG)

    outcome = state.apply_preset_defaults("preset-backend")

    assert outcome.accepted and not outcome.has_warnings
    assert "act-be-api" in state.selected_activity_ids
    assert state.selected_driver_values == {
        "drv-complexity": "MEDIUM",
        "drv-integration": "MEDIUM",
        "drv-environments": "MEDIUM",
    }
    assert state.selected_risk_ids == ("rsk-third-party",)
    assert state.is_valid


def test_live_result_matches_quick_finalisation():
    state = SelectionState(DEMO_CATALOG)
    state.apply_preset_defaults("preset-backend")
    preset = DEMO_CATALOG.preset_by_id("preset-backend")

    finalized = quick_finalize_estimation(
        list(preset.default_activity_codes),
        activities=DEMO_ACTIVITIES,
        preset=preset,
        drivers=DEMO_DRIVERS,
        risks=DEMO_RISKS,
    )

    assert state.estimation_result.total_days == pytest.approx(finalized.total_days)


def test_preset_with_no_resolvable_activities_is_unusable():
    catalog = DEMO_CATALOG.model_copy(
        update={
            "presets": (
                TechnologyPreset(
                    id="preset-broken",
                    tech_category="BACKEND",
                    default_activity_codes=("GONE",),
                    default_driver_values={"UNKNOWN_DRIVER": "HIGH"},
                ),
            )
        }
    )
    state = SelectionState(catalog)

    outcome = state.apply_preset_defaults("preset-broken")

    assert outcome.accepted
    assert SelectionSignal.preset_activities_missing in outcome.signals
    assert SelectionSignal.preset_unusable in outcome.signals
    assert SelectionSignal.unknown_driver_key in outcome.signals
    assert state.selected_activity_ids == ()
    assert state.estimation_result is None


def test_ai_suggestions_replace_sections_they_omit():
    state = SelectionState(DEMO_CATALOG)
    state.apply_preset_defaults("preset-backend")

    outcome = state.apply_ai_suggestions(["act-be-api", "act-fe-page"])

    assert outcome.accepted
    assert outcome.signals == (SelectionSignal.suggestions_filtered,)
    assert outcome.dropped == ("act-fe-page",)
    assert state.selected_activity_ids == ("act-be-api",)
    assert state.ai_suggested_ids == ("act-be-api",)
    assert state.selected_driver_values == {}
    assert state.selected_risk_ids == ()


def test_all_incompatible_suggestions_leave_selection_untouched():
    state = SelectionState(DEMO_CATALOG)
    state.apply_preset_defaults("preset-backend")
    before = state.selected_activity_ids

    outcome = state.apply_ai_suggestions(["act-fe-page", "act-fe-form"], driver_values={"COMPLEXITY": "HIGH"})

    assert not outcome.accepted
    assert outcome.signals == (SelectionSignal.suggestions_incompatible,)
    assert state.selected_activity_ids == before
    assert state.selected_driver_values["drv-complexity"] == "MEDIUM"


def test_ai_suggestions_accept_code_keyed_drivers_and_risks():
    state = SelectionState(DEMO_CATALOG)
    state.select_preset("preset-backend")

    state.apply_ai_suggestions(
        ["act-be-api"],
        driver_values={"COMPLEXITY": "HIGH"},
        risk_ids=["R_NEW_TECH"],
    )

    assert state.selected_driver_values == {"drv-complexity": "HIGH"}
    assert state.selected_risk_ids == ("rsk-new-tech",)
    result = state.estimation_result
    assert result.driver_multiplier == pytest.approx(1.5)
    assert result.risk_score == 10


def test_reset_selections_clears_everything():
    state = SelectionState(DEMO_CATALOG)
    state.apply_preset_defaults("preset-frontend")

    state.reset_selections()

    assert state.selected_preset_id is None
    assert not state.has_selections
    assert state.estimation_result is None


def test_empty_catalog_has_no_result():
    state = SelectionState(Catalog())
    assert state.estimation_result is None
    assert not state.is_valid


def test_removing_an_activity_lowers_base_days_by_its_days():
    state = SelectionState(DEMO_CATALOG)
    state.apply_preset_defaults("preset-backend")
    before = state.estimation_result.base_days

    state.toggle_activity("act-be-api")

    assert state.estimation_result.base_days == pytest.approx(before - 2.0)


def test_set_driver_value_keeps_the_last_write():
    state = SelectionState(DEMO_CATALOG)

    assert state.set_driver_value("COMPLEXITY", "MEDIUM").accepted
    assert state.set_driver_value("drv-complexity", "HIGH").accepted

    assert state.selected_driver_values == {"drv-complexity": "HIGH"}


def test_set_driver_value_rejects_unknown_keys():
    state = SelectionState(DEMO_CATALOG)

    outcome = state.set_driver_value("NOT_A_DRIVER", "HIGH")

    assert not outcome.accepted
    assert outcome.signals == (SelectionSignal.unknown_driver_key,)
    assert outcome.dropped == ("NOT_A_DRIVER",)
    assert state.selected_driver_values == {}


def test_toggle_risk_on_and_off_moves_the_risk_score():
    state = SelectionState(DEMO_CATALOG)
    state.toggle_activity("act-analysis")
    assert state.estimation_result.risk_score == 0

    state.toggle_risk("R_UNCLEAR_REQ")
    assert state.selected_risk_ids == ("rsk-unclear",)
    assert state.estimation_result.risk_score == 8

    state.toggle_risk("rsk-unclear")
    assert state.selected_risk_ids == ()
    assert state.estimation_result.risk_score == 0


def test_toggle_risk_rejects_unknown_keys():
    state = SelectionState(DEMO_CATALOG)

    outcome = state.toggle_risk("R_NOPE")

    assert outcome.signals == (SelectionSignal.unknown_risk_key,)
    assert state.selected_risk_ids == ()
