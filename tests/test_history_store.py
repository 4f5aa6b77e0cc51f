from estimation_workbench.demo_catalog import DEMO_ACTIVITIES, DEMO_DRIVERS, DEMO_RISKS
from estimation_workbench.finalizer import finalize_estimation
from estimation_workbench.history_store import EstimationHistoryStore
from estimation_workbench.models.estimate import ValueSource


def make_finalized(codes):
    return finalize_estimation(
        codes,
        activities=DEMO_ACTIVITIES,
        drivers=DEMO_DRIVERS,
        risks=DEMO_RISKS,
        risk_codes=["R_UNCLEAR_REQ"],
    )


def test_append_and_list_newest_first():
    store = EstimationHistoryStore()
    first = store.append(requirement_id="REQ-1", finalized=make_finalized(["BE_API"]))
    second = store.append(
        requirement_id="REQ-1",
        finalized=make_finalized(["BE_API", "BE_DB_SCHEMA"]),
        scenario_name="With schema",
        ai_reasoning="Schema changes needed",
    )
    store.append(requirement_id="REQ-2", finalized=make_finalized(["FE_PAGE"]))

    history = store.list_for_requirement("REQ-1")

    assert [snapshot.id for snapshot in history] == [second.id, first.id]
    assert history[0].scenario_name == "With schema"
    assert store.list_for_requirement("REQ-1", limit=1) == [second]
    assert store.list_for_requirement("REQ-404") == []


def test_snapshot_copies_finalized_values():
    store = EstimationHistoryStore()
    finalized = make_finalized(["BE_API"])

    snapshot = store.append(requirement_id="REQ-1", finalized=finalized, created_by="analyst@example.com")

    assert snapshot.id.startswith("est_REQ-1_")
    assert store.get(snapshot.id) == snapshot
    assert snapshot.total_days == finalized.total_days
    assert snapshot.risk_source == ValueSource.manual
    assert snapshot.driver_source == ValueSource.preset
    assert [activity.code for activity in snapshot.selected_activities] == ["BE_API"]
    assert snapshot.created_at.tzinfo is not None
    assert store.get("est_missing") is None
