"""Built-in demo dataset used when the catalog store is empty or unreachable."""

from __future__ import annotations

from .models.catalog import (
    Activity,
    Catalog,
    Driver,
    DriverOption,
    Risk,
    TechnologyPreset,
)

DEMO_ACTIVITIES: tuple[Activity, ...] = (
    Activity(id="act-analysis", code="ANL_REQ", name="Requirement analysis", base_days=1.0, group="ANALYSIS"),
    Activity(id="act-design", code="ANL_DESIGN", name="Technical design", base_days=1.5, group="ANALYSIS"),
    Activity(id="act-pm", code="GOV_PM", name="Project coordination", base_days=0.5, group="GOVERNANCE"),
    Activity(id="act-deploy", code="OPS_DEPLOY", name="Release and deployment", base_days=0.5, group="OPS"),
    Activity(id="act-uat", code="TST_UAT", name="User acceptance support", base_days=1.0, group="TEST"),
    Activity(
        id="act-pp-app", code="PP_CANVAS_APP", name="Canvas app screens", base_days=3.0,
        group="DEV", tech_category="POWER_PLATFORM",
    ),
    Activity(
        id="act-pp-flow", code="PP_FLOW", name="Power Automate flow", base_days=2.0,
        group="DEV", tech_category="POWER_PLATFORM",
    ),
    Activity(
        id="act-pp-dataverse", code="PP_DATAVERSE", name="Dataverse tables", base_days=1.5,
        group="DEV", tech_category="POWER_PLATFORM",
    ),
    Activity(
        id="act-be-api", code="BE_API", name="REST endpoint", base_days=2.0,
        group="DEV", tech_category="BACKEND",
    ),
    Activity(
        id="act-be-db", code="BE_DB_SCHEMA", name="Database schema and migration", base_days=1.5,
        group="DEV", tech_category="BACKEND",
    ),
    Activity(
        id="act-be-integration", code="BE_INTEGRATION", name="External system integration", base_days=4.0,
        group="DEV", tech_category="BACKEND",
    ),
    Activity(
        id="act-be-tests", code="BE_UNIT_TESTS", name="Unit and integration tests", base_days=1.5,
        group="TEST", tech_category="BACKEND",
    ),
    Activity(
        id="act-fe-page", code="FE_PAGE", name="Page or view", base_days=2.0,
        group="DEV", tech_category="FRONTEND",
    ),
    Activity(
        id="act-fe-form", code="FE_FORM", name="Form with validation", base_days=1.5,
        group="DEV", tech_category="FRONTEND",
    ),
    Activity(
        id="act-fe-e2e", code="FE_E2E", name="End-to-end tests", base_days=1.5,
        group="TEST", tech_category="FRONTEND",
    ),
)

_LEVELS = ("LOW", "MEDIUM", "HIGH")


def _levels(*multipliers: float) -> tuple[DriverOption, ...]:
    return tuple(
        DriverOption(value=value, label=value.title(), multiplier=multiplier)
        for value, multiplier in zip(_LEVELS, multipliers)
    )


DEMO_DRIVERS: tuple[Driver, ...] = (
    Driver(id="drv-complexity", code="COMPLEXITY", name="Functional complexity", options=_levels(1.0, 1.2, 1.5)),
    Driver(id="drv-integration", code="INTEGRATION", name="Integration complexity", options=_levels(1.0, 1.1, 1.3)),
    Driver(id="drv-environments", code="ENVIRONMENTS", name="Environments to manage", options=_levels(1.0, 1.05, 1.15)),
    Driver(id="drv-team", code="TEAM_EXPERIENCE", name="Team unfamiliarity", options=_levels(1.0, 1.1, 1.25)),
)

DEMO_RISKS: tuple[Risk, ...] = (
    Risk(id="rsk-unclear", code="R_UNCLEAR_REQ", name="Unclear requirements", weight=8),
    Risk(id="rsk-third-party", code="R_THIRD_PARTY", name="Third-party dependency", weight=5),
    Risk(id="rsk-data", code="R_DATA_QUALITY", name="Poor source data quality", weight=6),
    Risk(id="rsk-deadline", code="R_TIGHT_DEADLINE", name="Tight deadline", weight=7),
    Risk(id="rsk-new-tech", code="R_NEW_TECH", name="New technology for the team", weight=10),
)

DEMO_PRESETS: tuple[TechnologyPreset, ...] = (
    TechnologyPreset(
        id="preset-power-platform",
        code="POWER_PLATFORM_STD",
        name="Power Platform",
        tech_category="POWER_PLATFORM",
        default_activity_codes=("ANL_REQ", "PP_CANVAS_APP", "PP_FLOW", "TST_UAT", "OPS_DEPLOY"),
        default_driver_values={"COMPLEXITY": "MEDIUM", "INTEGRATION": "LOW"},
        default_risks=("R_UNCLEAR_REQ",),
    ),
    TechnologyPreset(
        id="preset-backend",
        code="BACKEND_API_STD",
        name="Backend API",
        tech_category="BACKEND",
        default_activity_codes=("ANL_REQ", "ANL_DESIGN", "BE_API", "BE_DB_SCHEMA", "BE_UNIT_TESTS", "OPS_DEPLOY"),
        default_driver_values={"COMPLEXITY": "MEDIUM", "INTEGRATION": "MEDIUM", "ENVIRONMENTS": "MEDIUM"},
        default_risks=("R_THIRD_PARTY",),
    ),
    TechnologyPreset(
        id="preset-frontend",
        code="FRONTEND_WEB_STD",
        name="Frontend web",
        tech_category="FRONTEND",
        default_activity_codes=("ANL_REQ", "FE_PAGE", "FE_FORM", "FE_E2E", "OPS_DEPLOY"),
        default_driver_values={"COMPLEXITY": "LOW"},
        default_risks=(),
    ),
)

DEMO_CATALOG = Catalog(
    activities=DEMO_ACTIVITIES,
    drivers=DEMO_DRIVERS,
    risks=DEMO_RISKS,
    presets=DEMO_PRESETS,
)

__all__ = [
    "DEMO_ACTIVITIES",
    "DEMO_CATALOG",
    "DEMO_DRIVERS",
    "DEMO_PRESETS",
    "DEMO_RISKS",
]
