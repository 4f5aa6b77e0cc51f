from __future__ import annotations

import asyncio
import os
import uuid
from pathlib import Path
from typing import Dict, Sequence

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from estimation_workbench.bulk_interview import BulkInterview, BulkInterviewPhase
from estimation_workbench.catalog_repository import FallbackCatalogRepository, LocalCatalogRepository, load_catalog
from estimation_workbench.engine import calculate_estimation
from estimation_workbench.errors import InterviewBusyError
from estimation_workbench.finalizer import finalize_estimation
from estimation_workbench.firestore_store import FirestoreCatalogRepository, FirestoreEstimationHistoryStore
from estimation_workbench.history_store import EstimationHistoryStore
from estimation_workbench.interview import InterviewPhase, RequirementInterview
from estimation_workbench.interview_api import InterviewApiClient
from estimation_workbench.logging_config import set_trace_id, setup_logging
from estimation_workbench.models.bulk_interview import (
    BulkEstimateSummary,
    BulkInterviewQuestion,
    BulkQuestionSummary,
    BulkRequirementEstimation,
    BulkRequirementInput,
    RequirementAnalysis,
)
from estimation_workbench.models.estimate import ActivityDetail, EstimationInput, EstimationResult, FinalizedEstimation
from estimation_workbench.models.interview import AnswerValue, ProjectContext, SuggestedDriver, TechnicalQuestion
from estimation_workbench.models.snapshot import EstimationSnapshot
from estimation_workbench.quick_estimation import QuickEstimation
from estimation_workbench.selection import SelectionOutcome, SelectionSignal, SelectionState
from estimation_workbench.vertex_ai_adapter import VertexAIAdapter


class FinalizeRequest(BaseModel):
    activity_codes: list[str]
    tech_category: str | None = Field(default=None, description="Restrict activities to this category and MULTI")
    tech_preset_id: str | None = None
    driver_values: Dict[str, str] | None = None
    risk_codes: list[str] | None = None
    suggested_drivers: list[SuggestedDriver] | None = None
    suggested_risks: list[str] | None = None


class SnapshotRequest(BaseModel):
    finalized: FinalizedEstimation
    scenario_name: str = "Default"
    created_by: str | None = None
    ai_reasoning: str | None = None


class GenerateQuestionsRequest(BaseModel):
    description: str
    tech_preset_id: str
    tech_category: str
    project_context: ProjectContext | None = None


class AnswerRequest(BaseModel):
    question_id: str
    value: AnswerValue


class InterviewEstimateRequest(BaseModel):
    description: str
    tech_preset_id: str
    tech_category: str


class InterviewStateResponse(BaseModel):
    id: str
    phase: InterviewPhase
    questions: list[TechnicalQuestion]
    answered: list[str]
    current_question_index: int
    progress: float
    required_answered: bool
    reasoning: str | None = None
    error: str | None = None
    generated_title: str | None = None
    confidence_score: float | None = None
    estimate: FinalizedEstimation | None = None

    @staticmethod
    def from_interview(interview_id: str, interview: RequirementInterview) -> "InterviewStateResponse":
        estimate = interview.estimate
        return InterviewStateResponse(
            id=interview_id,
            phase=interview.phase,
            questions=list(interview.questions),
            answered=list(interview.answers),
            current_question_index=interview.current_question_index,
            progress=interview.progress,
            required_answered=interview.required_answered,
            reasoning=estimate.response.reasoning if estimate else interview.reasoning,
            error=interview.error,
            generated_title=estimate.response.generated_title if estimate else None,
            confidence_score=estimate.response.confidence_score if estimate else None,
            estimate=estimate.finalized if estimate else None,
        )


class QuickEstimateRequest(BaseModel):
    description: str
    tech_preset_id: str


class QuickEstimateResponse(BaseModel):
    success: bool
    result: FinalizedEstimation | None = None
    selected_activities: list[ActivityDetail] = Field(default_factory=list)
    reasoning: str = ""
    error: str | None = None


class BulkAnalysisRequest(BaseModel):
    requirements: list[BulkRequirementInput]
    tech_category: str
    tech_preset_id: str | None = None
    project_context: ProjectContext | None = None


class BulkEstimatesRequest(BaseModel):
    tech_category: str


class BulkOutcomeResponse(BaseModel):
    estimation: BulkRequirementEstimation
    finalized: FinalizedEstimation | None = None


class BulkInterviewStateResponse(BaseModel):
    id: str
    phase: BulkInterviewPhase
    questions: list[BulkInterviewQuestion]
    answered: list[str]
    current_question_index: int
    progress: float
    required_answered: bool
    summary: BulkQuestionSummary
    requirement_analysis: list[RequirementAnalysis]
    reasoning: str | None = None
    error: str | None = None
    outcomes: list[BulkOutcomeResponse] = Field(default_factory=list)
    estimate_summary: BulkEstimateSummary | None = None

    @staticmethod
    def from_interview(interview_id: str, interview: BulkInterview) -> "BulkInterviewStateResponse":
        return BulkInterviewStateResponse(
            id=interview_id,
            phase=interview.phase,
            questions=list(interview.questions),
            answered=list(interview.answers),
            current_question_index=interview.current_question_index,
            progress=interview.progress,
            required_answered=interview.required_answered,
            summary=interview.summary,
            requirement_analysis=interview.requirement_analysis,
            reasoning=interview.reasoning,
            error=interview.error,
            outcomes=[
                BulkOutcomeResponse(estimation=outcome.estimation, finalized=outcome.finalized)
                for outcome in interview.outcomes
            ],
            estimate_summary=interview.estimate_summary,
        )


class SelectPresetRequest(BaseModel):
    preset_id: str
    apply_defaults: bool = False


class ToggleActivityRequest(BaseModel):
    activity_id: str


class DriverValueRequest(BaseModel):
    value: str


class ToggleRiskRequest(BaseModel):
    risk_key: str = Field(description="Risk id or code")


class ApplySuggestionsRequest(BaseModel):
    activity_ids: list[str]
    driver_values: Dict[str, str] | None = None
    risk_ids: list[str] | None = None


class SelectionOutcomeResponse(BaseModel):
    accepted: bool
    signals: list[SelectionSignal] = Field(default_factory=list)
    dropped: list[str] = Field(default_factory=list)


class SelectionStateResponse(BaseModel):
    id: str
    selected_preset_id: str | None = None
    activity_ids: list[str]
    ai_suggested_ids: list[str]
    driver_values: Dict[str, str]
    risk_ids: list[str]
    is_valid: bool
    result: EstimationResult | None = None
    outcome: SelectionOutcomeResponse | None = None

    @staticmethod
    def from_state(
        selection_id: str, state: SelectionState, outcome: SelectionOutcome | None = None
    ) -> "SelectionStateResponse":
        return SelectionStateResponse(
            id=selection_id,
            selected_preset_id=state.selected_preset_id,
            activity_ids=list(state.selected_activity_ids),
            ai_suggested_ids=list(state.ai_suggested_ids),
            driver_values=state.selected_driver_values,
            risk_ids=list(state.selected_risk_ids),
            is_valid=state.is_valid,
            result=state.estimation_result,
            outcome=(
                SelectionOutcomeResponse(
                    accepted=outcome.accepted, signals=list(outcome.signals), dropped=list(outcome.dropped)
                )
                if outcome
                else None
            ),
        )


# Environment configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
PROJECT_ID = os.getenv("PROJECT_ID")
CATALOG_PATH = os.getenv("CATALOG_PATH")
AI_BACKEND = os.getenv("AI_BACKEND", "http")
AI_FUNCTIONS_BASE_URL = os.getenv("AI_FUNCTIONS_BASE_URL", "http://localhost:8888/.netlify/functions")
AI_API_TOKEN = os.getenv("AI_API_TOKEN")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
VERTEX_LOCATION = os.getenv("VERTEX_LOCATION", "europe-west1")
VERTEX_MODEL = os.getenv("VERTEX_MODEL", "gemini-2.5-flash")

setup_logging(environment=ENVIRONMENT, project_id=PROJECT_ID)

app = FastAPI(title="Estimation Workbench API", version="0.1.0")

# Use Firestore in production, local JSON or demo data for dev
if ENVIRONMENT == "dev":
    primary_catalog = LocalCatalogRepository(path=Path(CATALOG_PATH).resolve()) if CATALOG_PATH else None
    history_store = EstimationHistoryStore()
else:
    primary_catalog = FirestoreCatalogRepository(project_id=PROJECT_ID)
    history_store = FirestoreEstimationHistoryStore(project_id=PROJECT_ID)
catalog_repository = FallbackCatalogRepository(primary_catalog)

if AI_BACKEND == "vertex":
    if not PROJECT_ID:
        raise RuntimeError("PROJECT_ID is required when AI_BACKEND=vertex")
    collaborator = VertexAIAdapter(project_id=PROJECT_ID, location=VERTEX_LOCATION, model_name=VERTEX_MODEL)
else:
    collaborator = InterviewApiClient(
        base_url=AI_FUNCTIONS_BASE_URL,
        api_token=AI_API_TOKEN,
        timeout_seconds=AI_TIMEOUT_SECONDS,
    )

interviews: Dict[str, RequirementInterview] = {}
bulk_interviews: Dict[str, BulkInterview] = {}
selections: Dict[str, SelectionState] = {}


@app.middleware("http")
async def trace_context(request: Request, call_next):
    header = request.headers.get("X-Cloud-Trace-Context")
    set_trace_id(header.split("/")[0] if header else None)
    return await call_next(request)


@app.exception_handler(InterviewBusyError)
async def interview_busy(request: Request, exc: InterviewBusyError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc), "phase": exc.phase})


@app.post("/v1/estimations:calculate", response_model=EstimationResult)
async def calculate(estimation_input: EstimationInput) -> EstimationResult:
    return calculate_estimation(estimation_input)


@app.post("/v1/estimations:finalize", response_model=FinalizedEstimation)
async def finalize(request: FinalizeRequest) -> FinalizedEstimation:
    catalog = await asyncio.to_thread(load_catalog, catalog_repository)
    activities: Sequence = catalog.activities
    if request.tech_category:
        activities = catalog.activities_for_category(request.tech_category)
    preset = None
    if request.tech_preset_id:
        preset = catalog.preset_by_id(request.tech_preset_id)
        if preset is None:
            raise HTTPException(status_code=404, detail="Technology preset not found")
    return finalize_estimation(
        request.activity_codes,
        activities=activities,
        drivers=catalog.drivers,
        risks=catalog.risks,
        driver_values=request.driver_values,
        risk_codes=request.risk_codes,
        preset=preset,
        suggested_drivers=request.suggested_drivers,
        suggested_risks=request.suggested_risks,
    )


@app.post("/v1/requirements/{requirement_id}/estimations", response_model=EstimationSnapshot)
async def save_estimation(requirement_id: str, request: SnapshotRequest) -> EstimationSnapshot:
    return history_store.append(
        requirement_id=requirement_id,
        finalized=request.finalized,
        scenario_name=request.scenario_name,
        created_by=request.created_by,
        ai_reasoning=request.ai_reasoning,
    )


@app.get("/v1/requirements/{requirement_id}/estimations", response_model=list[EstimationSnapshot])
async def list_estimations(requirement_id: str, limit: int = 100) -> list[EstimationSnapshot]:
    return history_store.list_for_requirement(requirement_id, limit=limit)


@app.post("/v1/interviews", response_model=InterviewStateResponse)
async def create_interview() -> InterviewStateResponse:
    interview_id = uuid.uuid4().hex
    interview = RequirementInterview(collaborator=collaborator, catalog_repository=catalog_repository)
    interviews[interview_id] = interview
    return InterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/interviews/{interview_id}/questions", response_model=InterviewStateResponse)
async def generate_questions(interview_id: str, request: GenerateQuestionsRequest) -> InterviewStateResponse:
    interview = _get_interview(interview_id)
    await interview.generate_questions(
        request.description,
        request.tech_preset_id,
        request.tech_category,
        project_context=request.project_context,
    )
    return InterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/interviews/{interview_id}/answers", response_model=InterviewStateResponse)
async def answer_question(interview_id: str, request: AnswerRequest) -> InterviewStateResponse:
    interview = _get_interview(interview_id)
    if interview.find_question(request.question_id) is None:
        raise HTTPException(status_code=404, detail="Question not found")
    interview.answer_question(request.question_id, request.value)
    return InterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/interviews/{interview_id}/estimate", response_model=InterviewStateResponse)
async def generate_estimate(interview_id: str, request: InterviewEstimateRequest) -> InterviewStateResponse:
    interview = _get_interview(interview_id)
    await interview.generate_estimate(request.description, request.tech_preset_id, request.tech_category)
    return InterviewStateResponse.from_interview(interview_id, interview)


@app.delete("/v1/interviews/{interview_id}", status_code=204)
async def delete_interview(interview_id: str) -> None:
    if interviews.pop(interview_id, None) is None:
        raise HTTPException(status_code=404, detail="Interview not found")


@app.post("/v1/estimations:quick", response_model=QuickEstimateResponse)
async def quick_estimate(request: QuickEstimateRequest) -> QuickEstimateResponse:
    quick = QuickEstimation(collaborator=collaborator, catalog_repository=catalog_repository)
    success = await quick.calculate(request.description, request.tech_preset_id)
    return QuickEstimateResponse(
        success=success,
        result=quick.result,
        selected_activities=quick.selected_activities,
        reasoning=quick.reasoning,
        error=quick.error,
    )


@app.post("/v1/bulk-interviews", response_model=BulkInterviewStateResponse)
async def create_bulk_interview() -> BulkInterviewStateResponse:
    interview_id = uuid.uuid4().hex
    interview = BulkInterview(collaborator=collaborator, catalog_repository=catalog_repository)
    bulk_interviews[interview_id] = interview
    return BulkInterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/bulk-interviews/{interview_id}/analysis", response_model=BulkInterviewStateResponse)
async def analyze_requirements(interview_id: str, request: BulkAnalysisRequest) -> BulkInterviewStateResponse:
    interview = _get_bulk_interview(interview_id)
    await interview.analyze_requirements(
        request.requirements,
        request.tech_category,
        tech_preset_id=request.tech_preset_id,
        project_context=request.project_context,
    )
    return BulkInterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/bulk-interviews/{interview_id}/answers", response_model=BulkInterviewStateResponse)
async def answer_bulk_question(interview_id: str, request: AnswerRequest) -> BulkInterviewStateResponse:
    interview = _get_bulk_interview(interview_id)
    if interview.find_question(request.question_id) is None:
        raise HTTPException(status_code=404, detail="Question not found")
    interview.answer_question(request.question_id, request.value)
    return BulkInterviewStateResponse.from_interview(interview_id, interview)


@app.post("/v1/bulk-interviews/{interview_id}/estimates", response_model=BulkInterviewStateResponse)
async def generate_bulk_estimates(interview_id: str, request: BulkEstimatesRequest) -> BulkInterviewStateResponse:
    interview = _get_bulk_interview(interview_id)
    await interview.generate_estimates(request.tech_category)
    return BulkInterviewStateResponse.from_interview(interview_id, interview)


@app.delete("/v1/bulk-interviews/{interview_id}", status_code=204)
async def delete_bulk_interview(interview_id: str) -> None:
    if bulk_interviews.pop(interview_id, None) is None:
        raise HTTPException(status_code=404, detail="Interview not found")


@app.post("/v1/selections", response_model=SelectionStateResponse)
async def create_selection() -> SelectionStateResponse:
    selection_id = uuid.uuid4().hex
    catalog = await asyncio.to_thread(load_catalog, catalog_repository)
    state = SelectionState(catalog)
    selections[selection_id] = state
    return SelectionStateResponse.from_state(selection_id, state)


@app.get("/v1/selections/{selection_id}", response_model=SelectionStateResponse)
async def get_selection(selection_id: str) -> SelectionStateResponse:
    return SelectionStateResponse.from_state(selection_id, _get_selection(selection_id))


@app.post("/v1/selections/{selection_id}/preset", response_model=SelectionStateResponse)
async def select_preset(selection_id: str, request: SelectPresetRequest) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    if request.apply_defaults:
        outcome = state.apply_preset_defaults(request.preset_id)
    else:
        outcome = state.select_preset(request.preset_id)
    return SelectionStateResponse.from_state(selection_id, state, outcome)


@app.post("/v1/selections/{selection_id}/activities:toggle", response_model=SelectionStateResponse)
async def toggle_activity(selection_id: str, request: ToggleActivityRequest) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    outcome = state.toggle_activity(request.activity_id)
    return SelectionStateResponse.from_state(selection_id, state, outcome)


@app.put("/v1/selections/{selection_id}/drivers/{driver_key}", response_model=SelectionStateResponse)
async def set_driver_value(selection_id: str, driver_key: str, request: DriverValueRequest) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    outcome = state.set_driver_value(driver_key, request.value)
    return SelectionStateResponse.from_state(selection_id, state, outcome)


@app.post("/v1/selections/{selection_id}/risks:toggle", response_model=SelectionStateResponse)
async def toggle_risk(selection_id: str, request: ToggleRiskRequest) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    outcome = state.toggle_risk(request.risk_key)
    return SelectionStateResponse.from_state(selection_id, state, outcome)


@app.post("/v1/selections/{selection_id}/suggestions", response_model=SelectionStateResponse)
async def apply_suggestions(selection_id: str, request: ApplySuggestionsRequest) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    outcome = state.apply_ai_suggestions(request.activity_ids, request.driver_values, request.risk_ids)
    return SelectionStateResponse.from_state(selection_id, state, outcome)


@app.post("/v1/selections/{selection_id}/reset", response_model=SelectionStateResponse)
async def reset_selection(selection_id: str) -> SelectionStateResponse:
    state = _get_selection(selection_id)
    state.reset_selections()
    return SelectionStateResponse.from_state(selection_id, state)


@app.delete("/v1/selections/{selection_id}", status_code=204)
async def delete_selection(selection_id: str) -> None:
    if selections.pop(selection_id, None) is None:
        raise HTTPException(status_code=404, detail="Selection not found")


@app.get("/health")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok", "demo_catalog": catalog_repository.is_demo_mode})


def _get_interview(interview_id: str) -> RequirementInterview:
    interview = interviews.get(interview_id)
    if interview is None:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


def _get_bulk_interview(interview_id: str) -> BulkInterview:
    interview = bulk_interviews.get(interview_id)
    if interview is None:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


def _get_selection(selection_id: str) -> SelectionState:
    state = selections.get(selection_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Selection not found")
    return state
