from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from google import genai
from google.genai import types
from pydantic import ValidationError

from .errors import CollaboratorError
from .models.bulk_interview import (
    BulkEstimateFromInterviewRequest,
    BulkEstimateFromInterviewResponse,
    BulkEstimateSummary,
    BulkInterviewRequest,
    BulkInterviewResponse,
    BulkQuestionSummary,
    BulkRequirementEstimation,
)
from .models.interview import (
    ActivityPayload,
    EstimationFromInterviewRequest,
    EstimationFromInterviewResponse,
    RequirementInterviewRequest,
    RequirementInterviewResponse,
)
from .models.suggestion import ActivitySuggestion, ActivitySuggestionRequest

logger = logging.getLogger(__name__)


class VertexAIAdapter:
    """Interview collaborator backed by Gemini models on Vertex AI."""

    def __init__(
        self,
        *,
        project_id: str,
        location: str = "europe-west1",
        model_name: str = "gemini-2.5-flash",
        client: genai.Client | None = None,
    ) -> None:
        """Initialize the Vertex AI adapter.

        Args:
            project_id: GCP project ID
            location: Vertex AI location
            model_name: Gemini model name
            client: Preconfigured client (a Vertex AI client is created otherwise)
        """
        self.project_id = project_id
        self.location = location
        self.model_name = model_name
        self.client = client or genai.Client(vertexai=True, project=project_id, location=location)

    def generate_content(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
        response_format: str | None = None,
    ) -> str:
        """Generate content using Vertex AI.

        Args:
            prompt: Input prompt
            temperature: Sampling temperature (0.0 - 1.0)
            max_output_tokens: Maximum output tokens
            response_format: Optional response format ("json" for JSON mode)

        Returns:
            Generated text
        """
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if response_format == "json" else None,
        )
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            raise CollaboratorError(f"Vertex AI request failed: {exc}") from exc

        generated_text = response.text or ""

        logger.info(
            "Generated content with Vertex AI",
            extra={
                "model": self.model_name,
                "temperature": temperature,
                "input_length": len(prompt),
                "output_length": len(generated_text),
            },
        )

        return generated_text

    def generate_json(self, prompt: str, *, temperature: float = 0.2) -> dict[str, Any]:
        response = self.generate_content(prompt, temperature=temperature, response_format="json").strip()
        if response.startswith("```json"):
            response = response[7:]
        if response.startswith("```"):
            response = response[3:]
        if response.endswith("```"):
            response = response[:-3]

        try:
            result = json.loads(response.strip())
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse JSON response", exc_info=True, extra={"response": response})
            raise CollaboratorError(f"Invalid JSON response: {exc}") from exc
        if not isinstance(result, dict):
            raise CollaboratorError("Expected a JSON object from the model")
        return result

    async def generate_questions(self, request: RequirementInterviewRequest) -> RequirementInterviewResponse:
        prompt = f"""You are a senior software engineer preparing an effort estimate.
Read the requirement below and write 4 to 6 technical questions whose answers
would change the estimate the most.

Technology category: {request.tech_category}
{_project_context(request.project_context)}
Requirement:
{request.description}

Each question has: id, type (single-choice | multiple-choice | text | range),
category (INTEGRATION | DATA | SECURITY | PERFORMANCE | UI_UX | ARCHITECTURE |
TESTING | DEPLOYMENT), question, technicalContext, impactOnEstimate, required,
and options [{{"id", "label"}}] for choice questions or min/max/step/unit for ranges.

Respond with a JSON object:
{{"questions": [...], "reasoning": "...", "estimatedComplexity": "LOW|MEDIUM|HIGH",
  "suggestedActivities": ["ACTIVITY_CODE", ...]}}
"""
        try:
            result = await asyncio.to_thread(self.generate_json, prompt)
            return RequirementInterviewResponse.model_validate({**result, "success": True})
        except (CollaboratorError, ValidationError) as exc:
            logger.error("Failed to generate interview questions", exc_info=True)
            return RequirementInterviewResponse(success=False, error=str(exc))

    async def generate_bulk_questions(self, request: BulkInterviewRequest) -> BulkInterviewResponse:
        requirements = "\n".join(
            f"- [{req.id}] {req.req_id} {req.title}: {req.description}" for req in request.requirements
        )
        prompt = f"""You are a senior software engineer estimating a batch of requirements.
Write 6 to 10 technical questions that remove the most uncertainty across the batch.
Prefer questions that apply to several requirements at once.

Technology category: {request.tech_category}
{_project_context(request.project_context)}
Requirements:
{requirements}

Each question has: id, scope (global | multi-requirement | specific),
affectedRequirementIds (empty for global), type (single-choice | multiple-choice | range),
category, question, technicalContext, impactOnEstimate, required, options or min/max/step/unit.

Respond with a JSON object:
{{"questions": [...], "requirementAnalysis": [{{"requirementId", "reqCode", "complexity",
  "ambiguityScore", "topics", "relevantQuestionIds"}}], "reasoning": "..."}}
"""
        try:
            result = await asyncio.to_thread(self.generate_json, prompt)
            response = BulkInterviewResponse.model_validate({**result, "success": True})
        except (CollaboratorError, ValidationError) as exc:
            logger.error("Failed to generate bulk interview questions", exc_info=True)
            return BulkInterviewResponse(success=False, error=str(exc))

        analysis = response.requirement_analysis
        summary = BulkQuestionSummary(
            total_requirements=len(request.requirements),
            global_questions=sum(1 for q in response.questions if q.scope == "global"),
            multi_req_questions=sum(1 for q in response.questions if q.scope == "multi-requirement"),
            specific_questions=sum(1 for q in response.questions if q.scope == "specific"),
            avg_ambiguity_score=(
                round(sum(a.ambiguity_score for a in analysis) / len(analysis), 2) if analysis else 0.0
            ),
        )
        return response.model_copy(update={"summary": summary})

    async def generate_estimate(self, request: EstimationFromInterviewRequest) -> EstimationFromInterviewResponse:
        prompt = f"""You are a senior software engineer. Select the catalog activities needed to
implement the requirement, using the interview answers to decide scope.
Only use activity codes from the catalog.

Technology category: {request.tech_category}
Requirement:
{request.description}

Interview answers:
{json.dumps({key: answer.to_wire() for key, answer in request.answers.items()}, ensure_ascii=False, indent=2)}

Activity catalog:
{_catalog_listing(request.activities)}

Respond with a JSON object:
{{"generatedTitle": "...", "activities": [{{"code", "name", "baseHours", "reason",
  "fromQuestionId"}}], "reasoning": "...", "confidenceScore": 0.0-1.0,
  "suggestedDrivers": [{{"code", "suggestedValue", "reason"}}], "suggestedRisks": ["RISK_CODE"]}}
"""
        try:
            result = await asyncio.to_thread(self.generate_json, prompt)
            response = EstimationFromInterviewResponse.model_validate({**result, "success": True})
        except (CollaboratorError, ValidationError) as exc:
            logger.error("Failed to generate estimate from interview", exc_info=True)
            return EstimationFromInterviewResponse(success=False, error=str(exc))

        activities = _known_activities(response.activities, request.activities)
        total_hours = sum(activity.base_hours for activity in activities)
        return response.model_copy(
            update={"activities": activities, "total_base_days": round(total_hours / 8, 2)}
        )

    async def generate_bulk_estimates(
        self, request: BulkEstimateFromInterviewRequest
    ) -> BulkEstimateFromInterviewResponse:
        requirements = "\n".join(
            f"- [{req.id}] {req.req_id} {req.title}: {req.description}" for req in request.requirements
        )
        answers = {key: answer.to_wire() for key, answer in request.answers.items()}
        prompt = f"""You are a senior software engineer. For every requirement select the catalog
activities needed to implement it. Answers scoped to specific requirements apply
only to the requirements listed in affectedRequirementIds.

Technology category: {request.tech_category}
Requirements:
{requirements}

Interview answers:
{json.dumps(answers, ensure_ascii=False, indent=2)}

Activity catalog:
{_catalog_listing(request.activities)}

Respond with a JSON object:
{{"estimations": [{{"requirementId", "reqCode", "generatedTitle", "activities": [{{"code",
  "name", "baseHours", "reason"}}], "confidenceScore", "reasoning", "success"}}]}}
"""
        try:
            result = await asyncio.to_thread(self.generate_json, prompt)
            response = BulkEstimateFromInterviewResponse.model_validate({**result, "success": True})
        except (CollaboratorError, ValidationError) as exc:
            logger.error("Failed to generate bulk estimates", exc_info=True)
            return BulkEstimateFromInterviewResponse(success=False, error=str(exc))

        estimations: list[BulkRequirementEstimation] = []
        for estimation in response.estimations:
            activities = _known_activities(estimation.activities, request.activities)
            total_days = round(sum(a.base_hours for a in activities) / 8, 2)
            estimations.append(
                estimation.model_copy(
                    update={
                        "activities": activities,
                        "total_base_days": total_days,
                        "success": estimation.success and bool(activities),
                    }
                )
            )
        successful = [e for e in estimations if e.success]
        summary = BulkEstimateSummary(
            total_requirements=len(request.requirements),
            successful_estimations=len(successful),
            failed_estimations=len(request.requirements) - len(successful),
            total_base_days=round(sum(e.total_base_days for e in successful), 2),
            avg_confidence_score=(
                round(sum(e.confidence_score for e in successful) / len(successful), 2) if successful else 0.0
            ),
        )
        return response.model_copy(update={"estimations": estimations, "summary": summary})

    async def suggest_activities(self, request: ActivitySuggestionRequest) -> ActivitySuggestion:
        preset = request.preset
        relevant = [a for a in request.activities if a.tech_category in (preset.tech_category, "MULTI")]
        prompt = f"""You are a senior software engineer. Decide whether the text below is a real,
estimable software requirement. If it is, select the catalog activities needed to
implement it. Only use activity codes from the catalog.

Technology preset: {preset.name} ({preset.tech_category})
Preset defaults: {", ".join(preset.default_activity_codes) or "none"}

Activity catalog:
{_catalog_listing(relevant)}

Requirement:
{request.description[:1000]}

Respond with a JSON object:
{{"isValidRequirement": true|false, "activityCodes": ["ACTIVITY_CODE", ...],
  "suggestedDrivers": {{"DRIVER_CODE": "VALUE"}}, "suggestedRisks": ["RISK_CODE"],
  "reasoning": "..."}}
"""
        try:
            result = await asyncio.to_thread(self.generate_json, prompt, temperature=0.0)
            suggestion = ActivitySuggestion.model_validate({**result, "success": True})
        except (CollaboratorError, ValidationError) as exc:
            logger.error("Failed to suggest activities", exc_info=True)
            return ActivitySuggestion(success=False, error=str(exc))

        if not suggestion.is_valid_requirement:
            return suggestion.model_copy(
                update={
                    "activity_codes": [],
                    "reasoning": suggestion.reasoning or "Requirement description is invalid or too vague",
                }
            )
        known_codes = {activity.code for activity in relevant}
        unknown = [code for code in suggestion.activity_codes if code not in known_codes]
        if unknown:
            logger.warning("Model suggested activities outside the catalog", extra={"codes": unknown})
        return suggestion.model_copy(
            update={"activity_codes": [code for code in suggestion.activity_codes if code in known_codes]}
        )


def _project_context(context) -> str:
    if context is None:
        return ""
    return f"Project: {context.name} - {context.description}\n"


def _catalog_listing(activities: list[ActivityPayload]) -> str:
    return "\n".join(
        f"- {a.code} | {a.name} | {a.base_hours}h | {a.group} | {a.description}" for a in activities
    )


def _known_activities(selected, catalog: list[ActivityPayload]) -> list:
    """Keep only codes present in the catalog, with the catalog's hours."""
    by_code = {activity.code: activity for activity in catalog}
    known = []
    for activity in selected:
        entry = by_code.get(activity.code)
        if entry is None:
            logger.warning("Model selected an activity outside the catalog", extra={"code": activity.code})
            continue
        known.append(activity.model_copy(update={"name": entry.name, "base_hours": entry.base_hours}))
    return known


__all__ = ["VertexAIAdapter"]
