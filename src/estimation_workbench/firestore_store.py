from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence, Type, TypeVar

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import BaseModel, ValidationError

from .models.catalog import Activity, Driver, Risk, TechnologyPreset
from .models.estimate import FinalizedEstimation
from .models.snapshot import EstimationSnapshot

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class FirestoreCatalogRepository:
    """Firestore-backed catalog reads for production use."""

    ACTIVITIES = "activities"
    DRIVERS = "drivers"
    RISKS = "risks"
    PRESETS = "technology_presets"

    def __init__(self, project_id: str | None = None, *, client: firestore.Client | None = None) -> None:
        self._db = client or firestore.Client(project=project_id)

    def fetch_activities(self) -> Sequence[Activity]:
        query = self._db.collection(self.ACTIVITIES).where(filter=FieldFilter("active", "==", True))
        return self._read(query, Activity)

    def fetch_drivers(self) -> Sequence[Driver]:
        return self._read(self._db.collection(self.DRIVERS).order_by("code"), Driver)

    def fetch_risks(self) -> Sequence[Risk]:
        return self._read(self._db.collection(self.RISKS).order_by("weight"), Risk)

    def fetch_presets(self) -> Sequence[TechnologyPreset]:
        return self._read(self._db.collection(self.PRESETS).order_by("name"), TechnologyPreset)

    def _read(self, query: Any, model: Type[M]) -> list[M]:
        rows: list[M] = []
        for doc in query.stream():
            data = {"id": doc.id, **(doc.to_dict() or {})}
            try:
                rows.append(model.model_validate(data))
            except ValidationError:
                logger.warning(
                    "Skipping malformed catalog document",
                    exc_info=True,
                    extra={"collection": model.__name__, "doc_id": doc.id},
                )
        return rows


class FirestoreEstimationHistoryStore:
    """Append-only estimation history stored in Firestore."""

    COLLECTION_NAME = "estimations"

    def __init__(self, project_id: str | None = None, *, client: firestore.Client | None = None) -> None:
        self._db = client or firestore.Client(project=project_id)
        self._collection = self._db.collection(self.COLLECTION_NAME)

    def append(
        self,
        *,
        requirement_id: str,
        finalized: FinalizedEstimation,
        scenario_name: str = "Default",
        created_by: str | None = None,
        ai_reasoning: str | None = None,
    ) -> EstimationSnapshot:
        doc_ref = self._collection.document()
        snapshot = EstimationSnapshot.from_finalized(
            snapshot_id=doc_ref.id,
            requirement_id=requirement_id,
            finalized=finalized,
            scenario_name=scenario_name,
            created_by=created_by,
            ai_reasoning=ai_reasoning,
        )
        doc_ref.set(self._to_firestore_dict(snapshot))

        logger.info(
            "Saved estimation snapshot",
            extra={
                "snapshot_id": snapshot.id,
                "requirement_id": requirement_id,
                "total_days": snapshot.total_days,
            },
        )
        return snapshot

    def get(self, snapshot_id: str) -> EstimationSnapshot | None:
        doc = self._collection.document(snapshot_id).get()
        if not doc.exists:
            return None
        return self._from_firestore_dict(doc.id, doc.to_dict())

    def list_for_requirement(self, requirement_id: str, *, limit: int = 100) -> list[EstimationSnapshot]:
        query = (
            self._collection.where(filter=FieldFilter("requirement_id", "==", requirement_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        return [self._from_firestore_dict(doc.id, doc.to_dict()) for doc in query.stream()]

    def _to_firestore_dict(self, snapshot: EstimationSnapshot) -> dict:
        data = snapshot.model_dump(mode="json", exclude={"id"})
        data["created_at"] = snapshot.created_at
        return data

    def _from_firestore_dict(self, snapshot_id: str, data: dict) -> EstimationSnapshot:
        created_at = data.get("created_at") or datetime.now(timezone.utc)
        return EstimationSnapshot.model_validate({**data, "id": snapshot_id, "created_at": created_at})


__all__ = ["FirestoreCatalogRepository", "FirestoreEstimationHistoryStore"]
