from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from .models.estimate import FinalizedEstimation
from .models.snapshot import EstimationSnapshot


class EstimationHistoryStore:
    """In-memory, append-only estimation history keyed by requirement."""

    def __init__(self) -> None:
        self._snapshots: Dict[str, EstimationSnapshot] = {}
        self._by_requirement: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def append(
        self,
        *,
        requirement_id: str,
        finalized: FinalizedEstimation,
        scenario_name: str = "Default",
        created_by: str | None = None,
        ai_reasoning: str | None = None,
    ) -> EstimationSnapshot:
        with self._lock:
            snapshot = EstimationSnapshot.from_finalized(
                snapshot_id=self._generate_id(requirement_id),
                requirement_id=requirement_id,
                finalized=finalized,
                scenario_name=scenario_name,
                created_by=created_by,
                ai_reasoning=ai_reasoning,
            )
            self._snapshots[snapshot.id] = snapshot
            self._by_requirement.setdefault(requirement_id, []).append(snapshot.id)
            return snapshot

    def get(self, snapshot_id: str) -> EstimationSnapshot | None:
        with self._lock:
            return self._snapshots.get(snapshot_id)

    def list_for_requirement(self, requirement_id: str, *, limit: int = 100) -> list[EstimationSnapshot]:
        with self._lock:
            ids = self._by_requirement.get(requirement_id, [])
            return [self._snapshots[snapshot_id] for snapshot_id in reversed(ids)][:limit]

    def _generate_id(self, requirement_id: str) -> str:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        suffix = uuid.uuid4().hex[:6]
        safe = requirement_id.replace("/", "-")
        return f"est_{safe}_{ts}_{suffix}"


__all__ = ["EstimationHistoryStore"]
