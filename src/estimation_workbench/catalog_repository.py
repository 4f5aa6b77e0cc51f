from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Protocol, Sequence

from .demo_catalog import DEMO_CATALOG
from .models.catalog import Activity, Catalog, Driver, Risk, TechnologyPreset

logger = logging.getLogger(__name__)

CATALOG_SECTIONS = ("activities", "drivers", "risks", "presets")


class CatalogRepository(Protocol):
    def fetch_activities(self) -> Sequence[Activity]:
        ...

    def fetch_drivers(self) -> Sequence[Driver]:
        ...

    def fetch_risks(self) -> Sequence[Risk]:
        ...

    def fetch_presets(self) -> Sequence[TechnologyPreset]:
        ...


def load_catalog(repository: CatalogRepository) -> Catalog:
    return Catalog(
        activities=tuple(repository.fetch_activities()),
        drivers=tuple(repository.fetch_drivers()),
        risks=tuple(repository.fetch_risks()),
        presets=tuple(repository.fetch_presets()),
    )


class LocalCatalogRepository:
    """Reads the whole catalog from one JSON document.

    Expected keys: ``activities``, ``drivers``, ``risks``, ``presets``.
    """

    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._catalog: Catalog | None = None

    def fetch_activities(self) -> Sequence[Activity]:
        return self._load().activities

    def fetch_drivers(self) -> Sequence[Driver]:
        return self._load().drivers

    def fetch_risks(self) -> Sequence[Risk]:
        return self._load().risks

    def fetch_presets(self) -> Sequence[TechnologyPreset]:
        return self._load().presets

    def _load(self) -> Catalog:
        if self._catalog is None:
            if not self._path.exists():
                raise FileNotFoundError(f"Catalog file not found: {self._path}")
            with self._path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
            self._catalog = Catalog.model_validate(data)
        return self._catalog


class FallbackCatalogRepository:
    """Serves the primary catalog, or the demo dataset when the primary is unusable.

    The switch is all-or-nothing: sections from the two sources are never
    mixed. A complete primary catalog is cached. After a fallback the demo
    dataset is served for ``retry_after_seconds`` before the primary is read
    again.
    """

    def __init__(
        self,
        primary: CatalogRepository | None,
        *,
        fallback: Catalog = DEMO_CATALOG,
        retry_after_seconds: float = 60.0,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._retry_after = retry_after_seconds
        self._retry_at = 0.0
        self._catalog: Catalog | None = None
        self.is_demo_mode = False

    def fetch_activities(self) -> Sequence[Activity]:
        return self.load().activities

    def fetch_drivers(self) -> Sequence[Driver]:
        return self.load().drivers

    def fetch_risks(self) -> Sequence[Risk]:
        return self.load().risks

    def fetch_presets(self) -> Sequence[TechnologyPreset]:
        return self.load().presets

    def load(self) -> Catalog:
        if self._catalog is not None:
            return self._catalog
        if self.is_demo_mode and time.monotonic() < self._retry_at:
            return self._fallback
        catalog = self._load_primary()
        self.is_demo_mode = catalog is None
        if catalog is None:
            self._retry_at = time.monotonic() + self._retry_after
            return self._fallback
        self._catalog = catalog
        return catalog

    def _load_primary(self) -> Catalog | None:
        if self._primary is None:
            logger.debug("No catalog store configured, using demo data")
            return None
        try:
            catalog = load_catalog(self._primary)
        except Exception:
            logger.warning("Catalog store failed, using demo data", exc_info=True)
            return None
        empty = [section for section in CATALOG_SECTIONS if not getattr(catalog, section)]
        if empty:
            logger.warning("Catalog store is incomplete, using demo data", extra={"empty_sections": empty})
            return None
        return catalog


__all__ = [
    "CatalogRepository",
    "FallbackCatalogRepository",
    "LocalCatalogRepository",
    "load_catalog",
]
