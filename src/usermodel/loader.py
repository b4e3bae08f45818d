"""Loading of the category model and ad catalog, published once per process."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .classifiers import CategoryModel
from .config import ModelPaths
from .types import Catalog

LOGGER = logging.getLogger(__name__)


class ModelLoadError(ValueError):
    """Raised when model or catalog files are missing or malformed."""


class Readiness(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"


@dataclass(frozen=True)
class ModelContext:
    """Readiness-tagged view of the process-wide model and catalog."""

    status: Readiness = Readiness.NOT_READY
    model: CategoryModel | None = None
    catalog: Catalog | None = None

    @property
    def ready(self) -> bool:
        return self.status is Readiness.READY

    @classmethod
    def not_ready(cls) -> ModelContext:
        return cls()

    @classmethod
    def loaded(cls, model: CategoryModel, catalog: Catalog | None = None) -> ModelContext:
        frozen = _freeze_catalog(catalog) if catalog is not None else None
        return cls(status=Readiness.READY, model=model, catalog=frozen)


class ModelSlot:
    """Write-once holder for the loaded ModelContext.

    Readers see ``NOT_READY`` until the first successful publish; later
    publishes are ignored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._published = threading.Event()
        self._context = ModelContext.not_ready()

    def snapshot(self) -> ModelContext:
        return self._context

    @property
    def is_published(self) -> bool:
        return self._published.is_set()

    def publish(self, context: ModelContext) -> bool:
        if not context.ready:
            raise ValueError("Only a ready ModelContext can be published")
        with self._lock:
            if self._published.is_set():
                LOGGER.debug("Model slot already published; ignoring second publish")
                return False
            self._context = context
            self._published.set()
        LOGGER.info(
            "Category model ready (%s categories, %s catalog buckets)",
            context.model.category_count if context.model else 0,
            len(context.catalog) if context.catalog is not None else 0,
        )
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until published; only intended for CLI and tests."""

        return self._published.wait(timeout)

    def load_in_background(self, loader: Callable[[], ModelContext]) -> threading.Thread:
        """Run ``loader`` in a daemon thread and publish its result."""

        def _run() -> None:
            try:
                context = loader()
            except (ModelLoadError, OSError):
                LOGGER.exception("Failed to load category model; classification stays disabled")
                return
            self.publish(context)

        thread = threading.Thread(target=_run, name="usermodel-loader", daemon=True)
        thread.start()
        return thread


def load_category_model(matrix_path: Path, priors_path: Path) -> CategoryModel:
    """Read ``{word: [weights]}`` and ``{"names": [...], "priors": [...]}`` JSON files."""

    rows = _read_json(matrix_path)
    priors = _read_json(priors_path)
    if not isinstance(rows, dict):
        raise ModelLoadError(f"{matrix_path}: matrix must be a mapping of word to weights")
    if not isinstance(priors, dict) or "names" not in priors or "priors" not in priors:
        raise ModelLoadError(f"{priors_path}: expected 'names' and 'priors' keys")
    try:
        return CategoryModel.from_rows(rows, priors["names"], priors["priors"])
    except (TypeError, ValueError) as exc:
        raise ModelLoadError(f"Invalid category model: {exc}") from exc


def load_catalog(path: Path) -> Catalog:
    """Read an ad catalog keyed ``category -> candidate id -> payload``."""

    raw = _read_json(path)
    if isinstance(raw, dict) and "categories" in raw:
        raw = raw["categories"]
    if not isinstance(raw, dict):
        raise ModelLoadError(f"{path}: catalog must be a mapping of categories")
    catalog: dict[str, dict[str, dict[str, Any]]] = {}
    for category, bucket in raw.items():
        if not isinstance(bucket, dict):
            raise ModelLoadError(f"{path}: category '{category}' must map ids to payloads")
        entries: dict[str, dict[str, Any]] = {}
        for candidate_id, payload in bucket.items():
            if not isinstance(payload, dict):
                LOGGER.warning(
                    "Skipping catalog entry %s/%s: payload is not a mapping",
                    category,
                    candidate_id,
                )
                continue
            entries[str(candidate_id)] = payload
        catalog[str(category)] = entries
    return catalog


def load_resources(paths: ModelPaths) -> ModelContext:
    """Load everything named in ``paths`` and return a ready context."""

    if paths.matrix is None or paths.priors is None:
        raise ModelLoadError("model.matrix and model.priors are not configured")
    model = load_category_model(paths.matrix, paths.priors)
    catalog = load_catalog(paths.catalog) if paths.catalog is not None else None
    if catalog is None:
        LOGGER.warning("No ad catalog configured; ads will not be served")
    return ModelContext.loaded(model, catalog)


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except UnicodeDecodeError as exc:
        raise ModelLoadError(f"{path}: not UTF-8 text ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise ModelLoadError(f"{path}: invalid JSON ({exc})") from exc


def _freeze_catalog(catalog: Catalog) -> Catalog:
    frozen: dict[str, Mapping[str, Mapping[str, Any]]] = {}
    for category, bucket in catalog.items():
        entries: dict[str, Mapping[str, Any]] = {}
        if isinstance(bucket, Mapping):
            for candidate_id, payload in bucket.items():
                if isinstance(payload, Mapping):
                    entries[candidate_id] = MappingProxyType(dict(payload))
                else:
                    LOGGER.warning(
                        "Dropping catalog entry %s/%s: payload is not a mapping",
                        category,
                        candidate_id,
                    )
        frozen[category] = MappingProxyType(entries)
    return MappingProxyType(frozen)


__all__ = [
    "ModelContext",
    "ModelLoadError",
    "ModelSlot",
    "Readiness",
    "load_catalog",
    "load_category_model",
    "load_resources",
]
