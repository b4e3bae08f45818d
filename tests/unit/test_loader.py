from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from usermodel.config import ModelPaths
from usermodel.loader import (
    ModelContext,
    ModelLoadError,
    ModelSlot,
    Readiness,
    load_catalog,
    load_category_model,
    load_resources,
)

from tests.conftest import CATEGORY_NAMES


def test_load_resources_returns_ready_context(model_files: dict[str, Path]) -> None:
    context = load_resources(ModelPaths(**model_files))

    assert context.status is Readiness.READY
    assert context.model is not None
    assert context.model.names == CATEGORY_NAMES
    assert set(context.catalog) == {"finance", "sports"}


def test_loaded_catalog_is_read_only(model_files: dict[str, Path]) -> None:
    context = load_resources(ModelPaths(**model_files))

    with pytest.raises(TypeError):
        context.catalog["finance"] = {}  # type: ignore[index]
    with pytest.raises(TypeError):
        context.catalog["finance"]["a1"]["advertiser"] = "Other"  # type: ignore[index]


def test_load_resources_without_catalog(model_files: dict[str, Path]) -> None:
    context = load_resources(ModelPaths(matrix=model_files["matrix"], priors=model_files["priors"]))

    assert context.ready
    assert context.catalog is None


def test_load_resources_requires_model_paths() -> None:
    with pytest.raises(ModelLoadError):
        load_resources(ModelPaths())


def test_invalid_json_raises_model_load_error(tmp_path: Path, model_files: dict[str, Path]) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(ModelLoadError):
        load_category_model(broken, model_files["priors"])


def test_priors_require_names_and_values(tmp_path: Path, model_files: dict[str, Path]) -> None:
    priors = tmp_path / "priors.json"
    priors.write_text(json.dumps({"names": ["a"]}), encoding="utf-8")

    with pytest.raises(ModelLoadError):
        load_category_model(model_files["matrix"], priors)


def test_mismatched_model_raises_model_load_error(tmp_path: Path) -> None:
    matrix = tmp_path / "matrix.json"
    priors = tmp_path / "priors.json"
    matrix.write_text(json.dumps({"word": [1.0]}), encoding="utf-8")
    priors.write_text(json.dumps({"names": ["a", "b"], "priors": [0.5, 0.5]}), encoding="utf-8")

    with pytest.raises(ModelLoadError):
        load_category_model(matrix, priors)


def test_load_catalog_accepts_bare_mapping_and_skips_bad_entries(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps({"finance": {"a1": {"advertiser": "Adv"}, "bad": "not-a-payload"}}),
        encoding="utf-8",
    )

    catalog = load_catalog(path)

    assert list(catalog["finance"]) == ["a1"]


def test_slot_starts_not_ready() -> None:
    slot = ModelSlot()

    assert slot.snapshot() == ModelContext.not_ready()
    assert slot.is_published is False
    assert slot.wait(timeout=0) is False


def test_slot_publishes_only_once(model) -> None:
    slot = ModelSlot()
    first = ModelContext.loaded(model, {"finance": {}})
    second = ModelContext.loaded(model, {"sports": {}})

    assert slot.publish(first) is True
    assert slot.publish(second) is False
    assert slot.snapshot() is first


def test_slot_rejects_not_ready_context() -> None:
    with pytest.raises(ValueError):
        ModelSlot().publish(ModelContext.not_ready())


def test_background_load_publishes(model) -> None:
    slot = ModelSlot()
    release = threading.Event()

    def _loader() -> ModelContext:
        release.wait(timeout=5)
        return ModelContext.loaded(model)

    thread = slot.load_in_background(_loader)
    assert slot.snapshot().ready is False

    release.set()
    thread.join(timeout=5)

    assert slot.wait(timeout=5) is True
    assert slot.snapshot().model is model


def test_background_load_failure_leaves_slot_not_ready() -> None:
    slot = ModelSlot()

    def _loader() -> ModelContext:
        raise ModelLoadError("boom")

    slot.load_in_background(_loader).join(timeout=5)

    assert slot.snapshot().ready is False


@pytest.mark.parametrize("rows", [{}, {" ": [1.0, 2.0], "": [1.0, 2.0]}])
def test_empty_vocabulary_raises_model_load_error(tmp_path: Path, rows) -> None:
    matrix = tmp_path / "matrix.json"
    priors = tmp_path / "priors.json"
    matrix.write_text(json.dumps(rows), encoding="utf-8")
    priors.write_text(json.dumps({"names": ["a", "b"], "priors": [0.5, 0.5]}), encoding="utf-8")

    with pytest.raises(ModelLoadError):
        load_category_model(matrix, priors)


def test_non_utf8_file_raises_model_load_error(
    tmp_path: Path, model_files: dict[str, Path]
) -> None:
    matrix = tmp_path / "latin1.json"
    matrix.write_bytes(b'{"caf\xe9": [1.0, 2.0, 3.0]}')

    with pytest.raises(ModelLoadError):
        load_category_model(matrix, model_files["priors"])


def test_background_load_of_undecodable_file_leaves_slot_not_ready(
    tmp_path: Path, model_files: dict[str, Path], caplog: pytest.LogCaptureFixture
) -> None:
    matrix = tmp_path / "latin1.json"
    matrix.write_bytes(b"\xff\xfe\x00garbage")
    paths = ModelPaths(matrix=matrix, priors=model_files["priors"])
    slot = ModelSlot()

    with caplog.at_level("ERROR", logger="usermodel.loader"):
        slot.load_in_background(lambda: load_resources(paths)).join(timeout=5)

    assert slot.snapshot().ready is False
    assert "Failed to load category model" in caplog.text


def test_loaded_context_drops_payloads_that_are_not_mappings(model) -> None:
    context = ModelContext.loaded(
        model, {"finance": {"a1": {"advertiser": "Adv"}, "a2": None}, "sports": None}
    )

    assert list(context.catalog["finance"]) == ["a1"]
    assert dict(context.catalog["sports"]) == {}
