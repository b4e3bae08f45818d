from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from usermodel.classifiers import CategoryModel
from usermodel.testing import build_model

CATEGORY_NAMES = ("finance-investing", "sports-football", "travel-air")
MODEL_ROWS: dict[str, list[float]] = {
    "stock": [-1.0, -6.0, -6.0],
    "bond": [-1.5, -6.0, -6.0],
    "dividend": [-1.2, -7.0, -7.0],
    "goal": [-6.0, -1.0, -6.0],
    "match": [-5.0, -1.5, -5.0],
    "flight": [-6.0, -6.0, -1.0],
    "airport": [-6.0, -6.0, -1.2],
}
CATALOG: dict[str, dict[str, dict[str, str]]] = {
    "finance": {
        "a1": {
            "notificationText": "Invest smarter today",
            "notificationURL": "https://ads.example/finance",
            "advertiser": "Acme Brokerage",
        }
    },
    "sports": {
        "s1": {
            "notificationText": "Season tickets on sale",
            "notificationURL": "https://ads.example/sports",
            "advertiser": "Stadium Co",
        },
        "s2": {
            "notificationText": "",
            "notificationURL": "https://ads.example/broken",
            "advertiser": "Broken Ads",
        },
    },
}


def finance_lines(words: int = 30) -> list[str]:
    return [" ".join(["Stock", "bond", "dividend"] * (words // 3))]


def sports_lines(words: int = 30) -> list[str]:
    return [" ".join(["goal", "MATCH", "goal"] * (words // 3))]


@pytest.fixture
def model() -> CategoryModel:
    return build_model(MODEL_ROWS, CATEGORY_NAMES)


@pytest.fixture
def catalog() -> dict[str, dict[str, dict[str, str]]]:
    return json.loads(json.dumps(CATALOG))


def write_model_files(directory: Path, catalog: Any = None) -> dict[str, Path]:
    """Write matrix, priors and catalog JSON files and return their paths."""

    directory.mkdir(parents=True, exist_ok=True)
    matrix = directory / "matrix.json"
    priors = directory / "priors.json"
    catalog_path = directory / "catalog.json"
    matrix.write_text(json.dumps(MODEL_ROWS), encoding="utf-8")
    priors.write_text(
        json.dumps({"names": list(CATEGORY_NAMES), "priors": [0.4, 0.3, 0.3]}),
        encoding="utf-8",
    )
    catalog_path.write_text(
        json.dumps({"categories": CATALOG if catalog is None else catalog}),
        encoding="utf-8",
    )
    return {"matrix": matrix, "priors": priors, "catalog": catalog_path}


@pytest.fixture
def model_files(tmp_path: Path) -> dict[str, Path]:
    return write_model_files(tmp_path / "model")
