from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pandas as pd
import pytest

from watershed_atlas.config import ColumnsConfig, LayerConfig
from watershed_atlas.io.boundaries import (
    fetch_layer_names,
    load_boundary_features,
    load_layer_names,
    region_names,
)
from watershed_atlas.io.read import load_records
from watershed_atlas.io.write import write_geojson, write_summary, write_table
from watershed_atlas.report.export import (
    build_selected_feature_collection,
    build_selection_csv_frame,
)

FIXTURES = Path(__file__).parent / "fixtures"


def test_boundary_features_map_ids_to_names() -> None:
    features = load_boundary_features(FIXTURES / "watersheds.geojson")

    assert len(features) == 3
    assert region_names(features, "WATERSHED_ID", "WATERSHED_NAME") == {
        "W1": "Ili",
        "W2": "Shu-Talas",
        "W3": "Nura-Sarysu",
    }


def test_region_names_skips_features_without_ids() -> None:
    features = [
        {"properties": {"WATERSHED_ID": 12, "WATERSHED_NAME": None}},
        {"properties": {"WATERSHED_ID": " ", "WATERSHED_NAME": "blank"}},
        {"properties": None},
    ]

    assert region_names(features, "WATERSHED_ID", "WATERSHED_NAME") == {"12": ""}


def test_load_boundary_features_requires_feature_collection(tmp_path: Path) -> None:
    path = tmp_path / "point.geojson"
    path.write_text('{"type": "Feature", "properties": {}}', encoding="utf-8")

    with pytest.raises(ValueError, match="FeatureCollection"):
        load_boundary_features(path)


def test_layer_names_follow_layer_config() -> None:
    layer = LayerConfig(
        key="watersheds",
        title="All Watersheds",
        boundary_path=str(FIXTURES / "watersheds.geojson"),
    )

    assert load_layer_names(layer)["W2"] == "Shu-Talas"
    assert asyncio.run(fetch_layer_names(layer))["W3"] == "Nura-Sarysu"
    assert load_layer_names(LayerConfig(key="basins", title="Basins")) == {}


def test_selection_csv_frame_filters_and_normalizes_decimals() -> None:
    records = load_records(FIXTURES / "water_balance.json", ColumnsConfig())

    frame = build_selection_csv_frame(
        records, metric="precipitation", selection={"W1"}, region_column="WATERSHED_ID"
    )

    assert list(frame.columns) == ["date", "WATERSHED_ID", "precipitation"]
    assert frame["WATERSHED_ID"].tolist() == ["W1", "W1", "W1"]
    assert frame["precipitation"].tolist() == ["10.5", "12", "8"]
    assert frame["date"].tolist() == ["15.01.2020", "2020-02-15", "15.03.2020"]

    everything = build_selection_csv_frame(
        records, metric="precipitation", selection=set(), region_column="WATERSHED_ID"
    )
    assert len(everything) == 9


def test_selected_feature_collection_keeps_selected_geometry(tmp_path: Path) -> None:
    features = load_boundary_features(FIXTURES / "watersheds.geojson")

    collection = build_selected_feature_collection(
        features, selection={"W3", "W9"}, id_property="WATERSHED_ID"
    )
    path = write_geojson(collection, tmp_path / "geojson" / "selected.geojson")

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["type"] == "FeatureCollection"
    assert [f["properties"]["WATERSHED_NAME"] for f in payload["features"]] == ["Nura-Sarysu"]
    assert payload["features"][0]["geometry"]["type"] == "Polygon"


def test_write_helpers(tmp_path: Path) -> None:
    frame = pd.DataFrame({"date": ["15.01.2020"], "value": [1.5]})

    csv_path = write_table(frame, tmp_path / "tables" / "values.csv")
    assert pd.read_csv(csv_path).to_dict(orient="records") == [
        {"date": "15.01.2020", "value": 1.5}
    ]
    with pytest.raises(ValueError, match="Unsupported table format"):
        write_table(frame, tmp_path / "values.xlsx", fmt="xlsx")

    summary_path = write_summary({"b": 1, "a": 2}, tmp_path / "summary.json")
    assert json.loads(summary_path.read_text(encoding="utf-8")) == {"a": 2, "b": 1}
