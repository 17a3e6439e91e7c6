from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CLASS_COLORS = ["#edf8fb", "#b2e2e2", "#66c2a4", "#2ca25f", "#006d2c"]

# ColorBrewer Dark2 (8) followed by Set3 (12).
DEFAULT_SERIES_PALETTE = [
    "#1b9e77",
    "#d95f02",
    "#7570b3",
    "#e7298a",
    "#66a61e",
    "#e6ab02",
    "#a6761d",
    "#666666",
    "#8dd3c7",
    "#ffffb3",
    "#bebada",
    "#fb8072",
    "#80b1d3",
    "#fdb462",
    "#b3de69",
    "#fccde5",
    "#d9d9d9",
    "#bc80bd",
    "#ccebc5",
    "#ffed6f",
]

DATA_DIR_ENV = "WATERSHED_ATLAS_DATA_DIR"


class ColumnsConfig(BaseModel):
    region_id: str = "WATERSHED_ID"
    date: str = "date"
    date_aliases: list[str] = Field(default_factory=lambda: ["Date"])


class LayerConfig(BaseModel):
    key: str
    title: str
    boundary_path: str | None = None
    id_property: str = "WATERSHED_ID"
    name_property: str = "WATERSHED_NAME"
    metrics_enabled: bool = False


class DatasetConfig(BaseModel):
    id: str
    title: str = ""
    path: str


class ClassificationConfig(BaseModel):
    class_count: int = Field(default=5, ge=1)
    colors: list[str] = Field(default_factory=lambda: list(DEFAULT_CLASS_COLORS))
    no_data_label: str = "No data"
    label_decimals: int = Field(default=1, ge=0, le=6)
    decimal_separator: str = ","
    thousands_separator: str = " "
    large_sample_warning: int = Field(default=5000, ge=1)

    @model_validator(mode="after")
    def _enough_colors(self) -> "ClassificationConfig":
        if len(self.colors) < self.class_count:
            raise ValueError(
                f"classification.colors needs at least {self.class_count} entries, "
                f"got {len(self.colors)}"
            )
        return self


class ChartConfig(BaseModel):
    max_series: int = Field(default=20, ge=1)
    unit_label: str = "mm/month"
    palette: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SERIES_PALETTE), min_length=1
    )
    line_width: float = Field(default=1.5, gt=0.0)
    highlighted_line_width: float = Field(default=3.0, gt=0.0)
    point_radius: int = Field(default=6, ge=0)
    date_label_format: str = "%d.%m.%Y"


class PlaybackConfig(BaseModel):
    tick_seconds: float = Field(default=0.6, gt=0.0)
    loading_min_display_seconds: float = Field(default=0.05, ge=0.0)


class IngestConfig(BaseModel):
    invalid_dates: Literal["drop", "reject"] = "drop"


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"
    figures_format: str = "png"


def _default_layers() -> list[LayerConfig]:
    return [
        LayerConfig(
            key="watersheds",
            title="All Watersheds",
            boundary_path="input_data/ALL_watersheds_wgs84.geojson",
            metrics_enabled=True,
        ),
        LayerConfig(
            key="basins",
            title="Water Management Basins",
            boundary_path="input_data/Water management basins.geojson",
        ),
        LayerConfig(
            key="subbasins",
            title="Sub-basins",
            boundary_path="input_data/waterhed_subbasins.geojson",
        ),
    ]


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    layers: list[LayerConfig] = Field(default_factory=_default_layers, min_length=1)
    default_layer: str = "watersheds"
    datasets: list[DatasetConfig] = Field(default_factory=list)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)

    @model_validator(mode="after")
    def _default_layer_is_known(self) -> "AppConfig":
        keys = [layer.key for layer in self.layers]
        if len(set(keys)) != len(keys):
            raise ValueError("layer keys must be unique")
        if self.default_layer not in keys:
            raise ValueError(f"default_layer {self.default_layer!r} is not one of {keys}")
        return self

    def layer(self, key: str) -> LayerConfig:
        for layer in self.layers:
            if layer.key == key:
                return layer
        raise KeyError(f"Unknown layer: {key}")

    def dataset(self, dataset_id: str) -> DatasetConfig:
        for dataset in self.datasets:
            if dataset.id == dataset_id:
                return dataset
        raise KeyError(f"Unknown dataset: {dataset_id}")


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = Path(os.getenv(DATA_DIR_ENV) or path.resolve().parent)

    for layer in config.layers:
        layer.boundary_path = _resolve_optional_path(layer.boundary_path, base_dir)
    for dataset in config.datasets:
        dataset.path = _resolve_optional_path(dataset.path, base_dir) or dataset.path
    return config
