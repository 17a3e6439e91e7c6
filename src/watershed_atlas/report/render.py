from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from watershed_atlas.classify.natural_breaks import natural_breaks
from watershed_atlas.config import AppConfig
from watershed_atlas.features.dataset import Dataset
from watershed_atlas.features.series import SeriesTable
from watershed_atlas.report.chart import (
    SeriesColorRegistry,
    build_chart_series,
    chart_title,
    y_axis_label,
)
from watershed_atlas.report.contracts import RenderInstruction, RenderStatus
from watershed_atlas.report.legend import break_labels, build_legend_entries
from watershed_atlas.sync.state import ViewState


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if hasattr(value, "item"):
        try:
            value = value.item()
        except (TypeError, ValueError):
            pass
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    return value


def derive_render_instruction(
    state: ViewState,
    dataset: Dataset | None,
    series: SeriesTable | None,
    region_names: Mapping[str, str],
    config: AppConfig,
    colors: SeriesColorRegistry,
    *,
    status: RenderStatus | None = None,
) -> RenderInstruction:
    """Classify the cursor date and assemble map, legend and chart output."""
    if not state.controls_enabled:
        return RenderInstruction.empty(
            dataset_id=state.dataset_id,
            layer_mode=state.layer_mode,
            status=status or "disabled",
        )
    if dataset is None or series is None or not len(dataset.temporal_index):
        return RenderInstruction.empty(
            dataset_id=state.dataset_id,
            layer_mode=state.layer_mode,
            controls_enabled=True,
            status=status or "no_data",
        )

    temporal_index = dataset.temporal_index
    cursor = temporal_index.clamp(state.cursor)
    day = temporal_index[cursor]
    chart_config = config.chart
    classification = config.classification

    regions = list(dict.fromkeys([*region_names.keys(), *series.regions]))
    sample = series.sample(day)
    per_region_class: dict[str, int | None] = {region: None for region in regions}
    breaks_values: tuple[float, ...] = ()
    labels: tuple[str, ...] = ()
    legend = ()
    if sample:
        breaks = natural_breaks(
            sample,
            classification.class_count,
            large_sample_warning=classification.large_sample_warning,
        )
        for region in regions:
            value = series.value(region, day)
            per_region_class[region] = None if value is None else breaks.class_of(value)
        breaks_values = breaks.values
        labels = break_labels(breaks, classification)
        legend = build_legend_entries(breaks, classification.colors, classification)

    return RenderInstruction(
        dataset_id=state.dataset_id,
        metric=state.metric,
        layer_mode=state.layer_mode,
        controls_enabled=True,
        cursor=cursor,
        date_label=temporal_index.label(cursor, chart_config.date_label_format),
        class_breaks=breaks_values,
        break_labels=labels,
        per_region_class=per_region_class,
        legend_entries=legend,
        chart_title=chart_title(state.metric, chart_config.unit_label),
        y_axis_label=y_axis_label(state.metric, chart_config.unit_label),
        chart_labels=tuple(temporal_index.labels(chart_config.date_label_format)),
        chart_series=build_chart_series(
            series_table=series,
            temporal_index=temporal_index,
            region_names=region_names,
            selection=state.selection,
            colors=colors,
            config=chart_config,
        ),
        highlighted_date=cursor,
        selection=tuple(state.selection),
        is_playing=state.is_playing,
        status=status or ("ready" if sample else "no_data"),
    )


def write_render_instruction(instruction: RenderInstruction, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(_json_safe(instruction.to_dict()), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return path
