from __future__ import annotations

from typing import AbstractSet, Mapping, Sequence

from watershed_atlas.config import ChartConfig
from watershed_atlas.features.series import SeriesTable
from watershed_atlas.preprocess.dates import TemporalIndex
from watershed_atlas.report.contracts import ChartSeries


class SeriesColorRegistry:
    """Hands out one stable colour per region, in order of first request."""

    def __init__(self, palette: Sequence[str]) -> None:
        if not palette:
            raise ValueError("palette must be non-empty.")
        self._palette = list(palette)
        self._assigned: dict[str, str] = {}

    def color_for(self, region_id: str) -> str:
        color = self._assigned.get(region_id)
        if color is None:
            color = self._palette[len(self._assigned) % len(self._palette)]
            self._assigned[region_id] = color
        return color

    def __len__(self) -> int:
        return len(self._assigned)


def chart_title(metric: str | None, unit_label: str) -> str:
    if not metric:
        return "Time Series"
    return f"{metric} ({unit_label}) - Time Series"


def y_axis_label(metric: str | None, unit_label: str) -> str:
    return f"{metric} ({unit_label})" if metric else ""


def charted_regions(
    series_table: SeriesTable,
    selection: AbstractSet[str],
    max_series: int,
) -> list[str]:
    """Selected regions when anything is selected, else the first ``max_series``."""
    if selection:
        return [region for region in series_table.regions if region in selection]
    return list(series_table.regions[:max_series])


def build_chart_series(
    series_table: SeriesTable,
    temporal_index: TemporalIndex,
    region_names: Mapping[str, str],
    selection: AbstractSet[str],
    colors: SeriesColorRegistry,
    config: ChartConfig,
) -> tuple[ChartSeries, ...]:
    series: list[ChartSeries] = []
    for region_id in charted_regions(series_table, selection, config.max_series):
        highlighted = region_id in selection
        series.append(
            ChartSeries(
                region_id=region_id,
                label=region_names.get(region_id) or region_id,
                color=colors.color_for(region_id),
                values=tuple(series_table.aligned(region_id, temporal_index)),
                line_width=config.highlighted_line_width if highlighted else config.line_width,
                is_highlighted=highlighted,
            )
        )
    return tuple(series)
