from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

RenderStatus = Literal["ready", "no_data", "loading", "load_failed", "disabled"]

ALLOWED_RENDER_STATUSES = frozenset({"ready", "no_data", "loading", "load_failed", "disabled"})

NO_DATA_SWATCH = "repeating-linear-gradient(45deg,#ffffff 0 4px,#aaaaaa 4px 8px)"


def _finite_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


@dataclass(slots=True, frozen=True)
class LegendEntry:
    color: str
    label: str
    lower: float | None = None
    upper: float | None = None
    is_no_data: bool = False

    def __post_init__(self) -> None:
        if not self.color.strip():
            raise ValueError("color must be non-empty.")
        if self.lower is not None and self.upper is not None and self.upper < self.lower:
            raise ValueError("legend upper bound must be >= lower bound.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "color": self.color,
            "label": self.label,
            "lower": _finite_or_none(self.lower),
            "upper": _finite_or_none(self.upper),
            "is_no_data": self.is_no_data,
        }


@dataclass(slots=True, frozen=True)
class ChartSeries:
    region_id: str
    label: str
    color: str
    values: tuple[float | None, ...]
    line_width: float = 1.5
    is_highlighted: bool = False

    def __post_init__(self) -> None:
        if not self.region_id.strip():
            raise ValueError("region_id must be non-empty.")
        if self.line_width <= 0:
            raise ValueError("line_width must be > 0.")
        object.__setattr__(self, "values", tuple(_finite_or_none(v) for v in self.values))

    def to_dict(self) -> dict[str, Any]:
        return {
            "region_id": self.region_id,
            "label": self.label,
            "color": self.color,
            "values": list(self.values),
            "line_width": self.line_width,
            "is_highlighted": self.is_highlighted,
        }


@dataclass(slots=True, frozen=True)
class RenderInstruction:
    """Everything the map, chart and legend need for one redraw."""

    dataset_id: str | None
    metric: str | None
    layer_mode: str
    controls_enabled: bool
    cursor: int
    date_label: str
    class_breaks: tuple[float, ...] = ()
    break_labels: tuple[str, ...] = ()
    per_region_class: dict[str, int | None] = field(default_factory=dict)
    legend_entries: tuple[LegendEntry, ...] = ()
    chart_title: str = "Time Series"
    y_axis_label: str = ""
    chart_labels: tuple[str, ...] = ()
    chart_series: tuple[ChartSeries, ...] = ()
    highlighted_date: int | None = None
    selection: tuple[str, ...] = ()
    is_playing: bool = False
    status: RenderStatus = "ready"

    def __post_init__(self) -> None:
        if self.cursor < 0:
            raise ValueError("cursor must be >= 0.")
        if self.status not in ALLOWED_RENDER_STATUSES:
            raise ValueError(f"Unsupported status: {self.status!r}.")
        if self.class_breaks and len(self.break_labels) != len(self.class_breaks):
            raise ValueError("break_labels must match class_breaks.")
        class_count = max(0, len(self.class_breaks) - 1)
        for region_id, class_index in self.per_region_class.items():
            if class_index is not None and not 0 <= class_index < class_count:
                raise ValueError(f"class index {class_index} out of range for {region_id!r}.")
        for series in self.chart_series:
            if len(series.values) != len(self.chart_labels):
                raise ValueError(
                    f"series {series.region_id!r} is not aligned to the chart date axis."
                )
        if self.highlighted_date is not None and not (
            0 <= self.highlighted_date < max(1, len(self.chart_labels))
        ):
            raise ValueError("highlighted_date must index the chart date axis.")

        object.__setattr__(self, "class_breaks", tuple(self.class_breaks))
        object.__setattr__(self, "break_labels", tuple(self.break_labels))
        object.__setattr__(self, "per_region_class", dict(self.per_region_class))
        object.__setattr__(self, "legend_entries", tuple(self.legend_entries))
        object.__setattr__(self, "chart_labels", tuple(self.chart_labels))
        object.__setattr__(self, "chart_series", tuple(self.chart_series))
        object.__setattr__(self, "selection", tuple(sorted(self.selection)))

    @classmethod
    def empty(
        cls,
        *,
        dataset_id: str | None,
        layer_mode: str,
        controls_enabled: bool = False,
        status: RenderStatus = "disabled",
    ) -> "RenderInstruction":
        return cls(
            dataset_id=dataset_id,
            metric=None,
            layer_mode=layer_mode,
            controls_enabled=controls_enabled,
            cursor=0,
            date_label="--",
            status=status,
        )

    @property
    def class_count(self) -> int:
        return max(0, len(self.class_breaks) - 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "metric": self.metric,
            "layer_mode": self.layer_mode,
            "controls_enabled": self.controls_enabled,
            "cursor": self.cursor,
            "date_label": self.date_label,
            "class_breaks": [_finite_or_none(value) for value in self.class_breaks],
            "break_labels": list(self.break_labels),
            "per_region_class": dict(self.per_region_class),
            "legend_entries": [entry.to_dict() for entry in self.legend_entries],
            "chart_title": self.chart_title,
            "y_axis_label": self.y_axis_label,
            "chart_labels": list(self.chart_labels),
            "chart_series": [series.to_dict() for series in self.chart_series],
            "highlighted_date": self.highlighted_date,
            "selection": list(self.selection),
            "is_playing": self.is_playing,
            "status": self.status,
        }
