from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from watershed_atlas.report.contracts import RenderInstruction
from watershed_atlas.viz.common import save_figure

MAX_X_TICKS = 20


def plot_chart_series(
    instruction: RenderInstruction,
    output_path: Path,
    point_radius: int = 6,
) -> Path:
    """Draw the instruction's chart series; absent values leave gaps in the line."""
    fig, ax = plt.subplots(figsize=(12, 5))
    positions = np.arange(len(instruction.chart_labels))
    cursor = instruction.highlighted_date

    for series in instruction.chart_series:
        values = np.array(
            [np.nan if value is None else value for value in series.values], dtype=float
        )
        ax.plot(
            positions,
            values,
            color=series.color,
            linewidth=series.line_width,
            label=series.label,
        )
        if cursor is not None and cursor < len(values) and np.isfinite(values[cursor]):
            ax.plot(
                [positions[cursor]],
                [values[cursor]],
                marker="o",
                markersize=point_radius,
                color=series.color,
            )

    if len(positions):
        step = max(1, int(np.ceil(len(positions) / MAX_X_TICKS)))
        ticks = positions[::step]
        ax.set_xticks(ticks)
        ax.set_xticklabels([instruction.chart_labels[i] for i in ticks], rotation=45, ha="right")
    ax.set_title(instruction.chart_title, fontweight="bold")
    ax.set_xlabel("Date")
    ax.set_ylabel(instruction.y_axis_label)
    if instruction.chart_series:
        ax.legend(loc="upper center", bbox_to_anchor=(0.5, -0.25), ncol=4, fontsize="small")
    return save_figure(output_path, fig)
