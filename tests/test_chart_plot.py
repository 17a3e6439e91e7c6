from __future__ import annotations

from pathlib import Path

from watershed_atlas.report.contracts import ChartSeries, RenderInstruction
from watershed_atlas.viz.chart import plot_chart_series


def _instruction(date_count: int, cursor: int) -> RenderInstruction:
    labels = tuple(f"{(i % 28) + 1:02d}.01.2020" for i in range(date_count))
    return RenderInstruction(
        dataset_id="water_balance",
        metric="precipitation",
        layer_mode="watersheds",
        controls_enabled=True,
        cursor=cursor,
        date_label=labels[cursor],
        chart_title="precipitation (mm/month) - Time Series",
        y_axis_label="precipitation (mm/month)",
        chart_labels=labels,
        chart_series=(
            ChartSeries("W1", "Ili", "#1b9e77", tuple(float(i) for i in range(date_count))),
            ChartSeries(
                "W2",
                "Shu-Talas",
                "#d95f02",
                tuple(None if i % 3 == 0 else float(i * 2) for i in range(date_count)),
                line_width=3.0,
                is_highlighted=True,
            ),
        ),
        highlighted_date=cursor,
    )


def test_plot_chart_series_writes_file(tmp_path: Path) -> None:
    output_path = tmp_path / "figures" / "chart.png"

    result = plot_chart_series(_instruction(date_count=4, cursor=1), output_path)

    assert result == output_path
    assert output_path.exists()
    assert output_path.stat().st_size > 0


def test_plot_chart_series_handles_long_axis_and_gap_at_cursor(tmp_path: Path) -> None:
    output_path = tmp_path / "chart_long.png"

    plot_chart_series(_instruction(date_count=60, cursor=30), output_path, point_radius=4)

    assert output_path.exists()
