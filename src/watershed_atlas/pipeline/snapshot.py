from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from watershed_atlas.config import AppConfig
from watershed_atlas.io.boundaries import fetch_layer_names, load_boundary_features
from watershed_atlas.io.read import fetch_records
from watershed_atlas.io.write import write_geojson, write_summary, write_table
from watershed_atlas.paths import build_output_paths
from watershed_atlas.preprocess.dates import parse_date
from watershed_atlas.report.contracts import RenderInstruction
from watershed_atlas.report.export import (
    build_selected_feature_collection,
    build_selection_csv_frame,
)
from watershed_atlas.report.render import write_render_instruction
from watershed_atlas.sync.controller import ViewSyncController
from watershed_atlas.sync.state import CursorMoved, MetricSelected, RegionClicked
from watershed_atlas.viz.chart import plot_chart_series

LOGGER = logging.getLogger(__name__)


@dataclass
class InstructionRecorder:
    """Render collaborator that keeps every instruction it receives."""

    instructions: list[RenderInstruction] = field(default_factory=list)

    def update(self, instruction: RenderInstruction) -> None:
        self.instructions.append(instruction)


@dataclass(frozen=True)
class SnapshotResult:
    instruction: RenderInstruction
    outputs: dict[str, Path]


async def _load_sources(
    controller: ViewSyncController,
    config: AppConfig,
    dataset_id: str,
    dataset_path: Path,
    layer: str,
) -> None:
    async def fetch_names(layer_key: str) -> dict[str, str]:
        return await fetch_layer_names(config.layer(layer_key))

    if layer != controller.state.layer_mode:
        await controller.switch_layer(layer, fetch_names)
    else:
        await controller.load_region_names(fetch_names)
    await controller.load_dataset(
        dataset_id,
        lambda _dataset_id: fetch_records(dataset_path, config.columns),
    )


def prepare_controller(
    config: AppConfig,
    dataset_path: Path,
    *,
    dataset_id: str | None = None,
    layer: str | None = None,
    metric: str | None = None,
    date: str | None = None,
    selection: Sequence[str] = (),
) -> tuple[ViewSyncController, InstructionRecorder]:
    layer_key = config.layer(layer or config.default_layer).key
    recorder = InstructionRecorder()
    controller = ViewSyncController(config, [recorder])
    asyncio.run(
        _load_sources(
            controller,
            config,
            dataset_id=dataset_id or dataset_path.stem,
            dataset_path=dataset_path,
            layer=layer_key,
        )
    )

    if metric:
        if metric not in controller.metrics:
            raise ValueError(
                f"Metric {metric!r} not found; available: {', '.join(controller.metrics) or '-'}"
            )
        controller.dispatch(MetricSelected(metric))
    if date:
        dataset = controller.dataset
        position = dataset.temporal_index.position(parse_date(date)) if dataset else None
        if position is None:
            raise ValueError(f"Date {date!r} is not present in the dataset")
        controller.dispatch(CursorMoved(position))
    for region_id in dict.fromkeys(selection):
        controller.dispatch(RegionClicked(region_id))
    return controller, recorder


def run_snapshot(
    config: AppConfig,
    dataset_path: Path,
    out_dir: Path,
    *,
    dataset_id: str | None = None,
    layer: str | None = None,
    metric: str | None = None,
    date: str | None = None,
    selection: Sequence[str] = (),
) -> SnapshotResult:
    paths = build_output_paths(out_dir)
    controller, _recorder = prepare_controller(
        config,
        dataset_path,
        dataset_id=dataset_id,
        layer=layer,
        metric=metric,
        date=date,
        selection=selection,
    )
    instruction = controller.last_instruction or controller.publish()
    stem = f"{instruction.dataset_id or 'dataset'}_{instruction.cursor:04d}"
    outputs: dict[str, Path] = {
        "instruction": write_render_instruction(
            instruction, paths.instructions / f"{stem}.json"
        )
    }

    if instruction.chart_series:
        outputs["chart"] = plot_chart_series(
            instruction,
            paths.figures / f"{stem}_chart.{config.outputs.figures_format}",
            point_radius=config.chart.point_radius,
        )

    dataset = controller.dataset
    if dataset is not None and instruction.metric:
        frame = build_selection_csv_frame(
            dataset.records,
            metric=instruction.metric,
            selection=controller.state.selection,
            region_column=config.columns.region_id,
        )
        extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
        outputs["timeseries"] = write_table(
            frame,
            paths.tables / f"timeseries.{extension}",
            fmt=config.outputs.tables_format,
        )

    active_layer = config.layer(controller.state.layer_mode)
    if controller.state.selection and active_layer.boundary_path:
        try:
            features = load_boundary_features(active_layer.boundary_path)
        except OSError as exc:
            LOGGER.warning("Skipping GeoJSON export: %s", exc)
        else:
            outputs["geojson"] = write_geojson(
                build_selected_feature_collection(
                    features,
                    selection=controller.state.selection,
                    id_property=active_layer.id_property,
                ),
                paths.geojson / "selected_regions.geojson",
            )

    outputs["summary"] = write_summary(
        {
            "dataset_id": instruction.dataset_id,
            "layer_mode": instruction.layer_mode,
            "metric": instruction.metric,
            "date": instruction.date_label,
            "status": instruction.status,
            "class_breaks": list(instruction.class_breaks),
            "selection": list(instruction.selection),
            "dropped_records": dataset.dropped_records if dataset is not None else 0,
            "outputs": {name: str(path) for name, path in outputs.items()},
        },
        paths.root / "snapshot_summary.json",
    )
    return SnapshotResult(instruction=instruction, outputs=outputs)
