from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from watershed_atlas.classify.natural_breaks import natural_breaks
from watershed_atlas.config import AppConfig, ClassificationConfig
from watershed_atlas.features.dataset import Dataset, build_dataset
from watershed_atlas.features.series import build_series_table
from watershed_atlas.io.read import load_records
from watershed_atlas.io.write import write_table
from watershed_atlas.paths import build_output_paths

LOGGER = logging.getLogger(__name__)


def build_breaks_timeline(
    dataset: Dataset,
    metric: str,
    config: ClassificationConfig,
) -> pd.DataFrame:
    series = build_series_table(dataset.records, metric)
    break_columns = [f"break_{index}" for index in range(config.class_count + 1)]
    rows: list[dict[str, object]] = []
    for day in dataset.temporal_index:
        sample = series.sample(day)
        row: dict[str, object] = {"date": day, "n_regions": len(sample)}
        if sample:
            breaks = natural_breaks(
                sample,
                config.class_count,
                large_sample_warning=config.large_sample_warning,
            )
            row["class_count"] = breaks.class_count
            row.update(dict(zip(break_columns, breaks.values)))
        else:
            row["class_count"] = 0
        rows.append(row)
    return pd.DataFrame(rows, columns=["date", "n_regions", "class_count", *break_columns])


def run_timeline(
    config: AppConfig,
    dataset_path: Path,
    out_dir: Path,
    metric: str | None = None,
    dataset_id: str | None = None,
) -> Path:
    paths = build_output_paths(out_dir)
    dataset = build_dataset(
        dataset_id or dataset_path.stem,
        load_records(dataset_path, config.columns),
        invalid_dates=config.ingest.invalid_dates,
    )
    resolved_metric = metric or (dataset.metrics[0] if dataset.metrics else None)
    if not resolved_metric:
        raise ValueError(f"No numeric metrics found in {dataset_path.name}")
    timeline = build_breaks_timeline(dataset, resolved_metric, config.classification)
    LOGGER.info("Built breaks timeline for %s over %d dates", resolved_metric, len(timeline))
    extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
    return write_table(
        timeline,
        paths.tables / f"breaks_{resolved_metric}.{extension}",
        fmt=config.outputs.tables_format,
    )
