from __future__ import annotations

from pathlib import Path

import typer

from watershed_atlas.classify.natural_breaks import natural_breaks
from watershed_atlas.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from watershed_atlas.features.dataset import Dataset, DatasetLoadError, build_dataset
from watershed_atlas.features.series import build_series_table
from watershed_atlas.io.read import load_records
from watershed_atlas.logging import configure_logging
from watershed_atlas.pipeline.snapshot import run_snapshot
from watershed_atlas.pipeline.timeline import run_timeline
from watershed_atlas.preprocess.dates import DateFormatError, parse_date
from watershed_atlas.report.legend import break_labels

app = typer.Typer(no_args_is_help=True, add_completion=False)

DATASET_HELP = "Dataset file (.json or .csv) or a dataset id from the config."


def _load_app_config(config_path: Path) -> AppConfig:
    if not config_path.exists():
        return AppConfig()
    return load_config(config_path)


def _resolve_dataset(dataset: str, cfg: AppConfig) -> tuple[str, Path]:
    path = Path(dataset)
    if path.is_file():
        return path.stem, path.resolve()
    try:
        configured = cfg.dataset(dataset)
    except KeyError as exc:
        raise typer.BadParameter(
            f"{dataset} is neither a file nor a configured dataset id", param_hint="--dataset"
        ) from exc
    return configured.id, Path(configured.path)


def _load_dataset(dataset: str, cfg: AppConfig) -> Dataset:
    dataset_id, path = _resolve_dataset(dataset, cfg)
    try:
        return build_dataset(
            dataset_id,
            load_records(path, cfg.columns),
            invalid_dates=cfg.ingest.invalid_dates,
        )
    except (DatasetLoadError, OSError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--dataset") from exc


@app.command()
def metrics(
    dataset: str = typer.Option(..., help=DATASET_HELP),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """List numeric metrics discovered from the first record of a dataset."""
    configure_logging()
    cfg = _load_app_config(config)
    loaded = _load_dataset(dataset, cfg)
    if not loaded.metrics:
        typer.echo("No numeric metrics found")
        return
    for name in loaded.metrics:
        typer.echo(name)


@app.command()
def breaks(
    dataset: str = typer.Option(..., help=DATASET_HELP),
    metric: str | None = typer.Option(None, help="Defaults to the first discovered metric."),
    date: str | None = typer.Option(None, help="DD.MM.YYYY or ISO date; defaults to the first."),
    classes: int | None = typer.Option(None, min=1, help="Overrides classification.class_count."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Print natural-breaks class boundaries for one date."""
    configure_logging()
    cfg = _load_app_config(config)
    loaded = _load_dataset(dataset, cfg)
    resolved_metric = metric or (loaded.metrics[0] if loaded.metrics else None)
    if not resolved_metric:
        raise typer.BadParameter("No numeric metrics found", param_hint="--metric")
    if not len(loaded.temporal_index):
        raise typer.BadParameter("Dataset has no dates", param_hint="--dataset")

    if date is None:
        day = loaded.temporal_index[0]
    else:
        try:
            day = parse_date(date)
        except DateFormatError as exc:
            raise typer.BadParameter(str(exc), param_hint="--date") from exc

    sample = build_series_table(loaded.records, resolved_metric).sample(day)
    if not sample:
        typer.echo(f"No data for {resolved_metric} on {day.isoformat()}")
        return
    class_count = classes or cfg.classification.class_count
    result = natural_breaks(
        sample,
        class_count,
        large_sample_warning=cfg.classification.large_sample_warning,
    )
    labels = break_labels(result, cfg.classification)
    typer.echo(f"{resolved_metric} on {day.isoformat()} ({len(sample)} regions)")
    for index in range(result.class_count):
        typer.echo(f"- class {index}: {labels[index]} - {labels[index + 1]}")


@app.command()
def snapshot(
    dataset: str = typer.Option(..., help=DATASET_HELP),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    layer: str | None = typer.Option(None, help="Boundary layer key; defaults to config."),
    metric: str | None = typer.Option(None),
    date: str | None = typer.Option(None),
    select: list[str] = typer.Option([], "--select", help="Region id to select; repeatable."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Write the render instruction, chart image and exports for one view."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset_id, dataset_path = _resolve_dataset(dataset, cfg)
    try:
        result = run_snapshot(
            cfg,
            dataset_path,
            out,
            dataset_id=dataset_id,
            layer=layer,
            metric=metric,
            date=date,
            selection=select,
        )
    except (KeyError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    instruction = result.instruction
    typer.echo("Snapshot complete")
    typer.echo(f"- status: {instruction.status}")
    typer.echo(f"- metric: {instruction.metric or '-'}")
    typer.echo(f"- date: {instruction.date_label}")
    typer.echo(f"- classes: {instruction.class_count}")
    typer.echo(f"- chart_series: {len(instruction.chart_series)}")
    for name, path in sorted(result.outputs.items()):
        typer.echo(f"- {name}: {path}")


@app.command()
def timeline(
    dataset: str = typer.Option(..., help=DATASET_HELP),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    metric: str | None = typer.Option(None),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Write class breaks for every date of a dataset."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset_id, dataset_path = _resolve_dataset(dataset, cfg)
    try:
        table_path = run_timeline(cfg, dataset_path, out, metric=metric, dataset_id=dataset_id)
    except (DatasetLoadError, OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Timeline written to: {table_path}")


if __name__ == "__main__":
    app()
