from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from watershed_atlas.features.records import Record
from watershed_atlas.features.series import distinct_numeric_metrics
from watershed_atlas.preprocess.dates import (
    DateFormatError,
    InvalidDatePolicy,
    TemporalIndex,
    build_sorted_unique,
    try_parse_date,
)

LOGGER = logging.getLogger(__name__)


class DatasetLoadError(ValueError):
    """Raised when a dataset cannot be loaded as a whole."""


@dataclass(frozen=True)
class Dataset:
    dataset_id: str
    records: tuple[Record, ...]
    temporal_index: TemporalIndex
    metrics: tuple[str, ...]
    dropped_records: int = 0

    @classmethod
    def empty(cls, dataset_id: str) -> "Dataset":
        return cls(dataset_id=dataset_id, records=(), temporal_index=TemporalIndex(), metrics=())

    @property
    def is_empty(self) -> bool:
        return not self.records


def build_dataset(
    dataset_id: str,
    records: Sequence[Record],
    *,
    invalid_dates: InvalidDatePolicy = "drop",
) -> Dataset:
    kept: list[Record] = []
    dropped = 0
    for record in records:
        if record.date and try_parse_date(record.date) is None:
            if invalid_dates == "reject":
                raise DatasetLoadError(
                    f"dataset {dataset_id!r} has an unparseable date: {record.date!r}"
                )
            dropped += 1
            continue
        kept.append(record)
    if dropped:
        LOGGER.warning(
            "Dataset %s: dropped %d record(s) with unparseable dates", dataset_id, dropped
        )

    try:
        temporal_index = build_sorted_unique(
            (record.date for record in kept), invalid=invalid_dates
        )
    except DateFormatError as exc:  # pragma: no cover - filtered above
        raise DatasetLoadError(str(exc)) from exc

    # Metrics come from the first row as read, even when its date was dropped.
    metrics = distinct_numeric_metrics(records[0]) if kept else ()
    return Dataset(
        dataset_id=dataset_id,
        records=tuple(kept),
        temporal_index=temporal_index,
        metrics=metrics,
        dropped_records=dropped,
    )
