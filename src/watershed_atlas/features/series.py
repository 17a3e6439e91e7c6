from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from watershed_atlas.features.records import Record
from watershed_atlas.preprocess.dates import try_parse_date
from watershed_atlas.preprocess.numeric import parse_number

LOGGER = logging.getLogger(__name__)

NON_METRIC_FIELD_PATTERN = re.compile(r"id|date", re.IGNORECASE)


@dataclass(frozen=True)
class SeriesTable:
    """Per-region, per-date values for a single metric.

    Absent entries mean "no data"; they are never stored as NaN or zero.
    ``regions`` keeps first-encounter order of regions holding at least one value.
    """

    metric: str
    values: Mapping[str, Mapping[date, float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {
            region: MappingProxyType(dict(by_date)) for region, by_date in self.values.items()
        }
        object.__setattr__(self, "values", MappingProxyType(frozen))

    @property
    def regions(self) -> tuple[str, ...]:
        return tuple(self.values.keys())

    def __getitem__(self, region_id: str) -> Mapping[date, float]:
        return self.values[region_id]

    def __contains__(self, region_id: object) -> bool:
        return region_id in self.values

    def __len__(self) -> int:
        return len(self.values)

    def value(self, region_id: str, day: date) -> float | None:
        by_date = self.values.get(region_id)
        if by_date is None:
            return None
        return by_date.get(day)

    def sample(self, day: date) -> list[float]:
        return [by_date[day] for by_date in self.values.values() if day in by_date]

    def aligned(self, region_id: str, dates: Iterable[date]) -> list[float | None]:
        by_date = self.values.get(region_id, {})
        return [by_date.get(day) for day in dates]

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {"date": day, "region_id": region, "value": value}
            for region, by_date in self.values.items()
            for day, value in sorted(by_date.items())
        ]
        return pd.DataFrame(rows, columns=["date", "region_id", "value"])


def build_series_table(records: Sequence[Record], metric: str) -> SeriesTable:
    """Index ``records`` by region and date for one metric.

    Duplicate (region, date) pairs resolve last-write-wins in ingestion order;
    dates are compared after parsing, so ``01.03.2020`` and ``2020-03-01`` collide.
    """
    table: dict[str, dict[date, float]] = {}
    skipped = 0
    for record in records:
        if not record.region_id or not record.date:
            skipped += 1
            continue
        day = try_parse_date(record.date)
        if day is None:
            skipped += 1
            continue
        value = parse_number(record.value(metric))
        if value is None:
            continue
        table.setdefault(record.region_id, {})[day] = value
    if skipped:
        LOGGER.debug("Skipped %d record(s) without usable region id or date", skipped)
    return SeriesTable(metric=metric, values=table)


def distinct_numeric_metrics(sample_record: Record | Mapping[str, Any] | None) -> tuple[str, ...]:
    """Metric names discovered from one record, in field order.

    Only the first record of a dataset is inspected, so a metric that appears
    only in later records with a different schema is not discovered.
    """
    if sample_record is None:
        return ()
    fields = sample_record.fields if isinstance(sample_record, Record) else sample_record
    return tuple(
        name
        for name, raw in fields.items()
        if not NON_METRIC_FIELD_PATTERN.search(str(name)) and parse_number(raw) is not None
    )
