from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from watershed_atlas.config import ColumnsConfig


@dataclass(frozen=True)
class Record:
    """One observation row. ``fields`` keeps every raw column, metrics included."""

    region_id: str | None
    date: str | None
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def value(self, metric: str) -> Any:
        return self.fields.get(metric)


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def record_from_mapping(row: Mapping[str, Any], columns: ColumnsConfig) -> Record:
    fields = dict(row)
    if _clean_text(fields.get(columns.date)) is None:
        for alias in columns.date_aliases:
            if _clean_text(fields.get(alias)) is not None:
                fields[columns.date] = fields[alias]
                break
    return Record(
        region_id=_clean_text(fields.get(columns.region_id)),
        date=_clean_text(fields.get(columns.date)),
        fields=fields,
    )


def records_from_rows(rows: Sequence[Mapping[str, Any]], columns: ColumnsConfig) -> list[Record]:
    return [record_from_mapping(row, columns) for row in rows]
