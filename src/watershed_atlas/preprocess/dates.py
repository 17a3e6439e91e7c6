from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Iterator, Literal

LOGGER = logging.getLogger(__name__)

InvalidDatePolicy = Literal["drop", "reject"]

DOTTED_DATE_PATTERN = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}([T ].*)?$")


class DateFormatError(ValueError):
    """Raised when a date string is neither ``DD.MM.YYYY`` nor ISO 8601."""


def parse_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip() if raw is not None else ""
    if not text:
        raise DateFormatError("empty date value")

    dotted = DOTTED_DATE_PATTERN.match(text)
    if dotted:
        day, month, year = dotted.groups()
        text = f"{year}-{int(month):02d}-{int(day):02d}"
    elif not ISO_DATE_PATTERN.match(text):
        raise DateFormatError(f"unsupported date format: {raw!r}")

    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        # Trailing "Z" is not accepted by fromisoformat before Python 3.11.
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise DateFormatError(f"invalid calendar date: {raw!r}") from exc


def try_parse_date(raw: Any) -> date | None:
    try:
        return parse_date(raw)
    except DateFormatError:
        return None


@dataclass(frozen=True)
class TemporalIndex:
    dates: tuple[date, ...] = ()

    def __post_init__(self) -> None:
        for earlier, later in zip(self.dates, self.dates[1:]):
            if not earlier < later:
                raise ValueError("TemporalIndex dates must be strictly increasing.")

    def __len__(self) -> int:
        return len(self.dates)

    def __getitem__(self, index: int) -> date:
        return self.dates[index]

    def __iter__(self) -> Iterator[date]:
        return iter(self.dates)

    @property
    def last_index(self) -> int:
        return max(0, len(self.dates) - 1)

    def position(self, day: date) -> int | None:
        try:
            return self.dates.index(day)
        except ValueError:
            return None

    def clamp(self, cursor: int) -> int:
        return min(max(int(cursor), 0), self.last_index)

    def label(self, index: int, fmt: str = "%d.%m.%Y") -> str:
        if not self.dates:
            return "--"
        return self.dates[self.clamp(index)].strftime(fmt)

    def labels(self, fmt: str = "%d.%m.%Y") -> list[str]:
        return [day.strftime(fmt) for day in self.dates]


def build_sorted_unique(
    raw_dates: Iterable[Any],
    *,
    invalid: InvalidDatePolicy = "drop",
) -> TemporalIndex:
    """Deduplicate dates by calendar identity and sort them ascending.

    Blank values are skipped. With ``invalid="drop"`` unparseable strings are
    skipped and counted; with ``invalid="reject"`` the first one raises
    :class:`DateFormatError`.
    """
    unique: set[date] = set()
    dropped = 0
    for raw in raw_dates:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        try:
            unique.add(parse_date(raw))
        except DateFormatError:
            if invalid == "reject":
                raise
            dropped += 1
    if dropped:
        LOGGER.warning("Dropped %d unparseable date value(s) while building the date index", dropped)
    return TemporalIndex(dates=tuple(sorted(unique)))
