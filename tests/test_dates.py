from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from watershed_atlas.preprocess.dates import (
    DateFormatError,
    TemporalIndex,
    build_sorted_unique,
    parse_date,
    try_parse_date,
)


def test_parse_date_accepts_dotted_and_iso_forms() -> None:
    assert parse_date("01.03.2020") == date(2020, 3, 1)
    assert parse_date("1.3.2020") == date(2020, 3, 1)
    assert parse_date("2020-03-01") == date(2020, 3, 1)
    assert parse_date("2020-03-01T10:30:00") == date(2020, 3, 1)
    assert parse_date("2020-03-01T10:30:00Z") == date(2020, 3, 1)
    assert parse_date(" 15.01.2020 ") == date(2020, 1, 15)
    assert parse_date(datetime(2020, 3, 1, 12, 0)) == date(2020, 3, 1)
    assert parse_date(date(2021, 6, 30)) == date(2021, 6, 30)


@pytest.mark.parametrize("raw", ["", None, "2020/03/01", "March 2020", "31.02.2020", "15-01-2020"])
def test_parse_date_rejects_unsupported_values(raw: object) -> None:
    with pytest.raises(DateFormatError):
        parse_date(raw)
    assert try_parse_date(raw) is None


def test_build_sorted_unique_collapses_same_calendar_day() -> None:
    index = build_sorted_unique(["01.03.2020", "2020-03-01", "15.01.2020"])

    assert index.dates == (date(2020, 1, 15), date(2020, 3, 1))
    assert len(index) == 2


def test_build_sorted_unique_skips_blanks_and_drops_invalid(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        index = build_sorted_unique(["", None, "  ", "bad", "02.01.2020", "01.01.2020"])

    assert index.dates == (date(2020, 1, 1), date(2020, 1, 2))
    assert "Dropped 1 unparseable date value(s)" in caplog.text


def test_build_sorted_unique_reject_policy_raises() -> None:
    with pytest.raises(DateFormatError):
        build_sorted_unique(["01.01.2020", "not a date"], invalid="reject")


def test_temporal_index_requires_strictly_increasing_dates() -> None:
    with pytest.raises(ValueError, match="strictly increasing"):
        TemporalIndex((date(2020, 2, 1), date(2020, 1, 1)))
    with pytest.raises(ValueError, match="strictly increasing"):
        TemporalIndex((date(2020, 1, 1), date(2020, 1, 1)))


def test_temporal_index_navigation_helpers() -> None:
    index = TemporalIndex((date(2020, 1, 15), date(2020, 2, 15), date(2020, 3, 15)))

    assert index.last_index == 2
    assert index.clamp(-4) == 0
    assert index.clamp(9) == 2
    assert index.position(date(2020, 2, 15)) == 1
    assert index.position(date(2020, 2, 16)) is None
    assert index.label(1) == "15.02.2020"
    assert index.label(10) == "15.03.2020"
    assert index.labels("%Y-%m") == ["2020-01", "2020-02", "2020-03"]
    assert list(index) == [date(2020, 1, 15), date(2020, 2, 15), date(2020, 3, 15)]


def test_empty_temporal_index_uses_placeholder_label() -> None:
    index = TemporalIndex()

    assert len(index) == 0
    assert index.last_index == 0
    assert index.clamp(5) == 0
    assert index.label(0) == "--"
    assert index.labels() == []
