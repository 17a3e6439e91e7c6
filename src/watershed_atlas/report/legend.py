from __future__ import annotations

from typing import Sequence

from watershed_atlas.classify.natural_breaks import ClassBreaks
from watershed_atlas.config import ClassificationConfig
from watershed_atlas.report.contracts import NO_DATA_SWATCH, LegendEntry


def format_break_label(
    value: float,
    decimals: int = 1,
    decimal_separator: str = ",",
    thousands_separator: str = " ",
) -> str:
    """Format a break with at most ``decimals`` fraction digits, e.g. ``12 345,6``."""
    text = f"{value:,.{decimals}f}"
    if decimals > 0:
        text = text.rstrip("0").rstrip(".")
    if text in {"-0", ""}:
        text = "0"
    integer, _, fraction = text.partition(".")
    integer = integer.replace(",", thousands_separator)
    return f"{integer}{decimal_separator}{fraction}" if fraction else integer


def break_labels(breaks: ClassBreaks, config: ClassificationConfig) -> tuple[str, ...]:
    return tuple(
        format_break_label(
            value,
            decimals=config.label_decimals,
            decimal_separator=config.decimal_separator,
            thousands_separator=config.thousands_separator,
        )
        for value in breaks.values
    )


def build_legend_entries(
    breaks: ClassBreaks,
    colors: Sequence[str],
    config: ClassificationConfig,
) -> tuple[LegendEntry, ...]:
    labels = break_labels(breaks, config)
    entries = [
        LegendEntry(
            color=colors[index % len(colors)],
            label=f"{labels[index]} - {labels[index + 1]}",
            lower=lower,
            upper=upper,
        )
        for index, (lower, upper) in enumerate(breaks.bounds())
    ]
    entries.append(LegendEntry(color=NO_DATA_SWATCH, label=config.no_data_label, is_no_data=True))
    return tuple(entries)
