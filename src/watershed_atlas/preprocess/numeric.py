from __future__ import annotations

import math
from typing import Any


def parse_number(raw: Any) -> float | None:
    """Parse a locale-formatted number; ``None`` marks a missing value.

    A single comma decimal separator is accepted (``"12,5"`` -> ``12.5``).
    Malformed input is a data gap, not an error, so nothing here raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    text = str(raw).strip()
    if not text or "_" in text:
        return None
    try:
        value = float(text.replace(",", ".", 1))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def normalize_decimal_text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).replace(",", ".", 1)
