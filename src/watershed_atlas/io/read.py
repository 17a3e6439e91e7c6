from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pandas as pd

from watershed_atlas.config import ColumnsConfig
from watershed_atlas.features.dataset import DatasetLoadError
from watershed_atlas.features.records import Record, records_from_rows


def _read_json_rows(path: Path) -> list[dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except UnicodeDecodeError as exc:
        raise DatasetLoadError(f"{path.name} is not UTF-8 encoded: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DatasetLoadError(f"{path.name} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise DatasetLoadError(f"{path.name} must contain a JSON array of records")
    rows = [row for row in payload if isinstance(row, dict)]
    if len(rows) != len(payload):
        raise DatasetLoadError(f"{path.name} contains non-object entries")
    return rows


def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    # Keep every cell as text so decimal commas survive until parse_number.
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DatasetLoadError(f"{path.name} is not UTF-8 encoded: {exc}") from exc
    except pd.errors.EmptyDataError as exc:
        raise DatasetLoadError(f"{path.name} has no columns to read") from exc
    except pd.errors.ParserError as exc:
        raise DatasetLoadError(f"{path.name} is not a readable CSV table: {exc}") from exc
    return frame.to_dict(orient="records")


def load_records(path: Path, columns: ColumnsConfig) -> list[Record]:
    """Load flat observation rows from a ``.json`` array or a ``.csv`` file."""
    path = Path(path)
    if path.suffix.lower() == ".json":
        rows = _read_json_rows(path)
    elif path.suffix.lower() == ".csv":
        rows = _read_csv_rows(path)
    else:
        raise DatasetLoadError(f"Unsupported dataset file type: {path.suffix}")
    return records_from_rows(rows, columns)


async def fetch_records(path: Path, columns: ColumnsConfig) -> list[Record]:
    return await asyncio.to_thread(load_records, path, columns)

