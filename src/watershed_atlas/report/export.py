from __future__ import annotations

from typing import AbstractSet, Any, Mapping, Sequence

import pandas as pd

from watershed_atlas.features.records import Record
from watershed_atlas.preprocess.numeric import normalize_decimal_text


def build_selection_csv_frame(
    records: Sequence[Record],
    metric: str,
    selection: AbstractSet[str],
    region_column: str,
) -> pd.DataFrame:
    """Raw ``date, region, metric`` rows for the selected regions (all when empty)."""
    rows = [
        {
            "date": record.date or "",
            region_column: record.region_id or "",
            metric: normalize_decimal_text(record.value(metric)),
        }
        for record in records
        if not selection or record.region_id in selection
    ]
    return pd.DataFrame(rows, columns=["date", region_column, metric])


def build_selected_feature_collection(
    features: Sequence[Mapping[str, Any]],
    selection: AbstractSet[str],
    id_property: str,
) -> dict[str, Any]:
    selected = []
    for feature in features:
        properties = dict(feature.get("properties") or {})
        region_id = properties.get(id_property)
        if region_id is None or str(region_id) not in selection:
            continue
        selected.append(
            {
                "type": "Feature",
                "properties": properties,
                "geometry": feature.get("geometry"),
            }
        )
    return {"type": "FeatureCollection", "features": selected}
