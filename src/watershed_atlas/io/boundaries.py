from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from watershed_atlas.config import LayerConfig


def load_boundary_features(path: str | Path) -> list[dict[str, Any]]:
    source_path = Path(path)
    payload = json.loads(source_path.read_text(encoding="utf-8-sig"))
    if not isinstance(payload, Mapping) or payload.get("type") != "FeatureCollection":
        raise ValueError(f"{source_path.name} must contain a GeoJSON FeatureCollection")
    features = payload.get("features") or []
    return [feature for feature in features if isinstance(feature, Mapping)]


def region_names(
    features: Sequence[Mapping[str, Any]],
    id_property: str,
    name_property: str,
) -> dict[str, str]:
    names: dict[str, str] = {}
    for feature in features:
        properties = feature.get("properties") or {}
        region_id = properties.get(id_property)
        if region_id is None or str(region_id).strip() == "":
            continue
        name = properties.get(name_property)
        names[str(region_id)] = "" if name is None else str(name)
    return names


def load_layer_names(layer: LayerConfig) -> dict[str, str]:
    if not layer.boundary_path:
        return {}
    features = load_boundary_features(layer.boundary_path)
    return region_names(features, layer.id_property, layer.name_property)


async def fetch_layer_names(layer: LayerConfig) -> dict[str, str]:
    return await asyncio.to_thread(load_layer_names, layer)
