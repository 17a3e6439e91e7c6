from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence

from watershed_atlas.features.records import Record


@dataclass(frozen=True)
class ViewState:
    """The single source of truth for what every view shows."""

    layer_mode: str
    dataset_id: str | None = None
    metric: str | None = None
    cursor: int = 0
    selection: frozenset[str] = field(default_factory=frozenset)
    is_playing: bool = False
    controls_enabled: bool = True
    dataset_epoch: int = 0
    layer_epoch: int = 0

    def __post_init__(self) -> None:
        if self.cursor < 0:
            raise ValueError("cursor must be >= 0.")
        object.__setattr__(self, "selection", frozenset(self.selection))

    def evolve(self, **changes: object) -> "ViewState":
        return replace(self, **changes)


@dataclass(frozen=True)
class DatasetRequested:
    dataset_id: str


@dataclass(frozen=True)
class DatasetLoaded:
    epoch: int
    dataset_id: str
    records: Sequence[Record]


@dataclass(frozen=True)
class DatasetLoadFailed:
    epoch: int
    dataset_id: str
    reason: str


@dataclass(frozen=True)
class MetricSelected:
    metric: str


@dataclass(frozen=True)
class CursorMoved:
    index: int


@dataclass(frozen=True)
class PlaybackToggled:
    pass


@dataclass(frozen=True)
class PlaybackTick:
    pass


@dataclass(frozen=True)
class RegionClicked:
    region_id: str


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class LayerModeChanged:
    layer_mode: str


@dataclass(frozen=True)
class RegionNamesLoaded:
    epoch: int
    layer_mode: str
    names: Mapping[str, str]


ViewEvent = (
    DatasetRequested
    | DatasetLoaded
    | DatasetLoadFailed
    | MetricSelected
    | CursorMoved
    | PlaybackToggled
    | PlaybackTick
    | RegionClicked
    | SelectionCleared
    | LayerModeChanged
    | RegionNamesLoaded
)
