"""View synchronization for the map, chart and legend.

All view state lives in one immutable :class:`ViewState`. Every UI event is a
small dataclass routed through :meth:`ViewSyncController.dispatch`, which runs
the handler for that event type, then derives one :class:`RenderInstruction`
and pushes it to each registered collaborator. Collaborators never read
controller internals.

Dataset and boundary loads are asynchronous. Each request bumps an epoch on the
state; a result carrying an older epoch is discarded so a slow fetch cannot
overwrite a newer selection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Mapping, Protocol, Sequence

from watershed_atlas.config import AppConfig
from watershed_atlas.features.dataset import Dataset, DatasetLoadError, build_dataset
from watershed_atlas.features.records import Record
from watershed_atlas.features.series import SeriesTable, build_series_table
from watershed_atlas.report.chart import SeriesColorRegistry
from watershed_atlas.report.contracts import RenderInstruction, RenderStatus
from watershed_atlas.report.render import derive_render_instruction
from watershed_atlas.sync.playback import PlaybackTimer
from watershed_atlas.sync.scheduling import LoadingIndicator, run_with_loading_indicator
from watershed_atlas.sync.state import (
    CursorMoved,
    DatasetLoaded,
    DatasetLoadFailed,
    DatasetRequested,
    LayerModeChanged,
    MetricSelected,
    PlaybackTick,
    PlaybackToggled,
    RegionClicked,
    RegionNamesLoaded,
    SelectionCleared,
    ViewEvent,
    ViewState,
)

LOGGER = logging.getLogger(__name__)

RecordFetcher = Callable[[str], Awaitable[Sequence[Record]]]
NamesFetcher = Callable[[str], Awaitable[Mapping[str, str]]]


class RenderCollaborator(Protocol):
    def update(self, instruction: RenderInstruction) -> None: ...


class ViewSyncController:
    def __init__(
        self,
        config: AppConfig,
        collaborators: Sequence[RenderCollaborator] = (),
    ) -> None:
        self.config = config
        self._collaborators: list[RenderCollaborator] = list(collaborators)
        default_layer = config.layer(config.default_layer)
        self._state = ViewState(
            layer_mode=default_layer.key,
            controls_enabled=default_layer.metrics_enabled,
        )
        self._dataset: Dataset | None = None
        self._series: SeriesTable | None = None
        self._load_status: RenderStatus | None = None
        self._region_names: dict[str, dict[str, str]] = {}
        self._colors = SeriesColorRegistry(config.chart.palette)
        self._timer = PlaybackTimer(self._tick, config.playback.tick_seconds)
        self.last_instruction: RenderInstruction | None = None
        self._handlers: dict[type, Callable[..., bool]] = {
            DatasetRequested: self._on_dataset_requested,
            DatasetLoaded: self._on_dataset_loaded,
            DatasetLoadFailed: self._on_dataset_load_failed,
            MetricSelected: self._on_metric_selected,
            CursorMoved: self._on_cursor_moved,
            PlaybackToggled: self._on_playback_toggled,
            PlaybackTick: self._on_playback_tick,
            RegionClicked: self._on_region_clicked,
            SelectionCleared: self._on_selection_cleared,
            LayerModeChanged: self._on_layer_mode_changed,
            RegionNamesLoaded: self._on_region_names_loaded,
        }

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def dataset(self) -> Dataset | None:
        return self._dataset

    @property
    def series(self) -> SeriesTable | None:
        return self._series

    @property
    def metrics(self) -> tuple[str, ...]:
        return self._dataset.metrics if self._dataset is not None else ()

    @property
    def region_names(self) -> Mapping[str, str]:
        return self._region_names.get(self._state.layer_mode, {})

    @property
    def playback_running(self) -> bool:
        return self._timer.running

    def subscribe(self, collaborator: RenderCollaborator) -> None:
        self._collaborators.append(collaborator)

    def dispatch(self, event: ViewEvent) -> RenderInstruction | None:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported view event: {type(event).__name__}")
        changed = handler(event)
        self._sync_timer()
        if not changed:
            return None
        return self.publish()

    def publish(self) -> RenderInstruction:
        instruction = derive_render_instruction(
            state=self._state,
            dataset=self._dataset,
            series=self._series,
            region_names=self.region_names,
            config=self.config,
            colors=self._colors,
            status=self._load_status if self._state.controls_enabled else None,
        )
        self.last_instruction = instruction
        for collaborator in self._collaborators:
            collaborator.update(instruction)
        return instruction

    def describe_region(self, region_id: str) -> dict[str, str]:
        return {"id": region_id, "name": self.region_names.get(region_id, "")}

    def apply_dataset(self, dataset_id: str, records: Sequence[Record]) -> RenderInstruction | None:
        self.dispatch(DatasetRequested(dataset_id))
        return self.dispatch(
            DatasetLoaded(epoch=self._state.dataset_epoch, dataset_id=dataset_id, records=records)
        )

    async def load_dataset(self, dataset_id: str, fetch: RecordFetcher) -> RenderInstruction | None:
        self.dispatch(DatasetRequested(dataset_id))
        epoch = self._state.dataset_epoch
        try:
            records = await fetch(dataset_id)
        except (OSError, DatasetLoadError) as exc:
            LOGGER.warning("Loading dataset %s failed: %s", dataset_id, exc)
            return self.dispatch(
                DatasetLoadFailed(epoch=epoch, dataset_id=dataset_id, reason=str(exc))
            )
        return self.dispatch(DatasetLoaded(epoch=epoch, dataset_id=dataset_id, records=records))

    async def switch_layer(
        self,
        layer_mode: str,
        fetch_names: NamesFetcher | None = None,
    ) -> RenderInstruction | None:
        instruction = self.dispatch(LayerModeChanged(layer_mode))
        if fetch_names is None or self._state.layer_mode != layer_mode:
            return instruction
        return await self.load_region_names(fetch_names) or instruction

    async def load_region_names(self, fetch_names: NamesFetcher) -> RenderInstruction | None:
        layer_mode = self._state.layer_mode
        epoch = self._state.layer_epoch
        try:
            names = await fetch_names(layer_mode)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Loading region names for layer %s failed: %s", layer_mode, exc)
            return None
        return self.dispatch(RegionNamesLoaded(epoch=epoch, layer_mode=layer_mode, names=names))

    def set_region_names(self, names: Mapping[str, str]) -> RenderInstruction | None:
        return self.dispatch(
            RegionNamesLoaded(
                epoch=self._state.layer_epoch,
                layer_mode=self._state.layer_mode,
                names=names,
            )
        )

    async def refresh_with_loading(self, indicator: LoadingIndicator) -> RenderInstruction:
        return await run_with_loading_indicator(
            self.publish,
            indicator,
            min_display_seconds=self.config.playback.loading_min_display_seconds,
        )

    async def wait_for_playback(self) -> None:
        await self._timer.wait()

    def stop_playback(self) -> None:
        if self._state.is_playing:
            self.dispatch(PlaybackToggled())

    # --- transitions -------------------------------------------------------

    def _on_dataset_requested(self, event: DatasetRequested) -> bool:
        was_playing = self._state.is_playing
        self._state = self._state.evolve(
            dataset_epoch=self._state.dataset_epoch + 1,
            is_playing=False,
        )
        LOGGER.debug("Requested dataset %s (epoch %d)", event.dataset_id, self._state.dataset_epoch)
        return was_playing

    def _is_stale(self, epoch: int, dataset_id: str) -> bool:
        if epoch == self._state.dataset_epoch:
            return False
        LOGGER.info(
            "Discarding stale result for dataset %s (epoch %d, current %d)",
            dataset_id,
            epoch,
            self._state.dataset_epoch,
        )
        return True

    def _replace_dataset(self, dataset: Dataset, status: RenderStatus | None) -> None:
        metric = dataset.metrics[0] if dataset.metrics else None
        self._dataset = dataset
        self._series = build_series_table(dataset.records, metric) if metric else None
        self._load_status = status
        self._state = self._state.evolve(
            dataset_id=dataset.dataset_id,
            metric=metric,
            cursor=0,
            selection=frozenset(),
            is_playing=False,
        )

    def _on_dataset_loaded(self, event: DatasetLoaded) -> bool:
        if self._is_stale(event.epoch, event.dataset_id):
            return False
        try:
            dataset = build_dataset(
                event.dataset_id,
                event.records,
                invalid_dates=self.config.ingest.invalid_dates,
            )
        except DatasetLoadError as exc:
            LOGGER.warning("Rejected dataset %s: %s", event.dataset_id, exc)
            self._replace_dataset(Dataset.empty(event.dataset_id), "load_failed")
            return True
        LOGGER.info(
            "Loaded dataset %s: %d records, %d dates, metrics=%s",
            dataset.dataset_id,
            len(dataset.records),
            len(dataset.temporal_index),
            ", ".join(dataset.metrics) or "-",
        )
        self._replace_dataset(dataset, None)
        return True

    def _on_dataset_load_failed(self, event: DatasetLoadFailed) -> bool:
        if self._is_stale(event.epoch, event.dataset_id):
            return False
        self._replace_dataset(Dataset.empty(event.dataset_id), "load_failed")
        return True

    def _on_metric_selected(self, event: MetricSelected) -> bool:
        if not self._state.controls_enabled or self._dataset is None:
            return False
        if event.metric not in self._dataset.metrics:
            LOGGER.warning("Ignoring unknown metric %r", event.metric)
            return False
        self._series = build_series_table(self._dataset.records, event.metric)
        self._state = self._state.evolve(metric=event.metric)
        return True

    def _on_cursor_moved(self, event: CursorMoved) -> bool:
        if not self._state.controls_enabled or self._dataset is None:
            return False
        cursor = self._dataset.temporal_index.clamp(event.index)
        if cursor == self._state.cursor:
            return False
        self._state = self._state.evolve(cursor=cursor)
        return True

    def _on_playback_toggled(self, event: PlaybackToggled) -> bool:
        if self._state.is_playing:
            self._state = self._state.evolve(is_playing=False)
            return True
        if (
            not self._state.controls_enabled
            or self._dataset is None
            or not len(self._dataset.temporal_index)
        ):
            return False
        self._state = self._state.evolve(is_playing=True)
        return True

    def _on_playback_tick(self, event: PlaybackTick) -> bool:
        if not self._state.is_playing or self._dataset is None:
            return False
        last = self._dataset.temporal_index.last_index
        cursor = min(self._state.cursor + 1, last)
        self._state = self._state.evolve(cursor=cursor, is_playing=cursor < last)
        return True

    def _on_region_clicked(self, event: RegionClicked) -> bool:
        if not self._state.controls_enabled or not event.region_id:
            return False
        selection = set(self._state.selection)
        if event.region_id in selection:
            selection.discard(event.region_id)
        else:
            selection.add(event.region_id)
        self._state = self._state.evolve(selection=frozenset(selection))
        return True

    def _on_selection_cleared(self, event: SelectionCleared) -> bool:
        if not self._state.selection:
            return False
        self._state = self._state.evolve(selection=frozenset())
        return True

    def _on_layer_mode_changed(self, event: LayerModeChanged) -> bool:
        try:
            layer = self.config.layer(event.layer_mode)
        except KeyError:
            LOGGER.warning("Ignoring unknown layer %r", event.layer_mode)
            return False
        if layer.key == self._state.layer_mode:
            return False
        self._state = self._state.evolve(
            layer_mode=layer.key,
            controls_enabled=layer.metrics_enabled,
            selection=frozenset(),
            is_playing=False,
            layer_epoch=self._state.layer_epoch + 1,
        )
        return True

    def _on_region_names_loaded(self, event: RegionNamesLoaded) -> bool:
        if event.epoch != self._state.layer_epoch or event.layer_mode != self._state.layer_mode:
            LOGGER.info("Discarding stale region names for layer %s", event.layer_mode)
            return False
        self._region_names[event.layer_mode] = dict(event.names)
        return True

    # --- playback ----------------------------------------------------------

    def _tick(self) -> bool:
        self.dispatch(PlaybackTick())
        return self._state.is_playing

    def _sync_timer(self) -> None:
        if not self._state.is_playing:
            self._timer.stop()
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Without a running loop the caller drives PlaybackTick events.
            return
        self._timer.start()
