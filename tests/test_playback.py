from __future__ import annotations

import asyncio

import pytest

from watershed_atlas.config import AppConfig, PlaybackConfig
from watershed_atlas.sync.controller import ViewSyncController
from watershed_atlas.sync.playback import PlaybackTimer
from watershed_atlas.sync.scheduling import run_with_loading_indicator


class _Indicator:
    def __init__(self) -> None:
        self.events: list[str] = []

    def show(self) -> None:
        self.events.append("show")

    def hide(self) -> None:
        self.events.append("hide")


def test_playback_timer_requires_positive_interval() -> None:
    with pytest.raises(ValueError, match="interval_seconds"):
        PlaybackTimer(lambda: True, 0)


def test_playback_timer_needs_a_running_loop() -> None:
    timer = PlaybackTimer(lambda: True, 0.01)

    with pytest.raises(RuntimeError):
        timer.start()
    assert not timer.running


def test_playback_timer_ticks_until_callback_stops() -> None:
    ticks: list[int] = []

    def on_tick() -> bool:
        ticks.append(len(ticks))
        return len(ticks) < 3

    async def scenario() -> PlaybackTimer:
        timer = PlaybackTimer(on_tick, 0.01)
        assert timer.start()
        assert not timer.start()
        await timer.wait()
        return timer

    timer = asyncio.run(scenario())

    assert ticks == [0, 1, 2]
    assert not timer.running


def test_playback_timer_stop_is_idempotent_and_cancels() -> None:
    ticks: list[int] = []

    def on_tick() -> bool:
        ticks.append(1)
        return True

    async def scenario() -> PlaybackTimer:
        timer = PlaybackTimer(on_tick, 0.05)
        timer.start()
        timer.stop()
        timer.stop()
        await asyncio.sleep(0.12)
        await timer.wait()
        return timer

    timer = asyncio.run(scenario())

    assert ticks == []
    assert not timer.running


def test_loading_indicator_wraps_work_with_minimum_duration() -> None:
    indicator = _Indicator()
    seen_during_work: list[list[str]] = []

    def work() -> str:
        seen_during_work.append(list(indicator.events))
        return "drawn"

    async def scenario() -> tuple[str, float]:
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await run_with_loading_indicator(work, indicator, min_display_seconds=0.05)
        return result, loop.time() - started

    result, elapsed = asyncio.run(scenario())

    assert result == "drawn"
    assert seen_during_work == [["show"]]
    assert indicator.events == ["show", "hide"]
    assert elapsed >= 0.04


def test_loading_indicator_hides_when_work_fails() -> None:
    indicator = _Indicator()

    def work() -> None:
        raise RuntimeError("render failed")

    with pytest.raises(RuntimeError, match="render failed"):
        asyncio.run(run_with_loading_indicator(work, indicator, min_display_seconds=0.0))
    assert indicator.events == ["show", "hide"]


def test_controller_refresh_publishes_behind_indicator() -> None:
    indicator = _Indicator()
    controller = ViewSyncController(
        AppConfig(playback=PlaybackConfig(loading_min_display_seconds=0.0))
    )

    instruction = asyncio.run(controller.refresh_with_loading(indicator))

    assert instruction is controller.last_instruction
    assert instruction.status == "no_data"
    assert indicator.events == ["show", "hide"]
