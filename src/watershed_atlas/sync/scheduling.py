from __future__ import annotations

import asyncio
from typing import Callable, Protocol, TypeVar

T = TypeVar("T")


class LoadingIndicator(Protocol):
    def show(self) -> None: ...

    def hide(self) -> None: ...


async def run_with_loading_indicator(
    work: Callable[[], T],
    indicator: LoadingIndicator,
    min_display_seconds: float = 0.05,
) -> T:
    """Run a heavy redraw behind a loading indicator.

    The indicator is shown, the loop yields once so it can paint, and it stays
    visible for at least ``min_display_seconds`` even when ``work`` is fast.
    """
    loop = asyncio.get_running_loop()
    indicator.show()
    started = loop.time()
    try:
        await asyncio.sleep(0)
        result = work()
        remaining = min_display_seconds - (loop.time() - started)
        if remaining > 0:
            await asyncio.sleep(remaining)
        return result
    finally:
        indicator.hide()
