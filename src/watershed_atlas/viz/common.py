from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.figure import Figure


def save_figure(path: Path, figure: Figure | None = None, dpi: int = 120) -> Path:
    """Write ``figure`` (the current one by default) and release it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if figure is None:
        figure = plt.gcf()
    figure.tight_layout()
    # Legends sit below the axes, so crop to the drawn extent.
    figure.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(figure)
    return path
