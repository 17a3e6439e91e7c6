"""Fisher-Jenks natural breaks for choropleth classes.

The optimal partition is found with a dynamic program over prefix sums, which
costs O(n^2 k) time and O(n k) memory. Samples are one value per region for a
single date, so ``n`` is bounded by the number of polygons in a layer; larger
samples are still classified exactly but a warning is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np

LOGGER = logging.getLogger(__name__)

DEFAULT_LARGE_SAMPLE_WARNING = 5000


@dataclass(frozen=True)
class ClassBreaks:
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        values = tuple(float(value) for value in self.values)
        if len(values) < 2:
            raise ValueError("ClassBreaks needs at least two boundary values.")
        if not all(np.isfinite(values)):
            raise ValueError("ClassBreaks values must be finite.")
        if any(later < earlier for earlier, later in zip(values, values[1:])):
            raise ValueError(f"ClassBreaks must be non-decreasing, got {values!r}.")
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    @property
    def class_count(self) -> int:
        return len(self.values) - 1

    @property
    def minimum(self) -> float:
        return self.values[0]

    @property
    def maximum(self) -> float:
        return self.values[-1]

    def bounds(self) -> list[tuple[float, float]]:
        return list(zip(self.values[:-1], self.values[1:]))

    def class_of(self, value: float) -> int:
        """Lowest class whose closed interval holds ``value``.

        The global maximum always maps to the last class. Values outside the
        range clamp to the first or last class.
        """
        last = self.class_count - 1
        if value >= self.maximum:
            return last
        if value <= self.minimum:
            return 0
        for index, (lower, upper) in enumerate(self.bounds()):
            if lower <= value <= upper:
                return index
        return last  # pragma: no cover - ranges are contiguous


def class_of(value: float, breaks: ClassBreaks) -> int:
    return breaks.class_of(value)


def _finite_sorted(values: Iterable[float]) -> np.ndarray:
    data = np.asarray(list(values), dtype=float)
    data = data[np.isfinite(data)]
    return np.sort(data)


def natural_breaks(
    values: Iterable[float],
    class_count: int,
    *,
    large_sample_warning: int = DEFAULT_LARGE_SAMPLE_WARNING,
) -> ClassBreaks:
    """Return ``class_count + 1`` breaks minimizing within-class variance.

    Falls back to ``[min, max]`` when the sample holds fewer than
    ``class_count`` values or fewer than ``class_count`` distinct values.
    """
    if class_count < 1:
        raise ValueError(f"class_count must be >= 1, got {class_count}.")
    data = _finite_sorted(values)
    n = int(data.size)
    if n == 0:
        raise ValueError("natural_breaks needs at least one finite value.")

    minimum = float(data[0])
    maximum = float(data[-1])
    if class_count == 1 or n < class_count or np.unique(data).size < class_count:
        return ClassBreaks((minimum, maximum))
    if n > large_sample_warning:
        LOGGER.warning(
            "Classifying %d values with O(n^2 k) natural breaks; expect slow redraws", n
        )

    prefix = np.concatenate(([0.0], np.cumsum(data)))
    prefix_sq = np.concatenate(([0.0], np.cumsum(data * data)))

    # variance[i, c]: best within-class cost of the first i values split into c classes.
    # lower[i, c]: size of the prefix holding the first c-1 classes in that split.
    variance = np.full((n + 1, class_count + 1), np.inf)
    lower = np.zeros((n + 1, class_count + 1), dtype=np.int64)
    counts = np.arange(1, n + 1, dtype=float)
    variance[1:, 1] = prefix_sq[1:] - (prefix[1:] ** 2) / counts

    for classes in range(2, class_count + 1):
        for end in range(classes, n + 1):
            splits = np.arange(classes - 1, end)
            widths = end - splits
            segment_sum = prefix[end] - prefix[splits]
            segment_cost = (prefix_sq[end] - prefix_sq[splits]) - (segment_sum**2) / widths
            total = segment_cost + variance[splits, classes - 1]
            best = int(np.argmin(total))
            lower[end, classes] = splits[best]
            variance[end, classes] = total[best]

    interior: list[float] = []
    end = n
    for classes in range(class_count, 1, -1):
        split = int(lower[end, classes])
        interior.append(float(data[split - 1]))
        end = split
    interior.reverse()
    return ClassBreaks((minimum, *interior, maximum))
