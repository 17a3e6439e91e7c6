from __future__ import annotations

import itertools
import logging

import numpy as np
import pytest

from watershed_atlas.classify.natural_breaks import ClassBreaks, class_of, natural_breaks


def _sum_squared_deviations(values: list[float], breaks: ClassBreaks) -> float:
    groups: dict[int, list[float]] = {}
    for value in values:
        groups.setdefault(breaks.class_of(value), []).append(value)
    return sum(float(np.sum((np.array(g) - np.mean(g)) ** 2)) for g in groups.values())


def _brute_force_best(values: list[float], class_count: int) -> float:
    data = sorted(values)
    best = np.inf
    for cuts in itertools.combinations(range(1, len(data)), class_count - 1):
        bounds = [0, *cuts, len(data)]
        cost = 0.0
        for start, end in zip(bounds, bounds[1:]):
            segment = np.array(data[start:end])
            cost += float(np.sum((segment - segment.mean()) ** 2))
        best = min(best, cost)
    return best


def test_natural_breaks_separates_obvious_clusters() -> None:
    breaks = natural_breaks([22, 1, 11, 2, 20, 3, 10, 12, 21], 3)

    assert breaks.values == (1.0, 3.0, 12.0, 22.0)
    assert breaks.class_count == 3
    assert breaks.bounds() == [(1.0, 3.0), (3.0, 12.0), (12.0, 22.0)]


def test_natural_breaks_shape_and_ordering() -> None:
    rng = np.random.default_rng(7)
    values = rng.gamma(shape=2.0, scale=15.0, size=60).tolist()

    for class_count in range(1, 7):
        breaks = natural_breaks(values, class_count)
        assert len(breaks) == class_count + 1
        assert breaks.minimum == pytest.approx(min(values))
        assert breaks.maximum == pytest.approx(max(values))
        assert all(b >= a for a, b in zip(breaks.values, breaks.values[1:]))
        for value in values:
            assert 0 <= breaks.class_of(value) <= class_count - 1
        assert breaks.class_of(max(values)) == class_count - 1


def test_natural_breaks_matches_exhaustive_search() -> None:
    rng = np.random.default_rng(11)
    values = rng.uniform(0.0, 100.0, size=9).round(3).tolist()

    for class_count in (2, 3, 4):
        breaks = natural_breaks(values, class_count)
        assert _sum_squared_deviations(values, breaks) == pytest.approx(
            _brute_force_best(values, class_count)
        )


def test_natural_breaks_fallbacks() -> None:
    assert natural_breaks([5], 5).values == (5.0, 5.0)
    assert natural_breaks([2, 2, 2, 3], 3).values == (2.0, 3.0)
    assert natural_breaks([4, 8, 6], 1).values == (4.0, 8.0)


def test_natural_breaks_one_value_per_class() -> None:
    breaks = natural_breaks([1, 2, 3, 4, 100], 5)

    assert breaks.values == (1.0, 1.0, 2.0, 3.0, 4.0, 100.0)
    assert breaks.class_of(100) == 4
    assert breaks.class_of(1) == 0


def test_natural_breaks_ignores_non_finite_values() -> None:
    assert natural_breaks([1.0, float("nan"), 3.0, float("inf")], 1).values == (1.0, 3.0)


def test_natural_breaks_rejects_bad_input() -> None:
    with pytest.raises(ValueError, match="class_count"):
        natural_breaks([1, 2, 3], 0)
    with pytest.raises(ValueError, match="finite value"):
        natural_breaks([], 3)
    with pytest.raises(ValueError, match="finite value"):
        natural_breaks([float("nan")], 3)


def test_natural_breaks_warns_for_large_samples(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        natural_breaks([1, 2, 3, 4], 2, large_sample_warning=3)

    assert "Classifying 4 values" in caplog.text


def test_class_of_picks_lowest_interval_and_clamps() -> None:
    breaks = ClassBreaks((1, 3, 12, 22))

    assert class_of(3, breaks) == 0
    assert class_of(5, breaks) == 1
    assert class_of(12, breaks) == 1
    assert class_of(15, breaks) == 2
    assert class_of(22, breaks) == 2
    assert class_of(-10, breaks) == 0
    assert class_of(99, breaks) == 2


def test_class_breaks_validation() -> None:
    with pytest.raises(ValueError, match="at least two"):
        ClassBreaks((1.0,))
    with pytest.raises(ValueError, match="non-decreasing"):
        ClassBreaks((3.0, 1.0))
    with pytest.raises(ValueError, match="finite"):
        ClassBreaks((1.0, float("nan")))
