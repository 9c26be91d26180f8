"""
Shared Numerics

Small statistical helpers used by all three scoring engines: least-squares
trend fitting, Welford running statistics, the logistic function and banded
threshold lookups.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, TypeVar
import math

import numpy as np
from scipy import stats

T = TypeVar("T")


@dataclass
class LinearFit:
    """Ordinary least-squares fit of y against x."""
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def fit_line(y: Sequence[float], x: Optional[Sequence[float]] = None) -> LinearFit:
    """
    Fit y = intercept + slope * x.

    When ``x`` is omitted the time index 0..n-1 is used. A constant series
    has no variance to explain and is reported with r² = 1.0 (the line fits
    exactly).
    """
    y_arr = np.asarray(y, dtype=float)
    if y_arr.size < 2:
        raise ValueError("at least two points are required for a linear fit")
    x_arr = np.arange(y_arr.size, dtype=float) if x is None else np.asarray(x, dtype=float)

    if np.ptp(y_arr) == 0:
        return LinearFit(slope=0.0, intercept=float(y_arr[0]), r_squared=1.0)

    result = stats.linregress(x_arr, y_arr)
    return LinearFit(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_squared=float(result.rvalue ** 2),
    )


@dataclass
class RunningStats:
    """Welford accumulator: count, mean and sum of squared deviations."""
    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def update(self, value: float) -> "RunningStats":
        """Return a new accumulator including ``value``."""
        count = self.count + 1
        delta = value - self.mean
        mean = self.mean + delta / count
        m2 = self.m2 + delta * (value - mean)
        return RunningStats(count=count, mean=mean, m2=m2)

    @property
    def variance(self) -> float:
        # Population variance
        return self.m2 / self.count if self.count > 0 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(max(self.variance, 0.0))


def sigmoid(z):
    """Logistic function, accepts scalars or arrays."""
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500, 500)))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def band_lookup(value: float, bands: Iterable[Tuple[float, T]], default: T) -> T:
    """
    Return the label of the first band whose upper bound ``value`` does not
    exceed. Bands must be ordered by ascending bound.
    """
    for upper, label in bands:
        if value <= upper:
            return label
    return default


def strict_band_lookup(value: float, bands: Iterable[Tuple[float, T]], default: T) -> T:
    """Like :func:`band_lookup` but with exclusive upper bounds."""
    for upper, label in bands:
        if value < upper:
            return label
    return default
