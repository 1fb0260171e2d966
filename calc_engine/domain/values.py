"""Runtime values produced during evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import numpy as np
import pandas as pd

from calc_engine.domain.enums import ValueKind
from calc_engine.domain.types import SeriesPoints


@dataclass(frozen=True)
class ScalarValue:
    """Single float."""

    value: float

    @property
    def kind(self) -> ValueKind:
        return ValueKind.SCALAR


@dataclass(frozen=True, eq=False)
class SeriesValue:
    """Date-ordered float series indexed by a normalized DatetimeIndex."""

    data: pd.Series

    @property
    def kind(self) -> ValueKind:
        return ValueKind.SERIES

    def __len__(self) -> int:
        return len(self.data)

    def points(self) -> list[tuple[date, float]]:
        """Return ``(date, value)`` pairs in date order."""
        return [(ts.date(), float(v)) for ts, v in self.data.items()]

    def last(self) -> tuple[date, float] | None:
        """Most recent observation, or None when empty."""
        if self.data.empty:
            return None
        return self.data.index[-1].date(), float(self.data.iloc[-1])


RuntimeValue = ScalarValue | SeriesValue


def series_from_points(points: SeriesPoints, timezone: str = "UTC") -> pd.Series:
    """Build an evaluation series from store observations.

    Timezone-aware stamps are converted to ``timezone`` before the time of
    day is dropped; naive stamps are taken as already local.
    """
    if not points:
        return pd.Series([], index=pd.DatetimeIndex([]), dtype="float64")

    stamps = [_normalize(obs[0], timezone) for obs in points]
    values = [float(obs[1]) for obs in points]
    series = pd.Series(values, index=pd.DatetimeIndex(stamps), dtype="float64")
    series = series.sort_index()
    series = series[~series.index.duplicated(keep="last")]
    return series.dropna()


def make_series(values: pd.Series) -> SeriesValue:
    """Wrap a computed series, dropping undefined points."""
    cleaned = values.replace([np.inf, -np.inf], np.nan).dropna().astype("float64")
    return SeriesValue(cleaned)


def _normalize(stamp: date | pd.Timestamp, timezone: str) -> pd.Timestamp:
    ts = pd.Timestamp(stamp)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(timezone).tz_localize(None)
    return ts.normalize()
