"""Window operations over date-ordered series."""

import numpy as np
import pandas as pd

from calc_engine.domain.errors import InsufficientDataError


def lag(series: pd.Series, periods: int) -> pd.Series:
    """Shift values forward by ``periods`` observations."""
    return series.shift(periods=periods)


def momentum(series: pd.Series, periods: int) -> pd.Series:
    """Difference against the value ``periods`` observations earlier."""
    if len(series) <= periods:
        raise InsufficientDataError(f"Need more than {periods} points, got {len(series)}")
    return (series - lag(series, periods)).iloc[periods:]


def rate_of_change(series: pd.Series, periods: int) -> pd.Series:
    """Percentage change against the value ``periods`` observations earlier.

    Points whose base value is zero are skipped.
    """
    if len(series) <= periods:
        raise InsufficientDataError(f"Need more than {periods} points, got {len(series)}")

    base = lag(series, periods).iloc[periods:]
    current = series.iloc[periods:]
    usable = base != 0
    result = (current[usable] - base[usable]) / base[usable] * 100
    if result.empty:
        raise InsufficientDataError("Every base value is zero")
    return result


def window_min(series: pd.Series, window: int) -> pd.Series:
    """Trailing window minimum."""
    return series.rolling(window=window, min_periods=window).min()


def window_max(series: pd.Series, window: int) -> pd.Series:
    """Trailing window maximum."""
    return series.rolling(window=window, min_periods=window).max()


def stochastic_oscillator(series: pd.Series, window: int) -> pd.Series:
    """Position of each value within its trailing window's range, 0 to 100.

    A window with zero range yields 50.
    """
    if len(series) < window:
        raise InsufficientDataError(f"Need at least {window} points, got {len(series)}")

    low = window_min(series, window)
    high = window_max(series, window)
    spread = high - low
    flat = spread == 0
    oscillator = (series - low) / spread.where(~flat) * 100
    oscillator.loc[flat] = 50.0
    return oscillator.iloc[window - 1 :]


def rolling_correlation(left: pd.Series, right: pd.Series, window: int) -> pd.Series:
    """Pearson correlation over trailing windows of two aligned series.

    Both series must share one index with no missing values. A window where
    either side is constant yields 0.
    """
    if len(left) < window:
        raise InsufficientDataError(f"Need at least {window} jointly present points, got {len(left)}")

    x_all = left.to_numpy(dtype="float64")
    y_all = right.to_numpy(dtype="float64")
    values = np.empty(len(x_all) - window + 1)

    for end in range(window, len(x_all) + 1):
        x = x_all[end - window : end]
        y = y_all[end - window : end]
        if np.ptp(x) == 0 or np.ptp(y) == 0:
            values[end - window] = 0.0
            continue
        dx = x - x.mean()
        dy = y - y.mean()
        corr = np.dot(dx, dy) / np.sqrt(np.dot(dx, dx) * np.dot(dy, dy))
        values[end - window] = np.clip(corr, -1.0, 1.0)

    return pd.Series(values, index=left.index[window - 1 :])
