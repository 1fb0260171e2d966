"""Whole-series statistics: regression, risk ratios, drawdown, seasonality."""

from collections.abc import Callable

import numpy as np
import pandas as pd

from calc_engine.domain.errors import DivisionByZeroError, InsufficientDataError


def require_points(series: pd.Series, minimum: int) -> None:
    """Raise InsufficientDataError when ``series`` is shorter than ``minimum``."""
    if len(series) < minimum:
        raise InsufficientDataError(f"Need at least {minimum} point(s), got {len(series)}")


def _fit_line(series: pd.Series) -> tuple[np.ndarray, np.ndarray, float, float]:
    """OLS fit of value against a 0-based integer time index."""
    require_points(series, 2)
    y = series.to_numpy(dtype="float64")
    x = np.arange(len(y), dtype="float64")
    dx = x - x.mean()
    slope = float(np.dot(dx, y - y.mean()) / np.dot(dx, dx))
    intercept = float(y.mean() - slope * x.mean())
    return x, y, slope, intercept


def regression_slope(series: pd.Series) -> float:
    """Slope of the least-squares line through the series."""
    _, _, slope, _ = _fit_line(series)
    return slope


def r_squared(series: pd.Series) -> float:
    """Coefficient of determination of the least-squares line."""
    x, y, slope, intercept = _fit_line(series)
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0:
        raise DivisionByZeroError("Series has zero variance; R-squared is undefined")
    ss_res = float(np.sum((y - (intercept + slope * x)) ** 2))
    return 1.0 - ss_res / ss_tot


def simple_returns(series: pd.Series) -> pd.Series:
    """Period-over-period returns; periods with a zero base are skipped."""
    base = series.shift(1).iloc[1:]
    current = series.iloc[1:]
    usable = base != 0
    return (current[usable] - base[usable]) / base[usable]


def _returns_or_raise(series: pd.Series) -> np.ndarray:
    require_points(series, 2)
    returns = simple_returns(series)
    if returns.empty:
        raise InsufficientDataError("No computable returns: every base value is zero")
    return returns.to_numpy(dtype="float64")


def sharpe_ratio(series: pd.Series, risk_free_rate: float) -> float:
    """Mean excess return over the population standard deviation of returns."""
    returns = _returns_or_raise(series)
    deviation = float(np.std(returns, ddof=0))
    if deviation == 0:
        raise DivisionByZeroError("Returns have zero standard deviation")
    return (float(np.mean(returns)) - risk_free_rate) / deviation


def sortino_ratio(series: pd.Series, risk_free_rate: float) -> float:
    """Mean excess return over the downside deviation.

    Downside deviation is the root mean square of the negative excess
    returns only.
    """
    returns = _returns_or_raise(series)
    shortfall = returns - risk_free_rate
    downside = shortfall[shortfall < 0]
    if downside.size == 0:
        raise DivisionByZeroError("No returns below the risk-free rate; downside deviation is zero")
    downside_deviation = float(np.sqrt(np.mean(downside**2)))
    return (float(np.mean(returns)) - risk_free_rate) / downside_deviation


def max_drawdown(series: pd.Series) -> float:
    """Largest fall from the running peak, as a positive percentage.

    Points whose running peak is zero are skipped; a negative peak is
    measured against its magnitude.
    """
    require_points(series, 1)
    peak = series.cummax()
    usable = peak != 0
    drawdown = (peak[usable] - series[usable]) / peak[usable].abs() * 100
    if drawdown.empty:
        return 0.0
    return float(max(drawdown.max(), 0.0))


_SeasonKey = Callable[[pd.DatetimeIndex], np.ndarray]

# (largest median spacing in days, cycle length, period-within-cycle key)
_SEASONS: tuple[tuple[float, int, _SeasonKey], ...] = (
    (10.0, 52, lambda index: np.minimum(index.isocalendar().week.to_numpy(dtype="int64"), 52)),
    (45.0, 12, lambda index: index.month.to_numpy()),
    (120.0, 4, lambda index: index.quarter.to_numpy()),
)


def infer_season(index: pd.DatetimeIndex) -> tuple[int, np.ndarray]:
    """Infer cycle length and period-within-cycle keys from date spacing."""
    if len(index) < 2:
        raise InsufficientDataError(f"Need at least 2 points to infer a frequency, got {len(index)}")

    spacing_days = float(np.median(np.diff(index.to_numpy()) / np.timedelta64(1, "D")))

    if spacing_days <= 1.5:
        weekdays = index.dayofweek.to_numpy()
        cycle = 5 if weekdays.max() < 5 else 7
        return cycle, weekdays

    for max_spacing, cycle, key in _SEASONS:
        if spacing_days <= max_spacing:
            return cycle, key(index)

    raise InsufficientDataError(
        f"Observations are {spacing_days:.0f} days apart; no within-year seasonal cycle to adjust"
    )


def centered_moving_average(values: np.ndarray, period: int) -> np.ndarray:
    """Centered moving average, 2xm for even ``period``; NaN where undefined."""
    if period % 2:
        weights = np.full(period, 1.0 / period)
    else:
        weights = np.r_[0.5, np.ones(period - 1), 0.5] / period

    half = len(weights) // 2
    average = np.full(len(values), np.nan)
    if len(values) >= len(weights):
        average[half : len(values) - half] = np.convolve(values, weights, mode="valid")
    return average


def seasonal_adjustment(series: pd.Series) -> pd.Series:
    """Remove the additive seasonal component.

    The trend is a centered moving average over one cycle. Each
    period-within-cycle gets the mean of its detrended values; a period the
    moving average does not reach falls back to the mean of its raw values
    less the series mean. Components are normalized to sum to zero across
    the cycle and subtracted from every point of the same period.
    """
    cycle, keys = infer_season(series.index)
    if len(series) < cycle:
        raise InsufficientDataError(f"Need at least one full cycle of {cycle} points, got {len(series)}")

    values = series.to_numpy(dtype="float64")
    detrended = values - centered_moving_average(values, cycle)

    components = pd.Series(detrended).groupby(keys).mean()
    fallback = pd.Series(values - values.mean()).groupby(keys).mean()
    components = components.fillna(fallback)
    components = components - components.mean()

    seasonal = components.reindex(keys).to_numpy()
    return pd.Series(values - seasonal, index=series.index)
