"""In-memory adapters for the series store and calculation repository."""

import dataclasses
import threading
from datetime import date

import pandas as pd

from calc_engine.domain.entities import Calculation, IndicatorInfo
from calc_engine.domain.ports import CalculationRepositoryPort, SeriesStorePort
from calc_engine.domain.types import SeriesPoints


class InMemorySeriesStore(SeriesStorePort):
    """Series store over a dict of observations."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._indicators: dict[str, IndicatorInfo] = {}
        self._points: dict[str, SeriesPoints] = {}

    def add_indicator(
        self,
        slug: str,
        points: SeriesPoints,
        *,
        active: bool = True,
        unit: str | None = None,
        frequency: str | None = None,
    ) -> None:
        """Register an indicator; observations are sorted and deduplicated by date."""
        self._indicators[slug] = IndicatorInfo(slug=slug, unit=unit, frequency=frequency, active=active)
        by_date = {pd.Timestamp(day).date(): float(value) for day, value in points}
        self._points[slug] = sorted(by_date.items())

    def get_indicator(self, slug: str) -> IndicatorInfo | None:
        return self._indicators.get(slug)

    def indicator_exists_and_active(self, slug: str) -> bool:
        info = self._indicators.get(slug)
        return info is not None and info.active

    def fetch_series(
        self,
        slug: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SeriesPoints:
        if slug not in self._points:
            raise ValueError(f"Series not found: {slug}")
        return [
            (day, value)
            for day, value in self._points[slug]
            if (start_date is None or day >= start_date) and (end_date is None or day <= end_date)
        ]


class InMemoryCalculationRepository(CalculationRepositoryPort):
    """Calculation repository over a dict; concurrent saves are last writer wins."""

    def __init__(self) -> None:
        """Initialize empty repository."""
        self._lock = threading.Lock()
        self._calculations: dict[int, Calculation] = {}
        self._next_id = 1

    def add(self, calculation: Calculation) -> Calculation:
        with self._lock:
            stored = dataclasses.replace(calculation, id=self._next_id)
            self._calculations[stored.id] = stored
            self._next_id += 1
            return stored

    def save(self, calculation: Calculation) -> None:
        if calculation.id is None:
            raise ValueError("Cannot save a calculation without an id")
        with self._lock:
            self._calculations[calculation.id] = calculation

    def get(self, calculation_id: int) -> Calculation | None:
        with self._lock:
            return self._calculations.get(calculation_id)

    def get_by_slug(self, slug: str) -> Calculation | None:
        with self._lock:
            return next((c for c in self._calculations.values() if c.slug == slug), None)

    def delete(self, calculation_id: int) -> bool:
        with self._lock:
            return self._calculations.pop(calculation_id, None) is not None

    def list(self) -> list[Calculation]:
        with self._lock:
            return sorted(self._calculations.values(), key=lambda c: c.name)
