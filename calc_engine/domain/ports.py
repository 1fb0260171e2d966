"""Ports (interfaces) for infrastructure adapters."""

from abc import ABC, abstractmethod
from datetime import date

from calc_engine.domain.entities import Calculation
from calc_engine.domain.types import SeriesPoints, Timestamp


class SeriesStorePort(ABC):
    """Port for reading indicator observations."""

    @abstractmethod
    def indicator_exists_and_active(self, slug: str) -> bool:
        """Return True when the indicator exists and is active."""

    @abstractmethod
    def fetch_series(
        self,
        slug: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SeriesPoints:
        """Fetch date-ordered, date-deduplicated observations."""


class CalculationRepositoryPort(ABC):
    """Port for persisting calculation definitions and results."""

    @abstractmethod
    def add(self, calculation: Calculation) -> Calculation:
        """Insert a calculation and return it with its assigned id."""

    @abstractmethod
    def save(self, calculation: Calculation) -> None:
        """Replace the stored calculation with the same id."""

    @abstractmethod
    def get(self, calculation_id: int) -> Calculation | None:
        """Get calculation by id."""

    @abstractmethod
    def get_by_slug(self, slug: str) -> Calculation | None:
        """Get calculation by slug."""

    @abstractmethod
    def delete(self, calculation_id: int) -> bool:
        """Delete calculation, returning whether it existed."""

    @abstractmethod
    def list(self) -> list[Calculation]:
        """List all calculations ordered by name."""


class ClockPort(ABC):
    """Port for time operations."""

    @abstractmethod
    def now(self) -> Timestamp:
        """Get current timestamp."""
