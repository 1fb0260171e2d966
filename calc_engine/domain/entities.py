"""Domain entities."""

from dataclasses import dataclass, field
from datetime import date

from calc_engine.domain.enums import OutputType
from calc_engine.domain.types import JsonValue, Timestamp


@dataclass(frozen=True)
class IndicatorInfo:
    """Read-only view of an indicator held by the series store."""

    slug: str
    unit: str | None = None
    frequency: str | None = None
    active: bool = True


@dataclass(frozen=True)
class Calculation:
    """User-defined formula with a declared output type.

    ``dependencies``, ``last_calculated`` and ``cached_result`` are derived
    state, replaced only by a successful run.
    """

    id: int | None
    name: str
    slug: str
    formula: str
    output_type: OutputType = OutputType.SERIES
    description: str = ""
    dependencies: frozenset[str] = field(default_factory=frozenset)
    last_calculated: Timestamp | None = None
    cached_result: JsonValue = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_type", OutputType(self.output_type))
        object.__setattr__(self, "dependencies", frozenset(self.dependencies))


@dataclass(frozen=True)
class EvaluationContext:
    """Explicit evaluation options.

    Passed into evaluation instead of being read from process state so that
    results only depend on their inputs.
    """

    date_format: str = "%Y-%m-%d"
    timezone: str = "UTC"
    start_date: date | None = None
    end_date: date | None = None
