"""Result DTOs."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from calc_engine.domain.enums import OutputType
from calc_engine.domain.errors import CalculationError
from calc_engine.domain.types import JsonValue
from calc_engine.domain.values import RuntimeValue, ScalarValue


class SeriesPoint(BaseModel):
    """One rendered observation."""

    date: str
    value: float


class CalculationOutput(BaseModel):
    """Successful calculation output returned to the admin/API layer."""

    model_config = ConfigDict(frozen=True)

    output_type: OutputType
    value: float | list[SeriesPoint]
    as_of: str | None = None  # date of the reading a single value was taken from

    @classmethod
    def from_value(
        cls,
        output_type: OutputType,
        value: RuntimeValue,
        date_format: str,
        as_of: date | None = None,
    ) -> CalculationOutput:
        """Render a runtime value with dates in ``date_format``."""
        if isinstance(value, ScalarValue):
            return cls(
                output_type=output_type,
                value=value.value,
                as_of=as_of.strftime(date_format) if as_of else None,
            )
        points = [SeriesPoint(date=day.strftime(date_format), value=v) for day, v in value.points()]
        return cls(output_type=output_type, value=points)

    def to_json(self) -> dict[str, JsonValue]:
        return self.model_dump(mode="json", exclude_none=True)


class CalculationErrorPayload(BaseModel):
    """Structured error returned instead of an output."""

    kind: str
    message: str
    position: int | None = Field(None, ge=0)
    argument_index: int | None = Field(None, ge=0)
    function: str | None = None

    @classmethod
    def from_error(cls, error: CalculationError) -> CalculationErrorPayload:
        return cls(**error.to_dict())

    def to_json(self) -> dict[str, JsonValue]:
        return {"error": self.model_dump(mode="json", exclude_none=True)}
