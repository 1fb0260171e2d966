"""Domain errors."""

from __future__ import annotations

from calc_engine.domain.enums import ErrorKind
from calc_engine.domain.types import ErrorDict


class DomainError(Exception):
    """Base domain error."""


class CalculationError(DomainError):
    """Error raised while parsing, resolving or evaluating a formula.

    Carries enough structure for a caller to render an actionable message:
    the error kind, a formula offset when one is known, and the function and
    argument index when the failure is tied to a call argument.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        position: int | None = None,
        argument_index: int | None = None,
        function: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.position = position
        self.argument_index = argument_index
        self.function = function

    def to_dict(self) -> ErrorDict:
        """Serialize to a plain dict, omitting unknown fields."""
        payload: ErrorDict = {"kind": self.kind.value, "message": self.message}
        if self.position is not None:
            payload["position"] = self.position
        if self.argument_index is not None:
            payload["argument_index"] = self.argument_index
        if self.function is not None:
            payload["function"] = self.function
        return payload


class FormulaParseError(CalculationError):
    """Malformed formula text."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, reason: str, position: int, **kwargs: object) -> None:
        super().__init__(f"{reason} at position {position}", position=position, **kwargs)
        self.reason = reason


class UnknownFunctionError(CalculationError):
    """Function name not present in the function library."""

    kind = ErrorKind.UNKNOWN_FUNCTION


class ArityError(CalculationError):
    """Wrong number of arguments for a function."""

    kind = ErrorKind.ARITY_ERROR


class ArgumentTypeError(CalculationError):
    """Wrong value kind for an argument, or for the calculation output."""

    kind = ErrorKind.TYPE_ERROR


class UnknownIndicatorError(CalculationError):
    """Referenced indicator does not exist or is inactive."""

    kind = ErrorKind.UNKNOWN_INDICATOR

    def __init__(self, slugs: list[str] | tuple[str, ...], **kwargs: object) -> None:
        self.slugs = tuple(slugs)
        super().__init__(f"Unknown or inactive indicator(s): {', '.join(self.slugs)}", **kwargs)


class InsufficientDataError(CalculationError):
    """Not enough points for the requested window or statistic."""

    kind = ErrorKind.INSUFFICIENT_DATA


class DivisionByZeroError(CalculationError):
    """Degenerate denominator without a documented convention."""

    kind = ErrorKind.DIVISION_BY_ZERO


class SourceUnavailableError(CalculationError):
    """Series store failed to deliver data."""

    kind = ErrorKind.SOURCE_UNAVAILABLE


class CalculationValidationError(DomainError):
    """Calculation definition failed validation."""


class CalculationNotFoundError(DomainError):
    """Calculation not found in catalog."""
