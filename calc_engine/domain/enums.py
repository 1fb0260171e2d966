"""Domain enums for value kinds, output types and error kinds."""

from enum import Enum


class OutputType(str, Enum):
    """Declared output type of a calculation."""

    SINGLE = "single"
    SERIES = "series"


class ValueKind(str, Enum):
    """Runtime value kind."""

    SCALAR = "scalar"
    SERIES = "series"


class ArgKind(str, Enum):
    """Argument kind a library function expects at a position."""

    SERIES = "series"
    SCALAR = "scalar"
    STRING = "string"  # raw string literal, not evaluated


class ErrorKind(str, Enum):
    """Error taxonomy surfaced to callers."""

    PARSE_ERROR = "ParseError"
    UNKNOWN_FUNCTION = "UnknownFunction"
    ARITY_ERROR = "ArityError"
    TYPE_ERROR = "TypeError"
    UNKNOWN_INDICATOR = "UnknownIndicator"
    INSUFFICIENT_DATA = "InsufficientData"
    DIVISION_BY_ZERO = "DivisionByZero"
    SOURCE_UNAVAILABLE = "SourceUnavailable"
    INTERNAL = "InternalError"


class RunState(str, Enum):
    """Calculation runner states."""

    PARSED = "parsed"
    DEPENDENCIES_RESOLVED = "dependencies_resolved"
    DATA_FETCHED = "data_fetched"
    EVALUATED = "evaluated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Comparison(str, Enum):
    """Comparison operators accepted by BOOLEAN_SIGNAL."""

    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    EQ = "=="
