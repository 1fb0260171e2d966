"""Function library.

A fixed registry from function name to a typed handler record: expected
argument kinds, result kind and a pure evaluation function. The catalog is
closed; formulas cannot define functions.
"""

import operator
from collections.abc import Callable
from dataclasses import dataclass
from typing import cast

import pandas as pd

from calc_engine.application.services import statistics, window_ops
from calc_engine.application.services.aligner import align, joint_rows
from calc_engine.application.services.mini_languages import parse_condition, parse_weights
from calc_engine.domain.entities import EvaluationContext
from calc_engine.domain.enums import ArgKind, Comparison, ValueKind
from calc_engine.domain.errors import ArgumentTypeError, DivisionByZeroError, InsufficientDataError
from calc_engine.domain.nodes import Call
from calc_engine.domain.values import RuntimeValue, ScalarValue, SeriesValue, make_series

# Evaluated value, or raw text for STRING slots
Argument = RuntimeValue | str


@dataclass(frozen=True)
class CallEnvironment:
    """What a handler may see besides its arguments."""

    call: Call
    context: EvaluationContext
    resolve_series: Callable[[str, int], pd.Series]


Handler = Callable[[list[Argument], CallEnvironment], RuntimeValue]


@dataclass(frozen=True)
class FunctionSpec:
    """Typed handler record."""

    name: str
    arg_kinds: tuple[ArgKind, ...]
    returns: ValueKind
    handler: Handler
    signature: str

    @property
    def arity(self) -> int:
        return len(self.arg_kinds)


_FUNCTIONS: dict[str, FunctionSpec] = {}


def _register_function(
    name: str,
    arg_kinds: tuple[ArgKind, ...],
    returns: ValueKind,
    handler: Handler,
    signature: str,
) -> None:
    """Register a library function."""
    _FUNCTIONS[name] = FunctionSpec(name, arg_kinds, returns, handler, signature)


def get_function(name: str) -> FunctionSpec | None:
    """Look up a function by (case-insensitive) name."""
    return _FUNCTIONS.get(name.upper())


def list_functions() -> list[FunctionSpec]:
    """All registered functions, ordered by name."""
    return sorted(_FUNCTIONS.values(), key=lambda spec: spec.name)


def _series(arg: Argument) -> pd.Series:
    return cast(SeriesValue, arg).data


def _scalar(arg: Argument) -> float:
    return cast(ScalarValue, arg).value


def _whole_number(arg: Argument, index: int, env: CallEnvironment, minimum: int = 1) -> int:
    """Validate a period/window argument."""
    value = _scalar(arg)
    if not float(value).is_integer() or value < minimum:
        raise ArgumentTypeError(
            f"{env.call.name} argument {index} must be a whole number >= {minimum}, got {value:g}",
            argument_index=index,
            function=env.call.name,
            position=env.call.args[index].position,
        )
    return int(value)


# ============================================================================
# Reductions
# ============================================================================

_REDUCTIONS: dict[str, Callable[[pd.Series], float]] = {
    "SUM": lambda s: s.sum(),
    "AVG": lambda s: s.mean(),
    "MIN": lambda s: s.min(),
    "MAX": lambda s: s.max(),
    "COUNT": lambda s: len(s),
}


def _reduce(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    series = _series(args[0])
    if series.empty:
        raise InsufficientDataError(f"{env.call.name} of an empty series")
    return ScalarValue(float(_REDUCTIONS[env.call.name](series)))


for _name in _REDUCTIONS:
    _register_function(_name, (ArgKind.SERIES,), ValueKind.SCALAR, _reduce, f"{_name}(indicator)")


# ============================================================================
# Technical
# ============================================================================


def _roc(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    periods = _whole_number(args[1], 1, env)
    return make_series(window_ops.rate_of_change(_series(args[0]), periods))


def _momentum(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    periods = _whole_number(args[1], 1, env)
    return make_series(window_ops.momentum(_series(args[0]), periods))


def _stochastic_oscillator(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    window = _whole_number(args[1], 1, env)
    return make_series(window_ops.stochastic_oscillator(_series(args[0]), window))


_register_function("ROC", (ArgKind.SERIES, ArgKind.SCALAR), ValueKind.SERIES, _roc, "ROC(indicator, periods)")
_register_function(
    "MOMENTUM", (ArgKind.SERIES, ArgKind.SCALAR), ValueKind.SERIES, _momentum, "MOMENTUM(indicator, periods)"
)
_register_function(
    "STOCHASTIC_OSCILLATOR",
    (ArgKind.SERIES, ArgKind.SCALAR),
    ValueKind.SERIES,
    _stochastic_oscillator,
    "STOCHASTIC_OSCILLATOR(indicator, periods)",
)


# ============================================================================
# Advanced
# ============================================================================


def _rolling_correlation(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    window = _whole_number(args[2], 2, env, minimum=2)
    joint = joint_rows(align({"left": _series(args[0]), "right": _series(args[1])}))
    return make_series(window_ops.rolling_correlation(joint["left"], joint["right"], window))


def _linear_regression_slope(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return ScalarValue(statistics.regression_slope(_series(args[0])))


def _r_squared(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return ScalarValue(statistics.r_squared(_series(args[0])))


_register_function(
    "ROLLING_CORRELATION",
    (ArgKind.SERIES, ArgKind.SERIES, ArgKind.SCALAR),
    ValueKind.SERIES,
    _rolling_correlation,
    "ROLLING_CORRELATION(indicator1, indicator2, window)",
)
_register_function(
    "LINEAR_REGRESSION_SLOPE",
    (ArgKind.SERIES,),
    ValueKind.SCALAR,
    _linear_regression_slope,
    "LINEAR_REGRESSION_SLOPE(indicator)",
)
_register_function("R_SQUARED", (ArgKind.SERIES,), ValueKind.SCALAR, _r_squared, "R_SQUARED(indicator)")


# ============================================================================
# Financial
# ============================================================================


def _sharpe_ratio(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return ScalarValue(statistics.sharpe_ratio(_series(args[0]), _scalar(args[1])))


def _sortino_ratio(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return ScalarValue(statistics.sortino_ratio(_series(args[0]), _scalar(args[1])))


def _max_drawdown(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return ScalarValue(statistics.max_drawdown(_series(args[0])))


_register_function(
    "SHARPE_RATIO",
    (ArgKind.SERIES, ArgKind.SCALAR),
    ValueKind.SCALAR,
    _sharpe_ratio,
    "SHARPE_RATIO(indicator, risk_free_rate)",
)
_register_function(
    "SORTINO_RATIO",
    (ArgKind.SERIES, ArgKind.SCALAR),
    ValueKind.SCALAR,
    _sortino_ratio,
    "SORTINO_RATIO(indicator, risk_free_rate)",
)
_register_function("MAX_DRAWDOWN", (ArgKind.SERIES,), ValueKind.SCALAR, _max_drawdown, "MAX_DRAWDOWN(indicator)")


# ============================================================================
# Composite
# ============================================================================


def _weighted_index(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    position = env.call.args[0].position
    terms = parse_weights(str(args[0]), position)

    total = sum(term.weight for term in terms)
    if total == 0:
        raise DivisionByZeroError("Weights sum to zero", position=position)

    joint = joint_rows(align({term.slug: env.resolve_series(term.slug, position) for term in terms}))
    if joint.empty:
        raise InsufficientDataError("No date is present in every weighted series", position=position)

    weights = pd.Series({term.slug: term.weight for term in terms})
    return make_series(joint.mul(weights, axis=1).sum(axis=1) / total)


_COMPARISONS: dict[Comparison, Callable[[pd.Series, float], pd.Series]] = {
    Comparison.GT: operator.gt,
    Comparison.LT: operator.lt,
    Comparison.GE: operator.ge,
    Comparison.LE: operator.le,
    Comparison.EQ: operator.eq,
}


def _boolean_signal(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    position = env.call.args[0].position
    condition = parse_condition(str(args[0]), position)
    series = env.resolve_series(condition.slug, position)
    compare = _COMPARISONS[condition.comparison]
    return make_series(compare(series, condition.threshold).astype("float64"))


_register_function(
    "WEIGHTED_INDEX", (ArgKind.STRING,), ValueKind.SERIES, _weighted_index, "WEIGHTED_INDEX(weights_string)"
)
_register_function(
    "BOOLEAN_SIGNAL", (ArgKind.STRING,), ValueKind.SERIES, _boolean_signal, "BOOLEAN_SIGNAL(condition_string)"
)


# ============================================================================
# Seasonal
# ============================================================================


def _seasonal_adjustment(args: list[Argument], env: CallEnvironment) -> RuntimeValue:
    return make_series(statistics.seasonal_adjustment(_series(args[0])))


_register_function(
    "SEASONAL_ADJUSTMENT",
    (ArgKind.SERIES,),
    ValueKind.SERIES,
    _seasonal_adjustment,
    "SEASONAL_ADJUSTMENT(indicator)",
)
