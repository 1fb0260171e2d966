"""Expression evaluator."""

from collections.abc import Callable, Mapping

import pandas as pd

from calc_engine.application.services.function_library import (
    Argument,
    CallEnvironment,
    FunctionSpec,
    get_function,
)
from calc_engine.domain.entities import EvaluationContext
from calc_engine.domain.enums import ArgKind, ValueKind
from calc_engine.domain.errors import (
    ArgumentTypeError,
    ArityError,
    CalculationError,
    UnknownFunctionError,
    UnknownIndicatorError,
)
from calc_engine.domain.nodes import Call, IndicatorRef, Node, NumberLiteral, StringLiteral
from calc_engine.domain.types import SeriesPoints
from calc_engine.domain.values import RuntimeValue, ScalarValue, SeriesValue, series_from_points


class _Scope:
    """Read-only inputs of one evaluation."""

    def __init__(self, series_by_slug: Mapping[str, pd.Series], context: EvaluationContext) -> None:
        self.series_by_slug = series_by_slug
        self.context = context

    def resolve_series(self, slug: str, position: int) -> pd.Series:
        series = self.series_by_slug.get(slug)
        if series is None:
            raise UnknownIndicatorError([slug], position=position)
        return series


# Strategy pattern: map node types to evaluators
_NODE_EVALUATORS: dict[type, Callable[[Node, _Scope], RuntimeValue]] = {}


def _register_evaluator(node_type: type, evaluator: Callable[[Node, _Scope], RuntimeValue]) -> None:
    """Register a node evaluator."""
    _NODE_EVALUATORS[node_type] = evaluator


def evaluate(
    node: Node,
    fetched: Mapping[str, SeriesPoints],
    context: EvaluationContext | None = None,
) -> RuntimeValue:
    """Evaluate a formula tree against fetched indicator observations."""
    context = context or EvaluationContext()
    series_by_slug = {slug: series_from_points(points, context.timezone) for slug, points in fetched.items()}
    return _evaluate_node(node, _Scope(series_by_slug, context))


def _evaluate_node(node: Node, scope: _Scope) -> RuntimeValue:
    evaluator = _NODE_EVALUATORS.get(type(node))
    if not evaluator:
        raise TypeError(f"Not a formula node: {node!r}")
    return evaluator(node, scope)


def _evaluate_number(node: NumberLiteral, scope: _Scope) -> RuntimeValue:
    return ScalarValue(node.value)


def _evaluate_indicator(node: IndicatorRef, scope: _Scope) -> RuntimeValue:
    return SeriesValue(scope.resolve_series(node.slug, node.position))


def _evaluate_string(node: StringLiteral, scope: _Scope) -> RuntimeValue:
    raise ArgumentTypeError(
        "A string literal is only valid as the argument of WEIGHTED_INDEX or BOOLEAN_SIGNAL",
        position=node.position,
    )


def _evaluate_call(node: Call, scope: _Scope) -> RuntimeValue:
    spec = get_function(node.name)
    if not spec:
        raise UnknownFunctionError(f"Unknown function: {node.name}", position=node.position, function=node.name)

    if len(node.args) != spec.arity:
        raise ArityError(
            f"{spec.name} expects {spec.arity} argument(s), got {len(node.args)}; usage: {spec.signature}",
            position=node.position,
            function=spec.name,
        )

    args = [_evaluate_argument(spec, node, index, scope) for index in range(spec.arity)]
    environment = CallEnvironment(call=node, context=scope.context, resolve_series=scope.resolve_series)

    try:
        return spec.handler(args, environment)
    except CalculationError as e:
        if e.function is None:
            e.function = spec.name
        if e.position is None:
            e.position = node.position
        raise


def _evaluate_argument(spec: FunctionSpec, call: Call, index: int, scope: _Scope) -> Argument:
    """Evaluate one call argument and check it against the declared kind."""
    expected = spec.arg_kinds[index]
    arg = call.args[index]

    if expected is ArgKind.STRING:
        if not isinstance(arg, StringLiteral):
            raise _argument_type_error(spec, call, index, "a string literal")
        return arg.text

    if isinstance(arg, StringLiteral):
        raise _argument_type_error(spec, call, index, f"a {expected.value}, not a string literal")

    value = _evaluate_node(arg, scope)
    if value.kind != ValueKind(expected.value):
        raise _argument_type_error(spec, call, index, f"a {expected.value}, got a {value.kind.value}")
    return value


def _argument_type_error(spec: FunctionSpec, call: Call, index: int, detail: str) -> ArgumentTypeError:
    return ArgumentTypeError(
        f"{spec.name} argument {index} must be {detail}; usage: {spec.signature}",
        position=call.args[index].position,
        argument_index=index,
        function=spec.name,
    )


_register_evaluator(NumberLiteral, _evaluate_number)
_register_evaluator(IndicatorRef, _evaluate_indicator)
_register_evaluator(StringLiteral, _evaluate_string)
_register_evaluator(Call, _evaluate_call)
