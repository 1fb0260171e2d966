"""Calculation catalog: create, update, delete and formula checks."""

import dataclasses
import re
from dataclasses import dataclass, field

import structlog

from calc_engine.application.services.dependencies import collect_indicator_slugs
from calc_engine.application.services.formula_parser import parse
from calc_engine.application.services.function_library import FunctionSpec, get_function
from calc_engine.domain.entities import Calculation
from calc_engine.domain.enums import ArgKind, OutputType, ValueKind
from calc_engine.domain.errors import (
    ArgumentTypeError,
    ArityError,
    CalculationError,
    CalculationNotFoundError,
    CalculationValidationError,
    UnknownFunctionError,
    UnknownIndicatorError,
)
from calc_engine.domain.nodes import Call, IndicatorRef, Node, NumberLiteral, StringLiteral
from calc_engine.domain.ports import CalculationRepositoryPort, SeriesStorePort

logger = structlog.get_logger()

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9_\-]")


def derive_slug(name: str) -> str:
    """Lower-case ``name``, turn whitespace runs into ``_`` and drop other symbols."""
    slug = _WHITESPACE_RE.sub("_", name.strip().lower())
    return _NON_SLUG_RE.sub("", slug)


def create_calculation(
    repository: CalculationRepositoryPort,
    name: str,
    formula: str,
    output_type: OutputType | str = OutputType.SERIES,
    description: str = "",
) -> Calculation:
    """Validate and store a new calculation."""
    name, formula, kind = _validate_fields(name, formula, output_type)
    slug = _unique_slug(repository, name, calculation_id=None)

    calculation = repository.add(
        Calculation(
            id=None,
            name=name,
            slug=slug,
            formula=formula,
            output_type=kind,
            description=description.strip(),
            dependencies=collect_indicator_slugs(parse(formula)),
        )
    )
    logger.info("calculation_added", calculation_id=calculation.id, calculation_slug=slug)
    return calculation


def update_calculation(
    repository: CalculationRepositoryPort,
    calculation_id: int,
    *,
    name: str | None = None,
    formula: str | None = None,
    output_type: OutputType | str | None = None,
    description: str | None = None,
) -> Calculation:
    """Update a calculation definition; its last result is kept."""
    current = get_calculation(repository, calculation_id)
    name, formula, kind = _validate_fields(
        current.name if name is None else name,
        current.formula if formula is None else formula,
        current.output_type if output_type is None else output_type,
    )

    updated = dataclasses.replace(
        current,
        name=name,
        slug=_unique_slug(repository, name, calculation_id=calculation_id),
        formula=formula,
        output_type=kind,
        description=current.description if description is None else description.strip(),
        dependencies=collect_indicator_slugs(parse(formula)),
    )
    repository.save(updated)
    logger.info("calculation_updated", calculation_id=calculation_id, calculation_slug=updated.slug)
    return updated


def delete_calculation(repository: CalculationRepositoryPort, calculation_id: int) -> None:
    """Delete a calculation."""
    if not repository.delete(calculation_id):
        raise CalculationNotFoundError(f"Calculation not found: {calculation_id}")
    logger.info("calculation_deleted", calculation_id=calculation_id)


def get_calculation(repository: CalculationRepositoryPort, calculation_id: int) -> Calculation:
    """Get a calculation or raise CalculationNotFoundError."""
    calculation = repository.get(calculation_id)
    if calculation is None:
        raise CalculationNotFoundError(f"Calculation not found: {calculation_id}")
    return calculation


def list_calculations(repository: CalculationRepositoryPort) -> list[Calculation]:
    """All calculations ordered by name."""
    return repository.list()


@dataclass(frozen=True)
class FormulaCheck:
    """Result of checking a formula without running it."""

    valid: bool
    dependencies: frozenset[str] = field(default_factory=frozenset)
    unknown_indicators: tuple[str, ...] = ()
    error: CalculationError | None = None


def check_formula(formula: str, store: SeriesStorePort | None = None) -> FormulaCheck:
    """Check syntax, function names, arity, argument kinds and (with a store) indicator availability.

    Argument kinds are known without evaluating: indicators are series, numbers
    are scalars and each function declares what it returns.
    """
    try:
        tree = parse(formula)
        _check_calls(tree)
    except CalculationError as e:
        return FormulaCheck(valid=False, error=e)

    dependencies = collect_indicator_slugs(tree)
    if store is not None:
        unknown = tuple(slug for slug in sorted(dependencies) if not store.indicator_exists_and_active(slug))
        if unknown:
            return FormulaCheck(
                valid=False,
                dependencies=dependencies,
                unknown_indicators=unknown,
                error=UnknownIndicatorError(unknown),
            )
    return FormulaCheck(valid=True, dependencies=dependencies)


def _check_calls(node: Node) -> ValueKind:
    """Check names, arity and argument kinds; returns the kind the node evaluates to."""
    if isinstance(node, NumberLiteral):
        return ValueKind.SCALAR
    if isinstance(node, IndicatorRef):
        return ValueKind.SERIES
    if isinstance(node, StringLiteral):
        raise ArgumentTypeError(
            "A string literal is only valid as the argument of WEIGHTED_INDEX or BOOLEAN_SIGNAL",
            position=node.position,
        )

    spec = get_function(node.name)
    if not spec:
        raise UnknownFunctionError(f"Unknown function: {node.name}", position=node.position, function=node.name)
    if len(node.args) != spec.arity:
        raise ArityError(
            f"{spec.name} expects {spec.arity} argument(s), got {len(node.args)}; usage: {spec.signature}",
            position=node.position,
            function=spec.name,
        )

    for index, (arg, expected) in enumerate(zip(node.args, spec.arg_kinds)):
        if expected is ArgKind.STRING:
            if not isinstance(arg, StringLiteral):
                raise _argument_type_error(spec, node, index, "a string literal")
            continue
        if isinstance(arg, StringLiteral):
            raise _argument_type_error(spec, node, index, f"a {expected.value}, not a string literal")
        kind = _check_calls(arg)
        if kind is not ValueKind(expected.value):
            raise _argument_type_error(spec, node, index, f"a {expected.value}, got a {kind.value}")
    return spec.returns


def _argument_type_error(spec: FunctionSpec, call: Call, index: int, detail: str) -> ArgumentTypeError:
    return ArgumentTypeError(
        f"{spec.name} argument {index} must be {detail}; usage: {spec.signature}",
        position=call.args[index].position,
        argument_index=index,
        function=spec.name,
    )


def _validate_fields(name: str, formula: str, output_type: OutputType | str) -> tuple[str, str, OutputType]:
    name = (name or "").strip()
    formula = (formula or "").strip()
    if not name:
        raise CalculationValidationError("Calculation name is required")
    if not formula:
        raise CalculationValidationError("Calculation formula is required")
    try:
        kind = OutputType(output_type)
    except ValueError as e:
        raise CalculationValidationError(f"Unknown output type: {output_type}") from e
    # Raises FormulaParseError with the offending position
    parse(formula)
    return name, formula, kind


def _unique_slug(repository: CalculationRepositoryPort, name: str, calculation_id: int | None) -> str:
    slug = derive_slug(name)
    if not slug:
        raise CalculationValidationError(f"Calculation name {name!r} yields an empty slug")
    existing = repository.get_by_slug(slug)
    if existing is not None and existing.id != calculation_id:
        raise CalculationValidationError(f"A calculation with slug {slug!r} already exists")
    return slug
