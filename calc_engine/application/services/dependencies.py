"""Dependency extraction from formula syntax trees."""

from calc_engine.application.services.mini_languages import parse_condition, parse_weights
from calc_engine.domain.errors import FormulaParseError
from calc_engine.domain.nodes import Call, IndicatorRef, Node, StringLiteral


def collect_indicator_slugs(node: Node) -> frozenset[str]:
    """Collect every indicator slug a formula references."""
    slugs: set[str] = set()
    _collect(node, slugs)
    return frozenset(slugs)


def _collect(node: Node, slugs: set[str]) -> None:
    """Recursively extract slugs from references and mini-language strings."""
    if isinstance(node, IndicatorRef):
        slugs.add(node.slug)
        return

    if not isinstance(node, Call):
        return

    for arg in node.args:
        if isinstance(arg, StringLiteral):
            slugs.update(_embedded_slugs(node.name, arg))
        else:
            _collect(arg, slugs)


def _embedded_slugs(function: str, literal: StringLiteral) -> list[str]:
    # Malformed strings contribute nothing; evaluation reports the error.
    try:
        if function == "WEIGHTED_INDEX":
            return [term.slug for term in parse_weights(literal.text, literal.position)]
        if function == "BOOLEAN_SIGNAL":
            return [parse_condition(literal.text, literal.position).slug]
    except FormulaParseError:
        return []
    return []
