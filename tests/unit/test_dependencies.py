"""Unit tests for dependency extraction."""

import pytest

from calc_engine.application.services.dependencies import collect_indicator_slugs
from calc_engine.application.services.formula_parser import parse


@pytest.mark.parametrize(
    "formula,expected",
    [
        ("42", set()),
        ("cpi", {"cpi"}),
        ("SUM(ROC(cpi, 1))", {"cpi"}),
        ("ROLLING_CORRELATION(cpi, gdp, 12)", {"cpi", "gdp"}),
        ("ROLLING_CORRELATION(cpi, cpi, 3)", {"cpi"}),
        ("WEIGHTED_INDEX(cpi:0.5, gdp:0.5)", {"cpi", "gdp"}),
        ('BOOLEAN_SIGNAL("cpi > 101")', {"cpi"}),
        ("SUM(WEIGHTED_INDEX(cpi:1, gdp:1))", {"cpi", "gdp"}),
    ],
)
def test_collect_indicator_slugs(formula, expected):
    """Test slugs are collected from references and embedded strings."""
    assert collect_indicator_slugs(parse(formula)) == frozenset(expected)


def test_malformed_embedded_string_contributes_nothing():
    """Test malformed weights do not fail extraction."""
    assert collect_indicator_slugs(parse("WEIGHTED_INDEX(cpi)")) == frozenset()


def test_unknown_function_arguments_are_still_collected():
    """Test extraction does not depend on the function library."""
    assert collect_indicator_slugs(parse("NOPE(cpi, gdp)")) == frozenset({"cpi", "gdp"})
