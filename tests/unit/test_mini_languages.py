"""Unit tests for weight and condition strings."""

import pytest

from calc_engine.application.services.mini_languages import (
    Condition,
    WeightedTerm,
    parse_condition,
    parse_weights,
)
from calc_engine.domain.enums import Comparison
from calc_engine.domain.errors import FormulaParseError


def test_parse_weights():
    """Test parsing weight pairs."""
    terms = parse_weights("cpi:0.6, gdp:0.4")

    assert terms == [WeightedTerm("cpi", 0.6), WeightedTerm("gdp", 0.4)]


def test_parse_weights_negative_weight():
    """Test negative weights are allowed."""
    assert parse_weights("cpi:-1") == [WeightedTerm("cpi", -1.0)]


@pytest.mark.parametrize("text", ["cpi", "cpi=0.6", "cpi:0.6,", ":1", "cpi:abc"])
def test_parse_weights_malformed(text):
    """Test malformed weight strings."""
    with pytest.raises(FormulaParseError, match="Malformed weight pair"):
        parse_weights(text, position=15)


def test_parse_weights_error_position_points_at_pair():
    """Test that errors point into the formula text."""
    with pytest.raises(FormulaParseError) as exc_info:
        parse_weights("cpi:1,cpi:2", position=10)

    assert "Duplicate indicator" in exc_info.value.message
    assert exc_info.value.position == 16


@pytest.mark.parametrize(
    "text,expected",
    [
        ("cpi > 101", Condition("cpi", Comparison.GT, 101.0)),
        ("cpi<101", Condition("cpi", Comparison.LT, 101.0)),
        ("cpi >= 1.5", Condition("cpi", Comparison.GE, 1.5)),
        ("cpi <= -2", Condition("cpi", Comparison.LE, -2.0)),
        ("us-cpi == 0", Condition("us-cpi", Comparison.EQ, 0.0)),
    ],
)
def test_parse_condition(text, expected):
    """Test parsing comparison conditions."""
    assert parse_condition(text) == expected


@pytest.mark.parametrize("text", ["cpi", "cpi != 1", "cpi > ", "> 1", "cpi > 1 and gdp < 2"])
def test_parse_condition_malformed(text):
    """Test malformed conditions."""
    with pytest.raises(FormulaParseError, match="Malformed condition") as exc_info:
        parse_condition(text, position=15)

    assert exc_info.value.position == 15
