"""Unit tests for formula parser."""

import pytest

from calc_engine.application.services.formula_parser import parse, to_formula
from calc_engine.domain.enums import ErrorKind
from calc_engine.domain.errors import FormulaParseError
from calc_engine.domain.nodes import Call, IndicatorRef, NumberLiteral, StringLiteral


def test_parse_call_with_indicator_and_number():
    """Test parsing a simple call."""
    tree = parse("ROC(cpi, 12)")

    assert tree == Call("ROC", (IndicatorRef("cpi"), NumberLiteral(12.0)))
    assert tree.args[0].position == 4
    assert tree.args[1].position == 9


def test_parse_bare_indicator_and_number():
    """Test parsing formulas without calls."""
    assert parse("cpi") == IndicatorRef("cpi")
    assert parse("  42.5 ") == NumberLiteral(42.5)
    assert parse("-3") == NumberLiteral(-3.0)


def test_parse_function_names_are_case_insensitive():
    """Test that function names are upper-cased."""
    assert parse("roc(cpi, 1)").name == "ROC"


def test_parse_slugs_with_hyphens_and_digits():
    """Test slugs that start with digits or contain hyphens."""
    assert parse("SUM(us-cpi)") == Call("SUM", (IndicatorRef("us-cpi"),))
    assert parse("SUM(2020-cpi)") == Call("SUM", (IndicatorRef("2020-cpi"),))


def test_parse_nested_calls():
    """Test nested calls keep argument order."""
    tree = parse("ROLLING_CORRELATION(ROC(cpi, 1), gdp, 12)")

    assert tree == Call(
        "ROLLING_CORRELATION",
        (Call("ROC", (IndicatorRef("cpi"), NumberLiteral(1.0))), IndicatorRef("gdp"), NumberLiteral(12.0)),
    )


def test_parse_quoted_string_argument():
    """Test quoted string literals."""
    tree = parse('BOOLEAN_SIGNAL("cpi > 101")')

    assert tree == Call("BOOLEAN_SIGNAL", (StringLiteral("cpi > 101"),))
    assert tree.args[0].position == 16


def test_parse_unquoted_mini_language_argument():
    """Test unquoted weights keep their commas."""
    tree = parse("WEIGHTED_INDEX(cpi:0.6, gdp:0.4)")

    assert tree == Call("WEIGHTED_INDEX", (StringLiteral("cpi:0.6, gdp:0.4"),))
    assert tree.args[0].position == 15


@pytest.mark.parametrize(
    "formula,position,reason",
    [
        ("", 0, "Empty formula"),
        ("   ", 0, "Empty formula"),
        ("ROC(cpi, 12", 3, "Unbalanced parentheses"),
        ("cpi)", 3, "Unbalanced parentheses"),
        ("ROC(cpi,)", 7, "Trailing comma"),
        ("ROC()", 4, "Empty argument list"),
        ("ROC(cpi 12)", 8, "Expected ',' or ')'"),
        ("ROC(cpi, $)", 9, "Unexpected character"),
        ("SUM('cpi)", 4, "Unterminated string literal"),
        ("12(cpi)", 0, "Invalid function name"),
        ("WEIGHTED_INDEX(cpi:1", 14, "Unbalanced parentheses"),
        ("SUM(cpi) gdp", 9, "Unexpected trailing input"),
        ("SUM(" + "9" * 400 + ")", 4, "Number out of range"),
        ("BOOLEAN_SIGNAL(a\"b'c > 1)", 16, "Quote character"),
        ("WEIGHTED_INDEX(cpi:1, 'gdp':1)", 22, "Quote character"),
    ],
)
def test_parse_errors_report_position(formula, position, reason):
    """Test malformed formulas raise ParseError with the offending offset."""
    with pytest.raises(FormulaParseError) as exc_info:
        parse(formula)

    error = exc_info.value
    assert error.kind is ErrorKind.PARSE_ERROR
    assert error.position == position
    assert error.reason.startswith(reason)
    assert error.message.endswith(f"at position {position}")


@pytest.mark.parametrize(
    "formula",
    [
        "cpi",
        "12",
        "-0.5",
        "roc( cpi ,12 )",
        "SHARPE_RATIO(ROC(cpi, 1), 0.02)",
        "WEIGHTED_INDEX(cpi:0.6, gdp:0.4)",
        "BOOLEAN_SIGNAL('cpi >= 101')",
        "ROLLING_CORRELATION(cpi, gdp, 3)",
        "1" + "0" * 300,
        "BOOLEAN_SIGNAL(\"a'b > 1\")",
        "BOOLEAN_SIGNAL('a\"b > 1')",
    ],
)
def test_canonical_form_reparses_to_same_tree(formula):
    """Test that rendering then re-parsing is the identity on trees."""
    tree = parse(formula)

    assert parse(to_formula(tree)) == tree


def test_to_formula_canonical_text():
    """Test canonical rendering of whitespace and numbers."""
    assert to_formula(parse("roc( cpi ,12 )")) == "ROC(cpi, 12)"
    assert to_formula(parse("SHARPE_RATIO(cpi, 0.50)")) == "SHARPE_RATIO(cpi, 0.5)"
    assert to_formula(parse("WEIGHTED_INDEX(cpi:1)")) == 'WEIGHTED_INDEX("cpi:1")'
