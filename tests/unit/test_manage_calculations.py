"""Unit tests for calculation catalog use cases."""

import dataclasses
from datetime import date

import pytest

from calc_engine.application.use_cases.manage_calculations import (
    check_formula,
    create_calculation,
    delete_calculation,
    derive_slug,
    get_calculation,
    list_calculations,
    update_calculation,
)
from calc_engine.domain.enums import ErrorKind, OutputType
from calc_engine.domain.errors import (
    CalculationNotFoundError,
    CalculationValidationError,
    FormulaParseError,
)
from calc_engine.infrastructure.store.memory import InMemoryCalculationRepository, InMemorySeriesStore


@pytest.fixture
def repository():
    """Create in-memory calculation repository."""
    return InMemoryCalculationRepository()


@pytest.fixture
def store():
    """Create in-memory series store."""
    store = InMemorySeriesStore()
    store.add_indicator("cpi", [(date(2020, 1, 1), 100.0)])
    store.add_indicator("gdp", [(date(2020, 1, 1), 10.0)])
    return store


@pytest.mark.parametrize(
    "name,slug",
    [
        ("Inflation YoY", "inflation_yoy"),
        ("  CPI   momentum ", "cpi_momentum"),
        ("Real-rate (10y)", "real-rate_10y"),
        ("Índice %", "ndice_"),
    ],
)
def test_derive_slug(name, slug):
    """Test slug derivation from names."""
    assert derive_slug(name) == slug


def test_create_calculation(repository):
    """Test creating a calculation."""
    calculation = create_calculation(repository, " Inflation YoY ", " ROC(cpi, 12) ", "single", " yearly ")

    assert calculation.id == 1
    assert calculation.name == "Inflation YoY"
    assert calculation.slug == "inflation_yoy"
    assert calculation.formula == "ROC(cpi, 12)"
    assert calculation.output_type is OutputType.SINGLE
    assert calculation.description == "yearly"
    assert calculation.dependencies == frozenset({"cpi"})
    assert calculation.cached_result is None
    assert repository.get(1) == calculation


@pytest.mark.parametrize(
    "name,formula,output_type,message",
    [
        ("", "cpi", "series", "name is required"),
        ("x", "  ", "series", "formula is required"),
        ("x", "cpi", "table", "Unknown output type"),
        ("%%", "cpi", "series", "empty slug"),
    ],
)
def test_create_calculation_validation(repository, name, formula, output_type, message):
    """Test invalid definitions are rejected."""
    with pytest.raises(CalculationValidationError, match=message):
        create_calculation(repository, name, formula, output_type)


def test_create_calculation_rejects_malformed_formula(repository):
    """Test formulas are parsed on save."""
    with pytest.raises(FormulaParseError):
        create_calculation(repository, "broken", "ROC(cpi,")

    assert list_calculations(repository) == []


def test_create_calculation_duplicate_slug(repository):
    """Test slugs are unique."""
    create_calculation(repository, "Inflation YoY", "cpi")

    with pytest.raises(CalculationValidationError, match="already exists"):
        create_calculation(repository, "inflation  yoy", "gdp")


def test_update_calculation(repository):
    """Test updating keeps unspecified fields and the last result."""
    calculation = create_calculation(repository, "Growth", "cpi")
    repository.save(dataclasses.replace(calculation, cached_result={"value": 1.0}))

    updated = update_calculation(repository, calculation.id, formula="ROC(gdp, 1)")

    assert updated.name == "Growth"
    assert updated.formula == "ROC(gdp, 1)"
    assert updated.dependencies == frozenset({"gdp"})
    assert updated.cached_result == {"value": 1.0}
    assert repository.get(calculation.id) == updated


def test_update_calculation_rename_to_own_slug(repository):
    """Test renaming to a name with the same slug."""
    calculation = create_calculation(repository, "Growth", "cpi")

    updated = update_calculation(repository, calculation.id, name="GROWTH")

    assert updated.slug == "growth"


def test_update_calculation_slug_clash(repository):
    """Test renaming onto another calculation's slug."""
    create_calculation(repository, "Growth", "cpi")
    other = create_calculation(repository, "Other", "cpi")

    with pytest.raises(CalculationValidationError):
        update_calculation(repository, other.id, name="growth")


def test_delete_and_get(repository):
    """Test deleting and looking up calculations."""
    calculation = create_calculation(repository, "Growth", "cpi")

    assert get_calculation(repository, calculation.id) == calculation
    delete_calculation(repository, calculation.id)

    with pytest.raises(CalculationNotFoundError):
        get_calculation(repository, calculation.id)
    with pytest.raises(CalculationNotFoundError):
        delete_calculation(repository, calculation.id)


def test_list_calculations_by_name(repository):
    """Test listing order."""
    create_calculation(repository, "b", "cpi")
    create_calculation(repository, "a", "cpi")

    assert [c.name for c in list_calculations(repository)] == ["a", "b"]


def test_check_formula_valid(store):
    """Test a valid formula reports its dependencies."""
    check = check_formula("ROLLING_CORRELATION(cpi, gdp, 12)", store)

    assert check.valid
    assert check.dependencies == frozenset({"cpi", "gdp"})
    assert check.error is None


@pytest.mark.parametrize(
    "formula,kind",
    [
        ("ROC(cpi", ErrorKind.PARSE_ERROR),
        ("NOPE(cpi)", ErrorKind.UNKNOWN_FUNCTION),
        ("SUM(ROC(cpi))", ErrorKind.ARITY_ERROR),
        ("SUM(missing)", ErrorKind.UNKNOWN_INDICATOR),
        ("SUM(5)", ErrorKind.TYPE_ERROR),
        ("ROC(cpi, '12')", ErrorKind.TYPE_ERROR),
        ("'cpi'", ErrorKind.TYPE_ERROR),
    ],
)
def test_check_formula_invalid(store, formula, kind):
    """Test invalid formulas report a structured error."""
    check = check_formula(formula, store)

    assert not check.valid
    assert check.error.kind is kind


def test_check_formula_without_store():
    """Test indicator availability is skipped without a store."""
    assert check_formula("SUM(missing)").valid


def test_check_formula_lists_unknown_indicators(store):
    """Test every unavailable indicator is reported."""
    check = check_formula("WEIGHTED_INDEX(cpi:1, zeta:1, alpha:2)", store)

    assert not check.valid
    assert check.dependencies == frozenset({"cpi", "zeta", "alpha"})
    assert check.unknown_indicators == ("alpha", "zeta")


@pytest.mark.parametrize(
    "formula,argument_index,position",
    [
        ("ROC(SUM(cpi), 1)", 0, 4),
        ("ROC(cpi, gdp)", 1, 9),
        ("SHARPE_RATIO(ROC(cpi, gdp), 0.02)", 1, 22),
    ],
)
def test_check_formula_infers_argument_kinds(store, formula, argument_index, position):
    """Test nested call results are checked against the declared argument kind."""
    check = check_formula(formula, store)

    assert not check.valid
    assert check.error.kind is ErrorKind.TYPE_ERROR
    assert check.error.argument_index == argument_index
    assert check.error.position == position


def test_check_formula_accepts_scalar_results_in_scalar_slots(store):
    """Test a reduction can feed a scalar argument."""
    check = check_formula("ROC(cpi, COUNT(gdp))", store)

    assert check.valid
    assert check.dependencies == frozenset({"cpi", "gdp"})
