"""Integration tests for Parquet I/O."""

from datetime import date

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from calc_engine.application.use_cases.execute_calculation import CalculationRunner
from calc_engine.domain.entities import Calculation
from calc_engine.domain.enums import ErrorKind, OutputType
from calc_engine.domain.errors import SourceUnavailableError
from calc_engine.infrastructure.io.parquet_reader import ParquetSeriesStore
from calc_engine.infrastructure.runtime.clock import SystemClock


@pytest.fixture
def parquet_root(tmp_path):
    """Write indicator projections to a temporary directory."""
    cpi = pd.DataFrame(
        {
            "obs_time": pd.to_datetime(["2020-01-01", "2020-02-01", "2020-03-01"]),
            "value": [100.0, 102.0, 101.0],
            "internal_series_code": ["cpi"] * 3,
        }
    )
    gdp = pd.DataFrame(
        {
            "obs_time": pd.to_datetime(["2020-01-01", "2020-02-01"]),
            "value": [10.0, 11.0],
            "internal_series_code": ["gdp"] * 2,
        }
    )
    for name, df in {"cpi": cpi, "gdp": gdp}.items():
        pq.write_table(pa.Table.from_pandas(df, preserve_index=False), str(tmp_path / f"{name}.parquet"))
    return tmp_path


def test_parquet_store_reads_series(parquet_root):
    """Test reading a series back from parquet files."""
    store = ParquetSeriesStore(str(parquet_root))

    assert store.indicator_exists_and_active("cpi")
    assert not store.indicator_exists_and_active("missing")
    assert store.fetch_series("cpi") == [
        (date(2020, 1, 1), 100.0),
        (date(2020, 2, 1), 102.0),
        (date(2020, 3, 1), 101.0),
    ]
    assert store.fetch_series("cpi", start_date=date(2020, 2, 1)) == [
        (date(2020, 2, 1), 102.0),
        (date(2020, 3, 1), 101.0),
    ]


def test_parquet_store_missing_directory(tmp_path):
    """Test a missing source is unavailable."""
    store = ParquetSeriesStore(str(tmp_path / "nope"), retry_attempts=1)

    with pytest.raises(SourceUnavailableError):
        store.fetch_series("cpi")


def test_runner_over_parquet_store(parquet_root):
    """Test a full run against parquet data."""
    runner = CalculationRunner(ParquetSeriesStore(str(parquet_root)), SystemClock())
    calculation = Calculation(id=None, name="cpi roc", slug="cpi_roc", formula="ROC(cpi, 1)")

    result = runner.execute(calculation)

    assert result.succeeded
    assert result.to_payload()["value"][0] == {"date": "2020-02-01", "value": 2.0}
    assert result.calculation.last_calculated is not None


def test_runner_reports_inactive_indicator(parquet_root):
    """Test inactive indicators fail dependency resolution."""
    store = ParquetSeriesStore(str(parquet_root), inactive_slugs={"gdp"})
    calculation = Calculation(
        id=None, name="mix", slug="mix", formula="WEIGHTED_INDEX(cpi:1, gdp:1)", output_type=OutputType.SERIES
    )

    result = CalculationRunner(store, SystemClock()).execute(calculation)

    assert result.error.kind is ErrorKind.UNKNOWN_INDICATOR
    assert result.error.slugs == ("gdp",)
