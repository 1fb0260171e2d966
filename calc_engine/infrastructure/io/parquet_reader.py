"""Parquet-backed series store with PyArrow."""

from collections.abc import Callable
from datetime import date
from typing import TypeVar

import pandas as pd
import pyarrow.dataset as ds
import pyarrow.fs as pafs
import structlog
from pyarrow import Table
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from calc_engine.domain.errors import SourceUnavailableError
from calc_engine.domain.ports import SeriesStorePort
from calc_engine.domain.types import SeriesPoints
from calc_engine.infrastructure.config.settings import Settings

logger = structlog.get_logger()

COLUMNS = ["obs_time", "value", "internal_series_code"]

T = TypeVar("T")


class ParquetSeriesStore(SeriesStorePort):
    """Series store over parquet projections with predicate pushdown.

    Files hold ``obs_time``, ``value`` and ``internal_series_code`` columns;
    the series code is the indicator slug.
    """

    def __init__(
        self,
        source: str | list[str],
        filesystem: pafs.FileSystem | None = None,
        inactive_slugs: set[str] | None = None,
        retry_attempts: int = 3,
    ) -> None:
        """Initialize store over a directory or an explicit list of files."""
        self.source = source
        self.filesystem = filesystem
        self.inactive_slugs = inactive_slugs or set()
        self.retry_attempts = retry_attempts
        self._available: set[str] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ParquetSeriesStore":
        """Build a store from application settings."""
        return cls(
            settings.parquet_root,
            inactive_slugs=set(settings.parquet_inactive_slugs),
            retry_attempts=settings.fetch_retry_attempts,
        )

    def indicator_exists_and_active(self, slug: str) -> bool:
        if slug in self.inactive_slugs:
            return False
        if self._available is None:
            self._available = set(self._with_retry(self._list_series_codes))
        return slug in self._available

    def fetch_series(
        self,
        slug: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SeriesPoints:
        table = self._with_retry(lambda: self._scan(slug))

        df = table.to_pandas()
        df = df[["obs_time", "value"]].copy()
        df["obs_time"] = pd.to_datetime(df["obs_time"]).dt.normalize()
        df["value"] = df["value"].astype("float64")
        df = df.dropna().drop_duplicates("obs_time", keep="last").sort_values("obs_time")

        if start_date is not None:
            df = df[df["obs_time"] >= pd.Timestamp(start_date)]
        if end_date is not None:
            df = df[df["obs_time"] <= pd.Timestamp(end_date)]

        logger.info("series_read_success", slug=slug, row_count=len(df))
        return [(ts.date(), float(value)) for ts, value in zip(df["obs_time"], df["value"])]

    def _with_retry(self, func: Callable[[], T]) -> T:
        """Run ``func``, retrying I/O errors, then raise SourceUnavailableError."""
        retrying = retry(
            retry=retry_if_exception_type(OSError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            reraise=True,
        )(func)
        try:
            return retrying()
        except (OSError, ValueError) as e:
            logger.error("parquet_read_failed", source=str(self.source), error=str(e))
            raise SourceUnavailableError(f"Failed to read parquet series from {self.source}: {e}") from e

    def _dataset(self) -> ds.Dataset:
        return ds.dataset(self.source, format="parquet", filesystem=self.filesystem)

    def _scan(self, slug: str) -> Table:
        scanner = self._dataset().scanner(
            columns=COLUMNS,
            filter=ds.field("internal_series_code") == slug,
        )
        return scanner.to_table()

    def _list_series_codes(self) -> list[str]:
        table = self._dataset().scanner(columns=["internal_series_code"]).to_table()
        return table.column("internal_series_code").unique().to_pylist()
