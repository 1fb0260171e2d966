"""Series alignment onto a common date axis."""

from collections.abc import Mapping

import pandas as pd

from calc_engine.domain.errors import InsufficientDataError


def align(series_by_slug: Mapping[str, pd.Series]) -> pd.DataFrame:
    """Align series by date.

    The date axis is the sorted union of every input's dates. A slug with no
    observation at a date holds NaN there: missing, never zero and never
    forward-filled.
    """
    if not series_by_slug:
        raise InsufficientDataError("Nothing to align")

    frame = pd.concat(
        {slug: series.astype("float64") for slug, series in series_by_slug.items()},
        axis=1,
        join="outer",
    )
    return frame.sort_index()


def joint_rows(frame: pd.DataFrame) -> pd.DataFrame:
    """Keep only dates where every column has a value."""
    return frame.dropna(how="any")
