"""Unit tests for series alignment."""

import pandas as pd
import pytest

from calc_engine.application.services.aligner import align, joint_rows
from calc_engine.domain.errors import InsufficientDataError


def test_align_outer_union_with_missing():
    """Test dates are the union and gaps stay missing."""
    a = pd.Series([1.0, 2.0], index=pd.to_datetime(["2024-01-01", "2024-01-03"]))
    b = pd.Series([10.0, 20.0], index=pd.to_datetime(["2024-01-02", "2024-01-03"]))

    frame = align({"a": a, "b": b})

    assert list(frame.index) == list(pd.to_datetime(["2024-01-01", "2024-01-02", "2024-01-03"]))
    assert list(frame.columns) == ["a", "b"]
    assert pd.isna(frame.loc[pd.Timestamp("2024-01-02"), "a"])
    assert pd.isna(frame.loc[pd.Timestamp("2024-01-01"), "b"])
    assert frame.loc[pd.Timestamp("2024-01-03"), "b"] == 20.0


def test_joint_rows_keeps_dates_present_everywhere():
    """Test intersection of dates."""
    a = pd.Series([1.0, 2.0], index=pd.to_datetime(["2024-01-01", "2024-01-03"]))
    b = pd.Series([10.0, 20.0], index=pd.to_datetime(["2024-01-02", "2024-01-03"]))

    joint = joint_rows(align({"a": a, "b": b}))

    assert list(joint.index) == [pd.Timestamp("2024-01-03")]
    assert joint.iloc[0].tolist() == [2.0, 20.0]


def test_align_nothing():
    """Test aligning no series."""
    with pytest.raises(InsufficientDataError):
        align({})
