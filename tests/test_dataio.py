"""Tests for loading long-format case tables into a DataModel."""

import numpy as np
import pandas as pd
import pytest

from spatialabc.components import DataModel
from spatialabc.dataio import case_count_axes, load_case_counts, pivot_case_counts


@pytest.fixture
def cases():
    return pd.DataFrame({
        "week": [2, 1, 1, 2, 3, 3],
        "county": ["b", "a", "b", "a", "a", "b"],
        "cases": [4, 1, 2, -3, 5, 6],
    })


class TestPivot:

    def test_wide_sorted(self, cases):
        wide = pivot_case_counts(cases, "week", "county", "cases")
        assert list(wide.index) == [1, 2, 3]
        assert list(wide.columns) == ["a", "b"]
        assert wide.loc[1, "b"] == 2

    def test_negative_clipped(self, cases):
        wide = pivot_case_counts(cases, "week", "county", "cases")
        assert wide.loc[2, "a"] == 0

    def test_explicit_location_order(self, cases):
        wide = pivot_case_counts(cases, "week", "county", "cases", locations=["b", "a"])
        assert list(wide.columns) == ["b", "a"]

    def test_missing_column(self, cases):
        with pytest.raises(KeyError):
            pivot_case_counts(cases, "date", "county", "cases")


class TestLoad:

    def test_data_model(self, cases):
        data = load_case_counts(cases, "week", "county", "cases", cumulative=True, phi=2.0)
        assert isinstance(data, DataModel)
        assert data.Y.shape == (3, 2)
        assert data.cumulative and data.phi == 2.0
        assert not data.na_mask.any()

    def test_unreported_cells_masked(self, cases):
        data = load_case_counts(cases.drop(index=4), "week", "county", "cases")
        assert data.na_mask[2, 0]
        assert np.isnan(data.Y[2, 0])
        assert data.na_mask.sum() == 1

    def test_axes_match_columns(self, cases):
        times, locs = case_count_axes(cases, "week", "county")
        assert list(times) == [1, 2, 3]
        assert locs == ["a", "b"]
