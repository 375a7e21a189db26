"""
===========================================================
dataio.py
Last Updated: 2026-10-19
===========================================================

Description:
    Loaders that turn tidy (long-format) case-count tables into
    a DataModel: one row per time point, one column per location,
    with a missingness mask for cells that were not reported.

Example Usage:
    from spatialabc.dataio import load_case_counts
    df = pd.read_csv("cases.csv", parse_dates=["date"])
    data = load_case_counts(df, time_col="date", location_col="county",
                            value_col="cases")

Notes:
    - Time points and locations are sorted unless an explicit
      location order is given.
    - Negative counts (reporting corrections) are clipped at 0.
    - Missing cells stay NaN in Y and are True in na_mask.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
import pandas as pd
from typing import Optional, Sequence, Tuple

from .components import DataModel


def pivot_case_counts(
    df: pd.DataFrame,
    time_col: str,
    location_col: str,
    value_col: str,
    locations: Optional[Sequence] = None
) -> pd.DataFrame:
    """Long table -> wide (time x location) table of counts"""
    missing = [c for c in (time_col, location_col, value_col) if c not in df.columns]
    if missing:
        raise KeyError(f"Expected columns {missing} not found. Available: {list(df.columns)}")
    wide = df.pivot(index=time_col, columns=location_col, values=value_col)
    wide = wide.sort_index()
    if locations is not None:
        wide = wide.reindex(columns=list(locations))
    else:
        wide = wide.reindex(columns=sorted(wide.columns))
    return wide.clip(lower=0)


def load_case_counts(
    df: pd.DataFrame,
    time_col: str,
    location_col: str,
    value_col: str,
    locations: Optional[Sequence] = None,
    compartment: str = "I_star",
    cumulative: bool = False,
    phi: float = 0.0
) -> DataModel:
    """Build a DataModel from a long-format case-count table"""
    wide = pivot_case_counts(df, time_col, location_col, value_col, locations)
    Y = wide.to_numpy(dtype=float)
    return DataModel(Y=Y, na_mask=np.isnan(Y), compartment=compartment,
                     cumulative=cumulative, phi=phi)


def case_count_axes(df: pd.DataFrame, time_col: str, location_col: str,
                    locations: Optional[Sequence] = None) -> Tuple[np.ndarray, list]:
    """Time points and location labels matching load_case_counts' rows and columns"""
    times = np.sort(df[time_col].unique())
    locs = list(locations) if locations is not None else sorted(df[location_col].unique())
    return times, locs
