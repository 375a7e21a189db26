"""
===========================================================
summaries.py
Last Updated: 2026-10-19
===========================================================

Description:
    Tidy pandas views of particle matrices and simulation
    batches: one row per particle, named parameter columns,
    replicate distances and failure status.

Example Usage:
    from spatialabc.utils.summaries import particles_to_frame, batch_to_frame
    df = particles_to_frame(particles, model.parameter_layout)
    out = batch_to_frame(model.run_simulation(particles), model.parameter_layout)
    out.nsmallest(100, "min_distance")

Notes:
    - Uses only numpy, pandas.
-----------------------------------------------------------
License: MIT
===========================================================
"""
import numpy as np
import pandas as pd

from ..dispatch import BatchResult
from ..layout import ParameterLayout


def particles_to_frame(params: np.ndarray, layout: ParameterLayout) -> pd.DataFrame:
    """Particle matrix -> DataFrame with one named column per parameter"""
    params = np.atleast_2d(params)
    df = pd.DataFrame(params, columns=layout.column_names())
    df.index.name = "particle"
    return df


def batch_to_frame(batch: BatchResult, layout: ParameterLayout) -> pd.DataFrame:
    """
    One row per particle with its parameters (when the simulation
    succeeded), replicate distances, min distance and error message.
    """
    records = []
    for i, rec in enumerate(batch.records):
        row = {"particle": i, "failed": i in batch.failures, "error": batch.failures.get(i, "")}
        if rec is not None:
            row.update(dict(zip(layout.column_names(), rec.params)))
        for r, d in enumerate(batch.summaries[i]):
            row[f"distance_{r}"] = d
        row["min_distance"] = float(np.nanmin(batch.summaries[i])) if rec is not None else np.nan
        records.append(row)
    return pd.DataFrame.from_records(records).set_index("particle")


def describe_particles(params: np.ndarray, layout: ParameterLayout) -> pd.DataFrame:
    """Per-parameter mean, sd and quantiles of a particle matrix"""
    df = particles_to_frame(params, layout)
    return df.describe(percentiles=[0.025, 0.5, 0.975]).T
