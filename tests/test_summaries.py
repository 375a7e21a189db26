"""Tests for the pandas summaries and plotting helpers."""

import matplotlib.pyplot as plt
import numpy as np
import pytest

from spatialabc.engine import SpatialSEIRModel
from spatialabc.utils.plotting import plot_fit, plot_prior_marginals
from spatialabc.utils.summaries import batch_to_frame, describe_particles, particles_to_frame


@pytest.fixture
def model(make_components):
    m = SpatialSEIRModel(*make_components(n_loc=2, m=2))
    yield m
    m.close()


class TestFrames:

    def test_particle_columns(self, model):
        df = particles_to_frame(model.generate_prior_batch(5), model.parameter_layout)
        assert list(df.columns) == ["beta_0", "beta_1", "rho_0", "gamma_ei", "gamma_ir"]
        assert df.index.name == "particle"
        assert len(df) == 5

    def test_batch_frame(self, model):
        batch = model.run_simulation(model.generate_prior_batch(4))
        df = batch_to_frame(batch, model.parameter_layout)
        assert len(df) == 4
        assert {"failed", "error", "distance_0", "distance_1", "min_distance"} <= set(df.columns)
        assert not df["failed"].any()
        assert np.allclose(df["min_distance"], batch.summaries.min(axis=1))

    def test_describe(self, model):
        desc = describe_particles(model.generate_prior_batch(200), model.parameter_layout)
        assert "beta_0" in desc.index
        assert {"mean", "std", "50%"} <= set(desc.columns)


class TestPlots:

    def test_prior_marginals(self, model):
        fig, axes = plot_prior_marginals(model.generate_prior_batch(50), model.parameter_layout,
                                         title="Prior")
        assert axes.size >= model.n_params
        plt.close(fig)

    def test_fit(self, model):
        batch = model.run_simulation(model.generate_prior_batch(1))
        ax = plot_fit(model.data_model.Y, batch.records[0].trajectories["I_star"], location=1)
        assert len(ax.get_lines()) == 2
        plt.close(ax.figure)
