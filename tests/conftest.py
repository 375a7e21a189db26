"""Shared builders for spatial SEIR model components."""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from spatialabc.components import (
    DataModel,
    DistanceModel,
    ExposureModel,
    InitialValueContainer,
    ReinfectionModel,
    TransitionPriors,
)
from spatialabc.sampling_control import SamplingControl


def build_components(
    n_loc=1,
    n_tpt=10,
    n_beta=2,
    beta_mean=None,
    beta_precision=None,
    transition_mode="exponential",
    reinfection=False,
    n_beta_rs=2,
    rs_precision=None,
    n_dm=1,
    n_lags=0,
    spatial_prior=(2.0, 2.0),
    seed=123,
    cpu_cores=1,
    m=1,
    particle_timeout=None,
    I0=5,
):
    """Return the seven components, in role order, as a list."""
    rng = np.random.default_rng(0)
    Y = rng.poisson(3.0, size=(n_tpt, n_loc)).astype(float)
    data = DataModel(Y=Y)

    X = np.ones((n_tpt * n_loc, n_beta))
    if n_beta > 1:
        X[:, 1:] = rng.normal(0, 0.1, size=(n_tpt * n_loc, n_beta - 1))
    exposure = ExposureModel(
        X=X, n_tpt=n_tpt, n_loc=n_loc,
        beta_prior_mean=np.zeros(n_beta) if beta_mean is None else beta_mean,
        beta_prior_precision=np.ones(n_beta) if beta_precision is None else beta_precision,
    )

    if reinfection:
        reinf = ReinfectionModel(
            mode="SEIRS",
            X_rs=np.ones((n_tpt, n_beta_rs)),
            beta_prior_mean=np.full(n_beta_rs, -2.0),
            beta_prior_precision=np.ones(n_beta_rs) if rs_precision is None else rs_precision,
        )
    else:
        reinf = ReinfectionModel()

    eye = np.eye(n_loc)
    contact = np.ones((n_loc, n_loc)) - eye
    distance = DistanceModel(
        dm_list=[contact] * n_dm,
        tdm_list=[[contact] * n_lags for _ in range(n_tpt)],
        spatial_prior=spatial_prior,
        n_loc=n_loc,
    )

    if transition_mode == "weibull":
        ei = np.array([[2.0], [1.0], [4.0], [2.0]])
        ir = np.array([[3.0], [1.0], [5.0], [1.0]])
    else:
        ei = np.array([[20.0], [100.0]])
        ir = np.array([[30.0], [100.0]])
    transitions = TransitionPriors(mode=transition_mode, E_to_I_params=ei, I_to_R_params=ir)

    init = InitialValueContainer(
        S0=np.full(n_loc, 1000), E0=np.zeros(n_loc, dtype=int),
        I0=np.full(n_loc, I0), R0=np.zeros(n_loc, dtype=int),
    )
    control = SamplingControl(random_seed=seed, cpu_cores=cpu_cores, batch_size=100, m=m,
                              particle_timeout=particle_timeout)
    return [data, exposure, reinf, distance, transitions, init, control]


@pytest.fixture
def make_components():
    """Factory fixture: make_components(**overrides) -> list of components."""
    return build_components
