"""
===========================================================
transitions.py
Last Updated: 2026-10-19
===========================================================

Description:
    Hyperpriors for the E -> I and I -> R transition-time
    distributions. Each transition family is a small class that
    knows how many hyperparameters it contributes to a particle,
    how to sample them, and how to evaluate their prior density.

API:
    make_transition_prior(priors) -> ExponentialTransitionPrior
                                   | WeibullTransitionPrior
                                   | PathSpecificTransitionPrior
    WeibullHyperprior(params)
      - eval_param_prior(x) -> density of one (shape, scale) pair
      - sample(rng, size) -> (size, 2) draws

Notes:
    - Gamma priors use the (shape, rate) convention; numpy and
      scipy take scale = 1 / rate.
    - Weibull columns hold (shape, rate) for the Weibull shape
      followed by (shape, rate) for the Weibull scale.
    - Hyperparameters are drawn per particle in the order
      E->I then I->R, so sampling and density agree on layout.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from scipy import stats
from typing import Union

from .components import TransitionPriors
from .errors import ModelConfigurationError

PLACEHOLDER_WEIBULL_PARAMS = np.ones(4)


class WeibullHyperprior:
    """Independent gamma priors on the shape and scale of one Weibull transition"""
    def __init__(self, params=PLACEHOLDER_WEIBULL_PARAMS):
        params = np.asarray(params, dtype=float).ravel()
        if params.size != 4:
            raise ModelConfigurationError(f"Weibull hyperprior needs 4 values, got {params.size}")
        if np.any(params <= 0):
            raise ModelConfigurationError("Weibull hyperprior shape/rate values must be positive")
        self.params = params

    @property
    def shapes(self) -> np.ndarray:
        return self.params[[0, 2]]

    @property
    def scales(self) -> np.ndarray:
        return 1.0 / self.params[[1, 3]]

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        return rng.gamma(self.shapes, self.scales, size=(size, 2))

    def eval_param_prior(self, x) -> float:
        x = np.asarray(x, dtype=float)
        return float(np.prod(stats.gamma.pdf(x, a=self.shapes, scale=self.scales)))


class ExponentialTransitionPrior:
    """Gamma priors on the E->I and I->R exponential rates"""
    mode = "exponential"
    n_params = 2

    def __init__(self, priors: TransitionPriors):
        ei, ir = priors.E_to_I_params[:, 0], priors.I_to_R_params[:, 0]
        self.shapes = np.array([ei[0], ir[0]])
        self.scales = 1.0 / np.array([ei[1], ir[1]])

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        return rng.gamma(self.shapes, self.scales, size=(size, 2))

    def density(self, x) -> float:
        x = np.asarray(x, dtype=float)
        return float(np.prod(stats.gamma.pdf(x, a=self.shapes, scale=self.scales)))


class WeibullTransitionPrior:
    """Two Weibull hyperpriors, E->I in the first two slots and I->R in the last two"""
    mode = "weibull"
    n_params = 4

    def __init__(self, priors: TransitionPriors):
        self.EI = WeibullHyperprior(priors.E_to_I_params[:4, 0])
        self.IR = WeibullHyperprior(priors.I_to_R_params[:4, 0])

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        shapes = np.concatenate([self.EI.shapes, self.IR.shapes])
        scales = np.concatenate([self.EI.scales, self.IR.scales])
        return rng.gamma(shapes, scales, size=(size, 4))

    def density(self, x) -> float:
        x = np.asarray(x, dtype=float)
        return self.EI.eval_param_prior(x[:2]) * self.IR.eval_param_prior(x[2:4])


class PathSpecificTransitionPrior:
    """Fixed path-specific transitions: nothing is sampled"""
    mode = "path_specific"
    n_params = 0

    def __init__(self, priors: TransitionPriors):
        self.inf_mean = priors.inf_mean

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        return np.empty((size, 0))

    def density(self, x) -> float:
        return 1.0


TransitionPrior = Union[ExponentialTransitionPrior, WeibullTransitionPrior, PathSpecificTransitionPrior]

_FAMILIES = {
    "exponential": ExponentialTransitionPrior,
    "weibull": WeibullTransitionPrior,
    "path_specific": PathSpecificTransitionPrior,
}


def make_transition_prior(priors: TransitionPriors) -> TransitionPrior:
    try:
        family = _FAMILIES[priors.mode]
    except KeyError:
        raise ModelConfigurationError(f"Invalid transition mode: {priors.mode}") from None
    return family(priors)
