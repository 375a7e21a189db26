"""
===========================================================
prior.py
Last Updated: 2026-10-19
===========================================================

Description:
    Joint prior over spatial SEIR parameters: batch sampling of
    particles and density evaluation of a single particle.

API:
    PriorSampler(data_model, exposure_model, reinfection_model,
                 distance_model, transition_priors, rng)
      - draw(n_particles) -> (n_particles, n_params) array
      - exhausted_rows: rows whose rho block missed sum(rho) <= 1
    PriorDensityEvaluator(data_model, exposure_model, reinfection_model,
                          distance_model, transition_priors)
      - density(param_vector) -> float >= 0

Notes:
    - beta ~ Normal(mean, sd = 1/precision), per covariate.
    - beta_rs ~ Normal(mean, sd = 1/precision), if reinfection.
    - rho ~ Gamma(shape, rate) per coordinate for sampling, with the
      whole rho vector redrawn until sum(rho) <= 1 (at most 100
      attempts). The density uses Beta(shape, rate) per coordinate
      times the indicator sum(rho) <= 1.
    - Blocks are drawn one full pass over particles at a time, in
      the order beta, transition, beta_rs, rho.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import warnings
import numpy as np
from scipy import stats
from typing import List

from .errors import ParameterShapeError, RhoConstraintWarning
from .layout import ParameterLayout, parameter_layout
from .transitions import make_transition_prior

MAX_RHO_ATTEMPTS = 100


class _JointPrior:
    def __init__(self, data_model, exposure_model, reinfection_model, distance_model, transition_priors):
        self.data_model = data_model
        self.exposure_model = exposure_model
        self.reinfection_model = reinfection_model
        self.distance_model = distance_model
        self.transition_priors = transition_priors

    @property
    def layout(self) -> ParameterLayout:
        return parameter_layout(self.data_model, self.exposure_model, self.reinfection_model,
                                self.distance_model, self.transition_priors)


class PriorSampler(_JointPrior):
    def __init__(self, data_model, exposure_model, reinfection_model, distance_model,
                 transition_priors, rng: np.random.Generator):
        super().__init__(data_model, exposure_model, reinfection_model, distance_model, transition_priors)
        self.rng = rng
        self.exhausted_rows: List[int] = []

    def draw(self, n_particles: int) -> np.ndarray:
        """Draw n_particles parameter vectors from the joint prior"""
        if int(n_particles) != n_particles or n_particles < 1:
            raise ValueError(f"n_particles must be a positive integer, got {n_particles}")
        n_particles = int(n_particles)
        layout = self.layout
        rng = self.rng
        out = np.empty((n_particles, layout.n_params), dtype=float)

        # beta
        mean = self.exposure_model.beta_prior_mean
        precision = self.exposure_model.beta_prior_precision
        out[:, layout.beta] = mean + rng.standard_normal((n_particles, layout.n_beta)) / precision

        # transition hyperparameters
        if layout.n_trans > 0:
            out[:, layout.trans] = make_transition_prior(self.transition_priors).sample(rng, n_particles)

        # beta_rs
        if layout.has_reinfection:
            mean_rs = self.reinfection_model.beta_prior_mean
            precision_rs = self.reinfection_model.beta_prior_precision
            out[:, layout.beta_rs] = (
                mean_rs + rng.standard_normal((n_particles, layout.n_beta_rs)) / precision_rs
            )

        # rho
        self.exhausted_rows = []
        if layout.has_spatial and layout.n_rho > 0:
            shape, rate = self.distance_model.spatial_prior
            for i in range(n_particles):
                for _ in range(MAX_RHO_ATTEMPTS):
                    rho = rng.gamma(shape, 1.0 / rate, size=layout.n_rho)
                    if rho.sum() <= 1.0:
                        break
                out[i, layout.rho] = rho
                if rho.sum() > 1.0:
                    self.exhausted_rows.append(i)
                    warnings.warn(
                        f"valid rho value not obtained for particle {i} after "
                        f"{MAX_RHO_ATTEMPTS} attempts (sum = {rho.sum():.3f})",
                        RhoConstraintWarning,
                    )
        return out


class PriorDensityEvaluator(_JointPrior):
    def density(self, param_vector) -> float:
        """Joint prior density of one parameter vector (product over blocks)"""
        layout = self.layout
        x = np.asarray(param_vector, dtype=float).ravel()
        if x.size != layout.n_params:
            raise ParameterShapeError(layout.n_params, x.size)

        out = np.prod(stats.norm.pdf(
            x[layout.beta],
            loc=self.exposure_model.beta_prior_mean,
            scale=1.0 / self.exposure_model.beta_prior_precision,
        ))
        if layout.n_beta_rs > 0:
            out *= np.prod(stats.norm.pdf(
                x[layout.beta_rs],
                loc=self.reinfection_model.beta_prior_mean,
                scale=1.0 / self.reinfection_model.beta_prior_precision,
            ))
        if layout.n_rho > 0:
            rho = x[layout.rho]
            a, b = self.distance_model.spatial_prior
            out *= np.prod(stats.beta.pdf(rho, a, b))
            out *= float(rho.sum() <= 1.0)
        if layout.n_trans > 0:
            out *= make_transition_prior(self.transition_priors).density(x[layout.trans])
        return float(out)
