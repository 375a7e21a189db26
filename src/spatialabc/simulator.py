"""
===========================================================
simulator.py
Last Updated: 2026-10-19
===========================================================

Description:
    Stochastic, discrete-time spatial SEIR(S) chain-binomial
    simulator used as the default per-particle kernel when
    dispatching ABC batches.

API:
    SimulationInputs.from_components(...)   # everything a worker needs
    simulate_particle(params, inputs, rng) -> SimulationResultSet
      - runs inputs.m replicate epidemics for one parameter vector
      - result: distance to observed data for each replicate
      - trajectories of the first replicate (S, E, I, R and the
        per-step transition counts S_star, E_star, I_star, R_star)

Notes:
    - Force of infection at location l, time t:
          offset[t] * (eta[t, l] * I[l] / N[l]
                       + sum_k rho_k * (D_k @ (eta[t] * I / N))[l]
                       + sum_j rho_{K+j} * (L_{t,j} @ (eta * I / N)[t-j-1])[l])
      with eta = exp(X @ beta).
    - Weibull transition times are approximated by geometric
      waiting times with the same mean (scale * Gamma(1 + 1/shape)).
    - Path-specific transitions are not supported here and raise
      SimulationError, which the dispatcher records per particle.
    - Distance = Euclidean distance between observed and simulated
      counts over the non-missing cells.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from dataclasses import dataclass, field, fields
from scipy.special import gamma as gamma_fn
from typing import Dict, List, Tuple

from .errors import SimulationError
from .layout import ParameterLayout


def _same(a, b) -> bool:
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        a, b = np.asarray(a), np.asarray(b)
        if a.shape != b.shape:
            return False
        if a.dtype.kind == "f" or b.dtype.kind == "f":
            return bool(np.array_equal(a, b, equal_nan=True))
        return bool(np.array_equal(a, b))
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return a == b


@dataclass
class SimulationInputs:
    """Fields copied out of the sub-models for the simulation workers"""
    S0: np.ndarray
    E0: np.ndarray
    I0: np.ndarray
    R0: np.ndarray
    offset: np.ndarray
    Y: np.ndarray
    na_mask: np.ndarray
    dm_list: List[np.ndarray]
    tdm_list: List[List[np.ndarray]]
    tdm_empty: bool
    X: np.ndarray
    X_rs: np.ndarray
    transition_mode: str
    E_to_I_params: np.ndarray
    I_to_R_params: np.ndarray
    inf_mean: float
    spatial_prior: np.ndarray
    beta_prior_precision: np.ndarray
    beta_rs_prior_precision: np.ndarray
    beta_prior_mean: np.ndarray
    beta_rs_prior_mean: np.ndarray
    phi: float
    compartment: str
    cumulative: bool
    m: int
    reinfection_mode: str
    layout: ParameterLayout

    @classmethod
    def from_components(cls, data_model, exposure_model, reinfection_model, distance_model,
                        transition_priors, initial_values, sampling_control,
                        layout: ParameterLayout) -> "SimulationInputs":
        return cls(
            S0=initial_values.S0.copy(),
            E0=initial_values.E0.copy(),
            I0=initial_values.I0.copy(),
            R0=initial_values.R0.copy(),
            offset=exposure_model.offset.copy(),
            Y=data_model.Y.copy(),
            na_mask=data_model.na_mask.copy(),
            dm_list=[d.copy() for d in distance_model.dm_list],
            tdm_list=[[d.copy() for d in lags] for lags in distance_model.tdm_list],
            tdm_empty=distance_model.tdm_empty,
            X=exposure_model.X.copy(),
            X_rs=reinfection_model.X_rs.copy(),
            transition_mode=transition_priors.mode,
            E_to_I_params=transition_priors.E_to_I_params.copy(),
            I_to_R_params=transition_priors.I_to_R_params.copy(),
            inf_mean=transition_priors.inf_mean,
            spatial_prior=distance_model.spatial_prior.copy(),
            beta_prior_precision=exposure_model.beta_prior_precision.copy(),
            beta_rs_prior_precision=reinfection_model.beta_prior_precision.copy(),
            beta_prior_mean=exposure_model.beta_prior_mean.copy(),
            beta_rs_prior_mean=reinfection_model.beta_prior_mean.copy(),
            phi=data_model.phi,
            compartment=data_model.compartment,
            cumulative=data_model.cumulative,
            m=sampling_control.m,
            reinfection_mode=reinfection_model.mode,
            layout=layout,
        )

    def matches(self, other: "SimulationInputs") -> bool:
        """True when every field holds the same values as in other"""
        return all(_same(getattr(self, f.name), getattr(other, f.name)) for f in fields(self))

    @property
    def n_tpt(self) -> int:
        return self.Y.shape[0]

    @property
    def n_loc(self) -> int:
        return self.Y.shape[1]


@dataclass
class SimulationResultSet:
    """Output of one particle: replicate distances plus first-replicate trajectories"""
    result: np.ndarray
    params: np.ndarray
    trajectories: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def min_distance(self) -> float:
        return float(np.min(self.result))


def _transition_rates(params: np.ndarray, inputs: SimulationInputs) -> Tuple[float, float]:
    """Per-unit-time E->I and I->R rates implied by the transition block"""
    trans = params[inputs.layout.trans]
    if inputs.transition_mode == "exponential":
        return float(trans[0]), float(trans[1])
    if inputs.transition_mode == "weibull":
        # (shape, scale) pairs -> rate with the same mean waiting time
        ei_mean = trans[1] * gamma_fn(1.0 + 1.0 / trans[0])
        ir_mean = trans[3] * gamma_fn(1.0 + 1.0 / trans[2])
        return 1.0 / float(ei_mean), 1.0 / float(ir_mean)
    raise SimulationError(f"transition mode '{inputs.transition_mode}' is not supported by the reference simulator")


def _reinfection_probability(params: np.ndarray, inputs: SimulationInputs) -> np.ndarray:
    if inputs.reinfection_mode == "SEIR":
        return np.zeros(inputs.n_tpt)
    if inputs.layout.has_reinfection:
        beta_rs = params[inputs.layout.beta_rs]
    else:
        beta_rs = inputs.beta_rs_prior_mean[:inputs.X_rs.shape[1]]
    return 1.0 - np.exp(-np.exp(inputs.X_rs @ beta_rs) * inputs.offset)


def _run_once(params: np.ndarray, inputs: SimulationInputs, rng: np.random.Generator) -> Dict[str, np.ndarray]:
    layout = inputs.layout
    n_tpt, n_loc = inputs.n_tpt, inputs.n_loc

    eta = np.exp(inputs.X @ params[layout.beta]).reshape(n_tpt, n_loc)
    rho = params[layout.rho]
    n_static = len(inputs.dm_list) if layout.has_spatial else 0
    gamma_ei, gamma_ir = _transition_rates(params, inputs)
    if gamma_ei <= 0 or gamma_ir <= 0 or not np.isfinite(gamma_ei + gamma_ir):
        raise SimulationError(f"invalid transition rates ({gamma_ei}, {gamma_ir})")
    p_rs = _reinfection_probability(params, inputs)

    S, E, I, R = (inputs.S0.copy(), inputs.E0.copy(), inputs.I0.copy(), inputs.R0.copy())
    N = (S + E + I + R).astype(float)

    out = {k: np.zeros((n_tpt, n_loc), dtype=np.int64)
           for k in ("S", "E", "I", "R", "S_star", "E_star", "I_star", "R_star")}
    pressure = np.zeros((n_tpt, n_loc))

    for t in range(n_tpt):
        pressure[t] = eta[t] * np.divide(I, N, out=np.zeros(n_loc), where=N > 0)
        intensity = pressure[t].copy()
        if layout.has_spatial:
            for k, D in enumerate(inputs.dm_list):
                intensity += rho[k] * (D @ pressure[t])
            for j, L in enumerate(inputs.tdm_list[t]):
                if t - j - 1 >= 0:
                    intensity += rho[n_static + j] * (L @ pressure[t - j - 1])
        p_se = np.clip(1.0 - np.exp(-inputs.offset[t] * intensity), 0.0, 1.0)
        p_ei = 1.0 - np.exp(-gamma_ei * inputs.offset[t])
        p_ir = 1.0 - np.exp(-gamma_ir * inputs.offset[t])

        new_E = rng.binomial(S, p_se)
        new_I = rng.binomial(E, p_ei)
        new_R = rng.binomial(I, p_ir)
        new_S = rng.binomial(R, p_rs[t])

        S = S + new_S - new_E
        E = E + new_E - new_I
        I = I + new_I - new_R
        R = R + new_R - new_S

        out["S"][t], out["E"][t], out["I"][t], out["R"][t] = S, E, I, R
        out["S_star"][t], out["E_star"][t] = new_S, new_E
        out["I_star"][t], out["R_star"][t] = new_I, new_R
    return out


def _observe(trajectories: Dict[str, np.ndarray], inputs: SimulationInputs, rng: np.random.Generator) -> np.ndarray:
    counts = trajectories[inputs.compartment].astype(float)
    if inputs.phi > 0:
        # negative binomial reporting noise around the simulated counts
        mu = counts
        p = inputs.phi / (inputs.phi + np.where(mu > 0, mu, 1.0))
        counts = np.where(mu > 0, rng.negative_binomial(inputs.phi, p), 0.0)
    if inputs.cumulative:
        counts = np.cumsum(counts, axis=0)
    return counts


def distance_to_data(simulated: np.ndarray, inputs: SimulationInputs) -> float:
    keep = ~inputs.na_mask
    return float(np.sqrt(np.sum((inputs.Y[keep] - simulated[keep]) ** 2)))


def simulate_particle(params, inputs: SimulationInputs, rng: np.random.Generator) -> SimulationResultSet:
    """Simulate inputs.m replicate epidemics for a single parameter vector"""
    params = np.asarray(params, dtype=float)
    distances = np.empty(inputs.m)
    first = None
    for r in range(inputs.m):
        traj = _run_once(params, inputs, rng)
        distances[r] = distance_to_data(_observe(traj, inputs, rng), inputs)
        if first is None:
            first = traj
    return SimulationResultSet(result=distances, params=params.copy(), trajectories=first)
