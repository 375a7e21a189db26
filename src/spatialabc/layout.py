"""
===========================================================
layout.py
Last Updated: 2026-10-19
===========================================================

Description:
    Column layout of a particle (parameter vector):

        [ beta (n_beta) | beta_rs (n_beta_rs) | rho (n_rho) | transition (n_trans) ]

    beta_rs is present only with reinfection, rho only with more
    than one location; absent blocks take no columns at all.

API:
    parameter_layout(data_model, exposure_model, reinfection_model,
                     distance_model, transition_priors) -> ParameterLayout

Notes:
    - Sampler, density evaluator and model all take their block
      sizes from this one function; it is recomputed from the
      components on every call, never cached separately.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List

from .components import DataModel, DistanceModel, ExposureModel, ReinfectionModel, TransitionPriors

N_TRANS = {"exponential": 2, "weibull": 4}


@dataclass(frozen=True)
class ParameterLayout:
    n_beta: int
    n_beta_rs: int
    n_rho: int
    n_trans: int
    has_reinfection: bool
    has_spatial: bool
    transition_mode: str

    @property
    def n_params(self) -> int:
        return self.n_beta + self.n_beta_rs + self.n_rho + self.n_trans

    @property
    def beta(self) -> slice:
        return slice(0, self.n_beta)

    @property
    def beta_rs(self) -> slice:
        return slice(self.n_beta, self.n_beta + self.n_beta_rs)

    @property
    def rho(self) -> slice:
        start = self.n_beta + self.n_beta_rs
        return slice(start, start + self.n_rho)

    @property
    def trans(self) -> slice:
        start = self.n_beta + self.n_beta_rs + self.n_rho
        return slice(start, start + self.n_trans)

    def column_names(self) -> List[str]:
        names = [f"beta_{j}" for j in range(self.n_beta)]
        names += [f"beta_rs_{j}" for j in range(self.n_beta_rs)]
        names += [f"rho_{j}" for j in range(self.n_rho)]
        if self.transition_mode == "exponential":
            names += ["gamma_ei", "gamma_ir"]
        elif self.transition_mode == "weibull":
            names += ["ei_shape", "ei_scale", "ir_shape", "ir_scale"]
        return names

    def to_dict(self) -> Dict[str, int]:
        return {"n_beta": self.n_beta, "n_beta_rs": self.n_beta_rs, "n_rho": self.n_rho,
                "n_trans": self.n_trans, "n_params": self.n_params}


def parameter_layout(
    data_model: DataModel,
    exposure_model: ExposureModel,
    reinfection_model: ReinfectionModel,
    distance_model: DistanceModel,
    transition_priors: TransitionPriors
) -> ParameterLayout:
    has_reinfection = reinfection_model.has_reinfection
    has_spatial = data_model.Y.shape[1] > 1
    return ParameterLayout(
        n_beta=exposure_model.X.shape[1],
        n_beta_rs=reinfection_model.X_rs.shape[1] if has_reinfection else 0,
        n_rho=(len(distance_model.dm_list) + distance_model.n_lags) if has_spatial else 0,
        n_trans=N_TRANS.get(transition_priors.mode, 0),
        has_reinfection=has_reinfection,
        has_spatial=has_spatial,
        transition_mode=transition_priors.mode,
    )
