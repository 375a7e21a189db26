"""
===========================================================
components.py
Last Updated: 2026-10-19
===========================================================

Description:
    Containers for the sub-models that are composed into a
    spatial SEIR model: observed data, exposure process,
    reinfection process, spatial distance structure,
    transition-time priors and initial compartment sizes.

    Defines:
        - ModelComponent: type tag + reference guard mixin
        - DataModel, ExposureModel, ReinfectionModel,
          DistanceModel, TransitionPriors, InitialValueContainer

Example Usage:
    from spatialabc.components import DataModel, ExposureModel
    data = DataModel(Y=cases)                       # (n_tpt, n_loc)
    exposure = ExposureModel(X=X, n_tpt=52, n_loc=3)

Notes:
    - Each container validates its own shapes in __post_init__;
      agreement *between* containers is checked by
      spatialabc.validation.validate_components.
    - Components are referenced, not copied, by the model. They
      carry a reference counter so they cannot be closed while a
      model still uses them.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

from .errors import ComponentInUseError, ModelConfigurationError

# component type tags
DATA_MODEL_TYPE = 0
EXPOSURE_MODEL_TYPE = 1
REINFECTION_MODEL_TYPE = 2
DISTANCE_MODEL_TYPE = 3
TRANSITION_MODEL_TYPE = 4
INIT_CONTAINER_TYPE = 5
SAMPLING_CONTROL_MODEL_TYPE = 6

DATA_COMPARTMENTS = ("S_star", "E_star", "I_star", "R_star")
REINFECTION_MODES = ("SEIRS", "fixed", "SEIR")
TRANSITION_MODES = ("exponential", "weibull", "path_specific")


class ModelComponent:
    """Mixin giving every sub-model a role tag and a use counter"""
    component_type: int = -1

    @property
    def refcount(self) -> int:
        return getattr(self, "_refs", 0)

    def retain(self):
        self._refs = self.refcount + 1

    def release(self):
        if self.refcount <= 0:
            raise ComponentInUseError(f"{type(self).__name__} released more often than retained")
        self._refs = self.refcount - 1

    def close(self):
        """Refuse teardown while a model still holds this component"""
        if self.refcount != 0:
            raise ComponentInUseError(f"can't delete {type(self).__name__}, still being used.")


def _as_matrix(x, name: str) -> np.ndarray:
    arr = np.asarray(x, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ModelConfigurationError(f"{name} must be a 2-d array, got shape {arr.shape}")
    return arr


def _as_vector(x, name: str, size: Optional[int] = None, fill: float = 0.0) -> np.ndarray:
    if x is None:
        return np.full(size if size is not None else 0, fill, dtype=float)
    arr = np.atleast_1d(np.asarray(x, dtype=float)).ravel()
    if size is not None and arr.size != size:
        raise ModelConfigurationError(f"{name} must have length {size}, got {arr.size}")
    return arr


@dataclass(eq=False)
class DataModel(ModelComponent):
    """Observed counts per time point (rows) and location (columns).

    Attributes:
    Y: np.ndarray. (n_tpt, n_loc) observed counts; NaN for missing
    na_mask: np.ndarray, optional. True where an observation is missing
    compartment: str. Which transition the counts record (S_star, E_star, I_star, R_star)
    cumulative: bool. Whether Y holds cumulative counts
    phi: float. Negative binomial overdispersion of reporting (0 = exact reporting)
    """
    Y: np.ndarray
    na_mask: Optional[np.ndarray] = None
    compartment: str = "I_star"
    cumulative: bool = False
    phi: float = 0.0
    component_type = DATA_MODEL_TYPE

    def __post_init__(self):
        self.Y = _as_matrix(self.Y, "Y")
        if self.na_mask is None:
            self.na_mask = np.isnan(self.Y)
        else:
            self.na_mask = np.asarray(self.na_mask, dtype=bool)
            if self.na_mask.shape != self.Y.shape:
                raise ModelConfigurationError(
                    f"na_mask shape {self.na_mask.shape} does not match Y shape {self.Y.shape}"
                )
        if self.compartment not in DATA_COMPARTMENTS:
            raise ModelConfigurationError(f"Unsupported data compartment: {self.compartment}")
        if self.phi < 0:
            raise ModelConfigurationError("overdispersion phi must be non-negative")
        self.cumulative = bool(self.cumulative)

    @property
    def n_tpt(self) -> int:
        return self.Y.shape[0]

    @property
    def n_loc(self) -> int:
        return self.Y.shape[1]


@dataclass(eq=False)
class ExposureModel(ModelComponent):
    """Covariates driving the S -> E transmission intensity.

    X rows are time-major: row t * n_loc + loc holds the covariates
    for location `loc` at time point `t`.
    """
    X: np.ndarray
    n_tpt: int
    n_loc: int
    offset: Optional[np.ndarray] = None
    beta_prior_mean: Optional[np.ndarray] = None
    beta_prior_precision: Optional[np.ndarray] = None
    component_type = EXPOSURE_MODEL_TYPE

    def __post_init__(self):
        self.X = _as_matrix(self.X, "X")
        self.n_tpt, self.n_loc = int(self.n_tpt), int(self.n_loc)
        if self.X.shape[0] != self.n_tpt * self.n_loc:
            raise ModelConfigurationError(
                f"X must have n_tpt * n_loc = {self.n_tpt * self.n_loc} rows, got {self.X.shape[0]}"
            )
        n_beta = self.X.shape[1]
        self.offset = _as_vector(self.offset, "offset", self.n_tpt, fill=1.0)
        if np.any(self.offset <= 0):
            raise ModelConfigurationError("exposure offsets must be positive")
        self.beta_prior_mean = _as_vector(self.beta_prior_mean, "beta_prior_mean", n_beta, fill=0.0)
        self.beta_prior_precision = _as_vector(
            self.beta_prior_precision, "beta_prior_precision", n_beta, fill=1.0
        )
        if np.any(self.beta_prior_precision <= 0):
            raise ModelConfigurationError("beta prior precision must be positive")

    @property
    def n_beta(self) -> int:
        return self.X.shape[1]


@dataclass(eq=False)
class ReinfectionModel(ModelComponent):
    """R -> S transition model.

    mode: "SEIRS" (estimated reinfection), "fixed" (reinfection with
    known coefficients) or "SEIR" (no reinfection). Reinfection
    parameters are part of the sampled vector only when the first
    prior precision entry is positive.
    """
    mode: str = "SEIR"
    X_rs: Optional[np.ndarray] = None
    beta_prior_mean: Optional[np.ndarray] = None
    beta_prior_precision: Optional[np.ndarray] = None
    component_type = REINFECTION_MODEL_TYPE

    def __post_init__(self):
        if self.mode not in REINFECTION_MODES:
            raise ModelConfigurationError(f"Unsupported reinfection mode: {self.mode}")
        if self.X_rs is None:
            if self.mode != "SEIR":
                raise ModelConfigurationError(f"reinfection mode '{self.mode}' requires X_rs")
            self.X_rs = np.zeros((0, 0))
        else:
            self.X_rs = _as_matrix(self.X_rs, "X_rs")
        n_rs = self.X_rs.shape[1]
        if self.beta_prior_precision is None:
            # precision 0 switches the reinfection block off
            self.beta_prior_precision = np.zeros(max(n_rs, 1))
        else:
            self.beta_prior_precision = _as_vector(self.beta_prior_precision, "beta_prior_precision")
        if self.beta_prior_mean is None:
            self.beta_prior_mean = np.zeros(self.beta_prior_precision.size)
        else:
            self.beta_prior_mean = _as_vector(self.beta_prior_mean, "beta_prior_mean")
        if self.mode == "SEIR" and self.has_reinfection:
            raise ModelConfigurationError(
                "reinfection mode 'SEIR' excludes reinfection but beta_prior_precision[0] > 0"
            )
        if self.has_reinfection:
            if self.beta_prior_precision.size != n_rs or self.beta_prior_mean.size != n_rs:
                raise ModelConfigurationError(
                    f"reinfection prior mean/precision must have length {n_rs}"
                )
            if np.any(self.beta_prior_precision <= 0):
                raise ModelConfigurationError("reinfection prior precision must be positive")

    @property
    def has_reinfection(self) -> bool:
        return bool(self.beta_prior_precision.size and self.beta_prior_precision[0] > 0)

    @property
    def n_tpt(self) -> int:
        return self.X_rs.shape[0]


@dataclass(eq=False)
class DistanceModel(ModelComponent):
    """Spatial contact structure.

    Attributes:
    dm_list: list of (n_loc, n_loc) static distance/contact matrices
    tdm_list: one list per time point of lagged (n_loc, n_loc) matrices
    spatial_prior: (shape, rate) of the prior on spatial correlation rho
    n_loc: int, optional. Number of locations (inferred from matrices)
    """
    dm_list: Sequence[np.ndarray]
    tdm_list: Sequence[Sequence[np.ndarray]]
    spatial_prior: Sequence[float] = (1.0, 1.0)
    n_loc: Optional[int] = None
    component_type = DISTANCE_MODEL_TYPE

    def __post_init__(self):
        self.dm_list = [_as_matrix(d, "distance matrix") for d in self.dm_list]
        self.tdm_list = [[_as_matrix(d, "lagged distance matrix") for d in lags]
                         for lags in self.tdm_list]
        if self.n_loc is None:
            if self.dm_list:
                self.n_loc = self.dm_list[0].shape[0]
            else:
                lagged = [d for lags in self.tdm_list for d in lags]
                if not lagged:
                    raise ModelConfigurationError("n_loc is required when no distance matrices are given")
                self.n_loc = lagged[0].shape[0]
        self.n_loc = int(self.n_loc)
        for d in self.dm_list + [d for lags in self.tdm_list for d in lags]:
            if d.shape != (self.n_loc, self.n_loc):
                raise ModelConfigurationError(
                    f"distance matrices must be ({self.n_loc}, {self.n_loc}), got {d.shape}"
                )
        self.spatial_prior = _as_vector(self.spatial_prior, "spatial_prior", 2)
        if np.any(self.spatial_prior <= 0):
            raise ModelConfigurationError("spatial prior shape and rate must be positive")

    @property
    def n_lags(self) -> int:
        return len(self.tdm_list[0]) if self.tdm_list else 0

    @property
    def tdm_empty(self) -> bool:
        return self.n_lags == 0


@dataclass(eq=False)
class TransitionPriors(ModelComponent):
    """Priors on the E -> I and I -> R transition-time distributions.

    Parameter columns hold (shape, rate) for the exponential rate, or
    (shape, rate, shape, rate) for the Weibull shape and scale
    hyperparameters. inf_mean is the mean infectious duration.
    """
    mode: str
    E_to_I_params: np.ndarray
    I_to_R_params: np.ndarray
    inf_mean: Optional[float] = None
    component_type = TRANSITION_MODEL_TYPE

    def __post_init__(self):
        if self.mode not in TRANSITION_MODES:
            raise ModelConfigurationError(f"Invalid transition mode: {self.mode}")
        self.E_to_I_params = _as_matrix(self.E_to_I_params, "E_to_I_params")
        self.I_to_R_params = _as_matrix(self.I_to_R_params, "I_to_R_params")
        rows = {"exponential": 2, "weibull": 4}.get(self.mode)
        if rows is not None:
            for name, p in (("E_to_I_params", self.E_to_I_params), ("I_to_R_params", self.I_to_R_params)):
                if p.shape[0] < rows:
                    raise ModelConfigurationError(f"{name} needs {rows} rows in {self.mode} mode")
                if np.any(p[:rows, 0] <= 0):
                    raise ModelConfigurationError(f"{name} shape/rate values must be positive")
        self.inf_mean = 0.0 if self.inf_mean is None else float(self.inf_mean)


@dataclass(eq=False)
class InitialValueContainer(ModelComponent):
    """Initial compartment sizes, one entry per location"""
    S0: np.ndarray
    E0: np.ndarray
    I0: np.ndarray
    R0: np.ndarray
    component_type = INIT_CONTAINER_TYPE

    def __post_init__(self):
        sizes = []
        for name in ("S0", "E0", "I0", "R0"):
            arr = np.atleast_1d(np.asarray(getattr(self, name))).astype(np.int64)
            if np.any(arr < 0):
                raise ModelConfigurationError(f"{name} must be non-negative")
            setattr(self, name, arr)
            sizes.append(arr.size)
        if len(set(sizes)) != 1:
            raise ModelConfigurationError(f"S0, E0, I0, R0 must have equal lengths, got {sizes}")

    @property
    def n_loc(self) -> int:
        return self.S0.size

    @property
    def N(self) -> np.ndarray:
        return self.S0 + self.E0 + self.I0 + self.R0
