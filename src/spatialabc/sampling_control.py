"""
===========================================================
sampling_control.py
Last Updated: 2026-10-19
===========================================================

Description:
    Sampling and parallelism settings for ABC model fitting:
    batch size, particle replicates, worker count, seed, and
    the algorithm selector with its tolerance targets.

Example Usage:
    from spatialabc.sampling_control import SamplingControl
    ctrl = SamplingControl(random_seed=123, cpu_cores=4, batch_size=2000)
    ctrl = SamplingControl.from_vectors([...9 ints...], [...3 floats...])

Notes:
    - Algorithms: 1 = basic rejection ABC, 2 = Beaumont (2009)
      adaptive tolerance, 3 = Del Moral (2012) SMC.
    - Only the selector is validated here; the iterative ABC
      loops live outside this package.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import os
import warnings
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Sequence

from .components import ModelComponent, SAMPLING_CONTROL_MODEL_TYPE
from .errors import CoreCountWarning, ModelConfigurationError

ALG_BASIC_ABC = 1
ALG_MODIFIED_BEAUMONT_2009 = 2
ALG_DEL_MORAL_2012 = 3
ALGORITHMS = {
    ALG_BASIC_ABC: "Basic ABC",
    ALG_MODIFIED_BEAUMONT_2009: "Modified Beaumont (2009)",
    ALG_DEL_MORAL_2012: "Del Moral (2012)",
}

_INTEGER_FIELDS = ("simulation_width", "random_seed", "cpu_cores", "algorithm", "batch_size",
                   "epochs", "max_batches", "multivariate_perturbation", "m")
_NUMERIC_FIELDS = ("accept_fraction", "shrinkage", "target_eps")


@dataclass(eq=False)
class SamplingControl(ModelComponent):
    """
    Settings that govern particle generation and simulation dispatch.

    All counts are per batch unless otherwise noted.
    """
    simulation_width: int = 1
    random_seed: int = 12312334
    cpu_cores: int = 1
    algorithm: int = ALG_BASIC_ABC
    batch_size: int = 10000
    epochs: int = 1
    max_batches: int = 100
    multivariate_perturbation: bool = False
    m: int = 1      # simulated replicates per particle

    accept_fraction: float = 0.05
    shrinkage: float = 0.9
    target_eps: float = 0.0

    particle_timeout: Optional[float] = None    # seconds per particle, None = unlimited
    component_type = SAMPLING_CONTROL_MODEL_TYPE

    def __post_init__(self):
        self.multivariate_perturbation = bool(self.multivariate_perturbation)
        if self.algorithm not in ALGORITHMS:
            raise ModelConfigurationError(
                "Algorithm specification must be of length 1 and equal to 1 or 2 or 3."
            )
        if self.max_batches <= 0:
            raise ModelConfigurationError("max_batches must be greater than zero.")
        if self.batch_size <= 0:
            raise ModelConfigurationError("batch_size must be greater than zero.")
        if self.cpu_cores < 1:
            raise ModelConfigurationError("cpu_cores must be at least 1.")
        if self.m < 1:
            raise ModelConfigurationError("m (replicates per particle) must be at least 1.")
        if not 0 < self.accept_fraction <= 1:
            raise ModelConfigurationError("accept_fraction must be in (0, 1].")
        if self.particle_timeout is not None and self.particle_timeout <= 0:
            raise ModelConfigurationError("particle_timeout must be positive when set.")
        available = os.cpu_count() or 1
        if self.cpu_cores > available:
            warnings.warn(
                f"{self.cpu_cores} cores requested but only {available} available; "
                f"workers will share cores.",
                CoreCountWarning,
            )

    @classmethod
    def from_vectors(
        cls,
        integer_params: Sequence[int],
        numeric_params: Sequence[float],
        particle_timeout: Optional[float] = None
    ) -> "SamplingControl":
        """Build from the packed (9 integer, 3 numeric) parameter vectors"""
        integer_params = list(integer_params)
        numeric_params = list(numeric_params)
        if len(integer_params) != len(_INTEGER_FIELDS) or len(numeric_params) != len(_NUMERIC_FIELDS):
            raise ModelConfigurationError("Exactly 12 samplingControl parameters are required.")
        kwargs = {name: int(v) for name, v in zip(_INTEGER_FIELDS, integer_params)}
        kwargs["multivariate_perturbation"] = kwargs["multivariate_perturbation"] != 0
        kwargs.update({name: float(v) for name, v in zip(_NUMERIC_FIELDS, numeric_params)})
        return cls(particle_timeout=particle_timeout, **kwargs)

    @property
    def algorithm_name(self) -> str:
        return ALGORITHMS[self.algorithm]

    def to_dict(self) -> Dict:
        """Convert settings to a dictionary for easy inspection."""
        return asdict(self)

    def print_summary(self):
        """Print settings summary."""
        print("SAMPLING CONTROL:")
        print(f"Algorithm: {self.algorithm_name}")
        print(f"Batch size: {self.batch_size:,} (max batches: {self.max_batches})")
        print(f"Replicates per particle (m): {self.m}")
        print(f"CPU cores: {self.cpu_cores}")
        print(f"Random seed: {self.random_seed}")
        print(f"Acceptance fraction: {self.accept_fraction:.3f}")
        print(f"Shrinkage: {self.shrinkage:.3f}")
        print(f"Target epsilon: {self.target_eps:g}")
