"""
===========================================================
engine.py
Last Updated: 2026-10-19
===========================================================

Description:
    SpatialSEIRModel ties the seven sub-models together for ABC
    fitting: it validates the composition, owns the random
    generator and the particle matrix, draws prior batches,
    evaluates prior densities and hands particle batches to the
    simulation worker pool.

Example Usage:
    from spatialabc.engine import SpatialSEIRModel
    with SpatialSEIRModel(data, exposure, reinfection, distance,
                          transitions, init, control) as model:
        particles = model.generate_prior_batch(1000)
        weight = model.eval_prior(particles[0])
        batch = model.run_simulation(particles)

Notes:
    - Sub-models are referenced, not copied, and must stay alive
      for the lifetime of the model; they are retained on
      construction and released by close(), or when the model
      is garbage collected without being closed.
    - The generator is an MT19937 seeded through
      SeedSequence(random_seed + 1), so two models built from the
      same inputs draw identical particles.
    - The parameter layout is re-derived from the sub-models on
      every call. run_simulation() re-copies the sub-model values
      and restarts the workers whenever any of them changed.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import weakref
import numpy as np
from typing import List, Optional

from .dispatch import BatchResult, SimulationDispatcher, Simulator
from .errors import ParameterShapeError
from .layout import ParameterLayout, parameter_layout
from .prior import PriorDensityEvaluator, PriorSampler
from .simulator import SimulationInputs, simulate_particle
from .validation import validate_components


def _release(worker_pool: SimulationDispatcher, components: List):
    worker_pool.close()
    for component in components:
        component.release()


class SpatialSEIRModel:
    """
    Prior sampling, prior evaluation and simulation dispatch for a
    stochastic spatial SEIR model.

    Parameters:
    data_model: DataModel
    exposure_model: ExposureModel
    reinfection_model: ReinfectionModel
    distance_model: DistanceModel
    transition_priors: TransitionPriors
    initial_values: InitialValueContainer
    sampling_control: SamplingControl
    simulator: callable, optional. Per-particle kernel, defaults to
        simulate_particle. Must be picklable when cpu_cores > 1.
    """
    def __init__(
        self,
        data_model,
        exposure_model,
        reinfection_model,
        distance_model,
        transition_priors,
        initial_values,
        sampling_control,
        simulator: Optional[Simulator] = None
    ):
        validate_components(data_model, exposure_model, reinfection_model, distance_model,
                            transition_priors, initial_values, sampling_control)

        self.data_model = data_model
        self.exposure_model = exposure_model
        self.reinfection_model = reinfection_model
        self.distance_model = distance_model
        self.transition_priors = transition_priors
        self.initial_values = initial_values
        self.sampling_control = sampling_control

        seed = np.random.SeedSequence(sampling_control.random_seed + 1)
        self.generator = np.random.Generator(np.random.MT19937(seed))

        self.sampler = PriorSampler(data_model, exposure_model, reinfection_model,
                                    distance_model, transition_priors, self.generator)
        self.evaluator = PriorDensityEvaluator(data_model, exposure_model, reinfection_model,
                                               distance_model, transition_priors)

        self.param_matrix: Optional[np.ndarray] = None
        self.is_initialized = False
        self.results: Optional[BatchResult] = None

        self.worker_pool = SimulationDispatcher(
            self._simulation_inputs(self.parameter_layout),
            n_workers=sampling_control.cpu_cores,
            seed=sampling_control.random_seed,
            simulator=simulator or simulate_particle,
            timeout=sampling_control.particle_timeout,
        )
        for component in self.components:
            component.retain()
        # releases the sub-models even if the model is dropped without close()
        self._finalizer = weakref.finalize(self, _release, self.worker_pool, self.components)

    @property
    def components(self) -> List:
        return [self.data_model, self.exposure_model, self.reinfection_model, self.distance_model,
                self.transition_priors, self.initial_values, self.sampling_control]

    def _simulation_inputs(self, layout: ParameterLayout) -> SimulationInputs:
        return SimulationInputs.from_components(
            self.data_model, self.exposure_model, self.reinfection_model, self.distance_model,
            self.transition_priors, self.initial_values, self.sampling_control, layout,
        )

    @property
    def parameter_layout(self) -> ParameterLayout:
        return parameter_layout(self.data_model, self.exposure_model, self.reinfection_model,
                                self.distance_model, self.transition_priors)

    @property
    def n_params(self) -> int:
        return self.parameter_layout.n_params

    @property
    def rho_exhausted_rows(self) -> List[int]:
        """Rows of the last prior batch whose rho block still sums above 1"""
        return list(self.sampler.exhausted_rows)

    def generate_prior_batch(self, n_particles: int) -> np.ndarray:
        """Draw a fresh batch of particles from the prior; replaces the particle matrix"""
        params = self.sampler.draw(n_particles)
        self.param_matrix = params
        self.is_initialized = False
        return params.copy()

    def set_parameters(self, params) -> bool:
        """Install a particle matrix; the column count must match the layout"""
        params = np.atleast_2d(np.asarray(params, dtype=float))
        n_params = self.n_params
        if params.shape[1] != n_params:
            raise ParameterShapeError(n_params, params.shape[1])
        self.param_matrix = params.copy()
        self.is_initialized = True
        return True

    def eval_prior(self, param_vector) -> float:
        return self.evaluator.density(param_vector)

    def run_simulation(self, params=None) -> BatchResult:
        """Simulate each particle; defaults to the installed/drawn particle matrix"""
        if params is None:
            if self.param_matrix is None:
                raise ValueError("No parameters available: draw a prior batch or call set_parameters() first")
            params = self.param_matrix
        params = np.atleast_2d(np.asarray(params, dtype=float))
        layout = self.parameter_layout
        if params.shape[1] != layout.n_params:
            raise ParameterShapeError(layout.n_params, params.shape[1])
        inputs = self._simulation_inputs(layout)
        if not inputs.matches(self.worker_pool.inputs):
            # sub-models changed since the workers were set up
            self.worker_pool.close()
            self.worker_pool.inputs = inputs
        self.results = self.worker_pool.run(params)
        return self.results

    def close(self):
        """Shut down the worker pool and release the sub-models"""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def print_summary(self):
        layout = self.parameter_layout
        print("SPATIAL SEIR MODEL:")
        print(f"Locations: {self.data_model.n_loc}, time points: {self.data_model.n_tpt}")
        print(f"Transition mode: {self.transition_priors.mode}")
        print(f"Reinfection: {'yes' if layout.has_reinfection else 'no'}, "
              f"spatial: {'yes' if layout.has_spatial else 'no'}")
        print(f"Parameters: {layout.n_params} "
              f"(beta {layout.n_beta}, beta_rs {layout.n_beta_rs}, "
              f"rho {layout.n_rho}, transition {layout.n_trans})")
        if self.param_matrix is not None:
            state = "installed" if self.is_initialized else "drawn from prior"
            print(f"Particle matrix: {self.param_matrix.shape[0]:,} particles ({state})")
        if self.results is not None:
            s = self.results.summary()
            print(f"Last batch: {s['n_succeeded']:,} succeeded, {s['n_failed']:,} failed")
