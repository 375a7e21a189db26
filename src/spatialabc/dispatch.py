"""
===========================================================
dispatch.py
Last Updated: 2026-10-19
===========================================================

Description:
    Runs one stochastic simulation per particle (row of a
    parameter matrix) across a fixed-size worker pool and
    gathers the results by particle index.

API:
    SimulationDispatcher(inputs, n_workers, seed, simulator=simulate_particle,
                         timeout=None)
      - run(params) -> BatchResult
      - close()
    BatchResult
      - summaries: (n_particles, m) replicate distances, NaN rows on failure
      - records: SimulationResultSet per particle, None on failure
      - failures: {particle index: error message}

Notes:
    - Every particle gets its own child of
      SeedSequence(seed + n_calls), so results do not depend on
      the number of workers or on completion order.
    - A failing (or timed out) particle is recorded and the rest
      of the batch carries on; run() returns only once every
      particle has finished.
    - The timeout is measured from the moment a worker starts the
      particle. A particle over budget is recorded as a
      TimeoutError; its worker is killed, the pool recreated, and
      particles that were still pending are resubmitted with
      their original seeds.
    - With n_workers == 1 and no timeout simulations run
      in-process; with a timeout they run in a one-process pool
      so a stuck simulation can be stopped.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import multiprocessing
import queue
import time
import warnings
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .errors import SimulationFailureWarning
from .simulator import SimulationInputs, SimulationResultSet, simulate_particle

Simulator = Callable[[np.ndarray, SimulationInputs, np.random.Generator], SimulationResultSet]
# (index, record, error message, elapsed seconds)
Slot = Tuple[int, Optional[SimulationResultSet], Optional[str], float]

# seconds between checks on running particles
POLL_INTERVAL = 0.01

# set in each worker process by the pool initializer
_WORKER_STATE: Dict[str, object] = {}


def _run_slot(simulator: Simulator, inputs: SimulationInputs, index: int, params: np.ndarray,
              seed: np.random.SeedSequence) -> Slot:
    rng = np.random.Generator(np.random.MT19937(seed))
    start = time.perf_counter()
    try:
        record, error = simulator(params, inputs, rng), None
    except Exception as e:
        record, error = None, f"{type(e).__name__}: {e}"
    return index, record, error, time.perf_counter() - start


def _init_worker(simulator: Simulator, inputs: SimulationInputs, started):
    _WORKER_STATE["simulator"] = simulator
    _WORKER_STATE["inputs"] = inputs
    _WORKER_STATE["started"] = started


def _pool_slot(call: int, index: int, params: np.ndarray, seed: np.random.SeedSequence) -> Slot:
    started = _WORKER_STATE["started"]
    if started is not None:
        started.put((call, index, time.time()))
    return _run_slot(_WORKER_STATE["simulator"], _WORKER_STATE["inputs"], index, params, seed)


@dataclass
class BatchResult:
    summaries: np.ndarray
    records: List[Optional[SimulationResultSet]]
    failures: Dict[int, str] = field(default_factory=dict)

    @property
    def n_particles(self) -> int:
        return len(self.records)

    @property
    def failed(self) -> np.ndarray:
        return np.array(sorted(self.failures), dtype=int)

    @property
    def succeeded(self) -> np.ndarray:
        return np.array([i for i in range(self.n_particles) if i not in self.failures], dtype=int)

    @property
    def complete(self) -> bool:
        return not self.failures

    def summary(self) -> Dict[str, object]:
        return {
            "n_particles": self.n_particles,
            "n_succeeded": int(self.succeeded.size),
            "n_failed": int(self.failed.size),
            "failed": self.failed.tolist(),
        }


class SimulationDispatcher:
    def __init__(
        self,
        inputs: SimulationInputs,
        n_workers: int,
        seed: int,
        simulator: Simulator = simulate_particle,
        timeout: Optional[float] = None
    ):
        if n_workers < 1:
            raise ValueError("n_workers must be at least 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive when set")
        self.inputs = inputs
        self.n_workers = int(n_workers)
        self.seed = int(seed)
        self.simulator = simulator
        self.timeout = timeout
        self.n_calls = 0
        self._pool = None
        self._started = None

    def _get_pool(self):
        if self._pool is None:
            # workers report (call, particle, start time) when a timeout is enforced
            self._started = multiprocessing.Queue() if self.timeout is not None else None
            self._pool = multiprocessing.Pool(
                processes=self.n_workers,
                initializer=_init_worker,
                initargs=(self.simulator, self.inputs, self._started),
            )
        return self._pool

    def _discard_pool(self):
        """Kill the workers, including any stuck in a simulation"""
        if self._pool is not None:
            self._pool.terminate()
            self._pool.join()
            self._pool = None
        if self._started is not None:
            self._started.close()
            self._started = None

    def _seeds(self, n: int) -> List[np.random.SeedSequence]:
        return np.random.SeedSequence(self.seed + self.n_calls).spawn(n)

    def _timeout_slot(self, index: int, elapsed: float) -> Slot:
        return index, None, f"TimeoutError: simulation exceeded {self.timeout}s ({elapsed:.2f}s)", elapsed

    def _drain_started(self, call: int, started: Dict[int, float]):
        while True:
            try:
                c, index, t = self._started.get_nowait()
            except queue.Empty:
                return
            if c == call:
                started[index] = t

    def _gather(self, call: int, params: np.ndarray, seeds) -> List[Slot]:
        pool = self._get_pool()
        jobs = [pool.apply_async(_pool_slot, (call, i, params[i], seeds[i])) for i in range(len(params))]
        return [job.get() for job in jobs]

    def _gather_with_timeout(self, call: int, params: np.ndarray, seeds) -> List[Slot]:
        slots: Dict[int, Slot] = {}
        remaining = list(range(len(params)))
        while remaining:
            pool = self._get_pool()
            jobs = {i: pool.apply_async(_pool_slot, (call, i, params[i], seeds[i])) for i in remaining}
            started: Dict[int, float] = {}
            stuck = False
            while jobs and not stuck:
                self._drain_started(call, started)
                now = time.time()
                for i in list(jobs):
                    if jobs[i].ready():
                        slots[i] = jobs.pop(i).get()
                    elif i in started and now - started[i] > self.timeout:
                        jobs.pop(i)
                        slots[i] = self._timeout_slot(i, now - started[i])
                        stuck = True
                if jobs and not stuck:
                    time.sleep(POLL_INTERVAL)
            if stuck:
                # a running simulation can only be stopped by killing its worker
                self._discard_pool()
            remaining = sorted(jobs)
        return [slots[i] for i in range(len(params))]

    def run(self, params: np.ndarray) -> BatchResult:
        """Simulate every row of params; blocks until the whole batch is done"""
        params = np.atleast_2d(np.asarray(params, dtype=float))
        n = params.shape[0]
        seeds = self._seeds(n)
        call = self.n_calls
        self.n_calls += 1

        summaries = np.full((n, self.inputs.m), np.nan)
        records: List[Optional[SimulationResultSet]] = [None] * n
        failures: Dict[int, str] = {}

        if self.timeout is not None:
            slots = self._gather_with_timeout(call, params, seeds)
        elif self.n_workers == 1:
            slots = [_run_slot(self.simulator, self.inputs, i, params[i], seeds[i]) for i in range(n)]
        else:
            slots = self._gather(call, params, seeds)

        for index, record, error, elapsed in slots:
            if error is None and self.timeout is not None and elapsed > self.timeout:
                # finished between two polls but still over budget
                index, record, error, elapsed = self._timeout_slot(index, elapsed)
            if error is not None:
                failures[index] = error
                continue
            result = np.asarray(record.result, dtype=float).ravel()
            if result.size != self.inputs.m:
                failures[index] = f"ValueError: expected {self.inputs.m} replicate results, got {result.size}"
                continue
            summaries[index] = result
            records[index] = record

        if failures:
            warnings.warn(f"{len(failures)} of {n} particle simulations failed", SimulationFailureWarning)
        return BatchResult(summaries=summaries, records=records, failures=failures)

    def close(self):
        if self._pool is not None:
            self._pool.close()
            self._pool.join()
            self._pool = None
        if self._started is not None:
            self._started.close()
            self._started = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
