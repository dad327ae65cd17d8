"""Main simulation orchestrator."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional
import numpy as np
import jax.numpy as jnp

from jax_edge.core.initial import build_initial_fields
from jax_edge.core.state import State
from jax_edge.models.base import PhysicsModel
from jax_edge.solvers.base import Solver
from jax_edge.input_validation import validate_positive

log = logging.getLogger(__name__)


@dataclass
class Simulation:
    """Main simulation class that orchestrates model, solver and state."""

    model: PhysicsModel
    solver: Solver
    state: Optional[State] = None
    dt: float = 1e-2
    history: Dict[str, List[float]] = field(default_factory=dict)

    def __post_init__(self):
        validate_positive(self.dt, "dt")

    @property
    def geometry(self):
        return self.model.geometry

    def initialize(self, fields: Optional[Mapping] = None, time: float = 0.0) -> State:
        """Initialize simulation state from named perturbations."""
        self.state = self.model.initial_state(fields, time=time)
        self.history = {}
        self.record()
        return self.state

    def record(self) -> None:
        """Append time and the RMS of each evolved field to the history."""
        self.history.setdefault('time', []).append(float(self.state.time))
        for name in self.model.evolved_names:
            f = self.geometry.interior(self.state[name])
            self.history.setdefault(name, []).append(float(jnp.sqrt(jnp.mean(f ** 2))))

    def step(self, dt: Optional[float] = None) -> State:
        """Advance simulation by one timestep."""
        if self.state is None:
            self.initialize()
        self.state = self.solver.step(self.state, dt or self.dt, self.model)
        return self.state

    def run(self, t_end: float, dt: Optional[float] = None,
            callback: Optional[Callable[[State], None]] = None) -> State:
        """Run simulation until t_end, recording the history every step."""
        dt = dt or self.dt
        if self.state is None:
            self.initialize()
        log.info(f"Running {self.model.name} from t={float(self.state.time):.4e} "
                 f"to t={t_end:.4e} with dt={dt:.4e}")
        while float(self.state.time) < t_end - 1e-9 * dt:
            self.step(min(dt, t_end - float(self.state.time)))
            self.record()
            if callback is not None:
                callback(self.state)
        return self.state

    def run_steps(self, n_steps: int, dt: Optional[float] = None) -> State:
        """Run simulation for fixed number of steps."""
        for _ in range(n_steps):
            self.step(dt)
            self.record()
        return self.state

    def diagnostics(self) -> Dict[str, np.ndarray]:
        """Derived fields of the current state."""
        return {k: np.asarray(v) for k, v in self.model.diagnostics(self.state).items()}

    @classmethod
    def from_config(cls, config: dict) -> "Simulation":
        """Create Simulation from a case dictionary.

        Keys: ``model`` (with ``type``), ``grid``, ``options``, ``solver``,
        ``time`` (``dt``) and ``initial`` (list of perturbations).
        """
        model_config = dict(config.get("model", {"type": "gem"}))
        model_config.setdefault("grid", config.get("grid", {"type": "slab"}))
        model_config.setdefault("options", config.get("options", {}))
        model = PhysicsModel.create(model_config)
        solver = Solver.create(config.get("solver", {"type": "split"}))

        # YAML may load numbers like 1e-3 as strings
        time_config = config.get("time", {})
        dt = float(time_config.get("dt", 1e-2))

        sim = cls(model=model, solver=solver, dt=dt)
        fields = build_initial_fields(model.geometry, config.get("initial", []))
        sim.initialize(fields)
        return sim

    @classmethod
    def from_yaml(cls, path: str) -> "Simulation":
        """Create Simulation from YAML case file."""
        from jax_edge.config.loader import load_case
        config = load_case(path)
        return cls.from_config(config)
