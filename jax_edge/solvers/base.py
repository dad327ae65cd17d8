"""Abstract base class for time integrators."""

from abc import ABC, abstractmethod
import jax.numpy as jnp
from jax_edge.core.state import State
from jax_edge.models.base import PhysicsModel


class NumericalInstabilityError(Exception):
    """Raised when NaN or Inf values are detected in simulation state."""
    pass


class Solver(ABC):
    """Base class for time integration solvers.

    Solvers only combine the residuals a model returns; they never look
    inside the model's equations.
    """

    use_checked_step: bool = True

    @abstractmethod
    def advance(self, state: State, dt: float, model: PhysicsModel) -> State:
        """Advance state by one timestep."""
        raise NotImplementedError

    def step(self, state: State, dt: float, model: PhysicsModel) -> State:
        """Advance by dt and check the result.

        Raises:
            NumericalInstabilityError: If NaN or Inf values appear.
        """
        new_state = self.advance(state, dt, model)
        if self.use_checked_step:
            self._check_state(new_state)
        return new_state

    def _check_state(self, state: State) -> None:
        """Check state for NaN/Inf values and raise error if found."""
        for name, field in state.fields.items():
            if jnp.any(jnp.isnan(field)):
                raise NumericalInstabilityError(
                    f"NaN detected in {name} field at step {state.step}, t={float(state.time):.6e}"
                )
            if jnp.any(jnp.isinf(field)):
                raise NumericalInstabilityError(
                    f"Inf detected in {name} field at step {state.step}, t={float(state.time):.6e}"
                )

    @classmethod
    def create(cls, config: dict) -> "Solver":
        """Factory method to create solver from config."""
        solver_type = config.get("type", "split")
        if solver_type == "euler":
            from jax_edge.solvers.explicit import EulerSolver
            return EulerSolver()
        elif solver_type == "rk4":
            from jax_edge.solvers.explicit import RK4Solver
            return RK4Solver()
        elif solver_type == "split":
            from jax_edge.solvers.split import SplitSolver
            return SplitSolver(
                method=config.get("method", "rk4"),
                strang=bool(config.get("strang", True)),
            )
        else:
            raise ValueError(f"Unknown solver type: {solver_type}")
