"""Explicit time integration schemes."""

from dataclasses import dataclass
from typing import Callable
from jax_edge.solvers.base import Solver
from jax_edge.core.state import State
from jax_edge.models.base import PhysicsModel

RHSFunction = Callable[[State], State]


def add_scaled_rhs(base: State, rhs: State, scale: float) -> State:
    """Add scaled RHS to base state for all fields."""
    return base.map(lambda name, v: v + scale * rhs[name])


def euler_update(state: State, dt: float, rhs: RHSFunction) -> State:
    """One forward Euler stage of ``rhs``; advances time but not the step count."""
    k1 = rhs(state)
    return add_scaled_rhs(state, k1, dt).replace(time=state.time + dt)


def rk4_update(state: State, dt: float, rhs: RHSFunction) -> State:
    """Classical 4th-order Runge-Kutta update of ``rhs``.

    Intermediate states carry their stage time so that time-dependent
    residuals see the right t.
    """
    t = state.time

    # k1
    k1 = rhs(state)

    # k2
    k2 = rhs(add_scaled_rhs(state, k1, 0.5 * dt).replace(time=t + 0.5 * dt))

    # k3
    k3 = rhs(add_scaled_rhs(state, k2, 0.5 * dt).replace(time=t + 0.5 * dt))

    # k4
    k4 = rhs(add_scaled_rhs(state, k3, dt).replace(time=t + dt))

    # Combine: y_new = y + (dt/6) * (k1 + 2*k2 + 2*k3 + k4)
    new_state = state.map(
        lambda name, v: v + (dt / 6) * (k1[name] + 2 * k2[name] + 2 * k3[name] + k4[name])
    )
    return new_state.replace(time=t + dt)


UPDATES = {"euler": euler_update, "rk4": rk4_update}


@dataclass(frozen=True)
class EulerSolver(Solver):
    """Forward Euler on the summed physics and dissipation residuals."""

    def advance(self, state: State, dt: float, model: PhysicsModel) -> State:
        new_state = euler_update(state, dt, model.compute_rhs)
        return new_state.replace(step=state.step + 1)


@dataclass(frozen=True)
class RK4Solver(Solver):
    """4th-order Runge-Kutta on the summed physics and dissipation residuals."""

    def advance(self, state: State, dt: float, model: PhysicsModel) -> State:
        new_state = rk4_update(state, dt, model.compute_rhs)
        return new_state.replace(step=state.step + 1)
