"""Tests for the explicit and operator-split integrators."""

import pytest
import jax.numpy as jnp

from jax_edge.core.state import State
from jax_edge.input_validation import ValidationError
from jax_edge.models.protocols import SplitRHS
from jax_edge.solvers import (
    EulerSolver,
    NumericalInstabilityError,
    RK4Solver,
    Solver,
    SplitSolver,
)
from jax_edge.solvers.explicit import euler_update, rk4_update


class GrowthDecayModel:
    """du/dt = growth from physics, -decay * u from dissipation.

    Records the time of every residual call.
    """

    def __init__(self, growth=1.0, decay=1.0):
        self.growth = growth
        self.decay = decay
        self.calls = []

    def physics_rhs(self, state):
        self.calls.append(("physics", float(state.time)))
        return state.map(lambda name, v: jnp.full_like(v, self.growth))

    def dissipation_rhs(self, state):
        self.calls.append(("dissipation", float(state.time)))
        return state.map(lambda name, v: -self.decay * v)

    def compute_rhs(self, state):
        p = self.physics_rhs(state)
        d = self.dissipation_rhs(state)
        return p.map(lambda name, v: v + d[name])


class NaNModel(GrowthDecayModel):
    def physics_rhs(self, state):
        return state.map(lambda name, v: jnp.full_like(v, jnp.nan))


@pytest.fixture
def state():
    return State.from_mapping({"u": jnp.ones(4)}, time=1.0, step=3)


class TestUpdates:
    """Single-stage and four-stage updates."""

    def test_euler(self, state):
        out = euler_update(state, 0.1, lambda s: s.map(lambda n, v: 2.0 * v))
        assert jnp.allclose(out["u"], 1.2)
        assert out.time == pytest.approx(1.1)
        assert out.step == state.step

    def test_rk4_exponential(self, state):
        out = rk4_update(state, 0.1, lambda s: s.map(lambda n, v: -v))
        assert jnp.allclose(out["u"], jnp.exp(-0.1), rtol=1e-6)

    def test_rk4_stage_times(self, state):
        model = GrowthDecayModel()
        rk4_update(state, 0.2, model.physics_rhs)
        times = [t for _, t in model.calls]
        assert times == pytest.approx([1.0, 1.1, 1.1, 1.2])


class TestExplicitSolvers:
    """Euler and RK4 on the summed residual."""

    def test_euler_step(self, state):
        out = EulerSolver().step(state, 0.1, GrowthDecayModel())
        # u + dt (1 - u) = 1 for u = 1
        assert jnp.allclose(out["u"], 1.0)
        assert out.step == 4
        assert out.time == pytest.approx(1.1)

    def test_rk4_step(self, state):
        out = RK4Solver().step(state, 0.1, GrowthDecayModel(growth=0.0))
        assert jnp.allclose(out["u"], jnp.exp(-0.1), rtol=1e-6)


class TestSplitSolver:
    """Strang and Lie splitting of physics and dissipation."""

    def test_strang_sequence(self, state):
        model = GrowthDecayModel()
        out = SplitSolver(method="euler").step(state, 0.1, model)
        # Half physics, full dissipation, half physics
        assert [kind for kind, _ in model.calls] == ["physics", "dissipation", "physics"]
        assert [t for _, t in model.calls] == pytest.approx([1.0, 1.05, 1.05])
        assert jnp.allclose(out["u"], (1.0 + 0.05) * 0.9 + 0.05)
        assert out.time == pytest.approx(1.1)
        assert out.step == 4

    def test_lie_sequence(self, state):
        model = GrowthDecayModel()
        out = SplitSolver(method="euler", strang=False).step(state, 0.1, model)
        assert [kind for kind, _ in model.calls] == ["physics", "dissipation"]
        assert jnp.allclose(out["u"], 1.1 * 0.9)
        assert out.time == pytest.approx(1.1)
        assert out.step == 4

    def test_rk4_substeps(self, state):
        model = GrowthDecayModel(growth=0.0)
        out = SplitSolver().step(state, 0.1, model)
        assert jnp.allclose(out["u"], jnp.exp(-0.1), rtol=1e-6)
        assert [kind for kind, _ in model.calls].count("dissipation") == 4

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            SplitSolver(method="leapfrog")

    def test_nan_detected(self, state):
        with pytest.raises(NumericalInstabilityError, match="NaN detected in u"):
            SplitSolver().step(state, 0.1, NaNModel())

    def test_split_models_satisfy_protocol(self, gem_model, drift_model):
        assert isinstance(GrowthDecayModel(), SplitRHS)
        assert isinstance(gem_model, SplitRHS)
        assert isinstance(drift_model, SplitRHS)
        assert not isinstance(object(), SplitRHS)


class TestSolverFactory:
    """Tests for Solver.create."""

    def test_default_is_split(self):
        solver = Solver.create({})
        assert isinstance(solver, SplitSolver)
        assert solver.strang

    def test_split_options(self):
        solver = Solver.create({"type": "split", "method": "euler", "strang": False})
        assert solver.method == "euler"
        assert not solver.strang

    @pytest.mark.parametrize("kind,cls", [("euler", EulerSolver), ("rk4", RK4Solver)])
    def test_explicit(self, kind, cls):
        assert isinstance(Solver.create({"type": kind}), cls)

    def test_unknown(self):
        with pytest.raises(ValueError):
            Solver.create({"type": "implicit"})
