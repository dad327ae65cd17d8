"""Tests for the perpendicular Laplacian inversion."""

import numpy as np
import pytest
import jax.numpy as jnp

from jax_edge import operators as ops
from jax_edge.input_validation import ValidationError
from jax_edge.solvers.laplace import (
    InversionError,
    InvertFlags,
    LaplaceInversion,
    invert_laplace,
)
from tests.utils.builders import coordinates, smooth_field

NEUMANN = (InvertFlags.DC_IN_GRAD | InvertFlags.AC_IN_GRAD
           | InvertFlags.DC_OUT_GRAD | InvertFlags.AC_OUT_GRAD)


class TestInvertLaplace:
    """Inversion reproduces the source through the forward operator."""

    def test_delp2_of_solution_recovers_source(self, slab):
        b = smooth_field(slab, mode_z=1) + 0.3 * smooth_field(slab, mode_z=2, phase=0.4)
        x = invert_laplace(b, slab)
        assert x.shape == b.shape
        assert jnp.allclose(slab.interior(ops.delp2(x, slab)), slab.interior(b), atol=1e-8)

    def test_helmholtz(self, slab):
        b = smooth_field(slab, mode_z=1)
        x = invert_laplace(b, slab, a=2.0)
        lhs = ops.delp2(x, slab) + 2.0 * x
        assert jnp.allclose(slab.interior(lhs), slab.interior(b), atol=1e-8)

    def test_d_coefficient(self, slab):
        b = smooth_field(slab, mode_z=2)
        x = invert_laplace(b, slab, a=1.0, d=-0.5)
        lhs = -0.5 * ops.delp2(x, slab) + x
        assert jnp.allclose(slab.interior(lhs), slab.interior(b), atol=1e-8)

    def test_constant_c_changes_nothing(self, slab):
        b = smooth_field(slab, mode_z=1)
        assert jnp.allclose(invert_laplace(b, slab, c=3.0), invert_laplace(b, slab), atol=1e-10)

    def test_2d_source(self, slab):
        x, _, _ = coordinates(slab)
        b = jnp.broadcast_to(jnp.sin(np.pi * x[:, :, 0] / 10.0), slab.shape2d)
        sol = invert_laplace(b, slab)
        assert sol.shape == slab.shape2d
        assert jnp.allclose(slab.interior(ops.delp2(sol, slab)), slab.interior(b), atol=1e-8)


class TestInvertFlags:
    """Boundary and mode options."""

    def test_default_boundary_is_zero_on_face(self, slab):
        x = invert_laplace(smooth_field(slab), slab)
        xs, xe = slab.xstart, slab.xend
        assert jnp.allclose(x[xs - 1], -x[xs])
        assert jnp.allclose(x[xe + 1], -x[xe])

    def test_gradient_flags(self, slab):
        b = smooth_field(slab, mode_z=1)
        x = invert_laplace(b, slab, NEUMANN, a=1.0)
        xs, xe = slab.xstart, slab.xend
        assert jnp.allclose(x[xs - 1], x[xs])
        assert jnp.allclose(x[xe + 1], x[xe])

    def test_zero_dc(self, slab):
        b = smooth_field(slab, mode_z=1) + 1.0
        x = invert_laplace(b, slab, InvertFlags.ZERO_DC)
        assert jnp.allclose(ops.dc(x), 0.0, atol=1e-12)

    def test_uniform_mode_with_gradient_flags(self, slab):
        """A radially uniform mode inverts algebraically with zero-gradient edges."""
        _, _, z = coordinates(slab)
        kz = 2 * np.pi / slab.zlength
        b = jnp.broadcast_to(jnp.cos(kz * z), slab.shape3d)
        x = invert_laplace(b, slab, NEUMANN, a=1.0)
        assert jnp.allclose(slab.interior(x), slab.interior(b) / (1.0 - kz ** 2), atol=1e-10)

    def test_rhs_flags_take_boundary_from_source(self, slab):
        b = jnp.ones(slab.shape3d)
        x = invert_laplace(b, slab, InvertFlags.IN_RHS | InvertFlags.OUT_RHS, a=1.0)
        # Guard value plus mirrored interior value equals the source there
        xs = slab.xstart
        assert jnp.allclose(x[xs - 1] + x[xs], b[xs - 1] + b[xs])


class TestInversionErrors:
    """Invalid input is reported."""

    def test_non_finite_raises(self, slab):
        b = smooth_field(slab).at[3, 3, 0].set(jnp.nan)
        with pytest.raises(InversionError):
            invert_laplace(b, slab)

    def test_bad_coefficient_shape(self, slab):
        with pytest.raises(ValidationError):
            invert_laplace(smooth_field(slab), slab, a=jnp.ones((3, 3)))


class TestLaplaceInversion:
    """The stored-options wrapper."""

    def test_matches_function(self, slab):
        b = smooth_field(slab, mode_z=1)
        solver = LaplaceInversion(slab, flags=InvertFlags.ZERO_DC, a=0.5)
        assert jnp.allclose(solver(b), invert_laplace(b, slab, InvertFlags.ZERO_DC, a=0.5))
