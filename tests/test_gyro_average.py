"""Tests for the Pade gyro-averaging operators."""

import numpy as np
import jax.numpy as jnp

from jax_edge.gyro import gyro_pade1, gyro_pade2
from jax_edge.solvers.laplace import InvertFlags
from tests.utils.builders import coordinates, smooth_field

NEUMANN = (InvertFlags.DC_IN_GRAD | InvertFlags.AC_IN_GRAD
           | InvertFlags.DC_OUT_GRAD | InvertFlags.AC_OUT_GRAD)


class TestPade1:
    """First-order Pade approximant of Gamma_0^(1/2)."""

    def test_small_radius_is_identity(self, slab):
        f = smooth_field(slab, mode_z=1)
        g = gyro_pade1(f, 1e-4, slab)
        assert jnp.allclose(slab.interior(g), slab.interior(f), atol=1e-7)

    def test_single_mode_factor(self, slab):
        """A radially uniform mode is reduced by 1 / (1 + rho^2 kz^2 / 2)."""
        _, _, z = coordinates(slab)
        kz = 2 * np.pi / slab.zlength * 2
        f = jnp.broadcast_to(jnp.cos(kz * z), slab.shape3d)
        rho = 1.5
        g = gyro_pade1(f, rho, slab, NEUMANN)
        expected = slab.interior(f) / (1.0 + 0.5 * rho ** 2 * kz ** 2)
        assert jnp.allclose(slab.interior(g), expected, atol=1e-10)

    def test_averaging_smooths(self, slab):
        f = smooth_field(slab, mode_z=3)
        g = gyro_pade1(f, 2.0, slab)
        assert float(jnp.max(jnp.abs(slab.interior(g)))) < float(jnp.max(jnp.abs(slab.interior(f))))


class TestPade2:
    """Second-order operator for the perpendicular-temperature response."""

    def test_vanishes_with_radius(self, slab):
        f = smooth_field(slab, mode_z=1)
        assert jnp.allclose(gyro_pade2(f, 1e-4, slab), 0.0, atol=1e-7)

    def test_guard_cells_dirichlet(self, slab):
        f = smooth_field(slab, mode_z=1)
        g = gyro_pade2(f, 1.0, slab)
        xs = slab.xstart
        assert jnp.allclose(g[xs - 1], -g[xs])
        assert g.shape == f.shape
