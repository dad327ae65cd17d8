"""Tests for radial boundary conditions."""

import pytest
import jax.numpy as jnp

from jax_edge.boundaries import (
    DirichletX,
    NeumannX,
    apply_x_boundary,
    make_boundary,
    zero_x_boundary_region,
)
from tests.utils.builders import smooth_field


class TestMirrorBoundaries:
    """Guard cells mirror the interior about the cell face."""

    def test_dirichlet_antisymmetric(self, slab):
        f = apply_x_boundary(smooth_field(slab), slab, "dirichlet")
        xs, xe = slab.xstart, slab.xend
        assert jnp.allclose(f[xs - 1], -f[xs])
        assert jnp.allclose(f[xs - 2], -f[xs + 1])
        assert jnp.allclose(f[xe + 1], -f[xe])
        assert jnp.allclose(f[xe + 2], -f[xe - 1])

    def test_neumann_symmetric(self, slab):
        f = NeumannX().apply(smooth_field(slab), slab)
        xs, xe = slab.xstart, slab.xend
        assert jnp.allclose(f[xs - 1], f[xs])
        assert jnp.allclose(f[xe + 1], f[xe])

    def test_interior_untouched(self, slab):
        f = smooth_field(slab)
        out = DirichletX().apply(f, slab)
        assert jnp.allclose(slab.interior(out), slab.interior(f))

    def test_none_returns_input(self, slab):
        f = smooth_field(slab)
        assert jnp.array_equal(apply_x_boundary(f, slab, "none"), f)

    def test_2d_field(self, slab):
        f = jnp.ones(slab.shape2d)
        out = apply_x_boundary(f, slab, "dirichlet")
        assert jnp.allclose(out[0], -1.0)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            make_boundary("robin")


class TestBoundaryRegion:
    """Tests for zeroing a band of cells at each radial edge."""

    def test_zero_width(self, slab):
        f = jnp.ones(slab.shape3d)
        out = zero_x_boundary_region(f, slab, 3)
        assert jnp.allclose(out[:3], 0.0)
        assert jnp.allclose(out[-3:], 0.0)
        assert jnp.allclose(out[3:-3], 1.0)

    def test_non_positive_width_is_noop(self, slab):
        f = jnp.ones(slab.shape3d)
        assert jnp.array_equal(zero_x_boundary_region(f, slab, 0), f)
