"""Mirror boundary conditions at the radial edges.

Guard cell ``xstart - 1 - k`` mirrors interior cell ``xstart + k`` (and
likewise at the outer edge), so the boundary sits on the cell face.
"""

from dataclasses import dataclass
from functools import partial
import jax.numpy as jnp
from jax import Array, jit

from jax_edge.boundaries.base import BoundaryCondition
from jax_edge.core.geometry import Geometry

BOUNDARY_KINDS = ("neumann", "dirichlet", "none")


@partial(jit, static_argnames=("kind",))
def apply_x_boundary(f: Array, geometry: Geometry, kind: str = "neumann") -> Array:
    """Set x guard cells of a 2D or 3D field.

    Args:
        f: Field with guard cells
        geometry: Grid geometry
        kind: ``"neumann"`` (zero gradient), ``"dirichlet"`` (zero value on
            the face) or ``"none"``

    Returns:
        Field with guard cells filled
    """
    if kind == "none":
        return f
    if kind == "neumann":
        sign = 1.0
    elif kind == "dirichlet":
        sign = -1.0
    else:
        raise ValueError(f"Unknown boundary kind: {kind}")

    mxg, xs, xe = geometry.mxg, geometry.xstart, geometry.xend
    for k in range(mxg):
        f = f.at[xs - 1 - k].set(sign * f[xs + k])
        f = f.at[xe + 1 + k].set(sign * f[xe - k])
    return f


@partial(jit, static_argnames=("width",))
def zero_x_boundary_region(f: Array, geometry: Geometry, width: int) -> Array:
    """Zero ``width`` cells at each radial edge, counted from the outermost cell."""
    if width <= 0:
        return f
    NX = geometry.nx_total
    x = jnp.arange(NX)
    keep = (x >= width) & (x < NX - width)
    shape = (NX,) + (1,) * (f.ndim - 1)
    return jnp.where(keep.reshape(shape), f, 0.0)


@dataclass(frozen=True)
class NeumannX(BoundaryCondition):
    """Zero-gradient radial boundary."""

    def apply(self, f: Array, geometry: Geometry) -> Array:
        return apply_x_boundary(f, geometry, "neumann")


@dataclass(frozen=True)
class DirichletX(BoundaryCondition):
    """Zero-value radial boundary on the cell face."""

    def apply(self, f: Array, geometry: Geometry) -> Array:
        return apply_x_boundary(f, geometry, "dirichlet")


def make_boundary(kind: str) -> BoundaryCondition:
    """Boundary condition object from its name."""
    if kind == "neumann":
        return NeumannX()
    if kind == "dirichlet":
        return DirichletX()
    raise ValueError(f"Unknown boundary kind: {kind}")
