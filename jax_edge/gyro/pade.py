"""Pade approximations to gyro-averaging.

    Gamma_0^(1/2) f  ~  (1 - rho^2/2 Delp2)^-1 f
    Gamma_1 f        ~  rho^2/2 Delp2 (1 - rho^2/2 Delp2)^-2 f
"""

from typing import Union
from jax import Array

from jax_edge.boundaries.radial import apply_x_boundary
from jax_edge.core.geometry import Geometry
from jax_edge.operators import delp2
from jax_edge.solvers.laplace import invert_laplace

Radius = Union[float, Array]


def gyro_pade1(f: Array, rho: Radius, geometry: Geometry, flags: int = 0) -> Array:
    """First-order Pade gyro-average: solve (1 - rho^2/2 Delp2) g = f.

    Args:
        f: Field to average
        rho: Gyroradius (scalar or 2D)
        geometry: Grid geometry
        flags: Inversion flags for the radial boundaries

    Returns:
        Gyro-averaged field
    """
    return invert_laplace(f, geometry, flags, a=1.0, d=-0.5 * rho ** 2)


def gyro_pade2(f: Array, rho: Radius, geometry: Geometry, flags: int = 0) -> Array:
    """Second-order Pade operator rho^2/2 Delp2 applied to pade1(pade1(f))."""
    g = gyro_pade1(gyro_pade1(f, rho, geometry, flags), rho, geometry, flags)
    g = apply_x_boundary(g, geometry, "dirichlet")
    result = 0.5 * rho ** 2 * delp2(g, geometry)
    return apply_x_boundary(result, geometry, "dirichlet")
