"""Radial boundary conditions."""

from jax_edge.boundaries.base import BoundaryCondition
from jax_edge.boundaries.radial import (
    BOUNDARY_KINDS,
    DirichletX,
    NeumannX,
    apply_x_boundary,
    make_boundary,
    zero_x_boundary_region,
)

__all__ = [
    "BoundaryCondition",
    "BOUNDARY_KINDS",
    "DirichletX",
    "NeumannX",
    "apply_x_boundary",
    "make_boundary",
    "zero_x_boundary_region",
]
