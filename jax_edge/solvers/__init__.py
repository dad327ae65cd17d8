"""Time integration and elliptic solvers for jax-edge."""

from jax_edge.solvers.laplace import InvertFlags, InversionError, LaplaceInversion, invert_laplace
from jax_edge.solvers.base import Solver, NumericalInstabilityError
from jax_edge.solvers.explicit import EulerSolver, RK4Solver
from jax_edge.solvers.split import SplitSolver

__all__ = [
    "InvertFlags",
    "InversionError",
    "LaplaceInversion",
    "invert_laplace",
    "Solver",
    "NumericalInstabilityError",
    "EulerSolver",
    "RK4Solver",
    "SplitSolver",
]
