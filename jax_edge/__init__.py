"""jax-edge: gyrofluid and drift-fluid edge turbulence models in JAX."""

import jax

# Elliptic inversions and Pade operators need double precision
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"

# Core classes
from jax_edge.core.geometry import Geometry
from jax_edge.core.state import State
from jax_edge.core.simulation import Simulation
from jax_edge.config.options import Options

# Constants
from jax_edge.constants import MU0, QE, ME, MP, EPSILON0

# Models
from jax_edge.models.base import PhysicsModel
from jax_edge.models.gem import GemModel
from jax_edge.models.drift import DriftModel

# Submodules for qualified imports
from jax_edge import operators
from jax_edge import models
from jax_edge import solvers
from jax_edge import gyro

__all__ = [
    # Core classes
    "Geometry",
    "State",
    "Simulation",
    "Options",
    # Constants
    "MU0",
    "QE",
    "ME",
    "MP",
    "EPSILON0",
    # Models
    "PhysicsModel",
    "GemModel",
    "DriftModel",
    # Submodules
    "operators",
    "models",
    "solvers",
    "gyro",
]
