"""Core components for jax-edge simulation."""

from jax_edge.core.geometry import Geometry
from jax_edge.core.state import State
from jax_edge.core.communication import LocalCommunicator, fill_y_guards
from jax_edge.core.grid import DictGridSource, HDF5GridSource, load_grid, slab_grid

__all__ = [
    "Geometry",
    "State",
    "LocalCommunicator",
    "fill_y_guards",
    "DictGridSource",
    "HDF5GridSource",
    "load_grid",
    "slab_grid",
]
