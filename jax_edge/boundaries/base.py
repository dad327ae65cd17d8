"""Radial boundary conditions applied to guard cells."""

from abc import ABC, abstractmethod
from jax import Array

from jax_edge.core.geometry import Geometry


class BoundaryCondition(ABC):
    """Base class for radial (x) boundary conditions."""

    @abstractmethod
    def apply(self, f: Array, geometry: Geometry) -> Array:
        """Return f with its x guard cells set."""
        pass
