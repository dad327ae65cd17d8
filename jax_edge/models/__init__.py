"""Physics models for jax-edge."""

from jax_edge.models.base import PhysicsModel
from jax_edge.models.protocols import SplitRHS
from jax_edge.models.gem import GemModel, GemConfig, GemTerms
from jax_edge.models.drift import DriftModel, DriftConfig

__all__ = [
    "PhysicsModel",
    "SplitRHS",
    "GemModel",
    "GemConfig",
    "GemTerms",
    "DriftModel",
    "DriftConfig",
]
