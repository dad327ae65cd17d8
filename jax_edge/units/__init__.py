"""Unit normalisation utilities."""

from jax_edge.units.normalization import DriftNormalisation, GemNormalisation

__all__ = [
    "DriftNormalisation",
    "GemNormalisation",
]
