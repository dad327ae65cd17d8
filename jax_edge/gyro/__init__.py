"""Gyro-averaging operators."""

from jax_edge.gyro.pade import gyro_pade1, gyro_pade2

__all__ = ["gyro_pade1", "gyro_pade2"]
