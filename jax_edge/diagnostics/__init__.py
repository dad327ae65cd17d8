"""Diagnostics and output for jax-edge simulations."""

from jax_edge.diagnostics.output import (
    DumpWriter,
    load_checkpoint,
    load_dump,
    save_checkpoint,
)
from jax_edge.diagnostics.plotting import plot_poloidal_slice, plot_time_history

__all__ = [
    "DumpWriter",
    "load_checkpoint",
    "load_dump",
    "save_checkpoint",
    "plot_poloidal_slice",
    "plot_time_history",
]
