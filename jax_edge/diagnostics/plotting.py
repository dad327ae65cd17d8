"""Plotting functions for jax-edge output.

All functions return the matplotlib Figure and optionally save it; the
non-interactive backend is selected on import.
"""

from pathlib import Path
from typing import Mapping, Optional, Sequence, Union
import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt

from jax_edge.core.geometry import Geometry


def _save(fig: plt.Figure, save_path: Optional[Union[str, Path]]) -> None:
    if save_path is None:
        return
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(save_path, dpi=150, bbox_inches='tight')


def plot_poloidal_slice(
    field,
    geometry: Geometry,
    y_index: Optional[int] = None,
    title: str = "",
    cmap: str = "RdBu_r",
    save_path: Optional[Union[str, Path]] = None,
) -> plt.Figure:
    """Plot the interior x-z plane of a 3D field at one parallel index.

    Args:
        field: 3D array (NX, NY, nz)
        geometry: Grid geometry
        y_index: Parallel index including guard cells, default the middle
            of the interior
        title: Figure title
        cmap: Colormap name, symmetric about zero
        save_path: File to save the figure to, or None

    Returns:
        Matplotlib Figure object
    """
    f = np.asarray(field)
    if f.ndim != 3:
        raise ValueError(f"Expected a 3D field, got shape {f.shape}")
    if y_index is None:
        y_index = (geometry.ystart + geometry.yend) // 2

    plane = f[geometry.xstart:geometry.xend + 1, y_index, :]
    vmax = float(np.max(np.abs(plane))) or 1.0

    fig, ax = plt.subplots(figsize=(6, 5))
    x = np.arange(geometry.nx)
    z = np.arange(geometry.nz) * geometry.dz
    im = ax.pcolormesh(z, x, plane, cmap=cmap, vmin=-vmax, vmax=vmax, shading='auto')
    fig.colorbar(im, ax=ax)
    ax.set_xlabel('z')
    ax.set_ylabel('x index')
    ax.set_title(title or f"y = {y_index}")
    fig.tight_layout()
    _save(fig, save_path)
    return fig


def plot_time_history(
    history: Mapping[str, Sequence[float]],
    names: Optional[Sequence[str]] = None,
    log_scale: bool = True,
    save_path: Optional[Union[str, Path]] = None,
) -> plt.Figure:
    """Plot scalar time traces, one panel per quantity.

    Args:
        history: Mapping with a ``time`` entry and one list per quantity
        names: Quantities to plot, default all except ``time``
        log_scale: Logarithmic y axis (useful for growth rates)
        save_path: File to save the figure to, or None

    Returns:
        Matplotlib Figure object
    """
    time = np.asarray(history['time'])
    if names is None:
        names = [k for k in history if k != 'time']
    if not names:
        raise ValueError("No quantities to plot")

    fig, axes = plt.subplots(len(names), 1, figsize=(7, 2.5 * len(names)), sharex=True,
                             squeeze=False)
    for ax, name in zip(axes[:, 0], names):
        values = np.asarray(history[name])
        if log_scale and np.all(values > 0):
            ax.semilogy(time, values)
        else:
            ax.plot(time, values)
        ax.set_ylabel(name)
        ax.grid(True, alpha=0.3)
    axes[-1, 0].set_xlabel('time')
    fig.tight_layout()
    _save(fig, save_path)
    return fig
