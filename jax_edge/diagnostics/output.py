"""Output and checkpoint utilities for jax-edge simulations."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import h5py
import numpy as np
import jax.numpy as jnp

from jax_edge.core.geometry import Geometry, METRIC_FIELDS, STATIC_FIELDS
from jax_edge.core.state import State

log = logging.getLogger(__name__)


def _write_attrs(group, values: Mapping[str, Any]) -> None:
    for key, value in values.items():
        if isinstance(value, (bool, int, float, str, np.integer, np.floating)):
            group.attrs[key] = value
        else:
            group.attrs[key] = json.dumps(value)


def _read_attrs(group) -> Dict[str, Any]:
    values = {}
    for key in group.attrs:
        value = group.attrs[key]
        if isinstance(value, str) and value[:1] in "{[":
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                log.debug(f"Attribute {key} is not JSON, keeping the string")
        values[key] = value
    return values


def save_checkpoint(state: State, geometry: Geometry, path: Union[str, Path],
                    metadata: Optional[Dict[str, Any]] = None) -> None:
    """Save simulation state and geometry to an HDF5 checkpoint file.

    Args:
        state: Current simulation state
        geometry: Grid geometry, metric included
        path: Output file path (.h5 or .hdf5)
        metadata: Optional metadata dictionary
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with h5py.File(path, 'w') as f:
        # Save geometry
        geom_grp = f.create_group('geometry')
        for name in STATIC_FIELDS:
            geom_grp.attrs[name] = getattr(geometry, name)
        for name in METRIC_FIELDS:
            geom_grp.create_dataset(name, data=np.asarray(getattr(geometry, name)))

        # Save state fields, in order
        state_grp = f.create_group('state')
        for name, value in state.fields.items():
            state_grp.create_dataset(name, data=np.asarray(value))
        state_grp.attrs['names'] = json.dumps(list(state.names))
        state_grp.attrs['time'] = float(state.time)
        state_grp.attrs['step'] = int(state.step)

        # Save metadata
        if metadata:
            _write_attrs(f.create_group('metadata'), metadata)

    log.info(f"Checkpoint written to {path} at t={float(state.time):.6e}")


def load_checkpoint(path: Union[str, Path]) -> tuple:
    """Load simulation state from an HDF5 checkpoint file.

    Args:
        path: Input file path

    Returns:
        Tuple of (state, geometry, metadata)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Checkpoint not found: {path}")

    with h5py.File(path, 'r') as f:
        geom_grp = f['geometry']
        static = {name: geom_grp.attrs[name] for name in STATIC_FIELDS}
        geometry = Geometry(
            nx=int(static['nx']), ny=int(static['ny']), nz=int(static['nz']),
            mxg=int(static['mxg']), myg=int(static['myg']),
            zlength=float(static['zlength']), periodic_y=bool(static['periodic_y']),
            **{name: jnp.array(geom_grp[name][:]) for name in METRIC_FIELDS},
        )

        state_grp = f['state']
        names = json.loads(state_grp.attrs['names'])
        state = State(
            fields={name: jnp.array(state_grp[name][:]) for name in names},
            time=float(state_grp.attrs['time']),
            step=int(state_grp.attrs['step']),
        )

        metadata = _read_attrs(f['metadata']) if 'metadata' in f else {}

    return state, geometry, metadata


class DumpWriter:
    """Append time slices of fields and diagnostics to an HDF5 file.

    Every call to ``append`` adds one slice along a leading time axis to
    each named dataset; ``save_once`` writes scalars and profiles that do
    not change during a run.
    """

    def __init__(self, path: Union[str, Path], mode: str = 'w'):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = h5py.File(self.path, mode)
        self.n_slices = int(self._file['t_array'].shape[0]) if 't_array' in self._file else 0

    def save_once(self, values: Mapping[str, Any]) -> None:
        """Write constant quantities, scalars as attributes and arrays as datasets."""
        for name, value in values.items():
            arr = np.asarray(value)
            if arr.ndim == 0:
                self._file.attrs[name] = arr.item()
            else:
                if name in self._file:
                    del self._file[name]
                self._file.create_dataset(name, data=arr)

    def _append_dataset(self, name: str, value) -> None:
        arr = np.asarray(value)
        if name not in self._file:
            self._file.create_dataset(
                name, data=arr[None], maxshape=(None,) + arr.shape, chunks=True)
            return
        dset = self._file[name]
        if dset.shape[1:] != arr.shape:
            raise ValueError(f"Output {name} changed shape from {dset.shape[1:]} to {arr.shape}")
        dset.resize(dset.shape[0] + 1, axis=0)
        dset[-1] = arr

    def append(self, state: State, diagnostics: Optional[Mapping[str, Any]] = None) -> None:
        """Write the state fields and diagnostics at the state's time."""
        self._append_dataset('t_array', float(state.time))
        for name, value in state.fields.items():
            self._append_dataset(name, value)
        for name, value in (diagnostics or {}).items():
            self._append_dataset(name, value)
        self.n_slices += 1
        self._file.flush()

    def close(self) -> None:
        if self._file:
            self._file.close()

    def __enter__(self) -> "DumpWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def load_dump(path: Union[str, Path]) -> Dict[str, Any]:
    """Read every dataset and attribute of a dump file into memory."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dump file not found: {path}")
    out: Dict[str, Any] = {}
    with h5py.File(path, 'r') as f:
        out.update(_read_attrs(f))
        for name in f:
            out[name] = np.asarray(f[name][()])
    return out
