"""Grid quantity sources.

A grid source hands out named equilibrium profiles and scalars. ``get``
returns None when a quantity is absent, which is distinct from a
quantity that is present and zero.
"""

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union
import numpy as np

from jax_edge.input_validation import ConfigurationError

log = logging.getLogger(__name__)


class GridSource(Protocol):
    """Read access to named grid quantities."""

    def get(self, name: str) -> Optional[np.ndarray]:
        """Return the named quantity, or None if not present."""
        ...


class DictGridSource:
    """Grid quantities held in memory."""

    def __init__(self, data: Optional[Mapping[str, object]] = None):
        self._data: Dict[str, np.ndarray] = {}
        for name, value in (data or {}).items():
            self.set(name, value)

    def get(self, name: str) -> Optional[np.ndarray]:
        value = self._data.get(name)
        if value is None:
            return None
        return np.array(value, copy=True)

    def set(self, name: str, value) -> None:
        self._data[name] = np.asarray(value, dtype=float)

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def keys(self):
        return self._data.keys()


class HDF5GridSource:
    """Grid quantities read from an HDF5 grid file.

    Datasets are read lazily on first access and cached.
    """

    def __init__(self, path: Union[str, Path]):
        import h5py

        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Grid file not found: {self.path}")
        with h5py.File(self.path, "r") as f:
            self._names = set(f.keys())
        self._cache: Dict[str, np.ndarray] = {}
        log.info(f"Opened grid file {self.path} ({len(self._names)} quantities)")

    def get(self, name: str) -> Optional[np.ndarray]:
        if name not in self._names:
            return None
        if name not in self._cache:
            import h5py
            with h5py.File(self.path, "r") as f:
                self._cache[name] = np.asarray(f[name][()], dtype=float)
        return np.array(self._cache[name], copy=True)

    def __contains__(self, name: str) -> bool:
        return name in self._names


def get_required(source: GridSource, name: str) -> np.ndarray:
    """Fetch a quantity that must exist.

    Raises:
        ConfigurationError: If the quantity is missing
    """
    value = source.get(name)
    if value is None:
        raise ConfigurationError(f"Required grid quantity '{name}' not found", quantity=name)
    return value


def get_scalar(source: GridSource, name: str, default: Optional[float] = None) -> Optional[float]:
    """Fetch a scalar, falling back to a default when absent."""
    value = source.get(name)
    if value is None:
        return default
    return float(np.asarray(value).ravel()[0])


def get_profile(source: GridSource, name: str, default: float = 0.0) -> np.ndarray:
    """Fetch a 2D profile, or a scalar default when absent.

    Logs at INFO when the default is substituted, as missing profiles are
    usually deliberate (e.g. no equilibrium flow).
    """
    value = source.get(name)
    if value is None:
        log.info(f"Grid quantity '{name}' not found, setting to {default}")
        return np.asarray(default, dtype=float)
    return value


def load_grid(spec: Union[str, Path, Mapping, GridSource]) -> GridSource:
    """Turn a path, mapping or existing source into a GridSource."""
    if isinstance(spec, (str, Path)):
        return HDF5GridSource(spec)
    if isinstance(spec, Mapping):
        if "type" in spec:
            return make_grid(dict(spec))
        return DictGridSource(spec)
    return spec


def make_grid(config: dict) -> DictGridSource:
    """Build an analytic grid from a configuration block.

    Supported types are ``slab`` (uniform profiles) and ``file``.
    """
    kind = config.get("type", "slab")
    if kind == "file":
        return HDF5GridSource(config["path"])
    if kind != "slab":
        raise ConfigurationError(f"Unknown grid type: {kind}", quantity="grid.type")
    kwargs = {k: v for k, v in config.items() if k != "type"}
    return slab_grid(**kwargs)


def slab_grid(nx: int = 8, ny: int = 8, mxg: int = 2,
              Rxy: float = 1.0, Bpxy: float = 1.0, Btxy: float = 0.0,
              hthe: float = 1.0, Te0: float = 1.0, Ni0: float = 1.0,
              density_gradient: float = 0.0, temperature_gradient: float = 0.0,
              dx: Optional[float] = None, dy: Optional[float] = None,
              **scalars) -> DictGridSource:
    """Uniform slab equilibrium with optional linear radial gradients.

    Profiles are (nx + 2*mxg, ny). Any extra keyword arguments are stored
    as scalars (e.g. ``Te_x=5.0`` or ``bmag=0.1``).
    """
    NX = int(nx) + 2 * int(mxg)
    ny = int(ny)
    ones = np.ones((NX, ny))
    x = (np.arange(NX) - mxg + 0.5) / nx
    ramp = (x - 0.5)[:, None] * ones

    Bp = Bpxy * ones
    Bt = Btxy * ones
    data = {
        "nx": NX,
        "ny": ny,
        "Rxy": Rxy * ones,
        "Bpxy": Bp,
        "Btxy": Bt,
        "Bxy": np.sqrt(Bp ** 2 + Bt ** 2),
        "hthe": hthe * ones,
        "Te0": Te0 * (1.0 - temperature_gradient * ramp),
        "Ni0": Ni0 * (1.0 - density_gradient * ramp),
        "dx": (1.0 / nx if dx is None else dx) * ones,
        "dy": (2 * np.pi / ny if dy is None else dy) * ones,
    }
    for name, value in scalars.items():
        data[name] = np.asarray(value, dtype=float)
    return DictGridSource(data)
