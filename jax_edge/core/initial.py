"""Initial perturbation profiles.

Profiles are built on normalised index coordinates: x in [0, 1] across the
interior radial points, y in [0, 2 pi) along the field and z over the
toroidal domain. Guard cells are filled by extending the same formula;
models overwrite them with boundary conditions before use.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional
import jax
import jax.numpy as jnp
from jax import Array

from jax_edge.core.geometry import Geometry
from jax_edge.input_validation import ConfigurationError

log = logging.getLogger(__name__)


def _coordinates(geometry: Geometry):
    x = (jnp.arange(geometry.nx_total) - geometry.mxg + 0.5) / geometry.nx
    y = 2.0 * jnp.pi * (jnp.arange(geometry.ny_total) - geometry.myg + 0.5) / geometry.ny
    z = jnp.arange(geometry.nz) * geometry.dz
    return x[:, None, None], y[None, :, None], z[None, None, :]


def sinusoidal_perturbation(geometry: Geometry, amplitude: float = 1e-3,
                            mode_x: int = 1, mode_y: int = 1, mode_z: int = 1,
                            noise: float = 0.0, seed: int = 0) -> Array:
    """sin(pi mode_x x) cos(mode_y y + mode_z z), plus optional seeded noise.

    The radial envelope vanishes at both radial edges.

    Args:
        geometry: Grid geometry
        amplitude: Peak amplitude
        mode_x: Radial half-wavelengths across the domain
        mode_y: Parallel mode number
        mode_z: Toroidal mode number (in units of 2 pi / zlength)
        noise: Relative amplitude of uniform random noise
        seed: Seed of the noise

    Returns:
        3D field of shape ``geometry.shape3d``
    """
    x, y, z = _coordinates(geometry)
    kz = 2.0 * jnp.pi / geometry.zlength * mode_z
    f = amplitude * jnp.sin(jnp.pi * mode_x * x) * jnp.cos(mode_y * y + kz * z)
    if noise > 0.0:
        key = jax.random.PRNGKey(seed)
        f = f + amplitude * noise * jax.random.uniform(
            key, geometry.shape3d, minval=-1.0, maxval=1.0)
    return jnp.broadcast_to(f, geometry.shape3d)


def gaussian_blob(geometry: Geometry, amplitude: float = 1e-3, x0: float = 0.5,
                  z0: Optional[float] = None, width: float = 0.1,
                  mode_y: int = 0) -> Array:
    """Gaussian in the x-z plane, centred on (x0, z0), modulated by cos(mode_y y).

    ``width`` is measured in normalised x; in z it scales with the
    toroidal domain length.
    """
    x, y, z = _coordinates(geometry)
    if z0 is None:
        z0 = 0.5 * geometry.zlength
    wz = width * geometry.zlength
    f = amplitude * jnp.exp(-((x - x0) / width) ** 2 - ((z - z0) / wz) ** 2)
    f = f * jnp.cos(mode_y * y)
    return jnp.broadcast_to(f, geometry.shape3d)


PROFILES = {
    "sinusoidal": sinusoidal_perturbation,
    "gaussian": gaussian_blob,
}


def build_initial_fields(geometry: Geometry, specs: Iterable[Mapping]) -> Dict[str, Array]:
    """Sum the configured perturbations per field.

    Each entry names a ``field``, a profile ``type`` and the profile's
    keyword arguments, e.g. ``{field: Ni, type: sinusoidal, amplitude: 1e-4}``.

    Raises:
        ConfigurationError: For unknown profile types or missing field names
    """
    fields: Dict[str, Array] = {}
    for spec in specs or []:
        spec = dict(spec)
        name = spec.pop("field", None)
        if name is None:
            raise ConfigurationError("Initial perturbation has no 'field'", quantity="initial.field")
        kind = spec.pop("type", "sinusoidal")
        if kind not in PROFILES:
            raise ConfigurationError(f"Unknown initial profile: {kind}", quantity="initial.type")
        log.info(f"Initial {kind} perturbation on {name}: {spec}")
        f = PROFILES[kind](geometry, **spec)
        fields[name] = fields[name] + f if name in fields else f
    return fields
