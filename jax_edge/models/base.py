"""Abstract base class for physics models."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Tuple
import numpy as np
import jax.numpy as jnp
from jax import Array

from jax_edge.boundaries.radial import BOUNDARY_KINDS, make_boundary
from jax_edge.config.options import Options
from jax_edge.core.communication import LocalCommunicator
from jax_edge.core.geometry import Geometry
from jax_edge.core.grid import GridSource, load_grid
from jax_edge.core.state import State
from jax_edge.input_validation import ValidationError, validate_choice

log = logging.getLogger(__name__)


def mesh_settings(options: Options) -> dict:
    """Toroidal resolution, guard cells and y periodicity from ``[mesh]``."""
    mesh = options.section("mesh")
    nz = mesh.get("nz", 16)
    zperiod = mesh.get("zperiod", 1.0)
    zlength = mesh.get("zlength", 2.0 * np.pi / zperiod)
    settings = {
        "nz": nz,
        "zlength": zlength,
        "mxg": mesh.get("mxg", 2),
        "myg": mesh.get("myg", 2),
        "periodic_y": mesh.get("periodic_y", True),
    }
    if settings["nz"] < 1:
        raise ValidationError(f"mesh:nz must be at least 1, got {nz}")
    return settings


def expand_z(a: Array) -> Array:
    """Give a 2D profile a unit z axis so it broadcasts against 3D fields."""
    a = jnp.asarray(a)
    return a[:, :, None] if a.ndim == 2 else a


class PhysicsModel(ABC):
    """Base class for all physics models.

    A model owns its geometry and equilibrium. ``physics_rhs`` and
    ``dissipation_rhs`` return State-shaped derivatives of every field;
    disabled fields always get zero.
    """

    name: str = "model"

    def __init__(self, geometry: Geometry, x_boundary: str = "dirichlet"):
        validate_choice(x_boundary, BOUNDARY_KINDS[:2], "x_boundary")
        self.geometry = geometry
        self.x_boundary = make_boundary(x_boundary)
        self.comm = LocalCommunicator(geometry)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def field_names(self) -> Tuple[str, ...]:
        """Every field the model keeps in its state."""
        pass

    @property
    @abstractmethod
    def evolved_names(self) -> Tuple[str, ...]:
        """Fields with their evolve flag set."""
        pass

    def field_shape(self, name: str) -> tuple:
        return self.geometry.shape3d

    def initial_state(self, fields: Optional[Mapping[str, Array]] = None,
                      time: float = 0.0) -> State:
        """State with every field zero except those given."""
        values = {}
        fields = dict(fields or {})
        for name in self.field_names:
            shape = self.field_shape(name)
            value = fields.pop(name, None)
            values[name] = jnp.zeros(shape) if value is None else jnp.broadcast_to(
                jnp.asarray(value, dtype=float), shape)
        if fields:
            raise ValidationError(f"Unknown fields for {self.name}: {sorted(fields)}")
        return State(fields=values, time=time, step=0)

    def prepare(self, state: State) -> Dict[str, Array]:
        """Apply x boundaries to evolved fields and exchange their halos.

        Disabled fields are passed through untouched and are not exchanged.
        """
        fields = dict(state.fields)
        group = {name: self.x_boundary.apply(fields[name], self.geometry)
                 for name in self.evolved_names}
        fields.update(self.comm.communicate(group))
        return fields

    # ------------------------------------------------------------------
    # Right-hand sides
    # ------------------------------------------------------------------

    @abstractmethod
    def closure(self, state: State):
        """Derived quantities for this state, computed fresh."""
        pass

    @abstractmethod
    def physics_rhs(self, state: State) -> State:
        """Time derivatives from the physical terms."""
        pass

    def dissipation_rhs(self, state: State) -> State:
        """Time derivatives from artificial dissipation (none by default)."""
        return state.zeros_like()

    def compute_rhs(self, state: State) -> State:
        """Sum of physics and dissipation residuals."""
        physics = self.physics_rhs(state)
        dissipation = self.dissipation_rhs(state)
        return physics.map(lambda name, v: v + dissipation[name])

    def _assemble(self, state: State, ddt: Mapping[str, Array]) -> State:
        """Zero guard cells and fill disabled fields with zero derivatives."""
        out = {}
        for name, value in state.fields.items():
            if name in ddt and name in self.evolved_names:
                d = jnp.broadcast_to(ddt[name], value.shape)
                mask = self.geometry.interior_mask(value.ndim)
                out[name] = jnp.where(mask > 0, d, 0.0)
            else:
                out[name] = jnp.zeros_like(value)
        return state.replace(fields=out)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def diagnostics(self, state: State) -> Dict[str, Array]:
        """Derived fields written at every output."""
        return {}

    def saved_once(self) -> Dict[str, object]:
        """Normalisation scalars and profiles written once."""
        return {}

    @classmethod
    def create(cls, config: dict) -> "PhysicsModel":
        """Factory method to create a model from a configuration dict.

        The dict holds ``type`` (``gem`` or ``drift``), ``grid`` (a path, a
        mapping of arrays or an analytic grid block) and ``options``.
        """
        model_type = config.get("type", "gem")
        grid = load_grid(config.get("grid", {"type": "slab"}))
        options = config.get("options")
        if not isinstance(options, Options):
            options = Options(options or {})
        if model_type == "gem":
            from jax_edge.models.gem import GemModel
            return GemModel.from_grid(grid, options)
        elif model_type in ("drift", "lapd_drift", "2fluid"):
            from jax_edge.models.drift import DriftModel
            return DriftModel.from_grid(grid, options)
        else:
            raise ValueError(f"Unknown model type: {model_type}")

    @classmethod
    @abstractmethod
    def from_grid(cls, grid: GridSource, options: Options) -> "PhysicsModel":
        """Load equilibrium from a grid source and build the model."""
        pass
