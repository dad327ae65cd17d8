"""Simplified 2-fluid drift model for linear-device turbulence.

Evolves vorticity ``rho``, density ``Ni`` and the combined parallel
electron momentum ``Ajpar``, optionally with an adaptive density source
``Sn``. Normalised to the ion cyclotron frequency and the sound
gyroradius at reference temperature and density.
"""

import logging
from dataclasses import dataclass, fields as dc_fields
from typing import Dict, Optional, Tuple
import numpy as np
import jax.numpy as jnp
from jax import Array

from jax_edge import operators as ops
from jax_edge.boundaries.radial import make_boundary
from jax_edge.config.options import Options
from jax_edge.constants import ETA_PAR
from jax_edge.core.geometry import Geometry
from jax_edge.core.grid import GridSource, get_profile, get_required, get_scalar
from jax_edge.core.state import State
from jax_edge.input_validation import ConfigurationError, validate_finite
from jax_edge.models.base import PhysicsModel, expand_z, mesh_settings
from jax_edge.solvers.laplace import invert_laplace
from jax_edge.units.normalization import DriftNormalisation

log = logging.getLogger(__name__)

DRIFT_FIELDS = ("rho", "Ni", "Ajpar")


@dataclass(frozen=True)
class DriftConfig:
    """Switches and parameters from the ``[2fluid]`` section."""

    AA: float = 2.0
    ZZ: float = 1.0
    estatic: bool = False
    ZeroElMass: bool = False
    zeff: float = 1.0
    nu_perp: float = 0.0
    ShearFactor: float = 1.0
    nuIonNeutral: float = -1.0
    arakawa: bool = False
    bout_exb: bool = False
    niprofile: bool = False
    evolve_source: bool = False
    source_response: float = 1.0
    source_converge: float = 100.0
    input_source: bool = False
    phi_flags: int = 0
    apar_flags: int = 0
    nonlinear: bool = True
    log_density: bool = False
    filter_z: bool = False
    filter_z_mode: int = 1
    x_boundary: str = "dirichlet"
    jpar_boundary: str = "neumann"

    evolve_rho: bool = True
    evolve_ni: bool = True
    evolve_ajpar: bool = True

    @property
    def bracket_method(self) -> str:
        """Bracket used for ExB advection."""
        if self.arakawa:
            return "arakawa"
        if self.bout_exb:
            return "simple"
        return "std"

    @property
    def uses_source(self) -> bool:
        return self.evolve_source or self.input_source

    @classmethod
    def from_options(cls, options: Options) -> "DriftConfig":
        opts = options.section("2fluid")
        kwargs = {}
        for f in dc_fields(cls):
            if f.name.startswith("evolve_") and f.name != "evolve_source":
                continue
            kwargs[f.name] = opts.get(f.name, f.default)

        if kwargs["log_density"] and not kwargs["nonlinear"]:
            log.warning("Logarithmic density requires the nonlinear terms, enabling them")
            kwargs["nonlinear"] = True

        kwargs["evolve_rho"] = options.section("rho").get("evolve", True)
        kwargs["evolve_ni"] = options.section("Ni").get("evolve", True)
        kwargs["evolve_ajpar"] = options.section("Ajpar").get("evolve", True)
        if kwargs["ZeroElMass"]:
            # Ajpar follows from Ohm's law
            kwargs["evolve_ajpar"] = False
        return cls(**kwargs)


@dataclass(frozen=True)
class DriftEquilibrium:
    """Normalised 2D profiles, shaped (NX, NY, 1) unless noted."""

    Ni0: Array
    Ti0: Array
    Te0: Array
    Ni0_2d: Array        # (NX, NY), coefficient of the vorticity inversion
    source: Array        # (NX, NY), density source read from the grid


@dataclass(frozen=True)
class DriftClosure:
    """Derived quantities for one state.

    ``Ni`` is the density perturbation, converted from the logarithm of
    total density when that is what the state carries.
    """

    fields: Dict[str, Array]
    Ni: Array
    phi: Array
    Apar: Array
    jpar: Array
    Ve: Array
    Ajpar: Array
    Nit: Array
    nu: Array
    source_alpha: float

    def diagnostics(self) -> Dict[str, Array]:
        return {"phi": self.phi, "Apar": self.Apar, "jpar": self.jpar}


class DriftModel(PhysicsModel):
    """Vorticity, density and parallel momentum with optional source."""

    name = "drift"

    def __init__(self, geometry: Geometry, config: DriftConfig, norm: DriftNormalisation,
                 equilibrium: DriftEquilibrium):
        super().__init__(geometry, x_boundary=config.x_boundary)
        self.config = config
        self.norm = norm
        self.equilibrium = equilibrium
        self.jpar_boundary = make_boundary(config.jpar_boundary)

        evolved = []
        if config.evolve_rho:
            evolved.append("rho")
        if config.evolve_ni:
            evolved.append("Ni")
        if config.evolve_ajpar:
            evolved.append("Ajpar")
        if config.evolve_source:
            evolved.append("Sn")
        self._evolved = tuple(evolved)
        log.info(f"Drift model evolving {', '.join(self._evolved) or 'nothing'}")

    @property
    def field_names(self) -> Tuple[str, ...]:
        if self.config.evolve_source:
            return DRIFT_FIELDS + ("Sn",)
        return DRIFT_FIELDS

    @property
    def evolved_names(self) -> Tuple[str, ...]:
        return self._evolved

    def field_shape(self, name: str) -> tuple:
        if name == "Sn":
            return self.geometry.shape2d
        return self.geometry.shape3d

    def initial_state(self, fields=None, time: float = 0.0) -> State:
        """Zero state plus the given perturbations.

        With ``log_density`` the density field holds log(Ni0 + Ni).
        ``Sn`` starts from the grid source when one was read.
        """
        fields = dict(fields or {})
        if self.config.evolve_source and "Sn" not in fields:
            fields["Sn"] = self.equilibrium.source
        state = super().initial_state(fields, time)
        if self.config.log_density:
            state = state.with_fields(Ni=jnp.log(self.equilibrium.Ni0 + state["Ni"]))
        return state

    def _vE_grad(self, f: Array, p: Array) -> Array:
        """ExB advection of f by the potential p."""
        return ops.bracket(p, f, self.geometry, self.config.bracket_method)

    # ------------------------------------------------------------------
    # Closure
    # ------------------------------------------------------------------

    def closure(self, state: State) -> DriftClosure:
        """Potential, vector potential and parallel current for this state.

        Raises:
            InversionError: If an elliptic inversion fails
        """
        cfg, g, eq, norm = self.config, self.geometry, self.equilibrium, self.norm
        F = self.prepare(state)

        Ni = F["Ni"]
        if cfg.log_density:
            Ni = jnp.exp(Ni) - eq.Ni0

        if cfg.nonlinear:
            vort = F["rho"] / (eq.Ni0 + Ni)
        else:
            vort = F["rho"] / eq.Ni0
        phi = invert_laplace(vort, g, cfg.phi_flags, c=eq.Ni0_2d)

        if cfg.estatic or cfg.ZeroElMass:
            Apar = jnp.zeros_like(phi)
        else:
            acoeff = (-0.5 * norm.beta_p / norm.fmei) * eq.Ni0_2d
            Apar = invert_laplace(-acoeff[:, :, None] * F["Ajpar"], g, cfg.apar_flags, a=acoeff)

        derived = self.comm.communicate({"phi": phi, "Apar": Apar})
        phi, Apar = derived["phi"], derived["Apar"]

        Nit = eq.Ni0 + Ni if cfg.nonlinear else jnp.broadcast_to(eq.Ni0, phi.shape)
        Tet = eq.Te0

        t = float(state.time)
        if cfg.source_converge > 0.0:
            source_alpha = cfg.source_response * np.exp(-t / cfg.source_converge)
        else:
            source_alpha = cfg.source_response

        nu = norm.nu_hat * Nit / Tet ** 1.5

        if cfg.ZeroElMass:
            jpar = ((Tet * ops.grad_par_ltoc(Ni, g) - Nit * ops.grad_par_ltoc(phi, g))
                    / (norm.fmei * ETA_PAR * nu))
            jpar = self.jpar_boundary.apply(jpar, g)
            jpar = self.comm.communicate_one(jpar)
            Ve = -jpar / Nit
            Ajpar = Ve
        else:
            Ajpar = F["Ajpar"]
            Ve = Ajpar + Apar
            jpar = -Nit * Ve

        return DriftClosure(
            fields=F, Ni=Ni, phi=phi, Apar=Apar, jpar=jpar, Ve=Ve, Ajpar=Ajpar,
            Nit=Nit, nu=nu, source_alpha=float(source_alpha),
        )

    # ------------------------------------------------------------------
    # Physics residual
    # ------------------------------------------------------------------

    def physics_rhs(self, state: State) -> State:
        cfg, g, eq, norm = self.config, self.geometry, self.equilibrium, self.norm
        c = self.closure(state)
        F = c.fields
        ddt = {}

        source = None
        if cfg.uses_source:
            source = F["Sn"] if cfg.evolve_source else eq.source
            source = expand_z(source)

        if cfg.evolve_ni:
            d = -self._vE_grad(eq.Ni0, c.phi)
            if cfg.nonlinear:
                d = d - self._vE_grad(c.Ni, c.phi)
            d = d + ops.div_par_ctol(c.jpar, g)

            if cfg.uses_source:
                if cfg.evolve_source:
                    ddt["Sn"] = ops.average_y(-c.source_alpha * ops.dc(c.Ni) / eq.Ni0_2d, g)
                d = d + source * ops.where_positive(source, eq.Ni0, c.Nit)
            elif cfg.niprofile:
                d = d - self._edge_relaxation(c.Ni)
            else:
                d = ops.remove_dc(d)

            if cfg.log_density:
                d = d / c.Nit
            ddt["Ni"] = d

        if cfg.evolve_rho:
            d = jnp.zeros_like(c.phi)
            if cfg.nonlinear:
                d = d - self._vE_grad(F["rho"], c.phi)
            d = d + expand_z(g.Bxy) ** 2 * ops.div_par_ctol(c.jpar, g)
            if cfg.nuIonNeutral > 0.0:
                d = d - cfg.nuIonNeutral * F["rho"]
            if cfg.uses_source:
                # Sinks also remove vorticity
                d = d + source * ops.where_positive(source, 0.0, F["rho"])
            ddt["rho"] = d

        if cfg.evolve_ajpar:
            d = ((1.0 / norm.fmei) * ops.grad_par_ltoc(c.phi, g)
                 - (1.0 / norm.fmei) * (eq.Te0 / c.Nit) * ops.grad_par_ltoc(c.Ni, g)
                 + ETA_PAR * c.nu * c.jpar / eq.Ni0)
            ddt["Ajpar"] = d

        if cfg.filter_z:
            for name in DRIFT_FIELDS:
                if name in ddt:
                    ddt[name] = ops.filter_mode(ddt[name], cfg.filter_z_mode)

        return self._assemble(state, ddt)

    def _edge_relaxation(self, Ni: Array) -> Array:
        """Relax density up at the inner edge and down at the outer edge.

        Acts on the three outermost x cells at each side.
        """
        NX = self.geometry.nx_total
        x = jnp.arange(NX)[:, None, None]
        inner = (x < 3) & (Ni < 0.0)
        outer = (x >= NX - 3) & (Ni > 0.0)
        return jnp.where(inner | outer, 0.1 * Ni, 0.0)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def diagnostics(self, state: State) -> Dict[str, Array]:
        c = self.closure(state)
        out = c.diagnostics()
        if self.config.ZeroElMass:
            out["Ajpar"] = c.Ajpar
        return out

    def saved_once(self) -> Dict[str, object]:
        eq = self.equilibrium
        out = dict(self.norm.as_dict())
        out.update({"Ni0": eq.Ni0[:, :, 0], "Te0": eq.Te0[:, :, 0], "Ti0": eq.Ti0[:, :, 0]})
        return out

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_grid(cls, grid: GridSource, options: Options) -> "DriftModel":
        """Load and normalise the equilibrium, then build the model.

        Raises:
            ConfigurationError: For missing grid quantities
        """
        config = DriftConfig.from_options(options)
        mesh = mesh_settings(options)

        Ni0 = get_profile(grid, "Ni0")
        Ti0 = get_profile(grid, "Ti0")
        Te0 = get_profile(grid, "Te0")
        validate_finite(Ni0, "grid Ni0")
        validate_finite(Te0, "grid Te0")

        Rxy = get_required(grid, "Rxy")
        Bpxy = get_required(grid, "Bpxy")
        Btxy = get_required(grid, "Btxy")
        Bxy = get_required(grid, "Bxy")
        hthe = get_required(grid, "hthe")

        dx = grid.get("dpsi")
        if dx is None:
            dx = grid.get("dx")
        if dx is None:
            raise ConfigurationError("Grid has neither 'dpsi' nor 'dx'", quantity="dpsi")
        dy = grid.get("dy")
        dy = np.ones_like(Rxy) if dy is None else dy
        I = get_profile(grid, "sinty")

        Te_x = get_required(grid, "Te_x")
        Ti_x = get_required(grid, "Ti_x")
        Ni_x = get_required(grid, "Ni_x")
        bmag = get_required(grid, "bmag")
        Ni_x = float(np.asarray(Ni_x).ravel()[0])
        Te_x = float(np.asarray(Te_x).ravel()[0])
        Ti_x = float(np.asarray(Ti_x).ravel()[0])
        bmag = float(np.asarray(bmag).ravel()[0])

        norm = DriftNormalisation(
            Te_x=Te_x, Ti_x=Ti_x, Ni_x=Ni_x * 1e14, bmag=bmag * 1e4,
            AA=config.AA, ZZ=config.ZZ, zeff=config.zeff, nu_perp=config.nu_perp,
            estatic=config.estatic,
        )
        log.info(f"Collisions: nueix = {norm.nueix:e}, nu_hat = {norm.nu_hat:e}")
        hthe0 = get_scalar(grid, "hthe0")
        if hthe0 is not None:
            log.info(f"Grid has hthe0, Z length needs to be divided by {hthe0 / norm.rho_s:e}")
        log.info(f"Normalising to rho_s = {norm.rho_s:e}")

        Ni0 = Ni0 / Ni_x
        Ti0 = Ti0 / Te_x
        Te0 = Te0 / Te_x

        B = norm.field_scale
        rho_s = norm.rho_s
        geometry = Geometry.from_profiles(
            Rxy / rho_s, Bpxy / B, Btxy / B, Bxy / B, hthe / rho_s,
            dx / (rho_s ** 2 * B), dy,
            nz=mesh["nz"], zlength=mesh["zlength"], mxg=mesh["mxg"], myg=mesh["myg"],
            sinty=I * rho_s ** 2 * B * config.ShearFactor,
            periodic_y=mesh["periodic_y"],
        )

        source = np.zeros(geometry.shape2d)
        if config.input_source:
            source = geometry.extend_y(get_required(grid, "Sn"))

        Ni0_2d = geometry.extend_y(Ni0)
        equilibrium = DriftEquilibrium(
            Ni0=expand_z(Ni0_2d),
            Ti0=expand_z(geometry.extend_y(Ti0)),
            Te0=expand_z(geometry.extend_y(Te0)),
            Ni0_2d=Ni0_2d,
            source=jnp.asarray(source),
        )
        return cls(geometry, config, norm, equilibrium)
