"""Six-moment electromagnetic gyrofluid model.

Each species evolves density N, combined parallel momentum ApU = A|| beta
+ mu U, parallel and perpendicular temperatures and the corresponding
heat fluxes. The potential follows from gyrokinetic quasineutrality and
A|| from Ampere's law, both inverted every evaluation. Physical terms and
artificial dissipation are split into two residuals for operator-split
time integration.
"""

import logging
from dataclasses import dataclass, fields as dc_fields
from typing import Dict, Optional, Tuple
import numpy as np
import jax.numpy as jnp
from jax import Array

from jax_edge import operators as ops
from jax_edge.boundaries.radial import NeumannX, zero_x_boundary_region
from jax_edge.config.options import Options
from jax_edge.constants import ALPHA_E, ETA_PAR, KAPPA_E, KAPPA_I, PI_E, PI_I, QE
from jax_edge.core.geometry import Geometry
from jax_edge.core.grid import GridSource, get_required, get_scalar
from jax_edge.core.state import State
from jax_edge.gyro import gyro_pade1, gyro_pade2
from jax_edge.input_validation import ConfigurationError, validate_choice, validate_finite
from jax_edge.models.base import PhysicsModel, expand_z, mesh_settings
from jax_edge.solvers.laplace import InvertFlags, invert_laplace
from jax_edge.units.normalization import GemNormalisation

log = logging.getLogger(__name__)

ELECTRON_FIELDS = ("Ne", "ApUe", "Tepar", "Teperp", "qepar", "qeperp")
ION_FIELDS = ("Ni", "ApUi", "Tipar", "Tiperp", "qipar", "qiperp")

GYRO_FLAGS = InvertFlags.IN_RHS | InvertFlags.OUT_RHS


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class GemTerms:
    """Switches for every term of every equation, all on by default.

    ``*_ddt`` flags decide whether an equation is evolved at all; a
    disabled equation has zero residual whatever its term flags say.
    """

    ne_ddt: bool = True
    ne_ne1: bool = True
    ne_te0: bool = True
    ne_te1: bool = True
    ne_ue: bool = True
    ne_curv: bool = True
    apue_ddt: bool = True
    apue_uet: bool = True
    apue_qe: bool = True
    apue_phi: bool = True
    apue_parP: bool = True
    apue_curv: bool = True
    apue_gradB: bool = True
    apue_Rei: bool = True
    tepar_ddt: bool = True
    teperp_ddt: bool = True
    qepar_ddt: bool = True
    qeperp_ddt: bool = True

    ni_ddt: bool = True
    ni_ni1: bool = True
    ni_ti0: bool = True
    ni_ti1: bool = True
    ni_ui: bool = True
    ni_curv: bool = True
    apui_ddt: bool = True
    apui_uit: bool = True
    apui_qi: bool = True
    apui_phi: bool = True
    apui_parP: bool = True
    apui_curv: bool = True
    apui_gradB: bool = True
    apui_Rei: bool = True
    tipar_ddt: bool = True
    tiperp_ddt: bool = True
    qipar_ddt: bool = True
    qiperp_ddt: bool = True

    @classmethod
    def from_options(cls, options: Options) -> "GemTerms":
        return cls(**{f.name: options.get(f.name, f.default) for f in dc_fields(cls)})

    def electrons(self) -> "SpeciesTerms":
        return SpeciesTerms(
            n_ddt=self.ne_ddt, n_n1=self.ne_ne1, n_t0=self.ne_te0, n_t1=self.ne_te1,
            n_u=self.ne_ue, n_curv=self.ne_curv,
            apu_ddt=self.apue_ddt, apu_ut=self.apue_uet, apu_q=self.apue_qe,
            apu_phi=self.apue_phi, apu_parP=self.apue_parP, apu_curv=self.apue_curv,
            apu_gradB=self.apue_gradB, apu_Rei=self.apue_Rei,
            tpar_ddt=self.tepar_ddt, tperp_ddt=self.teperp_ddt,
            qpar_ddt=self.qepar_ddt, qperp_ddt=self.qeperp_ddt,
        )

    def ions(self) -> "SpeciesTerms":
        # The ion parallel pressure gradient follows the electron switch
        return SpeciesTerms(
            n_ddt=self.ni_ddt, n_n1=self.ni_ni1, n_t0=self.ni_ti0, n_t1=self.ni_ti1,
            n_u=self.ni_ui, n_curv=self.ni_curv,
            apu_ddt=self.apui_ddt, apu_ut=self.apui_uit, apu_q=self.apui_qi,
            apu_phi=self.apui_phi, apu_parP=self.apue_parP, apu_curv=self.apui_curv,
            apu_gradB=self.apui_gradB, apu_Rei=self.apui_Rei,
            tpar_ddt=self.tipar_ddt, tperp_ddt=self.tiperp_ddt,
            qpar_ddt=self.qipar_ddt, qperp_ddt=self.qiperp_ddt,
        )


@dataclass(frozen=True)
class SpeciesTerms:
    """Term switches of one species, in species-neutral names."""

    n_ddt: bool
    n_n1: bool
    n_t0: bool
    n_t1: bool
    n_u: bool
    n_curv: bool
    apu_ddt: bool
    apu_ut: bool
    apu_q: bool
    apu_phi: bool
    apu_parP: bool
    apu_curv: bool
    apu_gradB: bool
    apu_Rei: bool
    tpar_ddt: bool
    tperp_ddt: bool
    qpar_ddt: bool
    qperp_ddt: bool

    @property
    def evolve(self) -> Tuple[bool, ...]:
        """Evolve flags in field order (N, ApU, Tpar, Tperp, qpar, qperp)."""
        return (self.n_ddt, self.apu_ddt, self.tpar_ddt, self.tperp_ddt,
                self.qpar_ddt, self.qperp_ddt)


@dataclass(frozen=True)
class Species:
    """Constants and field names of one gyrofluid species."""

    label: str
    fields: Tuple[str, ...]
    mu: float
    tau: float
    nu: float
    pi: float
    kappa: float
    rho: float
    qpar_curv: float       # Coefficient of curvature(3 U + 8 qpar)
    landau: float          # Landau damping closure strength
    k_scale: float         # Multiplier of K_par, K_perp and K_D in heat flux equations
    jpar_heat: bool        # Thermal-force current in K_par and K_perp


@dataclass(frozen=True)
class GemConfig:
    """Immutable parameters of a GEM run, built once at initialisation."""

    terms: GemTerms
    norm: GemNormalisation
    adiabatic_electrons: bool = False
    small_rho_e: bool = True
    include_grad_par_B: bool = True
    curv_logB: bool = False
    Landau: float = 1.0
    nu_perp: float = 0.01
    nu_par: float = 3e-3
    phi_flags: int = 0
    apar_flags: int = 0
    low_pass_z: int = -1
    fix_profiles: bool = False
    jpar_bndry_width: int = -1
    output_ddt: bool = False
    bracket: str = "simple"
    x_boundary: str = "dirichlet"

    @property
    def beta_e(self) -> float:
        return self.norm.beta_e

    @property
    def mu_e(self) -> float:
        return self.norm.mu_e

    @property
    def mu_i(self) -> float:
        return self.norm.mu_i

    @property
    def tau_e(self) -> float:
        return self.norm.tau_e

    @property
    def tau_i(self) -> float:
        return self.norm.tau_i

    @property
    def rho_e(self) -> float:
        return self.norm.rho_e

    @property
    def rho_i(self) -> float:
        return self.norm.rho_i

    def electrons(self) -> Species:
        return Species(
            label="e", fields=ELECTRON_FIELDS,
            mu=self.mu_e, tau=self.tau_e, nu=self.norm.nu_e, pi=PI_E, kappa=KAPPA_E,
            rho=self.rho_e,
            qpar_curv=0.5 * self.mu_e * self.tau_e, landau=self.Landau,
            k_scale=1.0 / self.mu_e, jpar_heat=True,
        )

    def ions(self) -> Species:
        # Ion heat-flux collision terms carry 1/mu_e, as in the electron equations
        return Species(
            label="i", fields=ION_FIELDS,
            mu=self.mu_i, tau=self.tau_i, nu=self.norm.nu_i, pi=PI_I, kappa=KAPPA_I,
            rho=self.rho_i,
            qpar_curv=0.5 * self.tau_i, landau=0.0,
            k_scale=1.0 / self.mu_e, jpar_heat=False,
        )

    @classmethod
    def from_options(cls, options: Options, norm: GemNormalisation) -> "GemConfig":
        """Read the ``[gem]`` section.

        Raises:
            ConfigurationError: If adiabatic electrons are combined with an
                explicitly requested electron equation
        """
        kwargs = {}
        for f in dc_fields(cls):
            if f.name in ("terms", "norm"):
                continue
            kwargs[f.name] = options.get(f.name, f.default)
        validate_choice(kwargs["bracket"], ops.BRACKET_METHODS, "gem:bracket")

        terms = GemTerms.from_options(options)
        if kwargs["adiabatic_electrons"]:
            for name in ("ne_ddt", "apue_ddt", "tepar_ddt", "teperp_ddt", "qepar_ddt", "qeperp_ddt"):
                if options.is_set(name) and options.get(name, True):
                    raise ConfigurationError(
                        f"gem:{name} requests the electron equation but adiabatic_electrons is set",
                        quantity=name,
                    )
        return cls(terms=terms, norm=norm, **kwargs)


# ============================================================================
# Equilibrium
# ============================================================================

@dataclass(frozen=True)
class GemEquilibrium:
    """Normalised background profiles, shaped (NX, NY, 1)."""

    Ne0: Array
    Ni0: Array
    Te0: Array
    Ti0: Array
    logB: Optional[Array]
    grad_par_logB: Array


@dataclass(frozen=True)
class GemClosure:
    """Derived quantities for one state.

    ``fields`` are the evolved fields after boundary application and halo
    exchange (with ``Ne`` replaced by the adiabatic response when
    electrons are adiabatic). Gyro-reduced potentials are per species.
    """

    fields: Dict[str, Array]
    phi: Array
    Apar: Array
    Ui: Array
    Ue: Array
    Jpar: Array
    Rei: Array
    phi_G_e: Array
    Phi_G_e: Array
    phi_G_i: Array
    Phi_G_i: Array

    def U(self, species: Species) -> Array:
        return self.Ue if species.label == "e" else self.Ui

    def potentials(self, species: Species) -> Tuple[Array, Array]:
        if species.label == "e":
            return self.phi_G_e, self.Phi_G_e
        return self.phi_G_i, self.Phi_G_i

    def diagnostics(self) -> Dict[str, Array]:
        return {
            "phi": self.phi, "Apar": self.Apar, "Ui": self.Ui, "Ue": self.Ue,
            "Jpar": self.Jpar, "phi_G": self.phi_G_i,
        }


# ============================================================================
# Model
# ============================================================================

class GemModel(PhysicsModel):
    """Gyrofluid electromagnetic model with split dissipation."""

    name = "gem"

    def __init__(self, geometry: Geometry, config: GemConfig, equilibrium: GemEquilibrium):
        super().__init__(geometry, x_boundary=config.x_boundary)
        self.config = config
        self.equilibrium = equilibrium
        self.electrons = config.electrons()
        self.ions = config.ions()
        self._terms = {"e": config.terms.electrons(), "i": config.terms.ions()}

        evolved = [name for name, on in zip(ION_FIELDS, self._terms["i"].evolve) if on]
        if not config.adiabatic_electrons:
            evolved += [name for name, on in zip(ELECTRON_FIELDS, self._terms["e"].evolve) if on]
        self._evolved = tuple(evolved)
        log.info(f"GEM model evolving {', '.join(self._evolved) or 'nothing'}")

    @property
    def field_names(self) -> Tuple[str, ...]:
        return ION_FIELDS + ELECTRON_FIELDS

    @property
    def evolved_names(self) -> Tuple[str, ...]:
        return self._evolved

    # ------------------------------------------------------------------
    # Operators with the model's settings
    # ------------------------------------------------------------------

    def _bracket(self, p: Array, f: Array) -> Array:
        return ops.bracket(p, f, self.geometry, self.config.bracket)

    def _curvature(self, f: Array) -> Array:
        return ops.curvature(f, self.geometry, self.equilibrium.logB, self.config.bracket)

    def _grad_parP_CtoL(self, f: Array, Apar: Array) -> Array:
        return ops.grad_par_ctol(f, self.geometry, apar=Apar, beta=self.config.beta_e,
                                 method=self.config.bracket)

    def _div_parP_LtoC(self, f: Array, Apar: Array) -> Array:
        return ops.div_par_ltoc(f, self.geometry, apar=Apar, beta=self.config.beta_e,
                                method=self.config.bracket)

    def _post_process(self, ddt: Array) -> Array:
        if self.config.low_pass_z > 0:
            ddt = ops.low_pass(ddt, self.config.low_pass_z)
        if self.config.fix_profiles:
            ddt = ops.remove_dc(ddt)
        return ddt

    # ------------------------------------------------------------------
    # Closure
    # ------------------------------------------------------------------

    def _potential(self, Ne: Array, Teperp: Array, Ni: Array, Tiperp: Array) -> Array:
        """Quasineutrality: invert the polarisation density for phi."""
        cfg, g = self.config, self.geometry
        if cfg.small_rho_e:
            dn = Ne - gyro_pade1(Ni, cfg.rho_i, g) - gyro_pade2(Tiperp, cfg.rho_i, g)
        else:
            dn = (gyro_pade1(Ne, cfg.rho_e, g) + gyro_pade2(Teperp, cfg.rho_e, g)
                  - gyro_pade1(Ni, cfg.rho_i, g) - gyro_pade2(Tiperp, cfg.rho_i, g))
        phi = invert_laplace(cfg.tau_i * dn / cfg.rho_i ** 2, g, cfg.phi_flags)
        return phi - cfg.tau_i * dn

    def closure(self, state: State) -> GemClosure:
        """Potentials, flows, current and friction for this state.

        Raises:
            InversionError: If an elliptic inversion fails
        """
        cfg, g = self.config, self.geometry
        F = self.prepare(state)

        if cfg.adiabatic_electrons:
            # Boltzmann response to the non-zonal potential
            phi1 = self._potential(jnp.zeros_like(F["Ni"]), F["Teperp"], F["Ni"], F["Tiperp"])
            phi1 = self.comm.communicate_one(phi1)
            zonal = ops.average_y(ops.dc(phi1), g)
            F["Ne"] = phi1 - zonal[:, :, None]

        phi = self._potential(F["Ne"], F["Teperp"], F["Ni"], F["Tiperp"])

        a = cfg.beta_e * (1.0 / cfg.mu_e - 1.0 / cfg.mu_i)
        Apar = invert_laplace(F["ApUe"] / cfg.mu_e - F["ApUi"] / cfg.mu_i, g, cfg.apar_flags, a=a)

        Ui = (F["ApUi"] - cfg.beta_e * Apar) / cfg.mu_i
        Ue = (F["ApUe"] - cfg.beta_e * Apar) / cfg.mu_e

        if cfg.jpar_bndry_width > 0:
            Ui = zero_x_boundary_region(Ui, g, cfg.jpar_bndry_width)
            Ue = zero_x_boundary_region(Ue, g, cfg.jpar_bndry_width)

        Jpar = Ui - Ue

        derived = self.comm.communicate({"phi": phi, "Apar": Apar, "Ui": Ui, "Ue": Ue, "Jpar": Jpar})
        phi, Apar, Ui, Ue, Jpar = (derived[k] for k in ("phi", "Apar", "Ui", "Ue", "Jpar"))

        Rei = cfg.mu_e * cfg.norm.nu_e * (
            ETA_PAR * Jpar + (ALPHA_E / KAPPA_E) * (F["qepar"] + F["qeperp"] + ALPHA_E * Jpar)
        )

        if cfg.small_rho_e:
            phi_G_e, Phi_G_e = phi, jnp.zeros_like(phi)
        else:
            phi_G_e, Phi_G_e = self._gyro_potentials(phi, cfg.rho_e)
        phi_G_i, Phi_G_i = self._gyro_potentials(phi, cfg.rho_i)

        return GemClosure(
            fields=F, phi=phi, Apar=Apar, Ui=Ui, Ue=Ue, Jpar=Jpar, Rei=Rei,
            phi_G_e=phi_G_e, Phi_G_e=Phi_G_e, phi_G_i=phi_G_i, Phi_G_i=Phi_G_i,
        )

    def _gyro_potentials(self, phi: Array, rho: float) -> Tuple[Array, Array]:
        g = self.geometry
        reduced = self.comm.communicate({
            "phi_G": gyro_pade1(phi, rho, g, GYRO_FLAGS),
            "Phi_G": gyro_pade2(phi, rho, g, GYRO_FLAGS),
        })
        return reduced["phi_G"], reduced["Phi_G"]

    # ------------------------------------------------------------------
    # Physics residual
    # ------------------------------------------------------------------

    def physics_rhs(self, state: State) -> State:
        """Time derivatives of all physical terms."""
        c = self.closure(state)
        ddt = dict(self._ion_rhs(c))
        if not self.config.adiabatic_electrons:
            ddt.update(self._electron_rhs(c))
        return self._assemble(state, ddt)

    def _electron_rhs(self, c: GemClosure) -> Dict[str, Array]:
        eq = self.equilibrium
        return self._species_rhs(self.electrons, self._terms["e"], c, eq.Ne0, eq.Te0)

    def _ion_rhs(self, c: GemClosure) -> Dict[str, Array]:
        eq = self.equilibrium
        return self._species_rhs(self.ions, self._terms["i"], c, eq.Ni0, eq.Ti0)

    def _species_rhs(self, sp: Species, t: SpeciesTerms, c: GemClosure,
                     N0: Array, T0: Array) -> Dict[str, Array]:
        """Residuals of the six moment equations of one species."""
        cfg = self.config
        F = c.fields
        n_name, apu_name, tpar_name, tperp_name, qpar_name, qperp_name = sp.fields
        N, Tpar, Tperp = F[n_name], F[tpar_name], F[tperp_name]
        qpar, qperp = F[qpar_name], F[qperp_name]
        U = c.U(sp)
        phi_G, Phi_G = c.potentials(sp)
        Apar = c.Apar
        mu, tau = sp.mu, sp.tau
        GplogB = self.equilibrium.grad_par_logB
        bracket = self._bracket
        curvature = self._curvature

        # Collisional dissipation
        S_D = (sp.nu / (3.0 * sp.pi)) * (Tpar - Tperp)
        kfac = mu * tau * sp.nu * (2.5 / sp.kappa)
        if sp.jpar_heat:
            K_par = kfac * (qpar + 0.6 * ALPHA_E * c.Jpar)
            K_perp = kfac * (qperp + 0.4 * ALPHA_E * c.Jpar)
        else:
            K_par = kfac * qpar
            K_perp = kfac * qperp
        K_D = 1.28 * kfac * (qpar - 1.5 * qperp)

        ddt = {}

        if t.n_ddt:
            d = -bracket(phi_G, N0)
            if t.n_n1:
                d = d - bracket(phi_G, N)
            if t.n_t0:
                d = d - bracket(Phi_G, T0)
            if t.n_t1:
                d = d - bracket(Phi_G, Tperp)
            if t.n_u:
                d = d - self._div_parP_LtoC(U, Apar)
            if t.n_curv:
                d = d + curvature(phi_G + tau * N + 0.5 * (tau * Tpar + tau * Tperp + Phi_G))
            ddt[n_name] = self._post_process(d)

        if t.apu_ddt:
            if t.apu_ut:
                d = -mu * bracket(phi_G, U)
            else:
                d = jnp.zeros_like(N)
            if t.apu_q:
                d = d - mu * bracket(Phi_G, qperp)
            if t.apu_phi:
                d = d - self._grad_parP_CtoL(phi_G, Apar)
            if t.apu_parP:
                d = d - tau * self._grad_parP_CtoL(N0 + T0 + N + Tpar, Apar)
            if t.apu_curv:
                d = d + mu * tau * curvature(2.0 * U + qpar + 0.5 * qperp)
            if t.apu_gradB:
                d = d - tau * (Phi_G + tau * Tperp - tau * Tpar) * GplogB
            if t.apu_Rei:
                d = d - c.Rei
            ddt[apu_name] = self._post_process(d)

        if t.tpar_ddt:
            d = (- bracket(phi_G, T0 + Tpar)
                 - 2.0 * self._div_parP_LtoC(U + qpar, Apar)
                 + curvature(phi_G + tau * (N + Tpar) + 2.0 * tau * Tpar)
                 - (U + qperp) * GplogB
                 - 2.0 * S_D)
            ddt[tpar_name] = self._post_process(d)

        if t.tperp_ddt:
            d = (- bracket(phi_G, T0 + Tperp)
                 - bracket(Phi_G, N0 + N + 2.0 * (T0 + Tperp))
                 - self._div_parP_LtoC(qperp, Apar)
                 + 0.5 * curvature(phi_G + Phi_G + tau * (N + Tperp)
                                   + 3.0 * (Phi_G + tau * Tperp))
                 + (U + qperp) * GplogB
                 + S_D)
            ddt[tperp_name] = self._post_process(d)

        if t.qpar_ddt:
            d = (- bracket(phi_G, qpar)
                 - 1.5 * (1.0 / mu) * self._grad_parP_CtoL(tau * (T0 + Tpar), Apar)
                 + sp.qpar_curv * curvature(3.0 * U + 8.0 * qpar)
                 - sp.k_scale * K_par
                 - sp.k_scale * K_D)
            if sp.landau != 0.0:
                d = d - sp.landau * (tau / mu) * (1.0 - 0.125 * ops.grad2_par2(qpar, self.geometry))
            ddt[qpar_name] = self._post_process(d)

        if t.qperp_ddt:
            d = (- bracket(phi_G, qperp)
                 - bracket(Phi_G, U + 2.0 * qperp)
                 - (1.0 / mu) * self._grad_parP_CtoL(Phi_G + tau * (T0 + Tperp), Apar)
                 + 0.5 * tau * curvature(U + 6.0 * qperp)
                 - (tau / mu) * (Phi_G + tau * Tperp - tau * Tpar) * GplogB
                 - sp.k_scale * K_perp
                 + sp.k_scale * K_D)
            ddt[qperp_name] = self._post_process(d)

        return ddt

    # ------------------------------------------------------------------
    # Dissipation residual
    # ------------------------------------------------------------------

    def _hyperdiffusion(self, f: Array) -> Array:
        """nu_perp Delp2(Delp2(f) / B^4) - nu_par Grad2_par2(f)."""
        g = self.geometry
        d2 = NeumannX().apply(ops.delp2(f, g), g)
        d2 = self.comm.communicate_one(d2)
        B4 = expand_z(g.Bxy) ** 4
        return (self.config.nu_perp * ops.delp2(d2 / B4, g)
                - self.config.nu_par * ops.grad2_par2(f, g))

    def dissipation_rhs(self, state: State) -> State:
        """Artificial dissipation of every evolved field.

        Depends only on the evolve flags; physical term switches play no part.
        """
        c = self.closure(state)
        F = c.fields
        ddt = {}
        species = [self.ions] if self.config.adiabatic_electrons else [self.ions, self.electrons]
        for sp in species:
            n_name, apu_name = sp.fields[:2]
            for name in sp.fields:
                if name not in self.evolved_names:
                    continue
                if name == apu_name:
                    ddt[name] = -sp.mu * self._hyperdiffusion(c.U(sp))
                else:
                    ddt[name] = -self._hyperdiffusion(F[name])
        return self._assemble(state, ddt)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def diagnostics(self, state: State) -> Dict[str, Array]:
        c = self.closure(state)
        out = c.diagnostics()
        if self.config.output_ddt:
            rhs = self.physics_rhs(state)
            for name in self.evolved_names:
                out[f"F_{name}"] = rhs[name]
        return out

    def saved_once(self) -> Dict[str, object]:
        eq = self.equilibrium
        out = dict(self.config.norm.as_dict())
        out.update({"Te0": eq.Te0[:, :, 0], "Ti0": eq.Ti0[:, :, 0],
                    "Ni0": eq.Ni0[:, :, 0], "Ne0": eq.Ne0[:, :, 0]})
        return out

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_grid(cls, grid: GridSource, options: Options) -> "GemModel":
        """Load and normalise the equilibrium, then build the model.

        Reads the ``[gem]`` and ``[mesh]`` option sections.

        Raises:
            ConfigurationError: For missing grid quantities or invalid options
        """
        opts = options.section("gem")
        mesh = mesh_settings(options)

        Rxy = get_required(grid, "Rxy")        # Major radius [m]
        Bpxy = get_required(grid, "Bpxy")      # Poloidal field [T]
        Btxy = get_required(grid, "Btxy")      # Toroidal field [T]
        Bxy = get_required(grid, "Bxy")        # Total field [T]
        hthe = get_required(grid, "hthe")      # Poloidal arc length [m / radian]
        Te0 = get_required(grid, "Te0")        # Electron temperature [eV]
        Ni0 = get_required(grid, "Ni0") * 1e20  # Ion density, 1e20 m^-3 in the file
        validate_finite(Te0, "grid Te0")
        validate_finite(Ni0, "grid Ni0")
        dx = grid.get("dx")
        dy = grid.get("dy")
        dx = np.ones_like(Rxy) if dx is None else dx
        dy = np.ones_like(Rxy) if dy is None else dy

        Ti0 = Te0.copy()
        Ne0 = Ni0.copy()
        p_e = QE * Te0 * Ne0

        curv_logB = opts.get("curv_logB", False)
        logB = get_required(grid, "logB") if curv_logB else None

        # Normalisation factors
        Lbar = get_scalar(grid, "Lbar")
        if Lbar is None:
            Lbar = get_scalar(grid, "rmag", 1.0)
        Lbar = opts.get("Lbar", Lbar)
        Bbar = get_scalar(grid, "Bbar")
        if Bbar is None:
            Bbar = get_scalar(grid, "bmag", float(np.max(Bxy)))
        Bbar = opts.get("Bbar", Bbar)

        norm = GemNormalisation(
            Tenorm=float(np.max(Te0)), Ninorm=float(np.max(Ni0)),
            Lbar=float(Lbar), Bbar=float(Bbar),
            AA=opts.get("AA", 2.0), ZZ=opts.get("ZZ", 1.0),
            pe_max=float(np.max(p_e)),
            Tbar_override=opts.get("Tbar", 0.0) if opts.is_set("Tbar") else None,
        )
        config = GemConfig.from_options(opts, norm)

        log.info(f"t_e = {norm.t_e:e} [s], t_i = {norm.t_i:e} [s]")
        log.info(f"Lbar = {norm.Lbar:e} [m], Cs = {norm.Cs:e} [m/s]")
        log.info(f"Tbar = {norm.Tbar:e} [s]")
        log.info(f"Normalised nu_e = {norm.nu_e:e}, nu_i = {norm.nu_i:e}")
        log.info(f"beta_e = {norm.beta_e:e}, delta = {norm.delta:e}")
        log.info(f"Normalised rho_e = {norm.rho_e:e}, rho_i = {norm.rho_i:e}")

        delta = norm.delta
        Te0 = Te0 / (norm.Tenorm * delta)
        Ti0 = Ti0 / (norm.Tenorm * delta)
        Ni0 = Ni0 / (norm.Ninorm * delta)
        Ne0 = Ne0 / (norm.Ninorm * delta)

        geometry = Geometry.from_profiles(
            Rxy / norm.rho_s, Bpxy / norm.Bbar, Btxy / norm.Bbar, Bxy / norm.Bbar,
            hthe / norm.Lbar, dx / (norm.rho_s ** 2 * norm.Bbar), dy,
            nz=mesh["nz"], zlength=mesh["zlength"], mxg=mesh["mxg"], myg=mesh["myg"],
            periodic_y=mesh["periodic_y"],
        )

        logB2d = geometry.extend_y(logB) if logB is not None else None
        if config.include_grad_par_B:
            source = logB2d if logB2d is not None else jnp.log(geometry.Bxy)
            grad_par_logB = ops.grad_par(source, geometry)
        else:
            grad_par_logB = jnp.zeros(geometry.shape2d)

        equilibrium = GemEquilibrium(
            Ne0=expand_z(geometry.extend_y(Ne0)),
            Ni0=expand_z(geometry.extend_y(Ni0)),
            Te0=expand_z(geometry.extend_y(Te0)),
            Ti0=expand_z(geometry.extend_y(Ti0)),
            logB=expand_z(logB2d) if logB2d is not None else None,
            grad_par_logB=expand_z(grad_par_logB),
        )
        return cls(geometry, config, equilibrium)
