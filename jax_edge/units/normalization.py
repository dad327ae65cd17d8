"""Normalisation of the gyrofluid and drift models.

The gyrofluid model normalises lengths across the field to rho_s, along
the field to Lbar, time to Lbar/Cs and fluctuation amplitudes to delta =
rho_s/Lbar. The drift model normalises everything to the ion cyclotron
frequency and rho_s at a reference density and temperature.
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np

from jax_edge.constants import MP, MP_ME_DRIFT, MP_ME_GEM, MU0, QE
from jax_edge.input_validation import validate_positive


@dataclass(frozen=True)
class GemNormalisation:
    """Reference scales of the gyrofluid model.

    Tenorm [eV] and Ninorm [m^-3] are the maxima of the equilibrium
    profiles, Lbar [m] and Bbar [T] the reference length and field.
    """

    Tenorm: float
    Ninorm: float
    Lbar: float
    Bbar: float
    AA: float = 2.0
    ZZ: float = 1.0
    pe_max: Optional[float] = None  # Peak electron pressure [Pa]
    Tbar_override: Optional[float] = None

    def __post_init__(self):
        validate_positive(self.Tenorm, "Tenorm")
        validate_positive(self.Ninorm, "Ninorm")
        validate_positive(self.Lbar, "Lbar")
        validate_positive(self.Bbar, "Bbar")
        validate_positive(self.AA, "AA")
        validate_positive(self.ZZ, "ZZ")

    @property
    def Cs(self) -> float:
        """Sound speed [m/s]."""
        return float(np.sqrt(QE * self.Tenorm / (self.AA * MP)))

    @property
    def Tbar(self) -> float:
        """Time scale Lbar / Cs [s]."""
        if self.Tbar_override is not None:
            return self.Tbar_override
        return self.Lbar / self.Cs

    @property
    def beta_e(self) -> float:
        pe = self.pe_max if self.pe_max is not None else QE * self.Tenorm * self.Ninorm
        return MU0 * pe / self.Bbar ** 2

    @property
    def mu_i(self) -> float:
        return 1.0 / self.ZZ

    @property
    def mu_e(self) -> float:
        return -1.0 / (self.AA * MP_ME_GEM)

    @property
    def tau_i(self) -> float:
        return 1.0 / self.ZZ

    @property
    def tau_e(self) -> float:
        return -1.0

    @property
    def rho_s(self) -> float:
        """Sound gyroradius [m]."""
        return self.Cs * self.AA * MP / (QE * self.Bbar)

    @property
    def rho_e(self) -> float:
        """Electron gyroradius normalised to rho_s."""
        return float(np.sqrt(abs(self.mu_e * self.tau_e)))

    @property
    def rho_i(self) -> float:
        """Ion gyroradius normalised to rho_s."""
        return float(np.sqrt(abs(self.mu_i * self.tau_i)))

    @property
    def delta(self) -> float:
        return self.rho_s / self.Lbar

    @property
    def coulomb_log(self) -> float:
        return 6.6 - 0.5 * np.log(self.Ninorm * 1e-20) + 1.5 * np.log(self.Tenorm)

    @property
    def t_e(self) -> float:
        """Braginskii electron collision time [s]."""
        return 1.0 / (2.91e-6 * (self.Ninorm / 1e6) * self.coulomb_log * self.Tenorm ** -1.5)

    @property
    def t_i(self) -> float:
        """Braginskii ion collision time [s]."""
        return (self.ZZ ** -4 * np.sqrt(self.AA)
                / (4.80e-8 * (self.Ninorm / 1e6) * self.coulomb_log * self.Tenorm ** -1.5))

    @property
    def nu_e(self) -> float:
        return self.Lbar / (self.Cs * self.t_e)

    @property
    def nu_i(self) -> float:
        return self.Lbar / (self.Cs * self.t_i)

    def as_dict(self) -> dict:
        """Scalars written once to the output file."""
        return {
            "Lbar": self.Lbar, "Tenorm": self.Tenorm, "Ninorm": self.Ninorm,
            "Cs": self.Cs, "Tbar": self.Tbar, "Bbar": self.Bbar,
            "beta_e": self.beta_e, "delta": self.delta,
            "nu_e": self.nu_e, "nu_i": self.nu_i,
        }


@dataclass(frozen=True)
class DriftNormalisation:
    """Reference scales of the 2-fluid drift model.

    Te_x, Ti_x in eV, Ni_x in cm^-3 and bmag in gauss, i.e. already
    multiplied by 1e14 and 1e4 from the grid-file units.
    """

    Te_x: float
    Ti_x: float
    Ni_x: float
    bmag: float
    AA: float = 2.0
    ZZ: float = 1.0
    zeff: float = 1.0
    nu_perp: float = 0.0
    estatic: bool = False

    def __post_init__(self):
        validate_positive(self.Te_x, "Te_x")
        validate_positive(self.Ti_x, "Ti_x")
        validate_positive(self.Ni_x, "Ni_x")
        validate_positive(self.bmag, "bmag")

    @property
    def rho_s(self) -> float:
        """Sound gyroradius [cm]."""
        return 1.02 * np.sqrt(self.AA * self.Te_x) / self.ZZ / self.bmag

    @property
    def fmei(self) -> float:
        """Electron to ion mass ratio."""
        return 1.0 / MP_ME_DRIFT / self.AA

    @property
    def lambda_ei(self) -> float:
        return 24.0 - np.log(np.sqrt(self.Ni_x) / self.Te_x)

    @property
    def lambda_ii(self) -> float:
        return 23.0 - np.log(self.ZZ ** 3 * np.sqrt(2.0 * self.Ni_x) / self.Ti_x ** 1.5)

    @property
    def wci(self) -> float:
        """Ion cyclotron frequency [rad/s]."""
        return 9.58e3 * self.ZZ * self.bmag / self.AA

    @property
    def nueix(self) -> float:
        return 2.91e-6 * self.Ni_x * self.lambda_ei / self.Te_x ** 1.5

    @property
    def nuiix(self) -> float:
        return 4.78e-8 * self.ZZ ** 4 * self.Ni_x * self.lambda_ii / self.Ti_x ** 1.5 / np.sqrt(self.AA)

    @property
    def nu_hat(self) -> float:
        return self.zeff * self.nueix / self.wci

    @property
    def mui_hat(self) -> float:
        if self.nu_perp < 1e-10:
            return 0.3 * self.nuiix / self.wci
        return self.nu_perp

    @property
    def beta_p(self) -> float:
        if self.estatic:
            return 1e-29
        return 4.03e-11 * self.Ni_x * self.Te_x / self.bmag ** 2

    @property
    def Vi_x(self) -> float:
        return self.wci * self.rho_s

    @property
    def field_scale(self) -> float:
        """Magnetic field normalisation [T]."""
        return self.bmag / 1e4

    def as_dict(self) -> dict:
        """Scalars written once to the output file."""
        return {
            "Te_x": self.Te_x, "Ti_x": self.Ti_x, "Ni_x": self.Ni_x,
            "rho_s": self.rho_s, "wci": self.wci,
        }
