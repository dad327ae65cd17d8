"""Physical constants used by the normalisations.

SI units throughout. Values follow the conventions of the edge-turbulence
models they feed, which use slightly rounded CODATA numbers.
"""

from typing import Final

# Electromagnetic constants
MU0: Final[float] = 4.0e-7 * 3.141592653589793  # Permeability of free space [H/m]
EPSILON0: Final[float] = 8.854187817e-12  # Permittivity of free space [F/m]

# Particle properties
QE: Final[float] = 1.602176565e-19  # Elementary charge [C]
ME: Final[float] = 9.10938291e-31  # Electron mass [kg]
MP: Final[float] = 1.672621777e-27  # Proton mass [kg]

# Mass ratios used by the gyrofluid and drift models
MP_ME_GEM: Final[float] = 1860.0  # Rounded proton/electron ratio in mu_e
MP_ME_DRIFT: Final[float] = 1836.2  # Proton/electron ratio in fmei

# Braginskii transport coefficients (parallel resistivity, thermal force,
# heat conduction and viscosity closures)
ETA_PAR: Final[float] = 0.51
ALPHA_E: Final[float] = 0.71
KAPPA_E: Final[float] = 3.2
PI_E: Final[float] = 0.73
KAPPA_I: Final[float] = 3.9
PI_I: Final[float] = 0.73


def ion_sound_speed(Te: float, AA: float) -> float:
    """Ion sound speed Cs = sqrt(e Te / (AA m_p)).

    Args:
        Te: Electron temperature [eV]
        AA: Ion mass number

    Returns:
        Sound speed [m/s]
    """
    return (QE * Te / (AA * MP)) ** 0.5
