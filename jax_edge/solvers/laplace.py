"""Perpendicular Laplacian inversion.

Solves

    d (Delp2 x + (1/c) grad_perp c . grad_perp x) + a x = b

for x, Fourier transforming in z and solving a dense banded system in x
for every (y, kz). The discretisation matches ``jax_edge.operators.delp2``
so that ``delp2(invert_laplace(b))`` reproduces ``b`` on the interior.
"""

import logging
from enum import IntFlag
from functools import partial
from typing import Optional, Union
import jax
import jax.numpy as jnp
from jax import Array, jit

from jax_edge.core.geometry import Geometry
from jax_edge.input_validation import ValidationError

log = logging.getLogger(__name__)

Coefficient = Optional[Union[float, Array]]


class InvertFlags(IntFlag):
    """Boundary and mode options for the inversion.

    Without a GRAD flag a radial boundary has zero value on the cell face;
    with it, zero gradient. DC flags apply to the kz = 0 mode and AC flags
    to all others. IN_RHS / OUT_RHS take the boundary value (or gradient)
    from the guard cells of the source instead of zero.
    """

    NONE = 0
    DC_IN_GRAD = 1
    AC_IN_GRAD = 2
    DC_OUT_GRAD = 4
    AC_OUT_GRAD = 8
    ZERO_DC = 16
    IN_RHS = 256
    OUT_RHS = 512


class InversionError(RuntimeError):
    """Raised when the inversion produces non-finite values."""
    pass


def _as_coefficient(value: Coefficient, geometry: Geometry, name: str) -> Optional[Array]:
    if value is None:
        return None
    value = jnp.asarray(value, dtype=float)
    if value.ndim == 0:
        return jnp.full(geometry.shape2d, value)
    if tuple(value.shape) != geometry.shape2d:
        raise ValidationError(
            f"Inversion coefficient {name} must be scalar or shape {geometry.shape2d}, "
            f"got {tuple(value.shape)}"
        )
    return value


def _boundary_signs(flags: int, dc_flag: int, ac_flag: int, nk: int) -> Array:
    """+1 for zero-value rows, -1 for zero-gradient rows, per kz."""
    dc = -1.0 if flags & dc_flag else 1.0
    ac = -1.0 if flags & ac_flag else 1.0
    return jnp.where(jnp.arange(nk) == 0, dc, ac)


@partial(jit, static_argnames=("flags",))
def _solve(b: Array, geometry: Geometry, flags: int, a, c, d) -> Array:
    NX, NY, nz = b.shape
    nk = nz // 2 + 1
    xs, xe, mxg = geometry.xstart, geometry.xend, geometry.mxg
    kz = (2.0 * jnp.pi / geometry.zlength * jnp.arange(nk))[None, None, :]

    dx = geometry.dx
    coef1 = geometry.g11 / dx ** 2
    coef2 = geometry.g33
    coef3 = geometry.g13 / dx
    coef4 = geometry.G1
    coef5 = geometry.G3
    if c is not None:
        dc_dx = (jnp.roll(c, -1, axis=0) - jnp.roll(c, 1, axis=0)) / (2.0 * dx * c)
        coef4 = coef4 + geometry.g11 * dc_dx
    coef4 = coef4 / (2.0 * dx)
    if d is not None:
        coef1, coef2, coef3, coef4, coef5 = (coef * d for coef in (coef1, coef2, coef3, coef4, coef5))

    def e(coef):
        return coef[:, :, None]

    lower = e(coef1) - e(coef4) - 1j * kz * e(coef3)
    diag = -2.0 * e(coef1) - kz ** 2 * e(coef2) + 1j * kz * e(coef5)
    upper = e(coef1) + e(coef4) + 1j * kz * e(coef3)
    if a is not None:
        diag = diag + e(a)

    # Move x last: (NY, nk, NX)
    lower, diag, upper = (jnp.transpose(v, (1, 2, 0)) for v in (lower, diag, upper))
    rhs = jnp.transpose(jnp.fft.rfft(b, axis=2), (1, 2, 0))

    idx = jnp.arange(xs, xe + 1)
    M = jnp.zeros((NY, nk, NX, NX), dtype=diag.dtype)
    M = M.at[:, :, idx, idx - 1].set(lower[:, :, idx])
    M = M.at[:, :, idx, idx].set(diag[:, :, idx])
    M = M.at[:, :, idx, idx + 1].set(upper[:, :, idx])

    s_in = _boundary_signs(flags, InvertFlags.DC_IN_GRAD, InvertFlags.AC_IN_GRAD, nk)[None, :]
    s_out = _boundary_signs(flags, InvertFlags.DC_OUT_GRAD, InvertFlags.AC_OUT_GRAD, nk)[None, :]
    src = rhs
    for k in range(mxg):
        for g, m, s, use_rhs in ((xs - 1 - k, xs + k, s_in, flags & InvertFlags.IN_RHS),
                                 (xe + 1 + k, xe - k, s_out, flags & InvertFlags.OUT_RHS)):
            M = M.at[:, :, g, g].set(1.0)
            M = M.at[:, :, g, m].set(s)
            value = src[:, :, g] + s * src[:, :, m] if use_rhs else 0.0
            rhs = rhs.at[:, :, g].set(value)

    x = jnp.linalg.solve(M, rhs[..., None])[..., 0]
    if flags & InvertFlags.ZERO_DC:
        x = x.at[:, 0, :].set(0.0)

    return jnp.fft.irfft(jnp.transpose(x, (2, 0, 1)), n=nz, axis=2)


def invert_laplace(b: Array, geometry: Geometry, flags: int = 0,
                   a: Coefficient = None, c: Coefficient = None,
                   d: Coefficient = None, check: bool = True) -> Array:
    """Invert the generalised perpendicular Laplacian.

    Args:
        b: Source, 2D or 3D
        geometry: Grid geometry
        flags: ``InvertFlags`` bit field
        a: Helmholtz coefficient (scalar or 2D), default 0
        c: Coefficient inside the divergence (scalar or 2D), default 1
        d: Coefficient multiplying the Laplacian (scalar or 2D), default 1
        check: Raise on non-finite results (skipped while tracing)

    Returns:
        Solution with the rank of ``b``. x guard cells hold the boundary
        condition; y guard cells must be refreshed by the caller.

    Raises:
        InversionError: If the solution contains NaN or Inf
    """
    is2d = b.ndim == 2
    b3 = b[:, :, None] if is2d else b
    a = _as_coefficient(a, geometry, "a")
    c = _as_coefficient(c, geometry, "c")
    d = _as_coefficient(d, geometry, "d")

    x = _solve(b3, geometry, int(flags), a, c, d)
    if is2d:
        x = x[:, :, 0]

    if check and not isinstance(x, jax.core.Tracer):
        if not bool(jnp.all(jnp.isfinite(x))):
            raise InversionError(
                f"Laplacian inversion produced non-finite values (flags={int(flags)})"
            )
    return x


class LaplaceInversion:
    """Inversion with fixed flags and coefficients.

    Holds the options of one elliptic equation so that models can build
    it once and call it every step.
    """

    def __init__(self, geometry: Geometry, flags: int = 0, a: Coefficient = None,
                 c: Coefficient = None, d: Coefficient = None):
        self.geometry = geometry
        self.flags = InvertFlags(int(flags))
        self.a = a
        self.c = c
        self.d = d
        log.debug(f"Laplace inversion with flags {self.flags!r}")

    def __call__(self, b: Array) -> Array:
        return invert_laplace(b, self.geometry, self.flags, a=self.a, c=self.c, d=self.d)
