"""Field-aligned differential operators for edge plasma models.

All operators act on 2D (NX, NY) or 3D (NX, NY, nz) arrays laid out as in
``jax_edge.core.geometry``. They read guard cells, which callers must have
refreshed, and return arrays whose guard cells are zero. No operator
communicates. Mixed-rank arguments are broadcast to 3D; z derivatives of
2D fields vanish.
"""

from functools import partial
from typing import TYPE_CHECKING, Optional
import jax.numpy as jnp
from jax import jit

if TYPE_CHECKING:
    from jax_edge.core.geometry import Geometry

Array = jnp.ndarray

BRACKET_METHODS = ("simple", "arakawa", "std")


# ============================================================================
# Stencil helpers (no masking)
# ============================================================================

def _expand(a: Array, ndim: int) -> Array:
    """Broadcast a 2D metric quantity against a field of rank ndim."""
    return a[:, :, None] if ndim == 3 else a


def _promote(p: Array, f: Array):
    """Broadcast a pair of fields to a common rank."""
    if p.ndim == f.ndim:
        return p, f
    if p.ndim == 2:
        return jnp.broadcast_to(p[:, :, None], f.shape), f
    return p, jnp.broadcast_to(f[:, :, None], p.shape)


def _mask(result: Array, geometry: "Geometry") -> Array:
    """Zero guard cells of an operator result."""
    mask = geometry.interior_mask(result.ndim)
    return jnp.where(mask > 0, result, 0.0)


def _ddx(f: Array, dx: Array) -> Array:
    return (jnp.roll(f, -1, axis=0) - jnp.roll(f, 1, axis=0)) / (2.0 * dx)


def _ddy(f: Array, dy: Array) -> Array:
    return (jnp.roll(f, -1, axis=1) - jnp.roll(f, 1, axis=1)) / (2.0 * dy)


def _ddz(f: Array, dz: float) -> Array:
    if f.ndim == 2:
        return jnp.zeros_like(f)
    return (jnp.roll(f, -1, axis=2) - jnp.roll(f, 1, axis=2)) / (2.0 * dz)


def _d2dx2(f: Array, dx: Array) -> Array:
    return (jnp.roll(f, -1, axis=0) - 2.0 * f + jnp.roll(f, 1, axis=0)) / dx ** 2


def _d2dy2(f: Array, dy: Array) -> Array:
    return (jnp.roll(f, -1, axis=1) - 2.0 * f + jnp.roll(f, 1, axis=1)) / dy ** 2


def _d2dz2(f: Array, dz: float) -> Array:
    if f.ndim == 2:
        return jnp.zeros_like(f)
    return (jnp.roll(f, -1, axis=2) - 2.0 * f + jnp.roll(f, 1, axis=2)) / dz ** 2


# ============================================================================
# Basic derivatives
# ============================================================================

@jit
def ddx(f: Array, geometry: "Geometry") -> Array:
    """Central difference in x."""
    return _mask(_ddx(f, _expand(geometry.dx, f.ndim)), geometry)


@jit
def ddy(f: Array, geometry: "Geometry") -> Array:
    """Central difference in y."""
    return _mask(_ddy(f, _expand(geometry.dy, f.ndim)), geometry)


@jit
def ddz(f: Array, geometry: "Geometry") -> Array:
    """Central difference in z (periodic). Zero for 2D fields."""
    return _mask(_ddz(f, geometry.dz), geometry)


@jit
def d2dx2(f: Array, geometry: "Geometry") -> Array:
    return _mask(_d2dx2(f, _expand(geometry.dx, f.ndim)), geometry)


@jit
def d2dy2(f: Array, geometry: "Geometry") -> Array:
    return _mask(_d2dy2(f, _expand(geometry.dy, f.ndim)), geometry)


@jit
def d2dz2(f: Array, geometry: "Geometry") -> Array:
    return _mask(_d2dz2(f, geometry.dz), geometry)


# ============================================================================
# Poisson brackets
# ============================================================================

def _arakawa(p: Array, f: Array, dx: Array, dz: float) -> Array:
    """Arakawa Jacobian in the x-z plane, advecting f with potential p."""
    if f.ndim == 2:
        return jnp.zeros_like(f)

    def s(a, i, k):
        # a[x + i, z + k]
        return jnp.roll(a, (-i, -k), axis=(0, 2))

    jpp = ((s(p, 0, 1) - s(p, 0, -1)) * (s(f, 1, 0) - s(f, -1, 0))
           - (s(p, 1, 0) - s(p, -1, 0)) * (s(f, 0, 1) - s(f, 0, -1)))

    jpx = (s(f, 1, 0) * (s(p, 1, 1) - s(p, 1, -1))
           - s(f, -1, 0) * (s(p, -1, 1) - s(p, -1, -1))
           - s(f, 0, 1) * (s(p, 1, 1) - s(p, -1, 1))
           + s(f, 0, -1) * (s(p, 1, -1) - s(p, -1, -1)))

    jxp = (s(f, 1, 1) * (s(p, 0, 1) - s(p, 1, 0))
           - s(f, -1, -1) * (s(p, -1, 0) - s(p, 0, -1))
           - s(f, -1, 1) * (s(p, 0, 1) - s(p, -1, 0))
           + s(f, 1, -1) * (s(p, 1, 0) - s(p, 0, -1)))

    return (jpp + jpx + jxp) / (12.0 * dx * dz)


def _b0xgrad_dot_grad(p: Array, f: Array, geometry: "Geometry") -> Array:
    """(b0 x grad p) . grad f including all metric terms."""
    ndim = f.ndim
    dx = _expand(geometry.dx, ndim)
    dy = _expand(geometry.dy, ndim)
    dz = geometry.dz
    g_12 = _expand(geometry.g_12, ndim)
    g_22 = _expand(geometry.g_22, ndim)
    g_23 = _expand(geometry.g_23, ndim)

    px, py, pz = _ddx(p, dx), _ddy(p, dy), _ddz(p, dz)
    vx = g_22 * pz - g_23 * py
    vy = g_23 * px - g_12 * pz
    vz = g_12 * py - g_22 * px

    result = vx * _ddx(f, dx) + vy * _ddy(f, dy) + vz * _ddz(f, dz)
    return result / (_expand(geometry.J, ndim) * jnp.sqrt(g_22))


@partial(jit, static_argnames=("method",))
def bracket(p: Array, f: Array, geometry: "Geometry", method: str = "simple") -> Array:
    """Poisson bracket [p, f]: ExB advection of f by potential p.

    Args:
        p: Advecting potential (2D or 3D)
        f: Advected field (2D or 3D)
        geometry: Grid geometry
        method: ``"simple"`` (DDZ(p) DDX(f) - DDX(p) DDZ(f)), ``"arakawa"``
            (energy and enstrophy conserving Jacobian) or ``"std"`` (full
            b0 x grad(p) . grad(f) / B with all metric terms)

    Returns:
        Bracket with the rank of the higher-rank argument
    """
    p, f = _promote(p, f)
    dx = _expand(geometry.dx, f.ndim)
    if method == "simple":
        result = _ddz(p, geometry.dz) * _ddx(f, dx) - _ddx(p, dx) * _ddz(f, geometry.dz)
    elif method == "arakawa":
        result = _arakawa(p, f, dx, geometry.dz)
    elif method == "std":
        result = _b0xgrad_dot_grad(p, f, geometry) / _expand(geometry.Bxy, f.ndim)
    else:
        raise ValueError(f"Unknown bracket method: {method}")
    return _mask(result, geometry)


@partial(jit, static_argnames=("method",))
def curvature(f: Array, geometry: "Geometry", logB: Optional[Array] = None,
              method: str = "simple") -> Array:
    """Magnetic curvature drive, -[2 log B, f].

    ``logB`` replaces log(Bxy) when the equilibrium supplies it separately.
    """
    if logB is None:
        logB = jnp.log(geometry.Bxy)
    return -bracket(2.0 * logB, f, geometry, method)


# ============================================================================
# Parallel derivatives
# ============================================================================

def _correct(result: Array, f: Array, geometry: "Geometry", apar: Optional[Array],
             beta, method: str) -> Array:
    """Subtract beta [Apar, f], the magnetic flutter part of b.grad."""
    if apar is None:
        return result
    return result - beta * bracket(apar, f, geometry, method)


def _grad_par(f, geometry):
    ndim = f.ndim
    return _ddy(f, _expand(geometry.dy, ndim)) / jnp.sqrt(_expand(geometry.g_22, ndim))


def _grad_par_ctol(f, geometry):
    ndim = f.ndim
    h = _expand(geometry.dy * jnp.sqrt(geometry.g_22), ndim)
    return 2.0 * (f - jnp.roll(f, 1, axis=1)) / (h + jnp.roll(h, 1, axis=1))


def _grad_par_ltoc(f, geometry):
    ndim = f.ndim
    h = _expand(geometry.dy * jnp.sqrt(geometry.g_22), ndim)
    return 2.0 * (jnp.roll(f, -1, axis=1) - f) / (h + jnp.roll(h, -1, axis=1))


@partial(jit, static_argnames=("method",))
def grad_par(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
             beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel gradient DDY(f)/sqrt(g_22), cell centre to centre.

    With ``apar`` given, ``beta * [apar, f]`` is subtracted.
    """
    result = _mask(_grad_par(f, geometry), geometry)
    return _correct(result, f, geometry, apar, beta, method)


@partial(jit, static_argnames=("method",))
def grad_par_ctol(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
                  beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel gradient from cell centres to the lower cell face.

    Uses the backward difference f[y] - f[y-1].
    """
    result = _mask(_grad_par_ctol(f, geometry), geometry)
    return _correct(result, f, geometry, apar, beta, method)


@partial(jit, static_argnames=("method",))
def grad_par_ltoc(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
                  beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel gradient from lower cell faces to cell centres.

    Uses the forward difference f[y+1] - f[y].
    """
    result = _mask(_grad_par_ltoc(f, geometry), geometry)
    return _correct(result, f, geometry, apar, beta, method)


def _div_par(grad, f, geometry, apar, beta, method):
    B = _expand(geometry.Bxy, f.ndim)
    return B * grad(f / B, geometry, apar=apar, beta=beta, method=method)


@partial(jit, static_argnames=("method",))
def div_par(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
            beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel divergence B grad_par(f/B)."""
    return _div_par(grad_par, f, geometry, apar, beta, method)


@partial(jit, static_argnames=("method",))
def div_par_ctol(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
                 beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel divergence B grad_par_ctol(f/B)."""
    return _div_par(grad_par_ctol, f, geometry, apar, beta, method)


@partial(jit, static_argnames=("method",))
def div_par_ltoc(f: Array, geometry: "Geometry", apar: Optional[Array] = None,
                 beta: float = 0.0, method: str = "simple") -> Array:
    """Parallel divergence B grad_par_ltoc(f/B)."""
    return _div_par(grad_par_ltoc, f, geometry, apar, beta, method)


@jit
def grad2_par2(f: Array, geometry: "Geometry") -> Array:
    """Second parallel derivative including the variation of sqrt(g_22)."""
    ndim = f.ndim
    dy = _expand(geometry.dy, ndim)
    g_22 = _expand(geometry.g_22, ndim)
    sg = jnp.sqrt(g_22)
    result = _ddy(1.0 / sg, dy) * _ddy(f, dy) / sg + _d2dy2(f, dy) / g_22
    return _mask(result, geometry)


# ============================================================================
# Perpendicular Laplacian
# ============================================================================

@jit
def delp2(f: Array, geometry: "Geometry") -> Array:
    """Perpendicular Laplacian, spectral in z and second order in x.

    g11 f_xx + g33 f_zz + 2 g13 f_xz + G1 f_x + G3 f_z, with the same
    discretisation as ``jax_edge.solvers.laplace.invert_laplace``.
    """
    is2d = f.ndim == 2
    f3 = f[:, :, None] if is2d else f
    nz = f3.shape[2]
    kz = 2.0 * jnp.pi / geometry.zlength * jnp.arange(nz // 2 + 1)
    ik = 1j * kz[None, None, :]

    dx = geometry.dx[:, :, None]
    fk = jnp.fft.rfft(f3, axis=2)
    fp = jnp.roll(fk, -1, axis=0)
    fm = jnp.roll(fk, 1, axis=0)

    coef1 = geometry.g11[:, :, None] / dx ** 2
    coef3 = geometry.g13[:, :, None] / dx
    coef4 = geometry.G1[:, :, None] / (2.0 * dx)
    coef2 = geometry.g33[:, :, None]
    coef5 = geometry.G3[:, :, None]

    rk = (coef1 * (fp - 2.0 * fk + fm)
          + (coef4 + ik * coef3) * (fp - fm)
          + (ik ** 2 * coef2 + ik * coef5) * fk)
    result = jnp.fft.irfft(rk, n=nz, axis=2)
    if is2d:
        result = result[:, :, 0]
    return _mask(result, geometry)


# ============================================================================
# Toroidal filters and averages
# ============================================================================

@partial(jit, static_argnames=("zmax", "zmin"))
def low_pass(f: Array, zmax: int, zmin: int = 0) -> Array:
    """Keep toroidal modes zmin..zmax, zero the rest."""
    if f.ndim == 2:
        return f if zmin <= 0 else jnp.zeros_like(f)
    fk = jnp.fft.rfft(f, axis=2)
    n = jnp.arange(fk.shape[2])
    keep = (n <= zmax) & (n >= zmin)
    return jnp.fft.irfft(jnp.where(keep, fk, 0.0), n=f.shape[2], axis=2)


@partial(jit, static_argnames=("mode",))
def filter_mode(f: Array, mode: int) -> Array:
    """Keep a single toroidal mode number."""
    if f.ndim == 2:
        return f if mode == 0 else jnp.zeros_like(f)
    fk = jnp.fft.rfft(f, axis=2)
    n = jnp.arange(fk.shape[2])
    return jnp.fft.irfft(jnp.where(n == mode, fk, 0.0), n=f.shape[2], axis=2)


@jit
def dc(f: Array) -> Array:
    """Toroidal average. Returns a 2D field."""
    if f.ndim == 2:
        return f
    return jnp.mean(f, axis=2)


@jit
def remove_dc(f: Array) -> Array:
    """Subtract the toroidal average."""
    if f.ndim == 2:
        return jnp.zeros_like(f)
    return f - jnp.mean(f, axis=2, keepdims=True)


@jit
def average_y(f: Array, geometry: "Geometry") -> Array:
    """Average over interior y points, broadcast back along y."""
    inner = f[:, geometry.ystart:geometry.yend + 1]
    mean = jnp.mean(inner, axis=1, keepdims=True)
    return jnp.broadcast_to(mean, f.shape)


def where_positive(test: Array, gt0, le0) -> Array:
    """``gt0`` where test > 0, else ``le0``."""
    return jnp.where(test > 0.0, gt0, le0)
