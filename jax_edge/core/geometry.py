"""Field-aligned computational geometry.

Index space is (x, y, z): x radial with ``mxg`` guard cells on each side,
y along the field with ``myg`` guard cells on each side, z toroidal and
periodic with no guard cells. 3D fields have shape (NX, NY, nz), 2D
fields (NX, NY), where NX = nx + 2*mxg and NY = ny + 2*myg.
"""

from dataclasses import dataclass, fields as dc_fields
from typing import Optional
import numpy as np
import jax
import jax.numpy as jnp
from jax import Array

from jax_edge.input_validation import ValidationError, validate_positive

STATIC_FIELDS = ("nx", "ny", "nz", "mxg", "myg", "zlength", "periodic_y")
METRIC_FIELDS = (
    "dx", "dy",
    "g11", "g22", "g33", "g12", "g13", "g23",
    "g_11", "g_22", "g_33", "g_12", "g_13", "g_23",
    "J", "Bxy", "G1", "G3",
)


@dataclass(frozen=True)
class Geometry:
    """Grid sizes, spacings and metric tensor of a field-aligned mesh.

    All metric arrays are 2D (NX, NY) including guard cells.
    """

    nx: int
    ny: int
    nz: int
    mxg: int
    myg: int
    zlength: float
    periodic_y: bool

    dx: Array
    dy: Array

    # Contravariant metric
    g11: Array
    g22: Array
    g33: Array
    g12: Array
    g13: Array
    g23: Array

    # Covariant metric
    g_11: Array
    g_22: Array
    g_33: Array
    g_12: Array
    g_13: Array
    g_23: Array

    J: Array
    Bxy: Array

    # Laplacian first-derivative coefficients
    G1: Array
    G3: Array

    def __post_init__(self):
        if self.nx < 1 or self.ny < 1 or self.nz < 1:
            raise ValidationError(
                f"Grid must have at least one interior point per direction, got "
                f"({self.nx}, {self.ny}, {self.nz})"
            )
        if self.mxg < 1 or self.myg < 1:
            raise ValidationError("At least one guard cell is needed in x and y")

    # ------------------------------------------------------------------
    # Sizes and index ranges
    # ------------------------------------------------------------------

    @property
    def nx_total(self) -> int:
        return self.nx + 2 * self.mxg

    @property
    def ny_total(self) -> int:
        return self.ny + 2 * self.myg

    @property
    def shape2d(self) -> tuple:
        return (self.nx_total, self.ny_total)

    @property
    def shape3d(self) -> tuple:
        return (self.nx_total, self.ny_total, self.nz)

    @property
    def xstart(self) -> int:
        return self.mxg

    @property
    def xend(self) -> int:
        """Last interior x index (inclusive)."""
        return self.mxg + self.nx - 1

    @property
    def ystart(self) -> int:
        return self.myg

    @property
    def yend(self) -> int:
        """Last interior y index (inclusive)."""
        return self.myg + self.ny - 1

    @property
    def dz(self) -> float:
        return self.zlength / self.nz

    @property
    def kz(self) -> Array:
        """Toroidal wavenumbers of the rfft modes."""
        return 2.0 * jnp.pi / self.zlength * jnp.arange(self.nz // 2 + 1)

    def interior_mask(self, ndim: int = 3) -> Array:
        """1 on interior points, 0 on guard cells."""
        mask = np.zeros(self.shape2d)
        mask[self.xstart:self.xend + 1, self.ystart:self.yend + 1] = 1.0
        mask = jnp.asarray(mask)
        if ndim == 3:
            return mask[:, :, None]
        return mask

    def interior(self, f: Array) -> Array:
        """View of the interior points of a 2D or 3D field."""
        return f[self.xstart:self.xend + 1, self.ystart:self.yend + 1]

    def extend_y(self, a) -> Array:
        """Add y guard cells to a (NX, ny) profile.

        Periodic meshes wrap, open meshes copy the edge value. Arrays that
        already carry y guards are returned unchanged.
        """
        a = np.asarray(a, dtype=float)
        if a.ndim == 0:
            return jnp.full(self.shape2d, float(a))
        if a.shape[1] == self.ny_total:
            return jnp.asarray(a)
        if a.shape[1] != self.ny:
            raise ValidationError(
                f"Profile has {a.shape[1]} y points, expected {self.ny} or {self.ny_total}"
            )
        return jnp.asarray(_pad_y(a, self.myg, self.periodic_y))

    def replace(self, **kwargs) -> "Geometry":
        """Return new Geometry with specified fields replaced."""
        from dataclasses import replace as dc_replace
        return dc_replace(self, **kwargs)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def slab(cls, nx: int, ny: int, nz: int, mxg: int = 2, myg: int = 2,
             lx: float = 1.0, ly: float = 1.0, zlength: float = 2 * np.pi,
             B: float = 1.0, periodic_y: bool = True) -> "Geometry":
        """Uniform Cartesian slab with unit metric."""
        validate_positive(lx, "lx")
        validate_positive(ly, "ly")
        validate_positive(zlength, "zlength")
        shape = (nx + 2 * mxg, ny + 2 * myg)
        one = np.ones(shape)
        zero = np.zeros(shape)
        return cls(
            nx=nx, ny=ny, nz=nz, mxg=mxg, myg=myg,
            zlength=float(zlength), periodic_y=periodic_y,
            dx=jnp.asarray(one * lx / nx), dy=jnp.asarray(one * ly / ny),
            g11=jnp.asarray(one), g22=jnp.asarray(one), g33=jnp.asarray(one),
            g12=jnp.asarray(zero), g13=jnp.asarray(zero), g23=jnp.asarray(zero),
            g_11=jnp.asarray(one), g_22=jnp.asarray(one), g_33=jnp.asarray(one),
            g_12=jnp.asarray(zero), g_13=jnp.asarray(zero), g_23=jnp.asarray(zero),
            J=jnp.asarray(one), Bxy=jnp.asarray(one * B),
            G1=jnp.asarray(zero), G3=jnp.asarray(zero),
        )

    @classmethod
    def from_profiles(cls, Rxy, Bpxy, Btxy, Bxy, hthe, dx, dy,
                      nz: int, zlength: float, mxg: int = 2, myg: int = 2,
                      sinty=None, periodic_y: bool = True) -> "Geometry":
        """Build the field-aligned metric from equilibrium profiles.

        Profiles are (NX, ny) arrays including x guard cells; y guard cells
        are added here. ``sinty`` is the integrated shear I, zero if absent.

        Args:
            Rxy: Major radius
            Bpxy: Poloidal field
            Btxy: Toroidal field
            Bxy: Total field magnitude
            hthe: Poloidal arc length per radian
            dx: Radial spacing (flux coordinate)
            dy: Poloidal angle spacing
            nz: Number of toroidal points
            zlength: Toroidal domain length
            sinty: Integrated shear, optional

        Returns:
            Geometry with metric and Laplacian coefficients
        """
        Rxy = np.asarray(Rxy, dtype=float)
        NX, ny = Rxy.shape
        if NX <= 2 * mxg:
            raise ValidationError(f"Grid has {NX} x points, too few for {mxg} guard cells")

        def ext(a):
            a = np.broadcast_to(np.asarray(a, dtype=float), (NX, ny))
            return _pad_y(a, myg, periodic_y)

        R = ext(Rxy)
        Bp = ext(Bpxy)
        Bt = ext(Btxy)
        B = ext(Bxy)
        h = ext(hthe)
        I = ext(0.0 if sinty is None else sinty)
        dxa = ext(dx)
        dya = ext(dy)

        g11 = (R * Bp) ** 2
        g22 = 1.0 / h ** 2
        g33 = I ** 2 * g11 + B ** 2 / g11
        g12 = np.zeros_like(g11)
        g13 = -I * g11
        g23 = -Bt / (h * Bp * R)
        J = h / Bp

        g_11 = 1.0 / g11 + (I * R) ** 2
        g_22 = (B * h / Bp) ** 2
        g_33 = R ** 2
        g_12 = Bt * h * I * R / Bp
        g_13 = I * R ** 2
        g_23 = Bt * h * R / Bp

        G1, G3 = _laplacian_coefficients(J, g11, g12, g13, g23, dxa, dya)

        return cls(
            nx=NX - 2 * mxg, ny=ny, nz=nz, mxg=mxg, myg=myg,
            zlength=float(zlength), periodic_y=periodic_y,
            dx=jnp.asarray(dxa), dy=jnp.asarray(dya),
            g11=jnp.asarray(g11), g22=jnp.asarray(g22), g33=jnp.asarray(g33),
            g12=jnp.asarray(g12), g13=jnp.asarray(g13), g23=jnp.asarray(g23),
            g_11=jnp.asarray(g_11), g_22=jnp.asarray(g_22), g_33=jnp.asarray(g_33),
            g_12=jnp.asarray(g_12), g_13=jnp.asarray(g_13), g_23=jnp.asarray(g_23),
            J=jnp.asarray(J), Bxy=jnp.asarray(B),
            G1=jnp.asarray(G1), G3=jnp.asarray(G3),
        )


def _pad_y(a: np.ndarray, myg: int, periodic: bool) -> np.ndarray:
    if periodic:
        return np.concatenate([a[:, -myg:], a, a[:, :myg]], axis=1)
    lower = np.repeat(a[:, :1], myg, axis=1)
    upper = np.repeat(a[:, -1:], myg, axis=1)
    return np.concatenate([lower, a, upper], axis=1)


def _central(a: np.ndarray, d: np.ndarray, axis: int) -> np.ndarray:
    if a.shape[axis] < 2:
        return np.zeros_like(a)
    return np.gradient(a, axis=axis) / d


def _laplacian_coefficients(J, g11, g12, g13, g23, dx, dy):
    """G1 = div(J g^1)/J and G3 = div(J g^3)/J for axisymmetric metrics."""
    G1 = (_central(J * g11, dx, 0) + _central(J * g12, dy, 1)) / J
    G3 = (_central(J * g13, dx, 0) + _central(J * g23, dy, 1)) / J
    return G1, G3


# Register Geometry as a JAX pytree so operators can be jitted over it
def _geometry_flatten(geometry):
    children = tuple(getattr(geometry, name) for name in METRIC_FIELDS)
    aux_data = tuple(getattr(geometry, name) for name in STATIC_FIELDS)
    return children, aux_data


def _geometry_unflatten(aux_data, children):
    kwargs = dict(zip(STATIC_FIELDS, aux_data))
    kwargs.update(zip(METRIC_FIELDS, children))
    obj = object.__new__(Geometry)
    for f in dc_fields(Geometry):
        object.__setattr__(obj, f.name, kwargs[f.name])
    return obj


jax.tree_util.register_pytree_node(Geometry, _geometry_flatten, _geometry_unflatten)
