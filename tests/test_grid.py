"""Tests for grid quantity sources."""

import h5py
import numpy as np
import pytest

from jax_edge.config.options import Options
from jax_edge.core.grid import (
    DictGridSource,
    HDF5GridSource,
    get_profile,
    get_required,
    get_scalar,
    load_grid,
    slab_grid,
)
from jax_edge.input_validation import ConfigurationError
from jax_edge.models.gem import GemModel


def write_grid(path, source):
    """Write every quantity of a DictGridSource to an HDF5 grid file."""
    with h5py.File(path, "w") as f:
        for name in source.keys():
            f.create_dataset(name, data=source.get(name))
    return path


@pytest.fixture
def grid_file(tmp_path):
    source = slab_grid(nx=8, ny=4, Rxy=1.5, Bpxy=0.2, Btxy=2.0, Te0=20.0, Ni0=0.1,
                       density_gradient=0.5)
    source.set("Vi0", np.zeros((12, 4)))
    source.set("rmag", 2.0)
    return write_grid(tmp_path / "grid.h5", source)


class TestHDF5GridSource:
    """Tests for reading grid quantities from HDF5."""

    def test_missing_quantity_is_none(self, grid_file):
        grid = HDF5GridSource(grid_file)
        assert grid.get("phi0") is None
        assert "phi0" not in grid

    def test_zero_quantity_is_not_none(self, grid_file):
        grid = HDF5GridSource(grid_file)
        Vi0 = grid.get("Vi0")
        assert Vi0 is not None
        assert Vi0.shape == (12, 4)
        assert np.all(Vi0 == 0.0)

    def test_profiles_match_file(self, grid_file):
        grid = HDF5GridSource(grid_file)
        Ni0 = grid.get("Ni0")
        with h5py.File(grid_file, "r") as f:
            assert np.allclose(Ni0, f["Ni0"][()])
        assert get_scalar(grid, "rmag") == pytest.approx(2.0)

    def test_returns_copies(self, grid_file):
        grid = HDF5GridSource(grid_file)
        first = grid.get("Te0")
        first[:] = -1.0
        assert np.all(grid.get("Te0") > 0.0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            HDF5GridSource(tmp_path / "absent.h5")

    def test_load_grid_from_path(self, grid_file):
        assert isinstance(load_grid(grid_file), HDF5GridSource)
        assert isinstance(load_grid({"type": "file", "path": str(grid_file)}), HDF5GridSource)

    def test_model_from_file_matches_memory(self, grid_file):
        options = {"mesh": {"nz": 4}}
        from_file = GemModel.from_grid(HDF5GridSource(grid_file), Options(options))
        in_memory = GemModel.from_grid(
            slab_grid(nx=8, ny=4, Rxy=1.5, Bpxy=0.2, Btxy=2.0, Te0=20.0, Ni0=0.1,
                      density_gradient=0.5, rmag=2.0),
            Options(options),
        )
        assert np.allclose(from_file.equilibrium.Ni0, in_memory.equilibrium.Ni0)
        assert from_file.config.norm.Lbar == pytest.approx(in_memory.config.norm.Lbar)


class TestGridHelpers:
    """Tests for required, scalar and profile lookups."""

    def test_required_raises(self):
        with pytest.raises(ConfigurationError) as info:
            get_required(DictGridSource({"Rxy": 1.0}), "Bxy")
        assert info.value.quantity == "Bxy"

    def test_profile_default(self):
        grid = DictGridSource()
        assert float(get_profile(grid, "phi0")) == 0.0
        assert float(get_profile(grid, "Ti0", default=2.0)) == 2.0

    def test_scalar_default(self):
        assert get_scalar(DictGridSource(), "Lbar", 3.0) == 3.0
