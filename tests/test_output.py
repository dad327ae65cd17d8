"""Tests for HDF5 output and plotting."""

import numpy as np
import pytest
import jax.numpy as jnp
import matplotlib.pyplot as plt

from jax_edge.core.state import State
from jax_edge.diagnostics import (
    DumpWriter,
    load_checkpoint,
    load_dump,
    plot_poloidal_slice,
    plot_time_history,
    save_checkpoint,
)
from tests.utils.builders import smooth_field


@pytest.fixture
def state(slab):
    return State.from_mapping({
        "Ni": smooth_field(slab),
        "Sn": jnp.ones(slab.shape2d),
    }, time=0.25, step=7)


class TestCheckpoint:
    """Tests for checkpoint round trips."""

    def test_roundtrip(self, tmp_path, slab, state):
        path = tmp_path / "checkpoint.h5"
        save_checkpoint(state, slab, path, metadata={"model": "drift", "flags": [1, 2]})
        loaded, geometry, metadata = load_checkpoint(path)

        assert loaded.names == state.names
        assert loaded.time == pytest.approx(0.25)
        assert loaded.step == 7
        assert jnp.allclose(loaded["Ni"], state["Ni"])
        assert geometry.shape3d == slab.shape3d
        assert geometry.zlength == pytest.approx(slab.zlength)
        assert jnp.allclose(geometry.g11, slab.g11)
        assert metadata["model"] == "drift"
        assert metadata["flags"] == [1, 2]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_checkpoint(tmp_path / "missing.h5")


class TestDumpWriter:
    """Tests for time-sliced output."""

    def test_append_slices(self, tmp_path, state):
        path = tmp_path / "dump.h5"
        with DumpWriter(path) as writer:
            writer.save_once({"Lbar": 1.5, "Ni0": np.ones((4, 4))})
            writer.append(state, {"phi": state["Ni"]})
            writer.append(state.replace(time=0.5), {"phi": 2 * state["Ni"]})
            assert writer.n_slices == 2

        data = load_dump(path)
        assert data["Lbar"] == pytest.approx(1.5)
        assert data["Ni0"].shape == (4, 4)
        assert np.allclose(data["t_array"], [0.25, 0.5])
        assert data["Ni"].shape == (2,) + state["Ni"].shape
        assert data["Sn"].shape == (2,) + state["Sn"].shape
        assert np.allclose(data["phi"][1], 2 * np.asarray(state["Ni"]))

    def test_append_mode_continues(self, tmp_path, state):
        path = tmp_path / "dump.h5"
        with DumpWriter(path) as writer:
            writer.append(state)
        with DumpWriter(path, mode="a") as writer:
            assert writer.n_slices == 1
            writer.append(state.replace(time=1.0))
        assert load_dump(path)["t_array"].shape == (2,)

    def test_shape_change_rejected(self, tmp_path, state):
        with DumpWriter(tmp_path / "dump.h5") as writer:
            writer.append(state)
            bad = State.from_mapping({"Ni": jnp.zeros(3), "Sn": state["Sn"]})
            with pytest.raises(ValueError):
                writer.append(bad)


class TestPlotting:
    """Tests for figure generation."""

    def test_poloidal_slice(self, tmp_path, slab, state):
        path = tmp_path / "plots" / "ni.png"
        fig = plot_poloidal_slice(state["Ni"], slab, title="Ni", save_path=path)
        assert path.exists()
        plt.close(fig)

    def test_slice_rejects_2d(self, slab, state):
        with pytest.raises(ValueError):
            plot_poloidal_slice(state["Sn"], slab)

    def test_time_history(self, tmp_path):
        history = {"time": [0.0, 1.0, 2.0], "Ni": [1e-3, 2e-3, 4e-3], "rho": [0.0, 1.0, -1.0]}
        fig = plot_time_history(history, save_path=tmp_path / "history.png")
        assert len(fig.axes) == 2
        assert (tmp_path / "history.png").exists()
        plt.close(fig)

    def test_time_history_needs_quantities(self):
        with pytest.raises(ValueError):
            plot_time_history({"time": [0.0]})
