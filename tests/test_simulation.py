"""Tests for the Simulation orchestrator and the command-line runner."""

import importlib.util
from pathlib import Path

import pytest
import jax.numpy as jnp

from jax_edge.config.loader import load_case
from jax_edge.core.simulation import Simulation
from jax_edge.diagnostics.output import load_dump
from jax_edge.input_validation import ValidationError
from jax_edge.models.drift import DriftModel
from jax_edge.models.gem import GemModel
from jax_edge.solvers.explicit import RK4Solver


CASES = sorted((Path(__file__).parent.parent / "examples" / "cases").glob("*/*.yaml"))


def load_runner(project_root):
    """Import scripts/run_simulation.py as a module."""
    path = project_root / "scripts" / "run_simulation.py"
    spec = importlib.util.spec_from_file_location("run_simulation", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def lapd_config(project_root):
    return load_case(project_root / "examples" / "cases" / "drift" / "lapd_slab.yaml")


class TestSimulation:
    """Tests for building and stepping simulations."""

    def test_from_config(self, lapd_config):
        sim = Simulation.from_config(lapd_config)
        assert isinstance(sim.model, DriftModel)
        assert isinstance(sim.solver, RK4Solver)
        assert sim.dt == pytest.approx(1e-2)
        assert sim.state is not None
        assert float(jnp.max(jnp.abs(sim.state["Ni"]))) > 0.0
        assert sim.history["time"] == [0.0]

    def test_run_steps(self, lapd_config):
        sim = Simulation.from_config(lapd_config)
        state = sim.run_steps(2)
        assert state.step == 2
        assert state.time == pytest.approx(2e-2)
        assert len(sim.history["Ni"]) == 3
        assert all(jnp.isfinite(jnp.asarray(sim.history["Ni"])))

    def test_run_to_end_time(self, lapd_config):
        sim = Simulation.from_config(lapd_config)
        seen = []
        sim.run(0.025, dt=0.01, callback=lambda s: seen.append(s.step))
        assert sim.state.time == pytest.approx(0.025)
        assert seen == [1, 2, 3]

    def test_diagnostics(self, lapd_config):
        sim = Simulation.from_config(lapd_config)
        assert {"phi", "Apar", "jpar"} <= set(sim.diagnostics())

    def test_rejects_bad_timestep(self, lapd_config):
        sim = Simulation.from_config(lapd_config)
        with pytest.raises(ValidationError):
            Simulation(model=sim.model, solver=sim.solver, dt=0.0)

    def test_gem_case_builds(self, project_root):
        config = load_case(project_root / "examples" / "cases" / "gem" / "linear_slab.yaml")
        config["grid"]["ny"] = 4
        config["options"]["mesh"]["nz"] = 4
        sim = Simulation.from_config(config)
        assert isinstance(sim.model, GemModel)
        assert set(sim.history) >= {"time", "Ni", "Ne"}

    @pytest.mark.parametrize("case", CASES, ids=lambda p: f"{p.parent.name}/{p.stem}")
    def test_shipped_case_runs(self, case):
        sim = Simulation.from_yaml(case)
        state = sim.run_steps(6)
        assert state.step == 6
        for name, field in state.fields.items():
            assert bool(jnp.all(jnp.isfinite(field))), name


class TestRunner:
    """Tests for scripts/run_simulation.py."""

    def test_list_cases(self, project_root):
        runner = load_runner(project_root)
        cases = runner.list_cases(project_root / "examples")
        assert "gem/linear_slab" in cases
        assert "drift/lapd_slab" in cases

    def test_find_case_file(self, project_root):
        runner = load_runner(project_root)
        base = project_root / "examples"
        assert runner.find_case_file("lapd_slab", base).name == "lapd_slab.yaml"
        assert runner.find_case_file("gem/adiabatic_electrons", base).parent.name == "gem"
        with pytest.raises(FileNotFoundError):
            runner.find_case_file("no_such_case", base)

    def test_parser_defaults(self, project_root):
        runner = load_runner(project_root)
        args = runner.build_parser().parse_args(["lapd_slab", "--no-plots", "--t-end", "0.02"])
        assert args.cases == ["lapd_slab"]
        assert not args.plots
        assert args.checkpoint
        assert args.t_end == pytest.approx(0.02)

    def test_main_exit_codes(self, project_root):
        runner = load_runner(project_root)
        assert runner.main(["--list"]) == 0
        assert runner.main([]) == 2
        assert runner.main(["no_such_case"]) == 2

    def test_run_case_writes_outputs(self, project_root, tmp_path):
        runner = load_runner(project_root)
        case = project_root / "examples" / "cases" / "drift" / "lapd_slab.yaml"
        args = runner.build_parser().parse_args(
            ["--output-dir", str(tmp_path), "--t-end", "0.02", "--no-plots"])
        runner.run_case(case, args)
        run_dir = tmp_path / "lapd_slab"
        assert (run_dir / "case.yaml").exists()
        assert (run_dir / "final.h5").exists()
        data = load_dump(run_dir / "dump.h5")
        assert data["t_array"].shape[0] >= 2
        assert "phi" in data
