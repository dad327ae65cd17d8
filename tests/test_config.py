"""Tests for options, case loading and input validation."""

import logging

import pytest
import yaml

from jax_edge.config.loader import load_case, load_config, save_config
from jax_edge.config.options import Options
from jax_edge.input_validation import (
    ConfigurationError,
    ValidationError,
    require,
    validate_choice,
    validate_positive,
)


class TestOptions:
    """Tests for hierarchical option lookup."""

    def test_sections_and_defaults(self):
        options = Options({"gem": {"nu_perp": 0.1}})
        assert options.section("gem").get("nu_perp", 0.01) == 0.1
        assert options.section("gem").get("nu_par", 3e-3) == 3e-3
        assert options.has_section("gem")
        assert not options.has_section("mesh")

    def test_case_insensitive(self):
        options = Options({"Landau": 2})
        assert options.get("landau", 1.0) == 2.0
        assert options.is_set("LANDAU")

    @pytest.mark.parametrize("text,expected", [
        ("true", True), ("Yes", True), ("on", True), ("false", False), ("0", False),
    ])
    def test_bool_strings(self, text, expected):
        assert Options({"flag": text}).get("flag", False) is expected

    def test_numeric_strings(self):
        """YAML may load numbers like 1e-3 as strings."""
        options = Options({"dt": "1e-3", "nz": "16"})
        assert options.get("dt", 1.0) == pytest.approx(1e-3)
        assert options.get("nz", 8) == 16

    def test_bad_value(self):
        with pytest.raises(ValidationError):
            Options({"flag": "maybe"}).get("flag", True)

    def test_to_dict_roundtrip(self):
        data = {"a": 1, "sub": {"b": 2.0}}
        assert Options(Options(data).to_dict()).section("sub").get("b", 0.0) == 2.0

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "opts.yaml"
        path.write_text("gem:\n  Landau: 0.5\n")
        assert Options.from_yaml(path).section("gem").get("Landau", 1.0) == 0.5


class TestCaseLoading:
    """Tests for YAML case files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_relative_grid_path_resolved(self, tmp_path):
        path = tmp_path / "case.yaml"
        path.write_text("grid:\n  type: file\n  path: grids/slab.h5\n")
        config = load_case(path)
        assert config["grid"]["path"] == str((tmp_path / "grids" / "slab.h5").resolve())

    def test_unknown_section_warns(self, tmp_path, caplog):
        path = tmp_path / "case.yaml"
        path.write_text("modle:\n  type: gem\n")
        with caplog.at_level(logging.WARNING):
            config = load_case(path)
        assert "modle" in config
        assert "Unknown section 'modle'" in caplog.text

    def test_save_roundtrip(self, tmp_path):
        config = {"model": {"type": "drift"}, "time": {"dt": 0.01}}
        path = tmp_path / "out" / "case.yaml"
        save_config(config, path)
        assert yaml.safe_load(path.read_text()) == config

    def test_example_cases_load(self, project_root):
        cases = sorted((project_root / "examples" / "cases").glob("*/*.yaml"))
        assert cases
        for path in cases:
            config = load_case(path)
            assert config["model"]["type"] in ("gem", "drift")


class TestValidation:
    """Tests for the validation helpers."""

    def test_validate_positive(self):
        validate_positive(1.0, "dt")
        with pytest.raises(ValidationError, match="dt must be positive"):
            validate_positive(0.0, "dt")

    def test_validate_choice(self):
        with pytest.raises(ValidationError):
            validate_choice("x", ("a", "b"), "kind")

    def test_require_names_quantity(self):
        with pytest.raises(ConfigurationError) as exc_info:
            require(None, "Te0")
        assert exc_info.value.quantity == "Te0"
        assert require(1.0, "Te0") == 1.0
