"""Loading and saving YAML case files."""

import logging
from pathlib import Path
from typing import Union
import yaml

log = logging.getLogger(__name__)

CASE_SECTIONS = ("model", "grid", "options", "solver", "time", "initial", "output")


def load_config(path: Union[str, Path]) -> dict:
    """Load a YAML file into a dict (empty files give an empty dict)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def load_case(path: Union[str, Path]) -> dict:
    """Load a simulation case and resolve file paths against its directory.

    Unknown top-level sections are kept but logged, since they are
    usually typos of one of ``CASE_SECTIONS``.
    """
    path = Path(path)
    config = load_config(path)
    for key in config:
        if key not in CASE_SECTIONS:
            log.warning(f"Unknown section '{key}' in {path}")

    grid = config.get("grid")
    if isinstance(grid, dict) and grid.get("type") == "file":
        grid_path = Path(grid["path"])
        if not grid_path.is_absolute():
            grid["path"] = str((path.parent / grid_path).resolve())
    elif isinstance(grid, str):
        grid_path = Path(grid)
        if not grid_path.is_absolute():
            config["grid"] = str((path.parent / grid_path).resolve())
    return config


def save_config(config: dict, path: Union[str, Path]) -> None:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
