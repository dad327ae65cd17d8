"""Configuration loading and management."""

from jax_edge.config.loader import load_case, load_config, save_config
from jax_edge.config.options import Options

__all__ = ["load_case", "load_config", "save_config", "Options"]
