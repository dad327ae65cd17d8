"""Pytest fixtures shared by the jax-edge tests."""
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.utils.builders import make_drift_model, make_gem_model, make_slab


@pytest.fixture
def slab():
    """8 x 4 x 8 unit-metric slab."""
    return make_slab()


@pytest.fixture
def gem_model():
    """GEM model with every term switched on."""
    return make_gem_model(density_gradient=0.2)


@pytest.fixture
def drift_model():
    """Electrostatic linear drift model on the linear-device grid."""
    return make_drift_model(estatic=True, bout_exb=True, nonlinear=False)


@pytest.fixture
def project_root():
    return Path(__file__).parent.parent
