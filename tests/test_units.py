"""Tests for the model normalisations."""

import numpy as np
import pytest

from jax_edge.constants import MP, QE, ion_sound_speed
from jax_edge.input_validation import ValidationError
from jax_edge.units import DriftNormalisation, GemNormalisation


class TestGemNormalisation:
    """Reference scales of the gyrofluid model."""

    @pytest.fixture
    def norm(self):
        return GemNormalisation(Tenorm=20.0, Ninorm=1e19, Lbar=1.0, Bbar=1.0)

    def test_sound_speed(self, norm):
        assert norm.Cs == pytest.approx(ion_sound_speed(20.0, 2.0))
        assert norm.Tbar == pytest.approx(norm.Lbar / norm.Cs)

    def test_gyroradius(self, norm):
        assert norm.rho_s == pytest.approx(np.sqrt(2.0 * MP * QE * 20.0) / QE, rel=1e-12)
        assert norm.delta == pytest.approx(norm.rho_s / norm.Lbar)

    def test_species_ratios(self, norm):
        assert norm.mu_i == 1.0
        assert norm.tau_i == 1.0
        assert norm.tau_e == -1.0
        assert norm.mu_e == pytest.approx(-1.0 / 3720.0)
        assert norm.rho_i == pytest.approx(1.0)

    def test_beta_uses_peak_pressure(self):
        base = GemNormalisation(Tenorm=20.0, Ninorm=1e19, Lbar=1.0, Bbar=1.0)
        peaked = GemNormalisation(Tenorm=20.0, Ninorm=1e19, Lbar=1.0, Bbar=1.0,
                                  pe_max=2 * QE * 20.0 * 1e19)
        assert peaked.beta_e == pytest.approx(2 * base.beta_e)

    def test_tbar_override(self):
        norm = GemNormalisation(Tenorm=20.0, Ninorm=1e19, Lbar=1.0, Bbar=1.0, Tbar_override=1.0)
        assert norm.Tbar == 1.0

    def test_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            GemNormalisation(Tenorm=0.0, Ninorm=1e19, Lbar=1.0, Bbar=1.0)

    def test_as_dict(self, norm):
        assert {"Lbar", "Tenorm", "Ninorm", "Cs", "Tbar", "Bbar", "beta_e"} <= set(norm.as_dict())


class TestDriftNormalisation:
    """Reference scales of the drift model."""

    @pytest.fixture
    def norm(self):
        return DriftNormalisation(Te_x=5.0, Ti_x=1.0, Ni_x=2.5e12, bmag=1000.0)

    def test_electrostatic_beta(self):
        norm = DriftNormalisation(Te_x=5.0, Ti_x=1.0, Ni_x=2.5e12, bmag=1000.0, estatic=True)
        assert norm.beta_p == 1e-29

    def test_cyclotron_frequency(self, norm):
        assert norm.wci == pytest.approx(9.58e3 * 1000.0 / 2.0)
        assert norm.Vi_x == pytest.approx(norm.wci * norm.rho_s)

    def test_ion_viscosity_default(self, norm):
        assert norm.mui_hat == pytest.approx(0.3 * norm.nuiix / norm.wci)
        explicit = DriftNormalisation(Te_x=5.0, Ti_x=1.0, Ni_x=2.5e12, bmag=1000.0, nu_perp=0.1)
        assert explicit.mui_hat == 0.1

    def test_field_scale(self, norm):
        assert norm.field_scale == pytest.approx(0.1)
