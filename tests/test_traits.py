"""Tests for rangexp.traits — trade-off functions, K and mutation."""

import numpy as np
import pytest

from rangexp.traits import (
    competition_from_fertility,
    equilibrium_density,
    fertility_from_dispersal,
    make_individuals,
    mutate,
)
from rangexp.types import INDIVIDUAL_DTYPE


# ── Dispersal–fertility trade-off ────────────────────────────────────

class TestFertilityFromDispersal:
    def test_zero_dispersal_gives_baseline(self):
        assert fertility_from_dispersal(0.0, 2.0, 1.5) == pytest.approx(2.0)

    def test_exponential_cost(self):
        lam = fertility_from_dispersal(0.5, 2.0, 1.0)
        assert lam == pytest.approx(2.0 * np.exp(-0.5))

    def test_decreasing_in_dispersal(self):
        d = np.linspace(0.0, 1.0, 11)
        lam = fertility_from_dispersal(d, 3.0, 2.0)
        assert np.all(np.diff(lam) < 0)

    def test_no_trade_off(self):
        d = np.array([0.0, 0.3, 0.9])
        np.testing.assert_allclose(fertility_from_dispersal(d, 2.0, 0.0), 2.0)

    def test_negative_allele_clamped(self):
        """Negative alleles pay no cost and gain no bonus."""
        assert fertility_from_dispersal(-0.7, 2.0, 1.0) == pytest.approx(2.0)
        lam = fertility_from_dispersal(np.array([-1.0, -0.1, 0.0]), 2.0, 3.0)
        np.testing.assert_allclose(lam, 2.0)

    def test_scalar_returns_float(self):
        assert isinstance(fertility_from_dispersal(0.2, 2.0, 1.0), float)

    def test_array_shape_preserved(self):
        d = np.zeros(7)
        assert fertility_from_dispersal(d, 2.0, 1.0).shape == (7,)


# ── Fertility–competition correlation ────────────────────────────────

class TestCompetitionFromFertility:
    def test_linear_exponent(self):
        assert competition_from_fertility(2.0, 0.1, 1.0) == pytest.approx(0.2)

    def test_zero_exponent_gives_baseline(self):
        f = np.array([1.0, 2.0, 5.0])
        np.testing.assert_allclose(competition_from_fertility(f, 0.05, 0.0), 0.05)

    def test_power_law(self):
        assert competition_from_fertility(3.0, 0.01, 2.0) == pytest.approx(0.09)


# ── Equilibrium density ──────────────────────────────────────────────

class TestEquilibriumDensity:
    def test_reference_scenario(self):
        """lambda_null=2, alpha0=0.1, lamb_exp=1 → round(1 / 0.2) = 5."""
        assert equilibrium_density(2.0, 0.1, 1.0) == 5

    def test_default_parameters(self):
        assert equilibrium_density(2.0, 0.01, 1.0) == 50

    def test_half_rounds_up(self):
        """0.625 / 0.25 = 2.5 rounds away from zero, not to even."""
        assert equilibrium_density(1.625, 0.25, 0.0) == 3

    def test_returns_int(self):
        assert isinstance(equilibrium_density(2.0, 0.1, 1.0), int)

    def test_pure_function(self):
        values = {equilibrium_density(3.0, 0.02, 0.5) for _ in range(5)}
        assert len(values) == 1


# ── Individual construction ──────────────────────────────────────────

class TestMakeIndividuals:
    def test_dtype_and_shape(self):
        ind = make_individuals(np.array([0.1, 0.2, 0.3]), 2.0, 1.0, 0.01, 1.0)
        assert ind.dtype == INDIVIDUAL_DTYPE
        assert ind.shape == (3,)

    def test_traits_derived_from_allele(self):
        d = np.array([-0.2, 0.0, 0.4])
        ind = make_individuals(d, 2.0, 1.5, 0.01, 1.0)
        np.testing.assert_array_equal(ind['disp_rate'], d)
        expected_lam = fertility_from_dispersal(d, 2.0, 1.5)
        np.testing.assert_allclose(ind['fertility'], expected_lam)
        np.testing.assert_allclose(ind['competition'], 0.01 * expected_lam)

    def test_empty(self):
        ind = make_individuals(np.array([]), 2.0, 1.0, 0.01, 1.0)
        assert ind.shape == (0,)


# ── Mutation ─────────────────────────────────────────────────────────

class TestMutate:
    def test_zero_rate_passes_through(self):
        rng = np.random.default_rng(1)
        alleles = rng.random(100)
        out = mutate(alleles, 0.0, 0.5, rng)
        np.testing.assert_array_equal(out, alleles)

    def test_full_rate_changes_every_allele(self):
        rng = np.random.default_rng(2)
        alleles = np.full(50, 0.5)
        out = mutate(alleles, 1.0, 0.1, rng)
        assert np.all(out != alleles)

    def test_zero_sd_is_neutral(self):
        rng = np.random.default_rng(3)
        alleles = np.linspace(0, 1, 20)
        out = mutate(alleles, 1.0, 0.0, rng)
        np.testing.assert_allclose(out, alleles)

    def test_input_not_modified(self):
        rng = np.random.default_rng(4)
        alleles = np.full(10, 0.3)
        mutate(alleles, 1.0, 0.2, rng)
        np.testing.assert_array_equal(alleles, 0.3)

    def test_unbounded(self):
        """Large steps can push alleles below 0 and above 1."""
        rng = np.random.default_rng(5)
        out = mutate(np.full(1000, 0.5), 1.0, 2.0, rng)
        assert out.min() < 0.0
        assert out.max() > 1.0

    def test_rate_fraction(self):
        rng = np.random.default_rng(6)
        alleles = np.zeros(20000)
        out = mutate(alleles, 0.25, 1.0, rng)
        frac = np.mean(out != 0.0)
        assert frac == pytest.approx(0.25, abs=0.02)

    def test_empty(self):
        out = mutate(np.array([]), 1.0, 1.0, np.random.default_rng(0))
        assert out.shape == (0,)
