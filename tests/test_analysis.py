"""Tests for rangexp.analysis — metapopulation summaries and spatial profiles."""

import numpy as np
import pytest

from rangexp.analysis import (
    analyze,
    margin_position,
    mean_trait,
    spatial_profile,
)
from rangexp.traits import make_individuals
from rangexp.world import World


def inds(values):
    return make_individuals(np.asarray(values, dtype=float), 2.0, 1.0, 0.01, 1.0)


def make_world():
    world = World(10, 3)
    world[2].residents = inds([0.1, 0.3])
    world[7].residents = inds([0.2, 0.4, 0.9])
    return world


class TestAnalyze:
    def test_empty_world(self):
        s = analyze(World(10, 3), equilibrium_density=5)
        assert s.metapopsize == 0
        assert s.occupancy == 0.0
        assert s.rel_metapopsize == 0.0
        assert s.margin_position == 0

    def test_values(self):
        s = analyze(make_world(), equilibrium_density=5)
        assert s.metapopsize == 5
        assert s.n_occupied == 2
        assert s.occupancy == pytest.approx(0.2)
        assert s.rel_metapopsize == pytest.approx(5 / 50)
        assert s.margin_position == 7

    def test_counts_inactive_patches(self):
        """Analysis covers the whole world, not just the active width."""
        world = World(10, 3)
        world[9].residents = inds([0.5])
        s = analyze(world, equilibrium_density=1)
        assert s.margin_position == 9
        assert s.occupancy == pytest.approx(0.1)

    def test_idempotent(self):
        world = make_world()
        assert analyze(world, 5) == analyze(world, 5)

    def test_bounds(self):
        world = World(4, 2)
        for x in range(4):
            world[x].residents = inds([0.5] * 3)
        s = analyze(world, equilibrium_density=3)
        assert 0.0 <= s.occupancy <= 1.0
        assert s.occupancy == 1.0
        assert s.rel_metapopsize == pytest.approx(1.0)
        assert s.margin_position == 3


class TestMarginPosition:
    def test_highest_occupied(self):
        assert margin_position(np.array([3, 0, 1, 0, 0])) == 2

    def test_empty(self):
        assert margin_position(np.zeros(5, dtype=int)) == 0


class TestSpatialProfile:
    def test_shapes(self):
        p = spatial_profile(make_world())
        for arr in (p.x, p.disp_rate_mean, p.fertility_median, p.pop_size):
            assert arr.shape == (10,)

    def test_values(self):
        p = spatial_profile(make_world())
        assert p.disp_rate_mean[2] == pytest.approx(0.2)
        assert p.disp_rate_median[7] == pytest.approx(0.4)
        assert p.pop_size[7] == 3
        assert p.fertility_mean[2] == pytest.approx(
            np.mean(2.0 * np.exp(-np.array([0.1, 0.3]))))

    def test_empty_patches_nan(self):
        p = spatial_profile(make_world())
        assert np.isnan(p.disp_rate_mean[0])
        assert np.isnan(p.competition_median[5])
        assert p.pop_size[0] == 0


class TestMeanTrait:
    def test_mean(self):
        assert mean_trait(make_world()) == pytest.approx(np.mean([0.1, 0.3, 0.2, 0.4, 0.9]))

    def test_empty_is_nan(self):
        assert np.isnan(mean_trait(World(5, 2)))
