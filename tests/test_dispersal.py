"""Tests for rangexp.dispersal — kernel boundaries, emigration, diagnostics."""

import numpy as np
import pytest

from rangexp.config import (
    DispersalSection,
    SimulationConfig,
    SimulationContext,
    WorldSection,
)
from rangexp.dispersal import disperse, find_new_patch, find_new_patches
from rangexp.traits import make_individuals
from rangexp.world import World


def make_ctx(world_width=20, init_width=5, core_margin_width=5, mu0=0.0,
             margin_position=0, seed=0):
    config = SimulationConfig(
        world=WorldSection(world_width=world_width, init_width=init_width,
                           core_margin_width=core_margin_width),
        dispersal=DispersalSection(mu0=mu0),
    )
    ctx = SimulationContext(config=config, rng=np.random.default_rng(seed))
    ctx.margin_position = margin_position
    return ctx


def uniform_inds(n, d):
    return make_individuals(np.full(n, d, dtype=float), 2.0, 0.0, 0.01, 1.0)


# ── Kernel ───────────────────────────────────────────────────────────

class TestFindNewPatches:
    def test_nearest_neighbour_interior(self):
        rng = np.random.default_rng(0)
        dest = find_new_patches(7, 2000, 20, 5, rng)
        assert set(dest.tolist()) == {6, 8}

    def test_left_right_balanced(self):
        rng = np.random.default_rng(1)
        dest = find_new_patches(7, 20000, 20, 5, rng)
        assert np.mean(dest == 8) == pytest.approx(0.5, abs=0.02)

    def test_torus_during_burn_in(self):
        """active width == init width → both ends wrap around."""
        rng = np.random.default_rng(2)
        assert set(find_new_patches(0, 2000, 5, 5, rng).tolist()) == {4, 1}
        assert set(find_new_patches(4, 2000, 5, 5, rng).tolist()) == {3, 0}

    def test_closed_edges_after_burn_in(self):
        """Moves past an edge are clipped to the edge patch, not wrapped."""
        rng = np.random.default_rng(3)
        assert set(find_new_patches(0, 2000, 20, 5, rng).tolist()) == {0, 1}
        assert set(find_new_patches(19, 2000, 20, 5, rng).tolist()) == {18, 19}

    def test_destinations_inside_world(self):
        rng = np.random.default_rng(4)
        for x in range(20):
            dest = find_new_patches(x, 200, 20, 5, rng)
            assert dest.min() >= 0
            assert dest.max() <= 19

    def test_single_patch_helper(self):
        rng = np.random.default_rng(5)
        assert find_new_patch(3, 20, 5, rng) in (2, 4)


# ── Dispersal phase ──────────────────────────────────────────────────

class TestDisperse:
    def test_zero_dispersal_nobody_moves(self):
        ctx = make_ctx()
        world = World(20, 5)
        world[2].residents = uniform_inds(30, 0.0)
        stats = disperse(world, 5, ctx)
        assert world[2].size == 30
        assert stats.n_emigrants == 0
        assert stats.rel_emigrants_core == 0.0

    def test_negative_allele_never_emigrates(self):
        """The emigration check compares the raw allele, unclamped."""
        ctx = make_ctx()
        world = World(20, 5)
        world[2].residents = uniform_inds(50, -0.3)
        stats = disperse(world, 5, ctx)
        assert world[2].size == 50
        assert stats.n_emigrants == 0

    def test_everyone_leaves_at_rate_one(self):
        ctx = make_ctx(mu0=0.0)
        world = World(20, 5)
        world[2].residents = uniform_inds(40, 1.0)
        stats = disperse(world, 5, ctx)
        assert stats.n_emigrants == 40
        assert world[2].size == 0
        assert world[1].size + world[3].size == 40

    def test_transit_mortality_one_kills_all(self):
        ctx = make_ctx(mu0=1.0)
        world = World(20, 5)
        world[2].residents = uniform_inds(40, 1.0)
        stats = disperse(world, 5, ctx)
        assert world.total_size() == 0
        assert stats.n_transit_deaths == 40
        assert stats.emigrants_core == 40

    def test_no_mortality_conserves_individuals(self):
        ctx = make_ctx(mu0=0.0, seed=9)
        world = World(20, 5)
        rng = np.random.default_rng(9)
        for x in range(5):
            world[x].residents = make_individuals(rng.random(25), 2.0, 0.0, 0.01, 1.0)
        disperse(world, 5, ctx)
        assert world.total_size() == 125

    def test_movers_unmodified(self):
        ctx = make_ctx(mu0=0.0)
        world = World(20, 5)
        world[2].residents = uniform_inds(10, 1.0)
        before = world[2].residents.copy()
        disperse(world, 5, ctx)
        moved = np.concatenate([world[1].residents, world[3].residents])
        np.testing.assert_array_equal(np.sort(moved, order='disp_rate'),
                                      np.sort(before, order='disp_rate'))

    def test_staging_drained(self):
        ctx = make_ctx(mu0=0.2, seed=4)
        world = World(20, 5)
        rng = np.random.default_rng(4)
        for x in range(20):
            world[x].residents = make_individuals(rng.random(10), 2.0, 0.0, 0.01, 1.0)
        disperse(world, 20, ctx)
        assert world.staging_empty()

    def test_burn_in_stays_inside_init_area(self):
        ctx = make_ctx(mu0=0.0)
        world = World(20, 5)
        world[4].residents = uniform_inds(100, 1.0)
        disperse(world, 5, ctx)
        assert world[5].size == 0
        assert world[3].size + world[0].size == 100

    def test_inactive_patches_untouched(self):
        ctx = make_ctx(mu0=0.0)
        world = World(20, 5)
        world[10].residents = uniform_inds(20, 1.0)
        disperse(world, 5, ctx)
        assert world[10].size == 20


# ── Core / margin diagnostics ────────────────────────────────────────

class TestEmigrationDiagnostics:
    def test_core_and_margin_windows(self):
        ctx = make_ctx(world_width=20, init_width=5, core_margin_width=5,
                       mu0=1.0, margin_position=19)
        world = World(20, 5)
        world[0].residents = uniform_inds(10, 1.0)     # core only
        world[17].residents = uniform_inds(8, 1.0)     # margin only (x >= 14)
        world[9].residents = uniform_inds(6, 0.0)      # neither window
        stats = disperse(world, 20, ctx)
        assert stats.metapopsize_core == 10
        assert stats.metapopsize_margin == 8
        assert stats.emigrants_core == 10
        assert stats.emigrants_margin == 8
        assert stats.rel_emigrants_core == pytest.approx(1.0)
        assert stats.rel_emigrants_margin == pytest.approx(1.0)

    def test_margin_window_uses_previous_front(self):
        """With margin_position=0 every active patch is in the margin window."""
        ctx = make_ctx(mu0=1.0, margin_position=0)
        world = World(20, 5)
        world[3].residents = uniform_inds(4, 0.0)
        world[12].residents = uniform_inds(6, 0.0)
        stats = disperse(world, 20, ctx)
        assert stats.metapopsize_margin == 10
        assert stats.metapopsize_core == 4

    def test_window_counted_before_removal(self):
        ctx = make_ctx(mu0=0.0, seed=1)
        world = World(20, 5)
        world[1].residents = uniform_inds(1000, 0.5)
        stats = disperse(world, 5, ctx)
        assert stats.metapopsize_core == 1000
        assert stats.rel_emigrants_core == pytest.approx(0.5, abs=0.06)

    def test_empty_window_rate_is_nan(self):
        ctx = make_ctx(margin_position=19)
        world = World(20, 5)
        world[8].residents = uniform_inds(5, 1.0)
        stats = disperse(world, 20, ctx)
        assert stats.metapopsize_core == 0
        assert np.isnan(stats.rel_emigrants_core)
        assert np.isnan(stats.rel_emigrants_margin)
