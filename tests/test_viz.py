"""Smoke tests for rangexp.viz figures."""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np
import pytest

from rangexp.config import SimulationConfig, SimulationSection, WorldSection
from rangexp.model import run_repeats
from rangexp.viz import (
    plot_emigration_rates,
    plot_front_trajectory,
    plot_mean_dispersal,
    plot_trait_profile,
)


@pytest.fixture(scope="module")
def results():
    cfg = SimulationConfig(
        simulation=SimulationSection(sim_time=12, burn_in=4, max_runs=2),
        world=WorldSection(world_width=15, init_width=3, core_margin_width=2),
    )
    return run_repeats(cfg)


class TestFigures:
    def test_front_trajectory(self, results):
        fig = plot_front_trajectory(results, world_width=15, burn_in=4)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_emigration_rates_handles_nan(self, results):
        r = results[0]
        r.rel_emigrants_margin[0] = np.nan
        fig = plot_emigration_rates(r, burn_in=4)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_trait_profile(self, results):
        fig = plot_trait_profile(results[1])
        assert len(fig.axes) == 2
        plt.close(fig)

    def test_mean_dispersal_saves(self, results, tmp_path):
        path = tmp_path / "mean_dispersal.png"
        plot_mean_dispersal(results, burn_in=4, save_path=path)
        assert path.exists()
