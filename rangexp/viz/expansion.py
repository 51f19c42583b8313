"""Range-expansion figures.

Every function:
  - Accepts RunResult(s) from ``rangexp.model`` as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``rangexp.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, Sequence, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from rangexp.viz.style import (
    BURN_IN_COLOR,
    TRAIT_COLORS,
    WINDOW_COLORS,
    dark_figure,
    dark_legend,
    run_color,
    save_figure,
)

if TYPE_CHECKING:
    from rangexp.model import RunResult


def _mark_burn_in(ax, burn_in: Optional[int]) -> None:
    if burn_in:
        ax.axvline(burn_in, color=BURN_IN_COLOR, linestyle=':', linewidth=1.5,
                   alpha=0.8, label=f'End of burn-in (t = {burn_in})')


# ═══════════════════════════════════════════════════════════════════════
# 1. RANGE FRONT
# ═══════════════════════════════════════════════════════════════════════

def plot_front_trajectory(
    results: Sequence['RunResult'],
    world_width: int,
    burn_in: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Margin position over time, one line per run.

    Args:
        results: RunResults to overlay.
        world_width: Number of patches (far edge drawn as a dashed line).
        burn_in: Optional burn-in length (vertical marker).
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    fig, ax = dark_figure()
    for r in results:
        ax.plot(r.time, r.margin_position, color=run_color(r.run_index),
                linewidth=1.8, label=f'Run {r.run_index}')
    ax.axhline(world_width - 1, color=WINDOW_COLORS['margin'], linestyle='--',
               linewidth=1.2, alpha=0.7, label='World edge')
    _mark_burn_in(ax, burn_in)

    ax.set_xlabel('Time step', fontsize=12)
    ax.set_ylabel('Margin position (patch index)', fontsize=12)
    ax.set_title('Range Front', fontsize=14, fontweight='bold')
    ax.set_ylim(0, world_width)
    dark_legend(ax, fontsize=9)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. EMIGRATION RATES
# ═══════════════════════════════════════════════════════════════════════

def plot_emigration_rates(
    result: 'RunResult',
    burn_in: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Relative emigration in the core and margin windows for one run.

    NaN entries (empty window) leave gaps in the lines.
    """
    fig, ax = dark_figure()
    ax.plot(result.time, result.rel_emigrants_core, color=WINDOW_COLORS['core'],
            linewidth=1.5, label='Core')
    ax.plot(result.time, result.rel_emigrants_margin,
            color=WINDOW_COLORS['margin'], linewidth=1.5, label='Margin')
    _mark_burn_in(ax, burn_in)

    ax.set_xlabel('Time step', fontsize=12)
    ax.set_ylabel('Emigrants / window population', fontsize=12)
    ax.set_title(f'Emigration Rate (run {result.run_index})',
                 fontsize=14, fontweight='bold')
    ax.set_ylim(bottom=0)
    dark_legend(ax, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 3. TERMINAL TRAIT PROFILE
# ═══════════════════════════════════════════════════════════════════════

def plot_trait_profile(
    result: 'RunResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Terminal dispersal-rate cline (top) and local population size (bottom)."""
    profile = result.terminal_profile
    fig, (ax_d, ax_n) = dark_figure(nrows=2, ncols=1, figsize=(10, 8),
                                    sharex=True)

    ax_d.plot(profile.x, profile.disp_rate_mean, color=TRAIT_COLORS['disp_rate'],
              linewidth=2.0, label='Mean')
    ax_d.plot(profile.x, profile.disp_rate_median,
              color=TRAIT_COLORS['disp_rate'], linewidth=1.2,
              linestyle='--', alpha=0.8, label='Median')
    ax_d.set_ylabel('Dispersal rate', fontsize=12)
    ax_d.set_title(f'Spatial Profile at t = {result.terminal_time} '
                   f'(run {result.run_index})', fontsize=14, fontweight='bold')
    dark_legend(ax_d, fontsize=10)

    ax_n.bar(profile.x, profile.pop_size, color=TRAIT_COLORS['fertility'],
             alpha=0.8, width=1.0)
    ax_n.axhline(result.equilibrium_density, color=TRAIT_COLORS['competition'],
                 linestyle='--', linewidth=1.2,
                 label=f'K = {result.equilibrium_density}')
    ax_n.set_xlabel('Patch index', fontsize=12)
    ax_n.set_ylabel('Local population size', fontsize=12)
    dark_legend(ax_n, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 4. DISPERSAL EVOLUTION
# ═══════════════════════════════════════════════════════════════════════

def plot_mean_dispersal(
    results: Sequence['RunResult'],
    burn_in: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Metapopulation mean dispersal allele over time, one line per run."""
    fig, ax = dark_figure()
    for r in results:
        ax.plot(r.time, r.mean_disp_rate, color=run_color(r.run_index),
                linewidth=1.8, label=f'Run {r.run_index}')
    _mark_burn_in(ax, burn_in)

    ax.set_xlabel('Time step', fontsize=12)
    ax.set_ylabel('Mean dispersal rate', fontsize=12)
    ax.set_title('Dispersal Evolution', fontsize=14, fontweight='bold')
    finite = [v for r in results for v in r.mean_disp_rate if np.isfinite(v)]
    if finite:
        ax.set_ylim(min(0.0, min(finite)), max(1.0, max(finite)))
    dark_legend(ax, fontsize=9)

    if save_path:
        save_figure(fig, save_path)
    return fig
