"""Read-only population summaries.

analyze():        metapopulation size, occupancy and range-front position
                  over ALL patches (not just the active ones).
spatial_profile(): per-patch mean / median of each trait plus local size,
                  written at the end of every run.

Neither function draws random numbers or touches world state, so calling
either twice in a row gives identical results.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from rangexp.world import World


@dataclass(frozen=True)
class MetapopSummary:
    """State of the metapopulation after one time step."""
    metapopsize: int
    n_occupied: int
    occupancy: float
    rel_metapopsize: float
    margin_position: int


@dataclass
class SpatialProfile:
    """Per-patch trait statistics. All arrays have shape (world_width,).

    Mean / median of an empty patch are NaN.
    """
    x: np.ndarray
    disp_rate_mean: np.ndarray
    competition_mean: np.ndarray
    fertility_mean: np.ndarray
    disp_rate_median: np.ndarray
    competition_median: np.ndarray
    fertility_median: np.ndarray
    pop_size: np.ndarray


def margin_position(sizes: np.ndarray) -> int:
    """Highest occupied patch index, 0 if the world is empty."""
    occupied = np.flatnonzero(sizes > 0)
    if occupied.size == 0:
        return 0
    return int(occupied[-1])


def analyze(world: World, equilibrium_density: int) -> MetapopSummary:
    """Summarize the metapopulation.

    Args:
        world: World to read.
        equilibrium_density: Local K used to scale the metapopulation size.

    Returns:
        MetapopSummary with occupancy in [0, 1] and margin position in
        [0, world_width − 1].
    """
    sizes = world.sizes()
    total = int(sizes.sum())
    n_occupied = int(np.count_nonzero(sizes))
    return MetapopSummary(
        metapopsize=total,
        n_occupied=n_occupied,
        occupancy=n_occupied / world.width,
        rel_metapopsize=total / (world.width * equilibrium_density),
        margin_position=margin_position(sizes),
    )


def spatial_profile(world: World) -> SpatialProfile:
    """Trait means, medians and local sizes for every patch."""
    n = world.width
    stats = {name: np.full(n, np.nan) for name in (
        'disp_rate_mean', 'competition_mean', 'fertility_mean',
        'disp_rate_median', 'competition_median', 'fertility_median',
    )}
    for x, patch in enumerate(world):
        if patch.size == 0:
            continue
        for field_name in ('disp_rate', 'competition', 'fertility'):
            values = patch.residents[field_name]
            stats[f'{field_name}_mean'][x] = float(np.mean(values))
            stats[f'{field_name}_median'][x] = float(np.median(values))
    return SpatialProfile(
        x=np.arange(n),
        pop_size=world.sizes(),
        **stats,
    )


def mean_trait(world: World, field_name: str = 'disp_rate') -> float:
    """Metapopulation-wide mean of one individual field (NaN if empty)."""
    values = world.all_individuals()[field_name]
    if values.size == 0:
        return float('nan')
    return float(values.mean())
