"""Natal dispersal with a nearest-neighbour kernel.

Each resident emigrates with probability equal to its own dispersal
allele (Uniform[0,1) < d; negative alleles never leave). Emigrants die
in transit with probability mu0; survivors move one patch left or right
with equal probability and are staged at the destination. Residents are
rebuilt from the philopatric subset instead of being removed one by one,
and staged immigrants are merged only after every active patch has been
processed, so no individual disperses twice in one step.

Boundaries:
  - burn-in (active width == init width): torus, both ends wrap
  - afterwards: closed ends, a move past an edge stays on the edge patch

Diagnostics: emigration is counted separately in a core window
(x < core_margin_width) and a margin window trailing the range front
(x ≥ margin_position − core_margin_width). Window sizes are taken
before emigrants leave.
"""

from __future__ import annotations

import numpy as np

from rangexp.config import SimulationContext
from rangexp.types import DispersalStats
from rangexp.world import World


# ═══════════════════════════════════════════════════════════════════════
# DISPERSAL KERNEL
# ═══════════════════════════════════════════════════════════════════════

def _apply_boundary(dest: np.ndarray, active_width: int, init_width: int) -> np.ndarray:
    if active_width == init_width:
        return np.mod(dest, active_width)
    return np.clip(dest, 0, active_width - 1)


def find_new_patches(
    x: int,
    n: int,
    active_width: int,
    init_width: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Destinations for n dispersers leaving patch x.

    Args:
        x: Origin patch index.
        n: Number of dispersers.
        active_width: Number of active patches this step.
        init_width: Width of the burn-in area.
        rng: NumPy random generator.

    Returns:
        (n,) int64 destination indices in [0, active_width).
    """
    # floor(2u): 0 → left, 1 → right
    direction = np.floor(rng.random(n) * 2.0).astype(np.int64)
    dest = x + 2 * direction - 1
    return _apply_boundary(dest, active_width, init_width)


def find_new_patch(x: int, active_width: int, init_width: int,
                   rng: np.random.Generator) -> int:
    """Destination of a single disperser leaving patch x."""
    return int(find_new_patches(x, 1, active_width, init_width, rng)[0])


# ═══════════════════════════════════════════════════════════════════════
# DISPERSAL PHASE
# ═══════════════════════════════════════════════════════════════════════

def disperse(world: World, active_width: int, ctx: SimulationContext) -> DispersalStats:
    """Run one dispersal phase over the active patches (in place).

    Args:
        world: World to update.
        active_width: Number of active patches this step.
        ctx: Simulation context. ``ctx.margin_position`` must hold the
            range front from the previous analysis (0 at the first step).

    Returns:
        DispersalStats with core / margin window sizes and emigrant counts.
    """
    rng = ctx.rng
    mu0 = ctx.config.dispersal.mu0
    cm_width = ctx.config.world.core_margin_width
    margin_start = ctx.margin_position - cm_width
    stats = DispersalStats()

    for x in range(active_width):
        patch = world[x]
        n = patch.size
        in_core = x < cm_width
        in_margin = x >= margin_start
        if in_core:
            stats.metapopsize_core += n
        if in_margin:
            stats.metapopsize_margin += n
        if n == 0:
            continue

        residents = patch.residents
        leaves = rng.random(n) < residents['disp_rate']
        n_leave = int(leaves.sum())
        if n_leave == 0:
            continue

        if in_core:
            stats.emigrants_core += n_leave
        if in_margin:
            stats.emigrants_margin += n_leave
        stats.n_emigrants += n_leave

        emigrants = residents[leaves]
        patch.residents = residents[~leaves]

        survives = rng.random(n_leave) > mu0
        stats.n_transit_deaths += n_leave - int(survives.sum())
        movers = emigrants[survives]
        if movers.shape[0] == 0:
            continue

        dest = find_new_patches(x, movers.shape[0], active_width,
                                world.init_width, rng)
        for target in np.unique(dest):
            world[int(target)].stage(movers[dest == target])

    for x in range(active_width):
        world[x].drain_staging()

    return stats
