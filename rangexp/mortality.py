"""Mortality: the spatial mortality gradient and end-of-generation death.

Mortality gradient (optional, post burn-in only):
    mu(x) = x / (world_width − 1)
A resident of patch x survives iff Uniform[0,1) > mu(x), so mortality
rises linearly from 0 at the origin to 1 at the far edge.

Death (annual, semelparous life cycle):
  - Patch produced offspring → all parents die; with probability
    1 − epsilon the offspring cohort takes over, otherwise the patch
    suffers a random extinction and the cohort is lost.
  - Patch produced no offspring → residents die, patch goes extinct.
"""

from __future__ import annotations

import numpy as np

from rangexp.config import SimulationContext
from rangexp.types import empty_individuals
from rangexp.world import World


def local_mortality(x, world_width: int):
    """Gradient mortality at patch index x (scalar or array)."""
    return np.asarray(x, dtype=np.float64) / float(world_width - 1)


def apply_mortality_gradient(world: World, active_width: int, ctx: SimulationContext) -> int:
    """Kill residents along the linear mortality gradient (in place).

    No-op while the burn-in area is the active width.

    Args:
        world: World to update.
        active_width: Number of active patches this step.
        ctx: Simulation context (config + rng).

    Returns:
        Number of individuals killed.
    """
    if active_width <= world.init_width:
        return 0

    n_killed = 0
    for x in range(active_width):
        patch = world[x]
        patch.discard_staging()
        n = patch.size
        if n == 0:
            continue
        mu = float(local_mortality(x, world.width))
        survive = ctx.rng.random(n) > mu
        n_killed += n - int(survive.sum())
        patch.residents = patch.residents[survive]
    return n_killed


def death(world: World, active_width: int, ctx: SimulationContext) -> int:
    """Replace parents by their offspring, with random patch extinction.

    Args:
        world: World to update (offspring sit in each patch's staging).
        active_width: Number of active patches this step.
        ctx: Simulation context (config + rng).

    Returns:
        Number of patches lost to random extinction (epsilon events).
    """
    epsilon = ctx.config.demography.epsilon
    n_extinctions = 0
    for x in range(active_width):
        patch = world[x]
        if patch.staging:
            offspring = patch.staged()
            patch.residents = empty_individuals()
            if ctx.rng.random() > epsilon:
                patch.residents = offspring
            else:
                n_extinctions += 1
            patch.discard_staging()
        else:
            patch.residents = empty_individuals()
    return n_extinctions
