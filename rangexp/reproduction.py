"""Reproduction with r-α density regulation and allele mutation.

Per active, occupied patch:
  1. alpha_sum = Σ alpha_i over residents (local competitive load)
  2. larval survival s = 1 / (1 + alpha_sum), shared by every parent
  3. offspring_i ~ Poisson(lambda_i × s)
  4. each offspring inherits its parent's allele, mutated with
     probability mut_rate, and gets freshly derived lambda / alpha

Offspring are staged on the natal patch; parents are left untouched
(the death phase replaces them).

Under a monomorphic population with d = 0 this regulation settles at
K = (lambda_null − 1) / alpha(lambda_null), see traits.equilibrium_density.
"""

from __future__ import annotations

import numpy as np

from rangexp.config import SimulationContext
from rangexp.traits import make_individuals, mutate
from rangexp.world import World


def larval_survival(alpha_sum: float) -> float:
    """Per-capita offspring survival under the r-α model (Levine-style).

    Args:
        alpha_sum: Summed competition coefficients of the patch residents.

    Returns:
        1 / (1 + alpha_sum), in (0, 1] for alpha_sum ≥ 0.
    """
    return 1.0 / (1.0 + alpha_sum)


def draw_offspring_counts(
    fertility: np.ndarray,
    survival: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Poisson offspring numbers for each parent.

    Args:
        fertility: (n,) parental fertility.
        survival: Patch-level larval survival.
        rng: NumPy random generator.

    Returns:
        (n,) int64 offspring counts.
    """
    return rng.poisson(fertility * survival)


def reproduce(world: World, active_width: int, ctx: SimulationContext) -> int:
    """Produce the next generation on every active patch.

    Args:
        world: World to update; offspring land in each patch's staging.
        active_width: Number of active patches this step.
        ctx: Simulation context (config + rng).

    Returns:
        Total number of offspring produced.
    """
    cfg = ctx.config
    demo = cfg.demography
    evo = cfg.evolution
    rng = ctx.rng
    total = 0

    for x in range(active_width):
        patch = world[x]
        patch.discard_staging()
        if patch.size == 0:
            continue

        parents = patch.residents
        alpha_sum = float(parents['competition'].sum())
        survival = larval_survival(alpha_sum)
        counts = draw_offspring_counts(parents['fertility'], survival, rng)
        n_off = int(counts.sum())
        if n_off == 0:
            continue

        inherited = np.repeat(parents['disp_rate'], counts)
        alleles = mutate(inherited, evo.mut_rate, evo.mut_sd, rng)
        patch.stage(make_individuals(
            alleles,
            demo.lambda_null,
            cfg.dispersal.trade_off_exp,
            demo.alpha0,
            demo.lamb_exp,
        ))
        total += n_off

    return total
