"""Patches and the one-dimensional world.

A World is a fixed-length ordered list of Patches. Each Patch holds the
current generation (``residents``) and a staging buffer that collects
dispersal immigrants or newborn offspring during a single phase. The
staging buffer is a list of array chunks; it is drained (or discarded)
before the phase returns, so between phases it is always empty.

During burn-in only the first ``init_width`` patches are active and
dispersal wraps around them as a torus. After burn-in the whole world
is active and its ends are closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

from rangexp.config import SimulationContext
from rangexp.traits import make_individuals
from rangexp.types import empty_individuals


# ═══════════════════════════════════════════════════════════════════════
# PATCH
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Patch:
    """One spatial cell holding a local population."""
    residents: np.ndarray = field(default_factory=empty_individuals)
    staging: List[np.ndarray] = field(default_factory=list)

    @property
    def size(self) -> int:
        return int(self.residents.shape[0])

    @property
    def n_staged(self) -> int:
        return sum(int(chunk.shape[0]) for chunk in self.staging)

    def stage(self, individuals: np.ndarray) -> None:
        """Queue individuals for this patch's next generation / arrivals."""
        if individuals.shape[0] > 0:
            self.staging.append(individuals)

    def staged(self) -> np.ndarray:
        """All staged individuals as one array (empty if none)."""
        if not self.staging:
            return empty_individuals()
        if len(self.staging) == 1:
            return self.staging[0].copy()
        return np.concatenate(self.staging)

    def drain_staging(self) -> None:
        """Move staged individuals into residents and clear staging."""
        if self.staging:
            self.residents = np.concatenate([self.residents] + self.staging)
            self.staging = []

    def discard_staging(self) -> None:
        self.staging = []

    def clear(self) -> None:
        self.residents = empty_individuals()
        self.staging = []


# ═══════════════════════════════════════════════════════════════════════
# WORLD
# ═══════════════════════════════════════════════════════════════════════

class World:
    """Fixed-size ordered array of patches.

    Args:
        world_width: Number of patches (WORLD_WIDTH).
        init_width: Width of the burn-in area (INIT_WIDTH).
    """

    def __init__(self, world_width: int, init_width: int):
        self.width = world_width
        self.init_width = init_width
        self.patches: List[Patch] = [Patch() for _ in range(world_width)]

    def __len__(self) -> int:
        return self.width

    def __getitem__(self, x: int) -> Patch:
        return self.patches[x]

    def __iter__(self):
        return iter(self.patches)

    def active_width(self, t: int, burn_in: int) -> int:
        """Number of patches taking part in time step t."""
        return self.init_width if t < burn_in else self.width

    def sizes(self) -> np.ndarray:
        """(width,) local population sizes."""
        return np.array([p.size for p in self.patches], dtype=np.int64)

    def total_size(self) -> int:
        return int(sum(p.size for p in self.patches))

    def staging_empty(self) -> bool:
        return all(not p.staging for p in self.patches)

    def all_individuals(self) -> np.ndarray:
        """Concatenated residents of every patch."""
        chunks = [p.residents for p in self.patches if p.size > 0]
        if not chunks:
            return empty_individuals()
        return np.concatenate(chunks)


def initialize_world(ctx: SimulationContext) -> World:
    """Build a fresh world for one run.

    Every patch starts with empty residents and staging. Patches with
    index < init_width receive exactly K individuals with dispersal
    alleles ~ Uniform[0, 1) and derived traits.
    """
    cfg = ctx.config
    world = World(cfg.world.world_width, cfg.world.init_width)
    k = ctx.equilibrium_density
    demo = cfg.demography
    for x in range(world.width):
        world[x].clear()
        if x < world.init_width:
            world[x].residents = make_individuals(
                ctx.rng.random(k),
                demo.lambda_null,
                cfg.dispersal.trade_off_exp,
                demo.alpha0,
                demo.lamb_exp,
            )
    return world
