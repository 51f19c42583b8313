"""Run driver: the per-run time loop and repeated runs.

Per time step t (strict order, each phase completes before the next):
  1. active width: init_width while t < burn_in, else world_width
  2. mortality gradient (if enabled; post burn-in only)
  3. dispersal
  4. reproduction
  5. death / patch extinction
  6. analysis → margin position carried into the next dispersal

A run stops after the step in which the range front reaches the far edge
(margin_position == world_width − 1) or after the last step of the
horizon, whichever comes first. The spatial profile at that step is kept
as the run's terminal snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from rangexp.analysis import (
    MetapopSummary,
    SpatialProfile,
    analyze,
    mean_trait,
    spatial_profile,
)
from rangexp.config import SimulationConfig, SimulationContext, default_config
from rangexp.dispersal import disperse
from rangexp.mortality import apply_mortality_gradient, death
from rangexp.reproduction import reproduce
from rangexp.rng import create_rng, create_run_rngs
from rangexp.snapshots import ProfileRecorder
from rangexp.types import DispersalStats
from rangexp.world import World, initialize_world


# ═══════════════════════════════════════════════════════════════════════
# RESULT CONTAINERS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class StepRecord:
    """Everything reported for one time step."""
    time: int
    active_width: int
    summary: MetapopSummary
    dispersal: DispersalStats
    n_offspring: int = 0
    n_gradient_deaths: int = 0
    n_extinctions: int = 0

    @property
    def rel_emigrants_core(self) -> float:
        return self.dispersal.rel_emigrants_core

    @property
    def rel_emigrants_margin(self) -> float:
        return self.dispersal.rel_emigrants_margin


@dataclass
class RunResult:
    """Results from one simulation run."""
    run_index: int = 0
    equilibrium_density: int = 0
    # Per-step timeseries (length = n_steps)
    time: Optional[np.ndarray] = None
    rel_metapopsize: Optional[np.ndarray] = None
    occupancy: Optional[np.ndarray] = None
    rel_emigrants_core: Optional[np.ndarray] = None
    rel_emigrants_margin: Optional[np.ndarray] = None
    margin_position: Optional[np.ndarray] = None
    mean_disp_rate: Optional[np.ndarray] = None

    # Terminal state
    terminal_time: int = 0
    terminal_profile: Optional[SpatialProfile] = None
    reached_edge: bool = False
    extinct: bool = False
    profiles: Optional[ProfileRecorder] = None

    @property
    def n_steps(self) -> int:
        return 0 if self.time is None else int(self.time.shape[0])


# ═══════════════════════════════════════════════════════════════════════
# TIME STEP
# ═══════════════════════════════════════════════════════════════════════

def step(world: World, t: int, ctx: SimulationContext) -> StepRecord:
    """Advance the world by one generation.

    Updates ``ctx.margin_position`` from the closing analysis.
    """
    cfg = ctx.config
    active_width = world.active_width(t, cfg.simulation.burn_in)

    n_gradient_deaths = 0
    if cfg.dispersal.mortality_gradient:
        n_gradient_deaths = apply_mortality_gradient(world, active_width, ctx)

    stats = disperse(world, active_width, ctx)
    n_offspring = reproduce(world, active_width, ctx)
    n_extinctions = death(world, active_width, ctx)

    summary = analyze(world, ctx.equilibrium_density)
    ctx.margin_position = summary.margin_position

    return StepRecord(
        time=t,
        active_width=active_width,
        summary=summary,
        dispersal=stats,
        n_offspring=n_offspring,
        n_gradient_deaths=n_gradient_deaths,
        n_extinctions=n_extinctions,
    )


def front_reached_edge(summary: MetapopSummary, world_width: int) -> bool:
    return summary.margin_position == world_width - 1


# ═══════════════════════════════════════════════════════════════════════
# SINGLE RUN
# ═══════════════════════════════════════════════════════════════════════

def run_simulation(
    config: Optional[SimulationConfig] = None,
    rng: Optional[np.random.Generator] = None,
    run_index: int = 0,
    on_step: Optional[Callable[[int, StepRecord], None]] = None,
) -> RunResult:
    """Run one range-expansion simulation.

    Args:
        config: Validated SimulationConfig; default_config() if None.
        rng: Random stream; a fresh stream from config.simulation.seed
            if None.
        run_index: Index of this run within a batch (for reporting).
        on_step: Optional callback(run_index, record) after every step.

    Returns:
        RunResult with per-step timeseries and the terminal profile.
    """
    if config is None:
        config = default_config()
    if rng is None:
        rng = create_rng(config.simulation.seed)

    ctx = SimulationContext(config=config, rng=rng)
    world = initialize_world(ctx)
    recorder = ProfileRecorder(
        enabled=config.output.profile_interval > 0,
        interval=max(config.output.profile_interval, 1),
    )

    records: List[StepRecord] = []
    mean_d: List[float] = []
    for t in range(config.simulation.sim_time):
        record = step(world, t, ctx)
        records.append(record)
        mean_d.append(mean_trait(world, 'disp_rate'))
        recorder.capture(t, world)
        if on_step is not None:
            on_step(run_index, record)
        if front_reached_edge(record.summary, world.width):
            break

    last = records[-1]
    return RunResult(
        run_index=run_index,
        equilibrium_density=ctx.equilibrium_density,
        time=np.array([r.time for r in records], dtype=np.int64),
        rel_metapopsize=np.array([r.summary.rel_metapopsize for r in records]),
        occupancy=np.array([r.summary.occupancy for r in records]),
        rel_emigrants_core=np.array([r.rel_emigrants_core for r in records]),
        rel_emigrants_margin=np.array([r.rel_emigrants_margin for r in records]),
        margin_position=np.array(
            [r.summary.margin_position for r in records], dtype=np.int64),
        mean_disp_rate=np.array(mean_d),
        terminal_time=last.time,
        terminal_profile=spatial_profile(world),
        reached_edge=front_reached_edge(last.summary, world.width),
        extinct=last.summary.metapopsize == 0,
        profiles=recorder if recorder.enabled else None,
    )


# ═══════════════════════════════════════════════════════════════════════
# REPEATED RUNS
# ═══════════════════════════════════════════════════════════════════════

def run_repeats(
    config: Optional[SimulationConfig] = None,
    on_step: Optional[Callable[[int, StepRecord], None]] = None,
    on_run_end: Optional[Callable[[RunResult], None]] = None,
) -> List[RunResult]:
    """Run config.simulation.max_runs runs one after another.

    Streams follow config.simulation.rng_mode (see rng.create_run_rngs).

    Args:
        config: Validated SimulationConfig; default_config() if None.
        on_step: Optional per-step callback, forwarded to run_simulation.
        on_run_end: Optional callback(result) after each run.

    Returns:
        List of RunResult, one per run, in run order.
    """
    if config is None:
        config = default_config()
    sim = config.simulation
    rngs = create_run_rngs(sim.seed, sim.max_runs, mode=sim.rng_mode)

    results = []
    for run_index in range(sim.max_runs):
        result = run_simulation(config, rng=rngs[run_index],
                                run_index=run_index, on_step=on_step)
        if on_run_end is not None:
            on_run_end(result)
        results.append(result)
    return results
