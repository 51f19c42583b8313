"""Command-line runner: run N repeats with the given parameters.

Usage:
    python -m rangexp --config configs/default.yaml --output results/control/
    python -m rangexp --config configs/default.yaml --scenario configs/gradient.yaml
    python -m rangexp --parameters input/parameters.in --runs 5 --plot
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from rangexp.config import (
    default_config,
    load_config,
    load_parameters_file,
    validate_config,
)
from rangexp.io import write_manifest, write_run
from rangexp.model import RunResult, StepRecord, run_repeats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='rangexp',
        description='Evolution of dispersal during range expansion',
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--config', type=str, default=None,
                        help='Base YAML configuration')
    source.add_argument('--parameters', type=str, default=None,
                        help='Legacy parameters.in file')
    parser.add_argument('--scenario', type=str, default=None,
                        help='Scenario YAML merged over --config')
    parser.add_argument('--runs', type=int, default=None,
                        help='Override simulation.max_runs')
    parser.add_argument('--seed', type=int, default=None,
                        help='Override simulation.seed')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (default: output.directory)')
    parser.add_argument('--plot', action='store_true',
                        help='Save figures next to the result tables')
    parser.add_argument('--quiet', action='store_true',
                        help='Only print the final summary')
    parser.add_argument('--progress-every', type=int, default=100,
                        help='Print a progress line every N steps')
    return parser


def _resolve_config(args):
    if args.scenario is not None and args.config is None:
        raise ValueError("--scenario requires --config")
    if args.config is not None:
        config = load_config(args.config, scenario_path=args.scenario)
    elif args.parameters is not None:
        config = load_parameters_file(args.parameters)
    else:
        config = default_config()

    if args.runs is not None:
        config.simulation.max_runs = args.runs
    if args.seed is not None:
        config.simulation.seed = args.seed
    if args.output is not None:
        config.output.directory = args.output
    validate_config(config)
    return config


def _save_figures(results: List[RunResult], config, output_dir: Path) -> None:
    from rangexp.viz import (
        plot_emigration_rates,
        plot_front_trajectory,
        plot_mean_dispersal,
        plot_trait_profile,
    )
    burn_in = config.simulation.burn_in
    plot_front_trajectory(results, config.world.world_width, burn_in=burn_in,
                          save_path=output_dir / 'front_trajectory.png')
    plot_mean_dispersal(results, burn_in=burn_in,
                        save_path=output_dir / 'mean_dispersal.png')
    for r in results:
        plot_emigration_rates(r, burn_in=burn_in,
                              save_path=output_dir / f'emigration_run{r.run_index}.png')
        plot_trait_profile(r, save_path=output_dir / f'profile_run{r.run_index}.png')


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    output_dir = Path(config.output.directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    write_manifest(config, output_dir)

    sim = config.simulation
    verbose = not args.quiet
    if verbose:
        print("=== rangexp ===")
        print(f"Runs: {sim.max_runs}, horizon: {sim.sim_time}, "
              f"burn-in: {sim.burn_in}, seed: {sim.seed} ({sim.rng_mode})")
        print(f"World: {config.world.world_width} patches, "
              f"K = {config.equilibrium_density}, "
              f"gradient: {'on' if config.dispersal.mortality_gradient else 'off'}")

    run_start = {'t0': time.time()}

    def on_step(run_index: int, record: StepRecord) -> None:
        if not verbose or args.progress_every <= 0:
            return
        if record.time == 0:
            print(f"\n--- Run {run_index + 1}/{sim.max_runs} ---")
        if record.time % args.progress_every == 0:
            s = record.summary
            print(f"  t={record.time:>6d}  front={s.margin_position:>5d}  "
                  f"occ={s.occupancy:.3f}  N/NK={s.rel_metapopsize:.3f}")

    def on_run_end(result: RunResult) -> None:
        write_run(result, config, output_dir)
        if verbose:
            outcome = ('front reached edge' if result.reached_edge
                       else 'extinct' if result.extinct else 'horizon')
            print(f"  Run {result.run_index} ended at t={result.terminal_time} "
                  f"({outcome}) in {time.time() - run_start['t0']:.1f}s")
        run_start['t0'] = time.time()

    results = run_repeats(config, on_step=on_step, on_run_end=on_run_end)

    if args.plot:
        _save_figures(results, config, output_dir)

    n_edge = sum(r.reached_edge for r in results)
    print(f"\n{n_edge}/{len(results)} runs reached the world edge")
    print(f"Results saved to {output_dir}/")
    return 0
