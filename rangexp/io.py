"""Result sink: flat tables per run plus a provenance manifest.

Files written into the output directory:
  metapop_run{r}.tsv                    one row per time step
  spatial_profile_run{r}_time_{t}.tsv   one row per patch, terminal step
  profiles_run{r}.npz                   periodic profiles (if recorded)
  manifest.json                         config, config hash, git revision

Tables are tab-separated; undefined emigration rates are written as NaN.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

import pandas as pd
import yaml

from rangexp.analysis import SpatialProfile
from rangexp.config import SimulationConfig, config_to_dict
from rangexp.model import RunResult
from rangexp.utils import config_hash, get_git_hash

TIMESERIES_COLUMNS = [
    'time', 'rel_metapopsize', 'occupancy',
    'emirate_core', 'emirate_margin', 'margin_position',
]

PROFILE_COLUMNS = [
    'x', 'dispRate_mean', 'alpha_mean', 'lambda_mean',
    'dispRate_median', 'alpha_median', 'lambda_median', 'popSize',
]


def timeseries_frame(result: RunResult) -> pd.DataFrame:
    """Per-step metapopulation table for one run."""
    return pd.DataFrame({
        'time': result.time,
        'rel_metapopsize': result.rel_metapopsize,
        'occupancy': result.occupancy,
        'emirate_core': result.rel_emigrants_core,
        'emirate_margin': result.rel_emigrants_margin,
        'margin_position': result.margin_position,
    }, columns=TIMESERIES_COLUMNS)


def profile_frame(profile: SpatialProfile) -> pd.DataFrame:
    """Per-patch trait table."""
    return pd.DataFrame({
        'x': profile.x,
        'dispRate_mean': profile.disp_rate_mean,
        'alpha_mean': profile.competition_mean,
        'lambda_mean': profile.fertility_mean,
        'dispRate_median': profile.disp_rate_median,
        'alpha_median': profile.competition_median,
        'lambda_median': profile.fertility_median,
        'popSize': profile.pop_size,
    }, columns=PROFILE_COLUMNS)


def write_timeseries(result: RunResult, directory: Union[str, Path]) -> Path:
    """Write metapop_run{r}.tsv and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"metapop_run{result.run_index}.tsv"
    timeseries_frame(result).to_csv(path, sep='\t', index=False, na_rep='NaN')
    return path


def write_spatial_profile(
    profile: SpatialProfile,
    directory: Union[str, Path],
    run_index: int,
    time: int,
) -> Path:
    """Write spatial_profile_run{r}_time_{t}.tsv and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"spatial_profile_run{run_index}_time_{time}.tsv"
    profile_frame(profile).to_csv(path, sep='\t', index=False, na_rep='NaN')
    return path


def write_run(result: RunResult, config: SimulationConfig,
              directory: Union[str, Path]) -> None:
    """Write every enabled output of one run."""
    out = config.output
    if out.timeseries:
        write_timeseries(result, directory)
    if out.spatial_profile and result.terminal_profile is not None:
        write_spatial_profile(result.terminal_profile, directory,
                              result.run_index, result.terminal_time)
    if result.profiles is not None:
        result.profiles.save(Path(directory) / f"profiles_run{result.run_index}.npz")


def write_manifest(config: SimulationConfig, directory: Union[str, Path]) -> Path:
    """Write manifest.json with the resolved config and provenance."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    cfg_dict = config_to_dict(config)
    yaml_text = yaml.safe_dump(cfg_dict, sort_keys=True)
    manifest = {
        'config': cfg_dict,
        'config_hash': config_hash(yaml_text),
        'git_hash': get_git_hash(),
        'equilibrium_density': config.equilibrium_density,
    }
    path = directory / 'manifest.json'
    with open(path, 'w') as f:
        json.dump(manifest, f, indent=2)
    return path


def read_timeseries(path: Union[str, Path]) -> pd.DataFrame:
    """Load a metapop_run table written by write_timeseries()."""
    return pd.read_csv(path, sep='\t')
