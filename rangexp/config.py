"""Configuration system for rangexp.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

The legacy flat ``parameters.in`` file (label line followed
by value line, twelve parameters in fixed order) is also accepted via
``load_parameters_file()``.

Parameter names follow the model literature:
  - alpha0:        intraspecific competition coefficient (baseline)
  - lamb_exp:      exponent of the lambda–alpha correlation
  - lambda_null:   baseline fertility (must be > 1 for a positive K)
  - trade_off_exp: dispersal–fertility trade-off exponent
  - epsilon:       random patch extinction probability
  - mu0:           dispersal mortality
"""

from __future__ import annotations

import math
import warnings
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml

from rangexp.traits import equilibrium_density


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run timing and control."""
    sim_time: int = 1000          # Time steps (generations) per run
    burn_in: int = 100            # Steps restricted to the initial area
    max_runs: int = 1             # Number of repeats
    seed: int = 42
    rng_mode: str = 'shared'      # 'shared' (one stream, all runs) or 'per_run'


@dataclass
class WorldSection:
    """Spatial layout of the one-dimensional patch array."""
    world_width: int = 100        # Number of patches
    init_width: int = 5           # Patches occupied (and active) during burn-in
    core_margin_width: int = 5    # Width of the core / margin diagnostic windows


@dataclass
class DemographySection:
    """Fertility, density regulation and local extinction."""
    alpha0: float = 0.01          # Competition baseline
    lamb_exp: float = 1.0         # lambda–alpha correlation exponent
    lambda_null: float = 2.0      # Baseline fertility
    epsilon: float = 0.0          # Patch extinction probability per generation


@dataclass
class DispersalSection:
    """Dispersal costs and the mortality gradient switch."""
    trade_off_exp: float = 0.0    # Fertility cost of dispersal
    mu0: float = 0.2              # Dispersal mortality
    mortality_gradient: bool = False


@dataclass
class EvolutionSection:
    """Mutation of the dispersal allele."""
    mut_rate: float = 0.0001      # Per-offspring mutation probability
    mut_sd: float = 0.2           # Mutation effect standard deviation


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    timeseries: bool = True
    spatial_profile: bool = True
    profile_interval: int = 0     # Record a profile every N steps (0 = off)


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    world: WorldSection = field(default_factory=WorldSection)
    demography: DemographySection = field(default_factory=DemographySection)
    dispersal: DispersalSection = field(default_factory=DispersalSection)
    evolution: EvolutionSection = field(default_factory=EvolutionSection)
    output: OutputSection = field(default_factory=OutputSection)

    @property
    def equilibrium_density(self) -> int:
        """Patch density at demographic equilibrium (K)."""
        d = self.demography
        return equilibrium_density(d.lambda_null, d.alpha0, d.lamb_exp)


@dataclass
class SimulationContext:
    """Everything a life-cycle phase needs besides the world itself.

    One context per run. ``margin_position`` carries the range-front
    position from the last analysis into the next dispersal phase.
    """
    config: SimulationConfig
    rng: np.random.Generator
    margin_position: int = 0
    equilibrium_density: int = field(init=False)

    def __post_init__(self):
        self.equilibrium_density = self.config.equilibrium_density


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

_SECTION_MAP = {
    'simulation': SimulationSection,
    'world': WorldSection,
    'demography': DemographySection,
    'dispersal': DispersalSection,
    'evolution': EvolutionSection,
    'output': OutputSection,
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Layer ``override`` onto ``base`` (in place) and return ``base``.

    Nested sections merge key by key, so a scenario file only needs the
    fields it changes. Any non-dict value in ``override`` wins outright.
    """
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Build one config section, dropping keys the section does not define."""
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: data[k] for k in data.keys() & known})


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def config_to_dict(config: SimulationConfig) -> Dict[str, Dict[str, Any]]:
    """Plain nested dict of a config (YAML / JSON serializable)."""
    return {
        key: asdict(getattr(config, key))
        for key in _SECTION_MAP
    }


def _check_range(name: str, value: float, lo: float, hi: float) -> None:
    if not (lo <= value <= hi):
        raise ValueError(f"{name} must be in [{lo}, {hi}], got {value}")


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Run timing is consistent (burn-in inside the horizon)
      - Probabilities lie in [0, 1]
      - The world layout is consistent
      - Trait parameters give a finite, positive equilibrium density
    """
    sim = config.simulation
    if sim.sim_time < 1:
        raise ValueError(f"simulation.sim_time must be >= 1, got {sim.sim_time}")
    if not (0 <= sim.burn_in <= sim.sim_time):
        raise ValueError(
            f"simulation.burn_in ({sim.burn_in}) must be in "
            f"[0, sim_time={sim.sim_time}]"
        )
    if sim.max_runs < 1:
        raise ValueError(f"simulation.max_runs must be >= 1, got {sim.max_runs}")
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    valid_rng_modes = {'shared', 'per_run'}
    if sim.rng_mode not in valid_rng_modes:
        raise ValueError(
            f"simulation.rng_mode must be one of {valid_rng_modes}, "
            f"got '{sim.rng_mode}'"
        )

    w = config.world
    if w.world_width < 2:
        raise ValueError(f"world.world_width must be >= 2, got {w.world_width}")
    if not (1 <= w.init_width <= w.world_width):
        raise ValueError(
            f"world.init_width ({w.init_width}) must be in "
            f"[1, world_width={w.world_width}]"
        )
    if w.core_margin_width < 1:
        raise ValueError(
            f"world.core_margin_width must be >= 1, got {w.core_margin_width}"
        )
    if w.init_width == w.world_width:
        warnings.warn(
            "world.init_width equals world.world_width: the world stays "
            "toroidal for the whole run and the mortality gradient never "
            "applies.",
            UserWarning,
            stacklevel=2,
        )

    d = config.demography
    if d.alpha0 <= 0:
        raise ValueError(f"demography.alpha0 must be > 0, got {d.alpha0}")
    if d.lambda_null <= 1:
        raise ValueError(
            f"demography.lambda_null must be > 1, got {d.lambda_null}"
        )
    _check_range('demography.epsilon', d.epsilon, 0.0, 1.0)

    disp = config.dispersal
    if disp.trade_off_exp < 0:
        raise ValueError(
            f"dispersal.trade_off_exp must be >= 0, got {disp.trade_off_exp}"
        )
    _check_range('dispersal.mu0', disp.mu0, 0.0, 1.0)

    evo = config.evolution
    if evo.mut_sd < 0:
        raise ValueError(f"evolution.mut_sd must be >= 0, got {evo.mut_sd}")
    _check_range('evolution.mut_rate', evo.mut_rate, 0.0, 1.0)

    if config.output.profile_interval < 0:
        raise ValueError(
            f"output.profile_interval must be >= 0, "
            f"got {config.output.profile_interval}"
        )

    # Derived: K must be a usable patch size
    with np.errstate(all='ignore'):
        alpha_null = d.alpha0 * np.power(np.float64(d.lambda_null), d.lamb_exp)
        k_raw = (d.lambda_null - 1.0) / alpha_null
    if not (math.isfinite(alpha_null) and math.isfinite(k_raw)):
        raise ValueError(
            f"demography.lamb_exp: equilibrium density is not finite for "
            f"lambda_null={d.lambda_null}, alpha0={d.alpha0}, lamb_exp={d.lamb_exp}"
        )
    if config.equilibrium_density < 1:
        raise ValueError(
            f"equilibrium density must be >= 1, got {config.equilibrium_density} "
            f"(lambda_null={d.lambda_null}, alpha0={d.alpha0}, "
            f"lamb_exp={d.lamb_exp})"
        )


def _read_yaml_layer(path: Union[str, Path], kind: str) -> Dict:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"{kind} file not found: {path}")
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load a run configuration from YAML layers.

    Layers apply in the order base → scenario → sweep overrides; each
    one only replaces the fields it names.

    Args:
        base_path: Base configuration YAML (e.g. configs/default.yaml).
        scenario_path: Optional scenario YAML (e.g. configs/gradient.yaml).
        sweep_overrides: Optional nested dict applied last.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If a YAML layer is missing.
        ValueError: If validation fails.
    """
    merged = _read_yaml_layer(base_path, "Config")
    if scenario_path is not None:
        deep_merge(merged, _read_yaml_layer(scenario_path, "Scenario"))
    if sweep_overrides:
        deep_merge(merged, sweep_overrides)

    config = _yaml_to_config(merged)
    validate_config(config)
    return config


# ═══════════════════════════════════════════════════════════════════════
# LEGACY PARAMETER FILE
# ═══════════════════════════════════════════════════════════════════════

# (section, field, type) in file order
_LEGACY_FIELDS = [
    ('simulation', 'sim_time', int),
    ('simulation', 'burn_in', int),
    ('simulation', 'max_runs', int),
    ('evolution', 'mut_sd', float),
    ('evolution', 'mut_rate', float),
    ('demography', 'alpha0', float),
    ('demography', 'lamb_exp', float),
    ('demography', 'lambda_null', float),
    ('dispersal', 'trade_off_exp', float),
    ('demography', 'epsilon', float),
    ('dispersal', 'mu0', float),
]


def parse_parameters_text(text: str) -> Dict[str, Dict[str, Any]]:
    """Parse the legacy parameter format into a nested override dict.

    Layout: two header lines, then for each parameter one label line
    followed by one value line. The final value is the mortality
    gradient switch; only the literal ``yes`` enables it.

    Raises:
        ValueError: On a missing or non-numeric value.
    """
    lines = text.split('\n')
    data: Dict[str, Dict[str, Any]] = {}
    # value lines sit at indices 3, 5, 7, ...
    for i, (section, name, cast) in enumerate(_LEGACY_FIELDS):
        idx = 3 + 2 * i
        if idx >= len(lines):
            raise ValueError(f"parameter file ends before value for '{name}'")
        tokens = lines[idx].split()
        if not tokens:
            raise ValueError(f"missing value for '{name}' (line {idx + 1})")
        try:
            value = cast(tokens[0])
        except ValueError:
            raise ValueError(
                f"invalid value {tokens[0]!r} for '{name}' (line {idx + 1})"
            ) from None
        data.setdefault(section, {})[name] = value

    idx = 3 + 2 * len(_LEGACY_FIELDS)
    if idx >= len(lines):
        raise ValueError("parameter file ends before mortality gradient switch")
    data.setdefault('dispersal', {})['mortality_gradient'] = (
        lines[idx] == 'yes'
    )
    return data


def load_parameters_file(
    path: Union[str, Path],
    base: Optional[SimulationConfig] = None,
) -> SimulationConfig:
    """Load a legacy ``parameters.in`` file.

    Values not covered by the file (world layout, seed, output) come from
    ``base`` or the defaults.

    Raises:
        FileNotFoundError: If path doesn't exist.
        ValueError: If the file is malformed or validation fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")
    overrides = parse_parameters_text(path.read_text())
    config_dict = config_to_dict(base) if base is not None else {}
    deep_merge(config_dict, overrides)
    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
