"""Optional periodic recording of spatial trait profiles.

The run driver always keeps the terminal profile. When a profile interval
is configured, this recorder also keeps intermediate profiles so the
trait cline can be followed as the front advances.

Usage:
    recorder = ProfileRecorder(enabled=True, interval=50)

    # In the time loop:
    recorder.capture(t, world)

    # After the run:
    recorder.save("profiles_run0.npz")
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from rangexp.analysis import SpatialProfile, spatial_profile
from rangexp.world import World


_PROFILE_FIELDS = [f.name for f in fields(SpatialProfile)]


class ProfileRecorder:
    """Keeps SpatialProfiles keyed by time step.

    When enabled=False, all methods are no-ops.
    """

    def __init__(self, enabled: bool = False, interval: int = 1):
        """
        Args:
            enabled: Master switch. False = no-ops everywhere.
            interval: Capture every N time steps (must be ≥ 1 when enabled).
        """
        if enabled and interval < 1:
            raise ValueError(f"interval must be >= 1, got {interval}")
        self.enabled = enabled
        self.interval = interval
        self.profiles: Dict[int, SpatialProfile] = {}

    def should_capture(self, t: int) -> bool:
        if not self.enabled:
            return False
        return t % self.interval == 0

    def capture(self, t: int, world: World) -> None:
        """Record a profile for time step t if it is due."""
        if self.should_capture(t):
            self.profiles[t] = spatial_profile(world)

    def get_times(self) -> List[int]:
        return sorted(self.profiles)

    def get_profile(self, t: int) -> Optional[SpatialProfile]:
        return self.profiles.get(t)

    def save(self, path) -> None:
        """Save all profiles to a compressed npz file.

        Arrays are stored as t{time}_{field}; ``meta_times`` lists the
        captured time steps.
        """
        if not self.profiles:
            return
        arrays = {}
        for t, profile in sorted(self.profiles.items()):
            for name in _PROFILE_FIELDS:
                arrays[f"t{t}_{name}"] = getattr(profile, name)
        arrays['meta_times'] = np.array(self.get_times(), dtype=np.int64)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **arrays)

    @classmethod
    def load(cls, path) -> 'ProfileRecorder':
        """Load profiles from an npz file written by save()."""
        recorder = cls(enabled=False)
        with np.load(path) as data:
            for t in data['meta_times']:
                t = int(t)
                recorder.profiles[t] = SpatialProfile(**{
                    name: data[f"t{t}_{name}"] for name in _PROFILE_FIELDS
                })
        return recorder
