"""Core data types for rangexp.

This module is the SINGLE SOURCE OF TRUTH for:
  - INDIVIDUAL_DTYPE: NumPy structured array dtype for individuals
  - DispersalStats: per-step emigration diagnostics handed from the
    dispersal phase to the analyzer

All modules import these types from here. No other module defines
individual fields.
"""

from dataclasses import dataclass

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# INDIVIDUAL_DTYPE — Canonical structured array for individuals
# ═══════════════════════════════════════════════════════════════════════

INDIVIDUAL_DTYPE = np.dtype([
    # --- Evolving allele (REPRO writes, via mutation) ---
    ('disp_rate',    np.float64),   # dispersal allele; unbounded, may be < 0

    # --- Derived traits (never written independently of disp_rate) ---
    ('fertility',    np.float64),   # lambda: expected offspring before regulation
    ('competition',  np.float64),   # alpha: per-capita competitive load
])


def allocate_individuals(n: int) -> np.ndarray:
    """Allocate a zeroed individual array.

    Args:
        n: Number of records.

    Returns:
        Zeroed structured array of shape (n,) with INDIVIDUAL_DTYPE.
    """
    return np.zeros(n, dtype=INDIVIDUAL_DTYPE)


def empty_individuals() -> np.ndarray:
    """Zero-length individual array (an empty patch)."""
    return np.empty(0, dtype=INDIVIDUAL_DTYPE)


# ═══════════════════════════════════════════════════════════════════════
# INTER-MODULE DATA TRANSFER OBJECTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DispersalStats:
    """Produced by the dispersal phase; consumed by the run driver.

    Window sizes are counted before emigrants leave. A rate whose window
    holds no individuals is NaN.
    """
    metapopsize_core: int = 0
    metapopsize_margin: int = 0
    emigrants_core: int = 0
    emigrants_margin: int = 0
    n_emigrants: int = 0
    n_transit_deaths: int = 0

    @property
    def rel_emigrants_core(self) -> float:
        return _safe_ratio(self.emigrants_core, self.metapopsize_core)

    @property
    def rel_emigrants_margin(self) -> float:
        return _safe_ratio(self.emigrants_margin, self.metapopsize_margin)


def _safe_ratio(num: int, den: int) -> float:
    if den == 0:
        return float('nan')
    return num / den
