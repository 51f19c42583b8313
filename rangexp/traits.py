"""Trait functions: dispersal–fertility trade-off and fertility–competition link.

Each individual carries one evolving allele, its dispersal rate d. Two
traits are derived from it whenever an individual is created:

    lambda(d) = lambda_null × exp(−trade_off_exp × max(d, 0))
    alpha(λ)  = alpha0 × λ^lamb_exp

The allele itself is unconstrained (mutation can push it below zero), so
the trade-off uses the phenotypic value max(d, 0). The emigration
decision in dispersal.py compares the raw allele against a uniform draw
and does not clamp; negative alleles simply never emigrate.

Mutation is a Gaussian step applied with probability mut_rate per
offspring; no bounds are enforced.
"""

from __future__ import annotations

import numpy as np

from rangexp.types import INDIVIDUAL_DTYPE


# ═══════════════════════════════════════════════════════════════════════
# TRADE-OFF FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

def fertility_from_dispersal(disp_rate, lambda_null: float, trade_off_exp: float):
    """Fertility (lambda) of an individual with the given dispersal allele.

    Args:
        disp_rate: Dispersal allele(s); scalar or array. Negative values are
            treated as 0 for this calculation only.
        lambda_null: Baseline fertility.
        trade_off_exp: Dispersal–fertility trade-off exponent (≥ 0).

    Returns:
        Fertility, same shape as disp_rate. Non-increasing in disp_rate.
    """
    phenotype = np.maximum(disp_rate, 0.0)
    lam = lambda_null * np.exp(-trade_off_exp * phenotype)
    if np.ndim(lam) == 0:
        return float(lam)
    return lam


def competition_from_fertility(fertility, alpha0: float, lamb_exp: float):
    """Competition coefficient (alpha) implied by a fertility value.

    Args:
        fertility: Fertility value(s); scalar or array.
        alpha0: Competition baseline.
        lamb_exp: Exponent of the lambda–alpha correlation.

    Returns:
        alpha0 × fertility^lamb_exp, same shape as fertility.
    """
    alpha = alpha0 * np.power(fertility, lamb_exp)
    if np.ndim(alpha) == 0:
        return float(alpha)
    return alpha


def equilibrium_density(lambda_null: float, alpha0: float, lamb_exp: float) -> int:
    """Local equilibrium density K of a monomorphic non-dispersing patch.

    K = round((lambda_null − 1) / alpha(lambda_null)), rounding halves away
    from zero. Depends on parameters only, never on world state.
    """
    k = (lambda_null - 1.0) / competition_from_fertility(lambda_null, alpha0, lamb_exp)
    return int(np.copysign(np.floor(abs(k) + 0.5), k))


# ═══════════════════════════════════════════════════════════════════════
# INDIVIDUAL CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════

def make_individuals(
    disp_rates: np.ndarray,
    lambda_null: float,
    trade_off_exp: float,
    alpha0: float,
    lamb_exp: float,
) -> np.ndarray:
    """Build individuals from dispersal alleles, deriving both traits.

    Args:
        disp_rates: (n,) dispersal alleles.
        lambda_null, trade_off_exp: Fertility trade-off parameters.
        alpha0, lamb_exp: Competition parameters.

    Returns:
        (n,) structured array with INDIVIDUAL_DTYPE.
    """
    disp_rates = np.asarray(disp_rates, dtype=np.float64).reshape(-1)
    out = np.empty(disp_rates.shape[0], dtype=INDIVIDUAL_DTYPE)
    out['disp_rate'] = disp_rates
    out['fertility'] = fertility_from_dispersal(disp_rates, lambda_null, trade_off_exp)
    out['competition'] = competition_from_fertility(out['fertility'], alpha0, lamb_exp)
    return out


# ═══════════════════════════════════════════════════════════════════════
# MUTATION
# ═══════════════════════════════════════════════════════════════════════

def mutate(
    alleles: np.ndarray,
    mut_rate: float,
    mut_sd: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Apply Gaussian mutation to a batch of dispersal alleles.

    Each allele mutates independently with probability mut_rate; a
    mutated allele gains a Normal(0, mut_sd) step. No bounds are applied.

    Args:
        alleles: (n,) inherited alleles (not modified).
        mut_rate: Per-allele mutation probability.
        mut_sd: Mutation step standard deviation.
        rng: NumPy random generator.

    Returns:
        (n,) new allele array.
    """
    alleles = np.asarray(alleles, dtype=np.float64)
    out = alleles.copy()
    if out.size == 0:
        return out
    hit = rng.random(out.size) < mut_rate
    n_hit = int(hit.sum())
    if n_hit > 0:
        out[hit] += rng.normal(0.0, mut_sd, size=n_hit)
    return out
