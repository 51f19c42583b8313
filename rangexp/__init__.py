"""rangexp: evolution of dispersal during range expansion.

An individual-based, spatially explicit metapopulation model coupling:
  - A one-dimensional patch world with a burn-in area and closed edges
  - Nearest-neighbour natal dispersal with dispersal mortality
  - An evolving dispersal allele with a dispersal–fertility trade-off
    and a fertility–competition correlation
  - r-α density regulation with Poisson offspring numbers
  - Random local extinctions and an optional linear mortality gradient

A run ends when the range front reaches the far edge of the world.
"""

__version__ = "0.1.0"
