"""rangexp visualization library.

Modules:
  - style: Dark theme colours and helpers
  - expansion: Range front, emigration, trait profile, dispersal evolution
"""

from rangexp.viz.style import (  # noqa: F401
    DARK_BG,
    DARK_PANEL,
    GRID_COLOR,
    RUN_COLORS,
    TEXT_COLOR,
    TRAIT_COLORS,
    WINDOW_COLORS,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from rangexp.viz.expansion import (  # noqa: F401
    plot_emigration_rates,
    plot_front_trajectory,
    plot_mean_dispersal,
    plot_trait_profile,
)
