# =============================================================================
# Market Info used in simulations
# =============================================================================

# Annual standard deviation of capital growth when the plan gives none
default_volatility = 0.12

# Floor on a single year's perturbed growth rate (no worse than -95%)
min_annual_growth = -0.95
