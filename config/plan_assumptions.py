# config/plan_assumptions.py
# Registered-plan limits, ages and tolerances used by the projection engine.
# Dollar figures are base-year values; the engine indexes them by inflation.

# RRSP -> RRIF conversion (first mandatory minimum is taken at this age)
MANDATORY_CONVERSION_AGE = 72
RRIF_TABLE_FLOOR_RATE = 0.05     # below the first table age
RRIF_TABLE_CAP_RATE = 0.20       # at or above the last table age

# Contribution room
TFSA_ANNUAL_LIMIT = 7_000
TFSA_ROUNDING = 500
RRSP_CONTRIBUTION_RATE = 0.18
RRSP_DOLLAR_LIMIT = 31_560

# Tax treatment of investment income
DIVIDEND_GROSS_UP = 1.38
CAPITAL_GAINS_INCLUSION_RATE = 0.50

# Pension income splitting
PENSION_SPLIT_MIN_AGE = 65
PENSION_SPLIT_MAX_FRACTION = 0.50

# Simulation safety bound against malformed ages
MAX_SIMULATION_YEARS = 120

# Monte Carlo
DEFAULT_MC_ITERATIONS = 200
SUCCESS_TOLERANCE = 1_000        # final-year assets above this count as success
MC_PERCENTILES = (0.05, 0.25, 0.50, 0.75, 0.95)

# Reporting
OUT_OF_MONEY_THRESHOLD = 1_000
