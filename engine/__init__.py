# engine/__init__.py

# Tax calculation
from .tax_engine import compute_tax, compute_clawback, compute_total_tax

# Benefits and the gross-up solver
from .benefits import estimate_cpp, estimate_oas
from .gross_up import solve_gross_withdrawal

# Projection drivers
from .simulator import RetirementSimulator, run_simulation
from .monte_carlo import run_monte_carlo
from .split_optimizer import compute_optimal_split

# Reporting
from .summary import PlanSummary, results_to_frame, summarize_plan
