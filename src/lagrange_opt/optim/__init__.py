"""
Primal-dual solver for the latency allocation model.

This package provides:
- The problem definition (objective, gradient, constraint slacks, validation)
- A fixed-step primal-dual iteration with box projection, compiled with JAX
- A batched variant solving many independent problems through ``jax.vmap``

Example usage:
    >>> from lagrange_opt.optim import solve
    >>>
    >>> result = solve(r_min=5.0, p_max=2.5, b_max=20.0, a=1.2, b=0.8, c=0.5)
    >>> float(result.rate), result.status
"""

from .config import SolverConfig, validate_solver_config
from .problem import (
    Allocation,
    InvalidInputError,
    Problem,
    constraint_slacks,
    gradient,
    objective,
    validate_problem,
)
from .solvers import (
    SolverResult,
    SolverStatus,
    primal_step,
    solve,
    solve_batch,
    solve_problem,
    update_multipliers,
)

__all__ = [
    "Allocation",
    "InvalidInputError",
    "Problem",
    "SolverConfig",
    "SolverResult",
    "SolverStatus",
    "constraint_slacks",
    "gradient",
    "objective",
    "primal_step",
    "solve",
    "solve_batch",
    "solve_problem",
    "update_multipliers",
    "validate_problem",
    "validate_solver_config",
]
