"""Lagrange multiplier solver for wireless latency allocation."""

from importlib import metadata

from .data import (
    dump_default_solver_config,
    load_solver_config,
    solver_config_from_dict,
)
from .optim import (
    Allocation,
    InvalidInputError,
    Problem,
    SolverConfig,
    SolverResult,
    SolverStatus,
    solve,
    solve_batch,
    solve_problem,
)

__all__ = [
    # Optim
    "Allocation",
    "InvalidInputError",
    "Problem",
    "SolverConfig",
    "SolverResult",
    "SolverStatus",
    "solve",
    "solve_batch",
    "solve_problem",
    # Data
    "dump_default_solver_config",
    "load_solver_config",
    "solver_config_from_dict",
]


def __getattr__(name: str) -> str:
    """Expose package metadata attributes lazily."""
    if name == "__version__":
        try:
            return metadata.version("lagrange-opt")
        except metadata.PackageNotFoundError:
            return "unknown"
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
