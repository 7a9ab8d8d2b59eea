"""Solver configuration files for the latency allocation solver."""

from .solver_config import (
    dump_default_solver_config,
    load_solver_config,
    solver_config_from_dict,
)

__all__ = [
    "dump_default_solver_config",
    "load_solver_config",
    "solver_config_from_dict",
]
