"""Command-line interface of lagrange-opt."""

from .main import format_result, main, run_optimize

__all__ = ["format_result", "main", "run_optimize"]
