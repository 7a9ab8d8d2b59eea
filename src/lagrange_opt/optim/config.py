from __future__ import annotations

import math
from typing import Any, Union

import equinox as eqx
from jaxtyping import Array, Float, Int

DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_CONVERGENCE_THRESHOLD = 0.001
DEFAULT_STEP_SIZE = 0.01

CONFIG_KEYS = ("max_iterations", "convergence_threshold", "step_size")

# iteration counter is int32
MAX_ITERATIONS_LIMIT = 2**31 - 1


class SolverConfig(eqx.Module):
    """Iteration controls of the primal-dual solver.

    The fields are ordinary pytree leaves, so changing them does not trigger a
    recompilation of the solver loop.

    Attributes
    ----------
    max_iterations : int
        Hard cap on the number of iterations.
    convergence_threshold : float
        The loop stops once the objective changes by less than this between two
        consecutive iterates.
    step_size : float
        Fixed step used for both the primal descent and the dual ascent.
    """

    max_iterations: Union[int, Int[Array, ""]] = DEFAULT_MAX_ITERATIONS
    convergence_threshold: Union[float, Float[Array, ""]] = DEFAULT_CONVERGENCE_THRESHOLD
    step_size: Union[float, Float[Array, ""]] = DEFAULT_STEP_SIZE

    def replace(self, **changes: Any) -> SolverConfig:
        """Return a copy with some fields overridden. ``None`` values are ignored."""
        values = {key: getattr(self, key) for key in CONFIG_KEYS}
        unknown = set(changes) - set(CONFIG_KEYS)
        if unknown:
            raise ValueError(f"Unknown solver config keys: {sorted(unknown)}")
        values.update({k: v for k, v in changes.items() if v is not None})
        return SolverConfig(**values)


def validate_solver_config(config: SolverConfig) -> None:
    """Check that a configuration can drive the solver.

    Raises:
        ValueError: If ``max_iterations`` is not a positive integer, ``step_size``
            is not a finite positive number or ``convergence_threshold`` is
            negative or NaN.
    """
    max_iterations = config.max_iterations
    try:
        as_int = int(max_iterations)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"max_iterations must be an integer, got {max_iterations!r}")
    if isinstance(max_iterations, bool) or as_int != max_iterations:
        raise ValueError(f"max_iterations must be an integer, got {max_iterations!r}")
    if not 1 <= as_int <= MAX_ITERATIONS_LIMIT:
        raise ValueError(
            f"max_iterations must be between 1 and {MAX_ITERATIONS_LIMIT}, got {max_iterations}"
        )

    step_size = float(config.step_size)
    if not math.isfinite(step_size) or step_size <= 0:
        raise ValueError(f"step_size must be a finite positive number, got {step_size}")

    # an infinite threshold is allowed, it still needs two finite objectives to trigger
    threshold = float(config.convergence_threshold)
    if math.isnan(threshold) or threshold < 0:
        raise ValueError(f"convergence_threshold must be >= 0, got {threshold}")
