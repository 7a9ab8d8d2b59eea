"""
Problem definition for the latency allocation model.

This module contains the pieces of the model that do not depend on the solver:
- The immutable problem parameters and their validation
- The reciprocal-cost objective and its closed-form gradient
- The signed slacks of the three one-sided constraints
"""

from __future__ import annotations

from typing import Union

import equinox as eqx
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, ArrayLike, Float

Scalar = Float[Array, ""]

# r_min is rejected when it reaches this multiple of b_max
MAX_RATE_TO_BANDWIDTH_RATIO = 10.0

PARAMETER_NAMES = ("r_min", "p_max", "b_max", "a", "b", "c")


class InvalidInputError(ValueError):
    """Raised when problem parameters are rejected before solving."""


class Problem(eqx.Module):
    """Parameters of one latency minimisation problem.

    Attributes
    ----------
    r_min : float
        Minimum data rate, lower bound of ``rate``.
    p_max : float
        Maximum transmission power, upper bound of ``power``.
    b_max : float
        Maximum bandwidth, upper bound of ``bandwidth``.
    a, b, c : float
        Cost coefficients of the ``1/rate``, ``1/power`` and ``1/bandwidth`` terms.
    """

    r_min: Union[float, Scalar]
    p_max: Union[float, Scalar]
    b_max: Union[float, Scalar]
    a: Union[float, Scalar]
    b: Union[float, Scalar]
    c: Union[float, Scalar]


class Allocation(eqx.Module):
    """One value per decision variable.

    Used for the primal iterate itself and for every per-variable quantity the
    solver derives from it (gradient, constraint slacks, multipliers), so the
    update steps can be written as tree maps.
    """

    rate: Union[float, Scalar]
    power: Union[float, Scalar]
    bandwidth: Union[float, Scalar]


def validate_problem(problem: Problem) -> None:
    """Reject a problem that the solver cannot run on.

    Args:
        problem: Problem with concrete (host) scalar parameters.

    Raises:
        InvalidInputError: If a parameter is non-finite or not strictly positive,
            or if ``r_min >= 10 * b_max``.

    Example:
        >>> validate_problem(Problem(5.0, 2.5, 20.0, 1.2, 0.8, 0.5))
    """
    for name in PARAMETER_NAMES:
        value = float(getattr(problem, name))
        if not np.isfinite(value):
            raise InvalidInputError(f"Invalid value for {name}: {value} is not finite")
        if value <= 0:
            raise InvalidInputError(f"Invalid value for {name}: {value} must be > 0")

    r_min = float(problem.r_min)
    b_max = float(problem.b_max)
    if r_min >= b_max * MAX_RATE_TO_BANDWIDTH_RATIO:
        raise InvalidInputError(
            f"Unrealistic constraint: r_min={r_min} must be below "
            f"{MAX_RATE_TO_BANDWIDTH_RATIO:g} * b_max={b_max * MAX_RATE_TO_BANDWIDTH_RATIO}"
        )


def invalid_rows(
    r_min: ArrayLike,
    p_max: ArrayLike,
    b_max: ArrayLike,
    a: ArrayLike,
    b: ArrayLike,
    c: ArrayLike,
) -> np.ndarray:
    """Vectorised form of :func:`validate_problem`.

    Returns
    -------
    np.ndarray
        Sorted indices of the rows that :func:`validate_problem` would reject.
    """
    columns = np.stack([np.asarray(v, dtype=np.float64) for v in (r_min, p_max, b_max, a, b, c)])
    bad = np.any(~np.isfinite(columns) | (columns <= 0), axis=0)
    # NaN compares False here, already caught above
    bad |= columns[0] >= columns[2] * MAX_RATE_TO_BANDWIDTH_RATIO
    (indices,) = np.nonzero(bad)
    return indices


def initial_allocation(problem: Problem) -> Allocation:
    """Starting point of the iteration, strictly inside the feasible box."""
    return Allocation(
        rate=problem.r_min + 1.0,
        power=problem.p_max * 0.8,
        bandwidth=problem.b_max * 0.8,
    )


def baseline_allocation(problem: Problem) -> Allocation:
    """Reference allocation used to report the latency improvement."""
    return Allocation(
        rate=problem.r_min,
        power=problem.p_max * 0.5,
        bandwidth=problem.b_max * 0.5,
    )


def objective(x: Allocation, problem: Problem) -> Scalar:
    """Latency ``a/x1 + b/x2 + c/x3``. Every component of ``x`` must be > 0."""
    return problem.a / x.rate + problem.b / x.power + problem.c / x.bandwidth


def gradient(x: Allocation, problem: Problem) -> Allocation:
    """Exact partial derivatives of :func:`objective` with respect to ``x``."""
    return Allocation(
        rate=-problem.a / (x.rate * x.rate),
        power=-problem.b / (x.power * x.power),
        bandwidth=-problem.c / (x.bandwidth * x.bandwidth),
    )


def constraint_slacks(x: Allocation, problem: Problem) -> Allocation:
    """Signed slack of each constraint, negative when violated.

    - rate:      ``x1 - r_min``  (x1 >= r_min)
    - power:     ``p_max - x2``  (x2 <= p_max)
    - bandwidth: ``b_max - x3``  (x3 <= b_max)
    """
    return Allocation(
        rate=x.rate - problem.r_min,
        power=problem.p_max - x.power,
        bandwidth=problem.b_max - x.bandwidth,
    )


def feasible_box(problem: Problem) -> tuple[Allocation, Allocation]:
    """Lower and upper bounds of the feasible region, unbounded sides at infinity."""
    lower = Allocation(rate=problem.r_min, power=-jnp.inf, bandwidth=-jnp.inf)
    upper = Allocation(rate=jnp.inf, power=problem.p_max, bandwidth=problem.b_max)
    return lower, upper
