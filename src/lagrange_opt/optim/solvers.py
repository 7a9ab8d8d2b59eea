from __future__ import annotations

import enum
from typing import Optional, Union

import equinox as eqx
import jax
import jax.lax as lax
import jax.numpy as jnp
import numpy as np
from jax.experimental import enable_x64
from jaxtyping import Array, ArrayLike, Bool, Int
from optax import projections

from .config import SolverConfig, validate_solver_config
from .problem import (
    Allocation,
    InvalidInputError,
    Problem,
    Scalar,
    baseline_allocation,
    constraint_slacks,
    feasible_box,
    gradient,
    initial_allocation,
    invalid_rows,
    objective,
    validate_problem,
)

# =============================================================================
# RESULT TYPES
# =============================================================================


class SolverStatus(enum.IntEnum):
    """How the iteration terminated."""

    CONVERGED = 0
    MAX_ITERATIONS_REACHED = 1


class SolverResult(eqx.Module):
    """Outcome of a primal-dual solve.

    Leaves are float64 NumPy values on the host. For :func:`solve` every leaf is
    a scalar; for :func:`solve_batch` every leaf carries a leading batch axis.

    Attributes
    ----------
    rate, power, bandwidth : Scalar
        Final committed primal iterate ``(x1, x2, x3)``.
    latency : Scalar
        Objective value at the final iterate.
    converged : Bool scalar
        True if the objective change dropped below the threshold before the cap.
    iterations : Int scalar
        Number of iterations executed, including the converging one.
    multipliers : Allocation
        Lagrange multipliers after the last iteration.
    baseline_latency : Scalar
        Objective at ``(r_min, 0.5 * p_max, 0.5 * b_max)``, used as a reference.
    """

    rate: Scalar
    power: Scalar
    bandwidth: Scalar
    latency: Scalar
    converged: Bool[Array, ""]
    iterations: Int[Array, ""]
    multipliers: Allocation
    baseline_latency: Scalar

    @property
    def allocation(self) -> Allocation:
        return Allocation(rate=self.rate, power=self.power, bandwidth=self.bandwidth)

    @property
    def status(self) -> Union[SolverStatus, np.ndarray]:
        """Termination status; an array of ``SolverStatus`` values for batched results."""
        converged = np.asarray(self.converged)
        if converged.ndim == 0:
            if bool(converged):
                return SolverStatus.CONVERGED
            return SolverStatus.MAX_ITERATIONS_REACHED
        return np.where(
            converged, SolverStatus.CONVERGED, SolverStatus.MAX_ITERATIONS_REACHED
        ).astype(np.int8)

    @property
    def improvement_percent(self) -> Scalar:
        """Relative latency reduction with respect to ``baseline_latency``, in percent."""
        return (self.baseline_latency - self.latency) / self.baseline_latency * 100.0


# =============================================================================
# UPDATE RULES
# =============================================================================


def update_multipliers(
    multipliers: Allocation, slacks: Allocation, step_size: Union[float, Scalar]
) -> Allocation:
    """Projected ascent on the multipliers of the violated constraints.

    A violated constraint (negative slack) gets ``max(0, lambda - step * slack)``.
    A satisfied one has its multiplier reset to exactly zero rather than decayed.
    """

    def _leaf(lam: Scalar, slack: Scalar) -> Scalar:
        ascended = jnp.maximum(0.0, lam - step_size * slack)
        return jnp.where(slack < 0, ascended, 0.0)

    return jax.tree.map(_leaf, multipliers, slacks)


def primal_step(
    x: Allocation,
    grad: Allocation,
    multipliers: Allocation,
    problem: Problem,
    step_size: Union[float, Scalar],
) -> Allocation:
    """Gradient step augmented by the multipliers, projected on the feasible box.

    The lower bound on ``rate`` adds its multiplier to the gradient, the upper
    bounds on ``power`` and ``bandwidth`` subtract theirs.
    """
    proposal = Allocation(
        rate=x.rate - step_size * (grad.rate + multipliers.rate),
        power=x.power - step_size * (grad.power - multipliers.power),
        bandwidth=x.bandwidth - step_size * (grad.bandwidth - multipliers.bandwidth),
    )
    lower, upper = feasible_box(problem)
    return projections.projection_box(proposal, lower, upper)


# =============================================================================
# ITERATION
# =============================================================================


class _LoopState(eqx.Module):
    x: Allocation
    multipliers: Allocation
    previous_objective: Scalar
    iteration: Int[Array, ""]
    converged: Bool[Array, ""]


def _check_positive(x: Allocation) -> Allocation:
    positive = jnp.logical_and(
        jnp.logical_and(x.rate > 0, x.power > 0), x.bandwidth > 0
    )
    return eqx.error_if(x, ~positive, "primal variables must stay strictly positive")


def _primal_dual_iterations(problem: Problem, config: SolverConfig) -> SolverResult:
    """Run the fixed-step primal-dual loop. Inputs are assumed validated."""
    step_size = config.step_size

    def cond_fn(state: _LoopState) -> Bool[Array, ""]:
        return jnp.logical_and(~state.converged, state.iteration < config.max_iterations)

    def body_fn(state: _LoopState) -> _LoopState:
        grad = gradient(state.x, problem)
        slacks = constraint_slacks(state.x, problem)
        multipliers = update_multipliers(state.multipliers, slacks, step_size)
        proposal = _check_positive(primal_step(state.x, grad, multipliers, problem, step_size))

        proposed_objective = objective(proposal, problem)
        change = jnp.abs(state.previous_objective - proposed_objective)
        converged = change < config.convergence_threshold

        # the proposal is committed either way; the objective is only carried on a miss
        return _LoopState(
            x=proposal,
            multipliers=multipliers,
            previous_objective=jnp.where(converged, state.previous_objective, proposed_objective),
            iteration=state.iteration + 1,
            converged=converged,
        )

    x0 = jax.tree.map(jnp.asarray, initial_allocation(problem))
    init_state = _LoopState(
        x=x0,
        multipliers=jax.tree.map(jnp.zeros_like, x0),
        previous_objective=jnp.asarray(jnp.inf, dtype=x0.rate.dtype),
        iteration=jnp.asarray(0, dtype=jnp.int32),
        converged=jnp.asarray(False),
    )
    final = lax.while_loop(cond_fn, body_fn, init_state)

    return SolverResult(
        rate=final.x.rate,
        power=final.x.power,
        bandwidth=final.x.bandwidth,
        latency=objective(final.x, problem),
        converged=final.converged,
        iterations=final.iteration,
        multipliers=final.multipliers,
        baseline_latency=objective(baseline_allocation(problem), problem),
    )


_solve_jit = jax.jit(_primal_dual_iterations)
_solve_batch_jit = jax.jit(jax.vmap(_primal_dual_iterations, in_axes=(0, None)))


# =============================================================================
# PUBLIC ENTRY POINTS
# =============================================================================


def _resolve_config(config: Optional[SolverConfig]) -> SolverConfig:
    config = SolverConfig() if config is None else config
    validate_solver_config(config)
    return SolverConfig(
        max_iterations=jnp.asarray(int(config.max_iterations), dtype=jnp.int32),
        convergence_threshold=jnp.asarray(float(config.convergence_threshold), dtype=jnp.float64),
        step_size=jnp.asarray(float(config.step_size), dtype=jnp.float64),
    )


def _as_float_problem(problem: Problem) -> Problem:
    return jax.tree.map(lambda v: jnp.asarray(v, dtype=jnp.float64), problem)


def _to_host(result: SolverResult) -> SolverResult:
    # float64 leaves must leave the x64 scope as numpy arrays to keep their precision
    return jax.tree.map(np.asarray, result)


def solve_problem(problem: Problem, config: Optional[SolverConfig] = None) -> SolverResult:
    """Validate ``problem`` and run the primal-dual solver on it.

    Parameters
    ----------
    problem : Problem
        Problem with concrete scalar parameters.
    config : SolverConfig, optional
        Iteration controls. Defaults to ``SolverConfig()`` (1000, 0.001, 0.01).

    Returns
    -------
    SolverResult
        Final allocation, latency and termination status.

    Raises
    ------
    InvalidInputError
        If the problem parameters are rejected; no iteration is run.
    ValueError
        If the configuration is invalid.
    """
    validate_problem(problem)
    with enable_x64():
        resolved = _resolve_config(config)
        result = _solve_jit(_as_float_problem(problem), resolved)
        return _to_host(result)


def solve(
    r_min: float,
    p_max: float,
    b_max: float,
    a: float,
    b: float,
    c: float,
    config: Optional[SolverConfig] = None,
) -> SolverResult:
    """Minimise ``a/rate + b/power + c/bandwidth``.

    Subject to ``rate >= r_min``, ``power <= p_max`` and ``bandwidth <= b_max``.

    Example:
        >>> result = solve(5.0, 2.5, 20.0, 1.2, 0.8, 0.5)
        >>> result.status
        <SolverStatus.CONVERGED: 0>
    """
    return solve_problem(Problem(r_min, p_max, b_max, a, b, c), config)


def solve_batch(
    r_min: ArrayLike,
    p_max: ArrayLike,
    b_max: ArrayLike,
    a: ArrayLike,
    b: ArrayLike,
    c: ArrayLike,
    config: Optional[SolverConfig] = None,
) -> SolverResult:
    """Solve many independent problems at once with ``jax.vmap``.

    Each argument is a 1-D array holding one parameter per problem. Row ``i`` of
    the result equals ``solve(r_min[i], ..., c[i], config)``.

    Raises
    ------
    InvalidInputError
        If the arrays are not 1-D of equal length, or if any row is invalid.
        The whole batch is rejected.
    """
    columns = [np.asarray(v, dtype=np.float64) for v in (r_min, p_max, b_max, a, b, c)]
    shapes = {col.shape for col in columns}
    if len(shapes) != 1 or columns[0].ndim != 1 or columns[0].size == 0:
        raise InvalidInputError(
            "Batch parameters must be non-empty 1-D arrays of equal length, "
            f"got shapes {[col.shape for col in columns]}"
        )

    bad = invalid_rows(*columns)
    if bad.size:
        raise InvalidInputError(f"Invalid input constraints in rows {bad.tolist()}")

    with enable_x64():
        resolved = _resolve_config(config)
        problems = Problem(*(jnp.asarray(col) for col in columns))
        return _to_host(_solve_batch_jit(problems, resolved))
