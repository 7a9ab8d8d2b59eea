import jax
import jax.numpy as jnp
import numpy as np
import pytest
from jax.experimental import enable_x64

from lagrange_opt.optim import (
    Allocation,
    InvalidInputError,
    Problem,
    constraint_slacks,
    gradient,
    objective,
    validate_problem,
)
from lagrange_opt.optim.problem import feasible_box, initial_allocation, invalid_rows

SCENARIO = dict(r_min=5.0, p_max=2.5, b_max=20.0, a=1.2, b=0.8, c=0.5)


def _problem(**overrides):
    return Problem(**{**SCENARIO, **overrides})


def test_objective_is_sum_of_reciprocal_costs():
    x = Allocation(rate=6.0, power=2.0, bandwidth=16.0)
    assert float(objective(x, _problem())) == pytest.approx(1.2 / 6.0 + 0.8 / 2.0 + 0.5 / 16.0)


def test_gradient_matches_autodiff():
    problem = _problem()
    with enable_x64():
        x = Allocation(
            rate=jnp.asarray(6.5), power=jnp.asarray(1.7), bandwidth=jnp.asarray(12.0)
        )
        expected = jax.tree.map(np.asarray, jax.grad(lambda y: objective(y, problem))(x))
        closed_form = jax.tree.map(np.asarray, gradient(x, problem))
    for field in ("rate", "power", "bandwidth"):
        np.testing.assert_allclose(
            getattr(closed_form, field), getattr(expected, field), rtol=1e-12
        )
    assert float(closed_form.rate) == pytest.approx(-1.2 / 6.5**2)


def test_constraint_slacks_sign_convention():
    problem = _problem()
    inside = constraint_slacks(Allocation(rate=6.0, power=2.0, bandwidth=16.0), problem)
    assert float(inside.rate) == pytest.approx(1.0)
    assert float(inside.power) == pytest.approx(0.5)
    assert float(inside.bandwidth) == pytest.approx(4.0)

    outside = constraint_slacks(Allocation(rate=4.0, power=3.0, bandwidth=21.0), problem)
    assert float(outside.rate) < 0
    assert float(outside.power) < 0
    assert float(outside.bandwidth) < 0


def test_initial_allocation_is_strictly_feasible():
    problem = _problem()
    x0 = initial_allocation(problem)
    assert (x0.rate, x0.power, x0.bandwidth) == (6.0, 2.0, 16.0)
    lower, upper = feasible_box(problem)
    assert lower.rate == 5.0 and upper.power == 2.5 and upper.bandwidth == 20.0
    assert np.isinf(upper.rate) and np.isneginf(lower.power)


def test_validate_accepts_scenario():
    validate_problem(_problem())


@pytest.mark.parametrize("name", ["r_min", "p_max", "b_max", "a", "b", "c"])
@pytest.mark.parametrize("value", [0.0, -1.0, float("nan"), float("inf")])
def test_validate_rejects_non_positive_or_non_finite(name, value):
    with pytest.raises(InvalidInputError, match=name):
        validate_problem(_problem(**{name: value}))


def test_validate_rate_to_bandwidth_boundary():
    validate_problem(_problem(r_min=np.nextafter(10.0, 0.0), b_max=1.0))
    with pytest.raises(InvalidInputError, match="Unrealistic"):
        validate_problem(_problem(r_min=10.0, b_max=1.0))


def test_validate_rejects_rate_far_above_bandwidth():
    with pytest.raises(InvalidInputError):
        validate_problem(Problem(50.0, 1.0, 1.0, 1.0, 1.0, 1.0))


def test_invalid_input_error_is_value_error():
    assert issubclass(InvalidInputError, ValueError)


def test_invalid_rows_matches_scalar_validation():
    r_min = np.array([5.0, -1.0, 50.0, 9.0, 5.0])
    p_max = np.array([2.5, 2.5, 1.0, 1.0, np.nan])
    b_max = np.array([20.0, 20.0, 1.0, 1.0, 20.0])
    ones = np.ones(5)
    assert invalid_rows(r_min, p_max, b_max, ones, ones, ones).tolist() == [1, 2, 4]
