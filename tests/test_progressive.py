"""
Tests for the progressive module.

This module contains tests for the round loop of the `ProgressiveTrainer`, using
a fake solver that records its calls.
"""

import math
from dataclasses import dataclass, field
from unittest.mock import MagicMock

import pytest

from progressive_pinn.domain import DomainSpec, Interval
from progressive_pinn.errors import (
    InvalidScheduleError,
    NonPositiveBudgetError,
    SolverFailure,
)
from progressive_pinn.progressive import (
    ProgressiveTrainer,
    TrainingResult,
    TrainingState,
    next_budget,
    validate_schedule,
)

SPACE = (Interval(0.0, 2.0), Interval(0.0, 2.0))


def reference(points):  # noqa: ANN001, ANN201
    """Return the first coordinate as a dummy reference."""
    return points[:, 0:1]


@dataclass
class FakeSolver:
    """
    A solver that records its calls and returns increasing parameters.

    Attributes
    ----------
    fail_at : int | None
        The 1-based call that raises an error.
    error : Exception
        The error raised by the failing call.
    loss : float
        The final loss of every round.
    calls : list[tuple[DomainSpec, int, int]]
        The domain, the initial parameters and the budget of every call.
    """

    fail_at: int | None = None
    error: Exception = field(default_factory=lambda: RuntimeError("diverged"))
    loss: float = 0.5
    calls: list[tuple[DomainSpec, int, int]] = field(default_factory=list)

    def train(
        self,
        domain: DomainSpec,
        initial_params: int,
        max_iterations: int,
    ) -> TrainingResult:
        """
        Record the call and return `initial_params + 1`.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.
        initial_params : int
            The starting parameters.
        max_iterations : int
            The iteration budget.

        Returns
        -------
        TrainingResult
            The new parameters.
        """
        self.calls.append((domain, initial_params, max_iterations))
        if self.fail_at is not None and len(self.calls) == self.fail_at:
            raise self.error
        return TrainingResult(
            parameters=initial_params + 1,
            final_loss=self.loss,
            domain=domain,
        )


def make_trainer(solver: FakeSolver, **kwargs) -> ProgressiveTrainer:  # noqa: ANN003
    """
    Create a trainer on the square `[0, 2]^2` with `time_max = 2`.

    Parameters
    ----------
    solver : FakeSolver
        The solver.
    **kwargs
        Additional attributes of the trainer.

    Returns
    -------
    ProgressiveTrainer
        The trainer.
    """
    return ProgressiveTrainer(
        solver=solver,
        space_intervals=SPACE,
        reference=reference,
        time_max=2.0,
        **kwargs,
    )


def test_one_round_per_checkpoint() -> None:
    """Test that every checkpoint is trained once, in order."""
    solver = FakeSolver()
    trainer = make_trainer(solver)

    checkpoints = [0.1, 0.3, 0.5, 0.7]
    trainer.run(checkpoints, 0, 10)

    assert [d.time_interval.upper for d, _, _ in solver.calls] == checkpoints
    assert all(d.time_interval.lower == 0 for d, _, _ in solver.calls)


def test_parameters_are_carried_forward() -> None:
    """Test that each round starts from the parameters of the previous one."""
    solver = FakeSolver()
    trainer = make_trainer(solver)

    state = trainer.run([0.1, 0.3, 0.5], 10, 10)

    assert [p for _, p, _ in solver.calls] == [10, 11, 12]
    assert state.parameters == 13
    assert state.round_index == 3
    assert state.final_loss == 0.5
    assert state.domain is not None
    assert state.domain.time_interval.upper == 0.5


def test_budget_decreases_and_is_clamped() -> None:
    """Test the decrement of the iteration budget and its lower bound."""
    solver = FakeSolver()
    trainer = make_trainer(solver, budget_decrement=100)

    state = trainer.run([0.1, 0.2, 0.3, 0.4, 0.5], 0, 250)

    budgets = [b for _, _, b in solver.calls]
    assert budgets == [250, 150, 50, 1, 1]
    assert state.iteration_budget == 1


def test_budget_respects_min_iterations() -> None:
    """Test that the budget never drops below `min_iterations`."""
    solver = FakeSolver()
    trainer = make_trainer(solver, budget_decrement=100, min_iterations=120)

    trainer.run([0.1, 0.2, 0.3], 0, 250)

    assert [b for _, _, b in solver.calls] == [250, 150, 120]


def test_budget_is_non_increasing() -> None:
    """Test that the budgets of the default diffusion schedule never increase."""
    solver = FakeSolver()
    trainer = make_trainer(solver, budget_decrement=100)

    checkpoints = [round(0.1 + 0.2 * k, 12) for k in range(10)]
    trainer.run(checkpoints, 0, 2500)

    budgets = [b for _, _, b in solver.calls]
    assert budgets[0] == 2500
    assert budgets[-1] == 1600
    assert all(b2 <= b1 for b1, b2 in zip(budgets, budgets[1:], strict=False))
    assert min(budgets) >= 1


def test_empty_schedule() -> None:
    """Test that an empty schedule returns the initial state."""
    solver = FakeSolver()
    observer = MagicMock()
    trainer = make_trainer(solver, observer=observer)

    state = trainer.run([], 7, 42)

    assert solver.calls == []
    observer.assert_not_called()
    assert state == TrainingState(parameters=7, iteration_budget=42)


@pytest.mark.parametrize(
    "checkpoints",
    [
        [0.5, 0.3],
        [0.3, 0.3],
        [0.0, 0.3],
        [-0.1, 0.3],
        [0.1, 2.5],
        [0.1, math.nan],
        [0.1, math.inf],
    ],
)
def test_invalid_schedule(checkpoints: list[float]) -> None:
    """
    Test that an invalid schedule fails before any round.

    Parameters
    ----------
    checkpoints : list[float]
        The invalid schedule.
    """
    solver = FakeSolver()
    observer = MagicMock()
    trainer = make_trainer(solver, observer=observer)

    with pytest.raises(InvalidScheduleError):
        trainer.run(checkpoints, 0, 10)

    assert solver.calls == []
    observer.assert_not_called()


def test_checkpoint_equal_to_time_max() -> None:
    """Test that the last checkpoint may be equal to `time_max`."""
    solver = FakeSolver()
    trainer = make_trainer(solver)

    trainer.run([1.0, 2.0], 0, 10)

    assert solver.calls[-1][0].time_interval.upper == 2.0


@pytest.mark.parametrize("budget", [0, -5])
def test_non_positive_budget(budget: int) -> None:
    """
    Test that a non-positive initial budget fails before any round.

    Parameters
    ----------
    budget : int
        The invalid budget.
    """
    solver = FakeSolver()
    trainer = make_trainer(solver)

    with pytest.raises(NonPositiveBudgetError):
        trainer.run([0.1], 0, budget)

    assert solver.calls == []


def test_negative_decrement() -> None:
    """Test that a negative budget decrement is rejected."""
    with pytest.raises(InvalidScheduleError):
        make_trainer(FakeSolver(), budget_decrement=-1)


def test_min_iterations_below_one() -> None:
    """Test that a minimum budget smaller than 1 is rejected."""
    with pytest.raises(NonPositiveBudgetError):
        make_trainer(FakeSolver(), min_iterations=0)


def test_failure_stops_the_run() -> None:
    """Test that a failure on round 3 of 5 aborts the remaining rounds."""
    solver = FakeSolver(fail_at=3)
    observer = MagicMock()
    trainer = make_trainer(solver, observer=observer)

    with pytest.raises(SolverFailure) as excinfo:
        trainer.run([0.1, 0.3, 0.5, 0.7, 0.9], 0, 10)

    assert len(solver.calls) == 3
    assert observer.call_count == 2

    e = excinfo.value
    assert e.round_index == 3
    assert e.state is not None
    assert e.state.round_index == 2
    assert e.state.parameters == 2
    assert isinstance(e.__cause__, RuntimeError)


def test_solver_failure_is_annotated() -> None:
    """Test that a `SolverFailure` raised by the solver gets the run state."""
    solver = FakeSolver(fail_at=2, error=SolverFailure("loss is nan"))
    trainer = make_trainer(solver)

    with pytest.raises(SolverFailure) as excinfo:
        trainer.run([0.1, 0.3], 0, 10)

    assert excinfo.value.round_index == 2
    assert excinfo.value.state.parameters == 1


def test_non_finite_loss_is_a_failure() -> None:
    """Test that a non-finite final loss aborts the run."""
    solver = FakeSolver(loss=math.nan)
    observer = MagicMock()
    trainer = make_trainer(solver, observer=observer)

    with pytest.raises(SolverFailure) as excinfo:
        trainer.run([0.1, 0.3], 0, 10)

    assert len(solver.calls) == 1
    observer.assert_not_called()
    assert excinfo.value.state.round_index == 0


def test_observer_arguments() -> None:
    """Test that the observer receives the index, domain and result of a round."""
    solver = FakeSolver()
    observer = MagicMock(return_value="ignored")
    trainer = make_trainer(solver, observer=observer)

    state = trainer.run([0.1, 0.3], 0, 10)

    assert observer.call_count == 2

    for k, call in enumerate(observer.call_args_list, start=1):
        round_index, domain, result = call.args
        assert round_index == k
        assert domain is solver.calls[k - 1][0]
        assert result.parameters == k
        assert result.domain is domain

    assert state.parameters == 2


def test_space_and_reference_are_fixed() -> None:
    """Test that only the final time changes between rounds."""
    solver = FakeSolver()
    trainer = make_trainer(solver)

    trainer.run([0.1, 0.3, 0.5], 0, 10)

    domains = [d for d, _, _ in solver.calls]
    first = domains[0]

    for d in domains:
        assert d.space_intervals == SPACE
        assert d.space_names == ("x", "y")
        assert set(d.boundary_conditions) == {
            "t_min",
            "x_min",
            "x_max",
            "y_min",
            "y_max",
        }
        for name, condition in d.boundary_conditions.items():
            other = first.boundary_conditions[name]
            assert condition.axis == other.axis
            assert condition.value == other.value


def test_boundary_builder_receives_the_same_reference() -> None:
    """Test that the boundary builder is called with the held reference."""
    builder = MagicMock(return_value={})
    solver = FakeSolver()
    trainer = make_trainer(solver, boundary_condition_builder=builder)

    trainer.run([0.1, 0.3], 0, 10)

    assert builder.call_count == 2
    for call in builder.call_args_list:
        assert call.args[0] is reference
        assert tuple(call.args[1]) == SPACE


def test_domain_for() -> None:
    """Test the domain of a round and the rejection of a too large final time."""
    trainer = make_trainer(FakeSolver())

    domain = trainer.domain_for(2.0)

    assert domain.time_interval == Interval(0.0, 2.0)
    assert domain.dim == 3

    with pytest.raises(InvalidScheduleError):
        trainer.domain_for(2.1)


def test_next_budget() -> None:
    """Test the budget of the next round."""
    assert next_budget(2500, 100) == 2400
    assert next_budget(50, 100) == 1
    assert next_budget(50, 100, 10) == 10
    assert next_budget(7, 0) == 7


def test_validate_schedule_time_max() -> None:
    """Test that `time_max` must be positive and finite."""
    with pytest.raises(InvalidScheduleError):
        validate_schedule([], 0.0)

    with pytest.raises(InvalidScheduleError):
        validate_schedule([], math.inf)

    validate_schedule([], 1.0)
