"""
Progressive domain-expansion training.

The `ProgressiveTrainer` trains a solver on a sequence of space-time domains
that share their spatial box and boundary conditions but reach further in
time: `(0, t_1)`, `(0, t_2)`, ... with `t_1 < t_2 < ... <= time_max`. Each
round starts from the parameters reached by the previous one, and the
iteration budget shrinks by a fixed amount per round, never below
`min_iterations`.

This module provides:
    - TrainingResult: the outcome of one round, produced by the solver.
    - TrainingState: the state carried from round to round.
    - SolverHandle: the protocol of the solvers.
    - validate_schedule, validate_budget, validate_decrement: checks run before
    the first round.
    - next_budget: the budget of the round after the current one.
    - ProgressiveTrainer: the round loop.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from progressive_pinn.domain import (
    AnalyticSolution,
    BoundaryCondition,
    DomainSpec,
    Interval,
    dirichlet_boundary_conditions,
)
from progressive_pinn.errors import (
    InvalidScheduleError,
    NonPositiveBudgetError,
    SolverFailure,
)

BoundaryConditionBuilder = Callable[
    [AnalyticSolution, Sequence[Interval], Sequence[str]],
    dict[str, BoundaryCondition],
]

Observer = Callable[[int, DomainSpec, "TrainingResult"], object]


@dataclass(frozen=True)
class TrainingResult:
    """
    The outcome of one training round.

    Attributes
    ----------
    parameters : Any
        The parameter vector reached by the solver.
    final_loss : float
        The loss at the end of the round.
    domain : DomainSpec
        The domain the round was trained on.
    """

    parameters: Any
    final_loss: float
    domain: DomainSpec


@dataclass
class TrainingState:
    """
    The state carried across the rounds of a progressive run.

    Attributes
    ----------
    parameters : Any
        The current parameter vector, replaced after every round.
    iteration_budget : int
        The iteration budget of the next round.
    round_index : int
        The number of completed rounds.
    final_loss : float | None
        The final loss of the last completed round.
    domain : DomainSpec | None
        The domain of the last completed round.
    """

    parameters: Any
    iteration_budget: int
    round_index: int = 0
    final_loss: float | None = None
    domain: DomainSpec | None = None


class SolverHandle(Protocol):
    """The interface through which the progressive trainer trains a model."""

    def train(
        self,
        domain: DomainSpec,
        initial_params: Any,
        max_iterations: int,
    ) -> TrainingResult:
        """
        Train on a domain starting from the given parameters.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.
        initial_params : Any
            The starting parameter vector.
        max_iterations : int
            The maximum number of optimizer iterations, at least 1.

        Returns
        -------
        TrainingResult
            The parameters reached and the final loss.
        """
        ...


def validate_schedule(time_checkpoints: Sequence[float], time_max: float) -> None:
    """
    Check that the checkpoints can be used as the final times of the rounds.

    Parameters
    ----------
    time_checkpoints : Sequence[float]
        The final time of each round.
    time_max : float
        The largest allowed final time.

    Raises
    ------
    InvalidScheduleError
        If a checkpoint is not finite or not positive, if the checkpoints are not
        strictly increasing, or if the last one exceeds `time_max`.
    """
    if not (math.isfinite(time_max) and time_max > 0):
        raise InvalidScheduleError(f"time_max must be positive, got {time_max}.")

    previous = 0.0
    for k, t in enumerate(time_checkpoints):
        if not math.isfinite(t):
            raise InvalidScheduleError(f"Checkpoint {k} is not finite: {t}.")
        if t <= previous:
            raise InvalidScheduleError(
                f"Checkpoints must be positive and strictly increasing, "
                f"got {t} after {previous} at position {k}.",
            )
        previous = t

    if time_checkpoints and time_checkpoints[-1] > time_max:
        raise InvalidScheduleError(
            f"Last checkpoint {time_checkpoints[-1]} exceeds time_max {time_max}.",
        )


def validate_budget(
    initial_iteration_budget: int,
    budget_decrement: int,
    min_iterations: int = 1,
) -> None:
    """
    Check the iteration budget of the first round and its per-round decrement.

    Parameters
    ----------
    initial_iteration_budget : int
        The budget of the first round.
    budget_decrement : int
        The reduction of the budget after every round.
    min_iterations : int, optional
        The smallest budget of any round, by default 1.

    Raises
    ------
    NonPositiveBudgetError
        If the initial budget or the minimum budget is smaller than 1.
    InvalidScheduleError
        If the decrement is negative.
    """
    validate_decrement(budget_decrement, min_iterations)

    if initial_iteration_budget < 1:
        raise NonPositiveBudgetError(
            f"The initial iteration budget must be positive, "
            f"got {initial_iteration_budget}.",
        )


def validate_decrement(budget_decrement: int, min_iterations: int = 1) -> None:
    """
    Check the per-round decrement of the budget and its lower bound.

    Parameters
    ----------
    budget_decrement : int
        The reduction of the budget after every round.
    min_iterations : int, optional
        The smallest budget of any round, by default 1.

    Raises
    ------
    NonPositiveBudgetError
        If the minimum budget is smaller than 1.
    InvalidScheduleError
        If the decrement is negative.
    """
    if min_iterations < 1:
        raise NonPositiveBudgetError(
            f"min_iterations must be at least 1, got {min_iterations}.",
        )
    if budget_decrement < 0:
        raise InvalidScheduleError(
            f"The budget decrement must not be negative, got {budget_decrement}.",
        )


def next_budget(budget: int, budget_decrement: int, min_iterations: int = 1) -> int:
    """
    Return the budget of the round after a round run with `budget` iterations.

    Parameters
    ----------
    budget : int
        The current budget.
    budget_decrement : int
        The reduction per round.
    min_iterations : int, optional
        The floor of the budget, by default 1.

    Returns
    -------
    int
        `max(budget - budget_decrement, min_iterations)`.
    """
    return max(budget - budget_decrement, min_iterations)


@dataclass(kw_only=True)
class ProgressiveTrainer:
    """
    Train a solver on time domains of increasing length.

    Attributes
    ----------
    solver : SolverHandle
        The solver that trains the model on one domain.
    space_intervals : Sequence[Interval]
        The spatial box, the same for every round.
    reference : AnalyticSolution
        The analytic solution from which the boundary conditions are derived.
    time_max : float
        The largest final time of any round.
    boundary_condition_builder : BoundaryConditionBuilder
        Builds the boundary conditions from the reference, the spatial box and
        the coordinate names, by default `dirichlet_boundary_conditions`.
    space_names : Sequence[str]
        The names of the spatial coordinates, by default ("x", "y").
    budget_decrement : int
        The reduction of the iteration budget after every round, by default 0.
    min_iterations : int
        The smallest iteration budget of any round, by default 1.
    observer : Observer | None
        Invoked as `observer(round_index, domain, result)` after every round.
    """

    solver: SolverHandle
    space_intervals: Sequence[Interval]
    reference: AnalyticSolution
    time_max: float
    boundary_condition_builder: BoundaryConditionBuilder = field(
        default=dirichlet_boundary_conditions,
    )
    space_names: Sequence[str] = ("x", "y")
    budget_decrement: int = 0
    min_iterations: int = 1
    observer: Observer | None = None

    def __post_init__(self) -> None:
        """Freeze the spatial box and check the constant part of the schedule."""
        self.space_intervals = tuple(self.space_intervals)
        self.space_names = tuple(self.space_names)

        validate_schedule((), self.time_max)
        validate_decrement(self.budget_decrement, self.min_iterations)

    def domain_for(self, time_upper: float) -> DomainSpec:
        """
        Build the domain of a round ending at `time_upper`.

        The boundary conditions are regenerated from the same reference and
        spatial box every time, so only the time interval differs between rounds.

        Parameters
        ----------
        time_upper : float
            The final time of the round.

        Returns
        -------
        DomainSpec
            The domain `(0, time_upper) x space_intervals`.
        """
        if time_upper > self.time_max:
            raise InvalidScheduleError(
                f"Final time {time_upper} exceeds time_max {self.time_max}.",
            )

        return DomainSpec(
            time_interval=Interval(0.0, time_upper),
            space_intervals=tuple(self.space_intervals),
            boundary_conditions=self.boundary_condition_builder(
                self.reference,
                self.space_intervals,
                self.space_names,
            ),
            space_names=tuple(self.space_names),
        )

    def run(
        self,
        time_checkpoints: Sequence[float],
        initial_params: Any,
        initial_iteration_budget: int,
    ) -> TrainingState:
        """
        Train one round per checkpoint, carrying the parameters forward.

        For each checkpoint `t`, in order: build the domain `(0, t)`, train the
        solver from the current parameters with the current budget, keep the
        parameters it returns, reduce the budget and call the observer.

        Parameters
        ----------
        time_checkpoints : Sequence[float]
            The final time of each round, strictly increasing and at most
            `time_max`.
        initial_params : Any
            The parameters the first round starts from.
        initial_iteration_budget : int
            The iteration budget of the first round.

        Returns
        -------
        TrainingState
            The state after the last round. With no checkpoints, the initial
            state.

        Raises
        ------
        InvalidScheduleError
            If the checkpoints are not a valid schedule. Raised before any round.
        NonPositiveBudgetError
            If the initial budget is not positive. Raised before any round.
        SolverFailure
            If a round fails. Its `state` attribute holds the state after the last
            completed round; the remaining checkpoints are not trained.
        """
        time_checkpoints = tuple(time_checkpoints)

        validate_schedule(time_checkpoints, self.time_max)
        validate_budget(
            initial_iteration_budget,
            self.budget_decrement,
            self.min_iterations,
        )

        state = TrainingState(
            parameters=initial_params,
            iteration_budget=initial_iteration_budget,
        )

        for round_index, time_upper in enumerate(time_checkpoints, start=1):
            domain = self.domain_for(time_upper)

            result = self._train_round(round_index, domain, state)

            state = TrainingState(
                parameters=result.parameters,
                iteration_budget=next_budget(
                    state.iteration_budget,
                    self.budget_decrement,
                    self.min_iterations,
                ),
                round_index=round_index,
                final_loss=result.final_loss,
                domain=domain,
            )

            if self.observer is not None:
                self.observer(round_index, domain, result)

        return state

    def _train_round(
        self,
        round_index: int,
        domain: DomainSpec,
        state: TrainingState,
    ) -> TrainingResult:
        try:
            result = self.solver.train(
                domain,
                state.parameters,
                state.iteration_budget,
            )
        except SolverFailure as e:
            e.round_index = round_index
            e.state = state
            raise
        except (RuntimeError, ValueError, ArithmeticError) as e:
            raise SolverFailure(
                f"Round {round_index} (t in [0, {domain.time_interval.upper}]) "
                f"failed: {e}",
                round_index=round_index,
                state=state,
            ) from e

        if not math.isfinite(result.final_loss):
            raise SolverFailure(
                f"Round {round_index} (t in [0, {domain.time_interval.upper}]) "
                f"ended with loss {result.final_loss}.",
                round_index=round_index,
                state=state,
            )

        return result
