"""
Configuration of a progressive training run.

This module provides:
    - ScheduleConfig: the time checkpoints and the iteration budgets.
    - NetworkConfig: the architecture of the network.
    - SolverConfig: the optimizer and the collocation sampling of every round.
"""

from dataclasses import dataclass, field
from typing import Self

import numpy as np

from progressive_pinn.progressive import (
    next_budget,
    validate_budget,
    validate_schedule,
)


@dataclass(kw_only=True)
class ScheduleConfig:
    """
    The rounds of a progressive run.

    Attributes
    ----------
    time_max : float
        The final time of the full domain.
    time_checkpoints : tuple[float, ...]
        The final time of each round.
    initial_iteration_budget : int
        The iteration budget of the first round.
    budget_decrement : int
        The reduction of the budget after every round.
    min_iterations : int
        The smallest budget of any round.
    """

    time_max: float
    time_checkpoints: tuple[float, ...]
    initial_iteration_budget: int
    budget_decrement: int = 0
    min_iterations: int = 1

    def __post_init__(self) -> None:
        """Validate the schedule and the budgets."""
        self.time_checkpoints = tuple(float(t) for t in self.time_checkpoints)
        validate_schedule(self.time_checkpoints, self.time_max)
        validate_budget(
            self.initial_iteration_budget,
            self.budget_decrement,
            self.min_iterations,
        )

    @classmethod
    def from_range(
        cls,
        *,
        first: float,
        step: float,
        time_max: float,
        initial_iteration_budget: int,
        budget_decrement: int = 0,
        min_iterations: int = 1,
        include_time_max: bool = False,
    ) -> Self:
        """
        Create a schedule with evenly spaced checkpoints.

        The checkpoints are `first, first + step, ...` up to `time_max`.

        Parameters
        ----------
        first : float
            The first checkpoint.
        step : float
            The distance between consecutive checkpoints, positive.
        time_max : float
            The final time of the full domain.
        initial_iteration_budget : int
            The iteration budget of the first round.
        budget_decrement : int, optional
            The reduction of the budget after every round, by default 0.
        min_iterations : int, optional
            The smallest budget of any round, by default 1.
        include_time_max : bool, optional
            Append `time_max` if it is not already the last checkpoint.

        Returns
        -------
        ScheduleConfig
            The schedule.
        """
        if step <= 0:
            raise ValueError(f"`step` must be positive, got {step}.")

        n = int(np.floor((time_max - first) / step + 1e-9)) + 1
        checkpoints = [round(first + k * step, 12) for k in range(max(n, 0))]

        if include_time_max and (not checkpoints or checkpoints[-1] < time_max):
            checkpoints.append(time_max)

        return cls(
            time_max=time_max,
            time_checkpoints=tuple(checkpoints),
            initial_iteration_budget=initial_iteration_budget,
            budget_decrement=budget_decrement,
            min_iterations=min_iterations,
        )

    def budgets(self) -> list[int]:
        """
        Return the iteration budget of every round.

        Returns
        -------
        list[int]
            One budget per checkpoint.
        """
        budgets = []
        budget = self.initial_iteration_budget
        for _ in self.time_checkpoints:
            budgets.append(budget)
            budget = next_budget(budget, self.budget_decrement, self.min_iterations)
        return budgets


@dataclass(kw_only=True)
class NetworkConfig:
    """
    The architecture of the feed-forward network.

    Attributes
    ----------
    in_features : int
        The number of inputs, time included.
    hidden : list[int]
        The width of every hidden layer.
    out_features : int
        The number of outputs.
    activation : str
        The activation function of the hidden layers.
    """

    in_features: int = 3
    hidden: list[int] = field(default_factory=lambda: [25, 25, 25, 25])
    out_features: int = 1
    activation: str = "sigmoid"

    @property
    def layer_sizes(self) -> list[int]:
        """Return the number of features of every layer."""
        return [self.in_features, *self.hidden, self.out_features]


@dataclass(kw_only=True)
class SolverConfig:
    """
    The optimization and sampling settings of every round.

    Attributes
    ----------
    optimizer : str
        The optimizer type, see `get_optimizer`.
    learning_rate : float
        The learning rate.
    sampler : str
        The sampler type, see `get_sampler`.
    n_interior : int
        The number of residual points.
    n_boundary : int
        The number of points per boundary face.
    resample_every : int | None
        The number of iterations between resampling the points.
    seed : int | None
        The seed of the sampler.
    device : str
        The device of the model and of the points.
    """

    optimizer: str = "adam"
    learning_rate: float = 1e-2
    sampler: str = "sobol"
    n_interior: int = 3000
    n_boundary: int = 300
    resample_every: int | None = None
    seed: int | None = None
    device: str = "cpu"

    def __post_init__(self) -> None:
        """Check the numerical settings."""
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}.",
            )
        if self.n_interior <= 0 or self.n_boundary <= 0:
            raise ValueError("The number of sampled points must be positive.")
