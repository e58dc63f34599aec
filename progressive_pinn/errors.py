"""
Exceptions raised by the progressive training loop.

This module provides:
    - ProgressiveTrainingError: base class of all the errors below.
    - InvalidScheduleError: the time checkpoints cannot be used as a curriculum.
    - NonPositiveBudgetError: the iteration budget is not a positive integer.
    - SolverFailure: the solver could not complete a training round.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from progressive_pinn.progressive import TrainingState


class ProgressiveTrainingError(Exception):
    """Base class for the errors of the progressive-pinn package."""


class InvalidScheduleError(ProgressiveTrainingError, ValueError):
    """
    Raised when a checkpoint schedule is not usable.

    The checkpoints must be finite, positive, strictly increasing and not larger
    than the final time of the domain. The budget decrement must not be negative.
    """


class NonPositiveBudgetError(ProgressiveTrainingError, ValueError):
    """Raised when an iteration budget would be zero or negative."""


class SolverFailure(ProgressiveTrainingError, RuntimeError):
    """
    Raised when a training round fails inside the solver.

    Attributes
    ----------
    round_index : int | None
        The (1-based) round in which the failure happened, if known.
    state : TrainingState | None
        The state after the last successfully completed round, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        round_index: int | None = None,
        state: TrainingState | None = None,
    ) -> None:
        """
        Initialize the failure.

        Parameters
        ----------
        message : str
            Description of the failure.
        round_index : int | None, optional
            The round in which the failure happened.
        state : TrainingState | None, optional
            The state after the last successfully completed round.
        """
        super().__init__(message)
        self.round_index = round_index
        self.state = state
