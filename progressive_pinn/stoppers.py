"""
Defines classes for implementing stopping criteria in training.

A round of training ends when its iteration budget is exhausted or when one of
the stoppers fires. Stoppers are reused from round to round, so their state is
reset by `init` at the start of every round.

This module provides:
    - Stopper class for defining a stopping criterion
    - Stoppers class for managing a list of stoppers
    - TrainingLossStopper class for stopping training based on the improvement of
    training loss
    - LossThresholdStopper class for stopping training once the loss is small enough
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from progressive_pinn.trainers.trainer_data import TrainerData


@dataclass(kw_only=True)
class Stopper(ABC):
    """Abstract base class for defining a stopping criterion."""

    def init(self, trainer_data: TrainerData) -> None:  # noqa: B027
        """
        Reset the state of the stopper at the beginning of a round.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """

    @abstractmethod
    def should_stop(self, trainer_data: TrainerData) -> bool:
        """
        Determine whether training should be stopped.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.

        Returns
        -------
        bool
            True if training should be stopped, False otherwise.
        """
        raise NotImplementedError


@dataclass(kw_only=True)
class Stoppers:
    """
    A list of stoppers responsible for determining when to halt training.

    Attributes
    ----------
    trainer_data : TrainerData
        The trainer data passed to every stopper.
    stoppers : list of Stopper
        A list containing instances of Stopper.
    """

    trainer_data: TrainerData

    stoppers: list[Stopper] = field(default_factory=list)

    def init(self) -> None:
        """Reset each stopper in the list."""
        for stopper in self.stoppers:
            stopper.init(self.trainer_data)

    def should_stop(self) -> bool:
        """
        Check if any stopper in the list signals to stop training.

        Returns
        -------
        bool
            True if any stopper indicates to stop, False otherwise.
        """
        return any(stopper.should_stop(self.trainer_data) for stopper in self.stoppers)


@dataclass(kw_only=True)
class TrainingLossStopper(Stopper):
    """
    Stopper that halts training based on the improvement of training loss.

    Attributes
    ----------
    patience : int
        Number of iterations to wait for an improvement in loss before stopping.
    delta : float
        Minimum change in the monitored loss to qualify as an improvement.
    best_loss : float or None
        The best observed loss value.
    counter : int
        Counts the number of iterations with no improvement.
    """

    patience: int = 5
    delta: float = 0.0
    best_loss: float | None = None
    counter: int = 0

    def init(self, trainer_data: TrainerData) -> None:  # noqa: ARG002
        """
        Forget the losses of the previous round.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """
        self.best_loss = None
        self.counter = 0

    def should_stop(self, trainer_data: TrainerData) -> bool:
        """
        Determine whether training should be stopped based on the training loss.

        If there is no improvement of at least `delta` for `patience` consecutive
        iterations, it signals to stop training.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing training loss history and other information.

        Returns
        -------
        bool
            True if training should be stopped due to lack of improvement in loss,
            False if training should continue.
        """
        loss = trainer_data.losses_train.last()

        if self.best_loss is None or loss < self.best_loss - self.delta:
            self.best_loss = loss
            self.counter = 0
        else:
            self.counter += 1
            if self.counter >= self.patience:
                print("TrainingLossStopper: early stop triggered")
                return True
        return False


@dataclass(kw_only=True)
class LossThresholdStopper(Stopper):
    """
    Stopper that halts training when the training loss drops below a threshold.

    Attributes
    ----------
    threshold : float
        The loss below which training stops.
    """

    threshold: float

    def should_stop(self, trainer_data: TrainerData) -> bool:
        """
        Determine whether the training loss is below the threshold.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing training loss history.

        Returns
        -------
        bool
            True if the last training loss is below the threshold.
        """
        if trainer_data.losses_train.last() < self.threshold:
            print(f"LossThresholdStopper: loss below {self.threshold:.1e}")
            return True
        return False
