"""
Provide the hooks invoked during training.

Two kinds of hooks exist. A `Callback` is invoked by the inner `Trainer` during
the optimization of a single round. A `RoundObserver` is invoked by the
`ProgressiveTrainer` once after every completed round, with the signature
`observer(round_index, domain, result)`; any callable with that signature can be
used as an observer.

The `Callback` design is a modification of the `callbacks` module of `deepxde`.
Original source: https://github.com/lululxvi/deepxde
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import torch

if TYPE_CHECKING:
    from progressive_pinn.domain import DomainSpec
    from progressive_pinn.progressive import TrainingResult
    from progressive_pinn.trainers.trainer_data import TrainerData


@dataclass(kw_only=True)
class Callback:
    """
    Base class used to build new callbacks.

    Notes
    -----
    In order to activate the callbacks, pass them to the solver. Every method
    receives the `TrainerData` of the round being trained.
    """

    def init(self, trainer_data: TrainerData) -> None:
        """
        Initialize the callback at the beginning of a round.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """

    def on_iteration_begin(self, trainer_data: TrainerData) -> None:
        """
        Call at the beginning of every iteration.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """

    def on_iteration_end(self, trainer_data: TrainerData) -> None:
        """
        Call at the end of every iteration.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """

    def on_train_begin(self, trainer_data: TrainerData) -> None:
        """
        Call at the beginning of the training of a round.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """

    def on_train_end(self, trainer_data: TrainerData) -> None:
        """
        Call at the end of the training of a round.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """


@dataclass(kw_only=True)
class Callbacks:
    """
    List of callbacks to be executed at specific points during training.

    Attributes
    ----------
    callbacks : list[Callback]
        A list of callbacks to be executed. The list can be empty.
    trainer_data : TrainerData
        The trainer data passed to every callback.
    """

    callbacks: list[Callback]
    trainer_data: TrainerData

    def init(self) -> None:
        """Initialize each callback in the list."""
        for callback in self.callbacks:
            callback.init(self.trainer_data)

    def on_iteration_begin(self) -> None:
        """Call at the beginning of every iteration."""
        for callback in self.callbacks:
            callback.on_iteration_begin(self.trainer_data)

    def on_iteration_end(self) -> None:
        """Call at the end of every iteration."""
        for callback in self.callbacks:
            callback.on_iteration_end(self.trainer_data)

    def on_train_begin(self) -> None:
        """Call at the beginning of the training of a round."""
        for callback in self.callbacks:
            callback.on_train_begin(self.trainer_data)

    def on_train_end(self) -> None:
        """Call at the end of the training of a round."""
        for callback in self.callbacks:
            callback.on_train_end(self.trainer_data)


def _write_line(line: str, log_file: str | Path | None) -> None:
    print(line)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a") as f:
            f.write(line + "\n")


@dataclass
class CallbackLog(Callback):
    """
    Callback for logging training progress.

    This callback prints training information at regular intervals during training,
    including iteration number, loss value, gradient norm, and learning rate.

    Attributes
    ----------
    print_every : int, default=100
        Number of iterations between logging outputs.
    show_grad_norm : bool, default=True
        Whether to show gradient norm in the output.
    show_lr : bool, default=True
        Whether to show learning rate in the output.
    log_file : str | Path | None, default=None
        Path to file for saving logs. If None, logs are only printed to stdout.
    """

    print_every: int = 100
    show_grad_norm: bool = True
    show_lr: bool = True
    log_file: str | Path | None = None

    def on_iteration_end(self, trainer_data: TrainerData) -> None:
        """
        Print the loss every `print_every` iterations and at the last iteration.

        Parameters
        ----------
        trainer_data : TrainerData
            The trainer data containing the data of the trainer.
        """
        if (
            trainer_data.iteration % self.print_every != 0
            and trainer_data.iteration != trainer_data.iterations - 1
        ):
            return

        i = trainer_data.losses_train.i[-1]
        v = trainer_data.losses_train.v[-1]

        grad_str = ""
        if self.show_grad_norm:
            grad = sum(
                (
                    param.grad.norm().item()
                    for param in trainer_data.model.parameters()
                    if param.grad is not None
                ),
                0.0,
            )
            grad_str = f"(grad: {grad:.2e})"

        lr_str = ""
        if self.show_lr:
            lr = trainer_data.optimizer.param_groups[0]["lr"]
            lr_str = f"(lr: {lr:.2e})"

        _write_line(f"{i:10}: {v:.5e} {grad_str} {lr_str}", self.log_file)


class RoundObserver:
    """
    Base class of the observers invoked after every training round.

    Subclasses override `__call__`. The return value is ignored by the
    `ProgressiveTrainer`.
    """

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Observe a completed round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """


RoundObserverLike = Callable[[int, "DomainSpec", "TrainingResult"], object]


@dataclass
class RoundObservers(RoundObserver):
    """
    Invoke several observers in order.

    Attributes
    ----------
    observers : Sequence[RoundObserverLike]
        The observers, invoked in the given order.
    """

    observers: Sequence[RoundObserverLike] = field(default_factory=list)

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Invoke every observer with the outcome of the round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """
        for observer in self.observers:
            observer(round_index, domain, result)


@dataclass
class RoundLog(RoundObserver):
    """
    Print one line per completed round.

    Attributes
    ----------
    log_file : str | Path | None, default=None
        Path to file for saving logs. If None, logs are only printed to stdout.
    """

    log_file: str | Path | None = None

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Print the final time of the round and its final loss.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """
        _write_line(
            f"round {round_index:3}: t in [0, {domain.time_interval.upper:.3f}]  "
            f"loss: {result.final_loss:.5e}",
            self.log_file,
        )


@dataclass
class RoundHistory(RoundObserver):
    """
    Collect the final time and final loss of every round.

    Attributes
    ----------
    rounds : list[int]
        The indices of the observed rounds.
    times : list[float]
        The final time of each round.
    losses : list[float]
        The final loss of each round.
    """

    rounds: list[int] = field(default_factory=list)
    times: list[float] = field(default_factory=list)
    losses: list[float] = field(default_factory=list)

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Record the round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """
        self.rounds.append(round_index)
        self.times.append(domain.time_interval.upper)
        self.losses.append(result.final_loss)


@dataclass
class ParameterCheckpoint(RoundObserver):
    """
    Save the parameter vector reached at the end of every round.

    Files are named `round_<index>.pt` and contain the round index, the final
    time, the final loss and the parameters.

    Attributes
    ----------
    directory : str | Path
        The directory of the checkpoints, created if missing.
    """

    directory: str | Path = "data/checkpoints"

    def path(self, round_index: int) -> Path:
        """
        Return the file of the checkpoint of a round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.

        Returns
        -------
        Path
            The checkpoint file.
        """
        return Path(self.directory) / f"round_{round_index:03}.pt"

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Save the parameters of the round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """
        path = self.path(round_index)
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(
            {
                "round": round_index,
                "time_upper": domain.time_interval.upper,
                "final_loss": result.final_loss,
                "parameters": torch.as_tensor(result.parameters).detach().cpu(),
            },
            path,
        )
