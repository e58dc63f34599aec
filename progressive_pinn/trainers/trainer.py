"""
Trainer module.

This module provides the Trainer class that optimizes a model on the PDE of a
single training round.

The Trainer class handles the training loop, including callbacks for monitoring and
logging, as well as stopping criteria to determine when training should end.
"""

import math
from dataclasses import dataclass

import torch

from progressive_pinn.callbacks import Callbacks
from progressive_pinn.gradients import clear
from progressive_pinn.stoppers import Stoppers
from progressive_pinn.trainers.trainer_data import TrainerData
from progressive_pinn.trainers.utilities import is_model_fully_on_device


@dataclass(kw_only=True)
class Trainer:
    """
    A class to manage the training process of a model within one round.

    Attributes
    ----------
    trainer_data : TrainerData
        Contains all training-related data including the model, optimizer, scheduler,
        loss history, and other configuration.
    callbacks : Callbacks | None
        A collection of callbacks that are triggered at specific points during
        training to perform monitoring, logging, or other auxiliary tasks.
    stoppers : Stoppers | None
        A collection of stopping criteria that determine when training should end
        before the iteration budget is exhausted.

    Notes
    -----
    The class uses a closure-based optimization approach compatible with optimizers
    that require it, such as LBFGS.
    """

    trainer_data: TrainerData

    callbacks: Callbacks | None = None

    stoppers: Stoppers | None = None

    def __post_init__(self) -> None:
        """
        Initialize the trainer after construction.

        Initializes the callbacks and the stoppers and checks that the model and
        the collocation points live on the device of the trainer data.
        """
        self.callbacks = self.callbacks or Callbacks(
            trainer_data=self.trainer_data,
            callbacks=[],
        )
        self.callbacks.init()

        self.stoppers = self.stoppers or Stoppers(
            trainer_data=self.trainer_data,
            stoppers=[],
        )
        self.stoppers.init()

        device = self.trainer_data.device

        if not is_model_fully_on_device(self.trainer_data.model, device):
            raise ValueError(f"Model is not fully on device {device}")

        for condition in self.trainer_data.pde.conditions:
            if condition.points.device != torch.device(device):
                raise ValueError(
                    f"Points of condition {condition.name} are not on device {device}",
                )

    @property
    def safe_callbacks(self) -> Callbacks:
        """
        Get the callbacks property with type checking.

        Returns
        -------
        Callbacks
            The callbacks property.
        """
        assert self.callbacks is not None
        return self.callbacks

    @property
    def safe_stoppers(self) -> Stoppers:
        """
        Get the stoppers property with type checking.

        Returns
        -------
        Stoppers
            The stoppers property.
        """
        assert self.stoppers is not None
        return self.stoppers

    def one_train_step(self) -> None:
        """
        Perform a single training step.

        This method executes one iteration of the training loop, which includes:
        - Triggering the beginning of iteration callbacks.
        - Resampling the collocation points, if it is time to do so.
        - Performing an optimization step using the defined optimizer.
        - Recording the training loss.
        - Updating the learning rate scheduler.
        - Triggering the end of iteration callbacks.

        Raises
        ------
        FloatingPointError
            If the training loss is not finite.
        """
        self.safe_callbacks.on_iteration_begin()

        self.trainer_data.pde.resample_conditions(self.trainer_data.iteration)

        self.trainer_data.optimizer.step(self.closure)  # type: ignore[arg-type]

        self.test_on_train()
        self.step_scheduler()

        self.safe_callbacks.on_iteration_end()

    def train(self) -> None:
        """
        Train the model for at most `iterations` optimization steps.

        The training loop continues until the specified number of iterations is
        reached or a stopping criterion is met. The end of training callbacks are
        triggered even if an error interrupts the loop.
        """
        self.safe_callbacks.on_train_begin()

        try:
            while self.trainer_data.iteration < self.trainer_data.iterations:
                self.one_train_step()

                if self.safe_stoppers.should_stop():
                    print("Stopping criteria met.")
                    break

                self.trainer_data.iteration += 1

        finally:
            clear()
            self.safe_callbacks.on_train_end()

    def closure(self) -> torch.Tensor:
        """
        Compute the loss for the closure function.

        This method is used by optimizers that require a closure function. It clears
        the cached derivatives, zeroes the gradients, sets the model to training
        mode, computes the training loss, and performs backpropagation.

        Returns
        -------
        torch.Tensor
            The computed training loss.
        """
        clear()

        self.trainer_data.optimizer.zero_grad()
        self.trainer_data.model.train()

        loss = self.trainer_data.pde.loss_train_for_closure(
            self.trainer_data.model,
        )
        loss.backward()  # type: ignore[no-untyped-call]

        return loss

    def step_scheduler(self) -> None:
        """Step the learning rate scheduler, if there is one."""
        if self.trainer_data.scheduler is None:
            return
        if isinstance(
            self.trainer_data.scheduler,
            torch.optim.lr_scheduler.ReduceLROnPlateau,
        ):
            self.trainer_data.scheduler.step(self.trainer_data.losses_train.last())
        else:
            self.trainer_data.scheduler.step()

    def test_on_train(self) -> None:
        """
        Evaluate the model on the training points and record the loss.

        Raises
        ------
        FloatingPointError
            If the loss is not finite.
        """
        clear()

        self.trainer_data.model.eval()
        loss = self.trainer_data.pde.loss_train(
            self.trainer_data.model,
            self.trainer_data.iteration,
        ).item()

        self.trainer_data.losses_train[self.trainer_data.iteration] = loss

        if not math.isfinite(loss):
            raise FloatingPointError(
                f"Training loss is {loss} at iteration {self.trainer_data.iteration}.",
            )
