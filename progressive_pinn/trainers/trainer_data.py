"""
Trainer data module.

This module provides the data structures for storing and managing the data of
one round of training.

This module provides:
    - TrainerData class for storing and managing training data, including:
        - Model, optimizer and scheduler storage
        - Training loss tracking
        - Iteration counting
        - PDE problem definition storage
"""

from dataclasses import dataclass, field

import torch
from torch.optim.lr_scheduler import LRScheduler

from progressive_pinn.models import PINN
from progressive_pinn.pde import PDE
from progressive_pinn.utilities import DeviceLikeType, LossHistory


@dataclass(kw_only=True)
class TrainerData:
    """
    A class for storing and managing data associated with a trainer.

    Attributes
    ----------
    pde : PDE
        The partial differential equation (PDE) that the model should satisfy.
    iterations : int
        The number of iterations to train the model.
    model : PINN
        The physics-informed neural network (PINN) model.
    optimizer : torch.optim.Optimizer
        The optimizer for training the model.
    scheduler : LRScheduler | torch.optim.lr_scheduler.ReduceLROnPlateau | None
        The learning rate scheduler, by default None.
    device : DeviceLikeType
        The device of the model and of the collocation points.
    iteration : int
        The current iteration number, automatically created.
    losses_train : LossHistory
        The loss values of the training, automatically created.
    """

    pde: PDE

    iterations: int

    model: PINN

    optimizer: torch.optim.Optimizer

    scheduler: LRScheduler | torch.optim.lr_scheduler.ReduceLROnPlateau | None = None

    device: DeviceLikeType = "cpu"

    iteration: int = field(init=False, repr=True, default=0)

    losses_train: LossHistory = field(
        init=False,
        repr=False,
        default_factory=LossHistory,
    )

    def __post_init__(self) -> None:
        """Validate the number of iterations and move the model to the device."""
        if self.iterations <= 0:
            raise ValueError(f"`iterations` must be positive, got {self.iterations}.")

        self.model.to(self.device)
