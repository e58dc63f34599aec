"""
Utilities for the trainer module.

This module provides functions for creating optimizers and schedulers for
training models.
"""

from collections.abc import Iterable
from typing import Any

import torch
from torch import optim

from progressive_pinn.utilities import DeviceLikeType


def get_optimizer(
    otype: str,
    parameters: Iterable[torch.nn.Parameter],
    learning_rate: float,
    **kwargs: Any,
) -> optim.Optimizer:
    """
    Create an optimizer based on the given type and parameters.

    Parameters
    ----------
    otype : str
        The type of optimizer to create. Can be 'adam', 'lbfgs' or 'sgd'.
    parameters : Iterable[torch.nn.Parameter]
        The parameters to optimize.
    learning_rate : float
        The initial learning rate for the optimizer.
    **kwargs
        Additional keyword arguments for the optimizer.

    Returns
    -------
    optim.Optimizer
        The created optimizer.
    """
    match otype.lower():
        case "adam":
            return optim.Adam(parameters, lr=learning_rate, **kwargs)
        case "lbfgs":
            return optim.LBFGS(parameters, lr=learning_rate, **kwargs)
        case "sgd":
            return optim.SGD(parameters, lr=learning_rate, **kwargs)
        case _:
            raise ValueError(f"Unknown optimizer type: {otype}")


def get_scheduler(
    stype: str | None,
    optimizer: optim.Optimizer,
    **kwargs: Any,
) -> optim.lr_scheduler.LRScheduler | None:
    """
    Create a learning rate scheduler based on the given type and parameters.

    Parameters
    ----------
    stype : str | None
        The type of scheduler to create. Can be 'step', 'multi', 'exponential' or
        None.
    optimizer : optim.Optimizer
        The optimizer whose learning rate will be scheduled.
    **kwargs
        Additional keyword arguments for the scheduler.

    Returns
    -------
    optim.lr_scheduler.LRScheduler | None
        The created learning rate scheduler, None if `stype` is None.
    """
    match stype:
        case None:
            return None
        case "step":
            return optim.lr_scheduler.StepLR(optimizer, **kwargs)
        case "multi":
            return optim.lr_scheduler.MultiplicativeLR(optimizer, **kwargs)
        case "exponential":
            return optim.lr_scheduler.ExponentialLR(optimizer, **kwargs)
        case _:
            raise ValueError(f"Unknown scheduler type: {stype}")


def is_model_fully_on_device(
    model: torch.nn.Module,
    device: DeviceLikeType,
) -> bool:
    """
    Check if all parameters and buffers of a model are on the specified device.

    Parameters
    ----------
    model : nn.Module
        The model to check.
    device : DeviceLikeType
        The device to check against.

    Returns
    -------
    bool
        True if all parameters and buffers are on the given device, False otherwise.
    """
    target_device = torch.device(device)
    return all(
        t.device == target_device
        for t in list(model.parameters()) + list(model.buffers())
    )
