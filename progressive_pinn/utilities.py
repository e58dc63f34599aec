"""
Define type aliases and small helpers for the progressive-pinn package.

This module provides:
    - Type aliases for devices and parameter vectors (DeviceLikeType, ParameterVector)
    - LossHistory class for recording losses against iteration indices
    - Utility functions:
        - to_numpy: Convert tensors to numpy arrays
        - cartesian_product_of_rows: Compute the Cartesian product of the rows of
        multiple 2D tensors
        - get_parameter_vector: Flatten the parameters of a module
        - set_parameter_vector: Copy a flat vector into the parameters of a module
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np
import torch
from torch import nn

DeviceLikeType = str | torch.device | int

ParameterVector = torch.Tensor


def to_numpy(x: torch.Tensor | np.ndarray) -> np.ndarray:
    """
    Convert an input to a NumPy array.

    If the input is a PyTorch tensor, it is first detached from the computation graph
    and moved to the CPU before being converted to a NumPy array.

    Parameters
    ----------
    x : torch.Tensor | np.ndarray
        The input to be converted to a NumPy array.

    Returns
    -------
    numpy.ndarray
        The converted NumPy array.
    """
    if isinstance(x, torch.Tensor):
        return x.detach().cpu().numpy()
    return np.array(x)


def cartesian_product_of_rows(*tensors: torch.Tensor) -> torch.Tensor:
    """
    Compute the Cartesian product of the rows of multiple 2D tensors.

    Parameters
    ----------
    *tensors : torch.Tensor
        A variable number of 2D tensors.

    Returns
    -------
    torch.Tensor
        A tensor containing all combinations of rows from the input tensors.
        Each row is a concatenation of rows from the input tensors.
    """
    assert len(tensors) > 0

    result = tensors[0]

    for tensor in tensors[1:]:
        repeated_result = result.repeat_interleave(tensor.shape[0], dim=0)
        repeated_tensor = tensor.repeat(result.shape[0], 1)
        result = torch.cat([repeated_result, repeated_tensor], dim=1)

    return result


def get_parameter_vector(module: nn.Module) -> ParameterVector:
    """
    Return a detached copy of the parameters of a module as a flat vector.

    Parameters
    ----------
    module : nn.Module
        The module whose parameters are flattened.

    Returns
    -------
    ParameterVector
        A 1D tensor with all the parameters, in the order of `module.parameters()`.
    """
    return nn.utils.parameters_to_vector(module.parameters()).detach().clone()


def set_parameter_vector(module: nn.Module, vector: ParameterVector) -> None:
    """
    Copy a flat parameter vector into the parameters of a module.

    Parameters
    ----------
    module : nn.Module
        The module to update in place.
    vector : ParameterVector
        A 1D tensor with as many entries as the module has parameters.

    Raises
    ------
    ValueError
        If the size of the vector does not match the number of parameters.
    """
    n = sum(p.numel() for p in module.parameters())

    if vector.dim() != 1 or vector.numel() != n:
        raise ValueError(
            f"Parameter vector of shape {tuple(vector.shape)} does not match the "
            f"{n} parameters of the model.",
        )

    # Copy into the existing storage so the module never aliases `vector`.
    offset = 0
    with torch.no_grad():
        for p in module.parameters():
            n = p.numel()
            p.copy_(vector[offset : offset + n].view_as(p))
            offset += n


@dataclass
class LossHistory:
    """
    Losses recorded against the iteration at which they were computed.

    Attributes
    ----------
    i : list[int]
        The iteration indices.
    v : list[float]
        The loss values.
    """

    i: list[int] = field(default_factory=list)
    v: list[float] = field(default_factory=list)

    def __setitem__(self, index: int, value: float) -> None:
        """
        Append a loss value for the given iteration.

        Parameters
        ----------
        index : int
            The iteration index.
        value : float
            The loss value.
        """
        self.i.append(index)
        self.v.append(float(value))

    def __getitem__(self, index: int) -> float:
        """
        Return the value at a position of the history (not an iteration index).

        Parameters
        ----------
        index : int
            The position in the history, negative values count from the end.

        Returns
        -------
        float
            The stored loss value.
        """
        return self.v[index]

    def __len__(self) -> int:
        """
        Return the number of recorded values.

        Returns
        -------
        int
            The number of recorded values.
        """
        return len(self.v)

    def __iter__(self) -> Iterator[tuple[int, float]]:
        """
        Iterate over `(iteration, value)` pairs.

        Returns
        -------
        Iterator[tuple[int, float]]
            The recorded pairs in insertion order.
        """
        return iter(zip(self.i, self.v, strict=True))

    def last(self) -> float:
        """
        Return the most recent loss value.

        Returns
        -------
        float
            The last recorded loss, or `nan` if nothing has been recorded.
        """
        return self.v[-1] if self.v else float("nan")
