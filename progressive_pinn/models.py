"""
Provide the physics-informed neural network model.

The model maps space-time points `(t, x_1, ..., x_d)` to the value of the
approximate solution. Its parameters can be exchanged as a single flat vector,
which is how they are carried from one training round to the next.
"""

from pathlib import Path
from typing import Self

import torch
from torch import Tensor, nn

from progressive_pinn.networks import FeedforwardBuilder
from progressive_pinn.utilities import (
    ParameterVector,
    get_parameter_vector,
    set_parameter_vector,
)


class PINN(nn.Module):
    """
    A Physics Informed Neural Network.

    Parameters
    ----------
    network_builder : FeedforwardBuilder
        The network builder.

    Attributes
    ----------
    network : nn.Sequential
        The neural network.
    """

    network_builder: FeedforwardBuilder
    network: nn.Sequential

    def __init__(self, network_builder: FeedforwardBuilder) -> None:
        """
        Initialize the PINN.

        Parameters
        ----------
        network_builder : FeedforwardBuilder
            The network builder.
        """
        super().__init__()

        self.network_builder = network_builder
        self.network = self.network_builder()

    @property
    def in_features(self) -> int:
        """Return the number of input coordinates."""
        return self.network_builder.layer_sizes[0]

    @property
    def num_parameters(self) -> int:
        """Return the total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters())

    def forward(self, x: Tensor) -> tuple[Tensor, Tensor]:
        """
        Compute the output of the neural network for the given input.

        Parameters
        ----------
        x : Tensor
            Space-time points of shape (N, in_features).

        Returns
        -------
        tuple[Tensor, Tensor]
            The input, as used by the network, and the output of shape (N, 1).
        """
        if x.shape[1] != self.in_features:
            raise ValueError(
                f"Input dimensions do not match. Expected {self.in_features}, "
                f"but got {x.shape[1]}.",
            )

        return x, self.network(x)

    def get_parameter_vector(self) -> ParameterVector:
        """
        Return a copy of the parameters as a flat vector.

        Returns
        -------
        ParameterVector
            The parameters of the network.
        """
        return get_parameter_vector(self)

    def set_parameter_vector(self, vector: ParameterVector) -> None:
        """
        Overwrite the parameters with the entries of a flat vector.

        Parameters
        ----------
        vector : ParameterVector
            The new parameters.
        """
        set_parameter_vector(self, vector)

    def save(self, file_path: str | Path) -> None:
        """
        Save the model's state and parameters to a file.

        Parameters
        ----------
        file_path : str | Path
            The path to the file where the model will be saved.
        """
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        torch.save(
            {
                "state_dict": self.state_dict(),
                "layer_sizes": self.network_builder.layer_sizes,
                "activation": self.network_builder.activation_builder.name,
            },
            file_path,
        )

    @classmethod
    def load(cls, file_path: str | Path) -> Self:
        """
        Load a model from a file and return an instance.

        Parameters
        ----------
        file_path : str | Path
            The path to the file from which to load the model.

        Returns
        -------
        PINN
            The loaded model instance.
        """
        checkpoint = torch.load(file_path, weights_only=True)
        model = cls(
            network_builder=FeedforwardBuilder(
                checkpoint["layer_sizes"],
                activation=checkpoint["activation"],
            ),
        )
        model.load_state_dict(checkpoint["state_dict"])
        return model
