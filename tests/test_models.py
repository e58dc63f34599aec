"""
Unit tests for the models module.

This module contains unit tests for the PINN model and its network builder.
"""

from typing import Any
from unittest.mock import MagicMock

import pytest
import torch

from progressive_pinn.models import PINN
from progressive_pinn.networks import ActivationBuilder, FeedforwardBuilder


class MockModule(torch.nn.Module):
    """
    A mock torch.nn.Module for testing.

    It records the calls of its forward method and returns a fixed value.

    Parameters
    ----------
    return_value : torch.Tensor
        The value to be returned by the mock forward method.
    """

    def __init__(self, return_value: torch.Tensor) -> None:
        super().__init__()
        self._mock = MagicMock()
        self._mock.return_value = return_value

    def forward(self, *args: Any, **kwargs: Any) -> torch.Tensor:
        """
        Mock the forward method.

        Parameters
        ----------
        *args : Any
            Positional arguments passed to the forward method.
        **kwargs : Any
            Keyword arguments passed to the forward method.

        Returns
        -------
        torch.Tensor
            The mock return value.
        """
        return self._mock(*args, **kwargs)


def test_pinn_forward() -> None:
    """Test that the model returns its input and the output of the network."""
    model = PINN(network_builder=FeedforwardBuilder([3, 4, 1]))

    x = torch.rand((10, 3))
    y = torch.arange(10, dtype=torch.float32).view(-1, 1)
    model.network = MockModule(y)

    z, u = model(x)

    assert z is x
    assert torch.equal(u, y)
    model.network._mock.assert_called_once_with(x)


def test_pinn_input_dimension() -> None:
    """Test that an input with the wrong number of coordinates is rejected."""
    model = PINN(network_builder=FeedforwardBuilder([3, 4, 1]))

    with pytest.raises(ValueError):
        model(torch.rand((10, 2)))


def test_feedforward_builder() -> None:
    """Test the layers of the diffusion network."""
    network = FeedforwardBuilder([3, 25, 25, 25, 25, 1], activation="sigmoid")()

    linear = [m for m in network if isinstance(m, torch.nn.Linear)]
    assert [m.in_features for m in linear] == [3, 25, 25, 25, 25]
    assert [m.out_features for m in linear] == [25, 25, 25, 25, 1]
    assert sum(isinstance(m, torch.nn.Sigmoid) for m in network) == 4
    assert all(torch.all(m.bias == 0) for m in linear)


def test_feedforward_builder_validation() -> None:
    """Test the validation of the layer sizes and of the activation."""
    with pytest.raises(ValueError):
        FeedforwardBuilder([3, 1])

    with pytest.raises(ValueError):
        FeedforwardBuilder([3, 0, 1])

    with pytest.raises(ValueError):
        ActivationBuilder("softsign")


def test_save_and_load(tmp_path) -> None:  # noqa: ANN001
    """Test that a saved model is loaded with the same parameters."""
    model = PINN(network_builder=FeedforwardBuilder([3, 6, 1], activation="sigmoid"))

    model.save(tmp_path / "model.pt")
    loaded = PINN.load(tmp_path / "model.pt")

    assert loaded.network_builder.layer_sizes == [3, 6, 1]
    assert torch.equal(loaded.get_parameter_vector(), model.get_parameter_vector())

    x = torch.rand((5, 3))
    assert torch.allclose(loaded(x)[1], model(x)[1])
