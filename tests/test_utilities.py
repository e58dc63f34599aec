"""
Tests for the utilities module.

This module contains tests for the parameter vectors, the loss history and the
Cartesian product of rows.
"""

import math

import numpy as np
import pytest
import torch

from progressive_pinn.models import PINN
from progressive_pinn.networks import FeedforwardBuilder
from progressive_pinn.utilities import (
    LossHistory,
    cartesian_product_of_rows,
    get_parameter_vector,
    set_parameter_vector,
    to_numpy,
)


def test_parameter_vector() -> None:
    """Test that a parameter vector can be written and read back."""
    model = PINN(FeedforwardBuilder([3, 5, 1]))

    n = 3 * 5 + 5 + 5 * 1 + 1
    assert model.num_parameters == n

    vector = get_parameter_vector(model)
    assert vector.shape == (n,)
    assert not vector.requires_grad

    new = torch.arange(n, dtype=torch.float32)
    set_parameter_vector(model, new)

    assert torch.equal(get_parameter_vector(model), new)
    assert torch.equal(model.network[0].bias, new[15:20])

    # The returned vector is a copy.
    vector[0] = 100.0
    assert get_parameter_vector(model)[0] == 0.0


def test_parameter_vector_size_mismatch() -> None:
    """Test that a vector of the wrong size is rejected."""
    model = PINN(FeedforwardBuilder([3, 5, 1]))

    with pytest.raises(ValueError):
        set_parameter_vector(model, torch.zeros(3))

    with pytest.raises(ValueError):
        set_parameter_vector(model, torch.zeros((1, model.num_parameters)))


def test_loss_history() -> None:
    """Test the recording of losses."""
    history = LossHistory()

    assert len(history) == 0
    assert math.isnan(history.last())

    for i in range(0, 50, 10):
        history[i] = 2 * i + 1

    assert len(history) == 5
    assert history.i == [0, 10, 20, 30, 40]
    assert history[-1] == history.last() == 81
    assert history[1] == 21
    assert list(history)[2] == (20, 41.0)


def test_cartesian_product_of_rows() -> None:
    """Test the Cartesian product of the rows of two tensors."""
    a = torch.tensor([[1.0], [2.0]])
    b = torch.tensor([[3.0, 4.0], [5.0, 6.0], [7.0, 8.0]])

    c = cartesian_product_of_rows(a, b)

    assert c.shape == (6, 3)
    assert torch.equal(c[0], torch.tensor([1.0, 3.0, 4.0]))
    assert torch.equal(c[2], torch.tensor([1.0, 7.0, 8.0]))
    assert torch.equal(c[3], torch.tensor([2.0, 3.0, 4.0]))


def test_to_numpy() -> None:
    """Test the conversion of tensors to arrays."""
    x = torch.ones(3, requires_grad=True)

    assert np.array_equal(to_numpy(x), np.ones(3))
    assert np.array_equal(to_numpy([1, 2]), np.array([1, 2]))


def test_parameter_vector_is_copied() -> None:
    """Test that the module does not share memory with the vector it was given."""
    model = PINN(FeedforwardBuilder([3, 5, 1]))

    vector = torch.zeros(model.num_parameters)
    set_parameter_vector(model, vector)

    with torch.no_grad():
        for p in model.parameters():
            p.add_(1.0)

    assert torch.equal(vector, torch.zeros(model.num_parameters))
    assert torch.equal(get_parameter_vector(model), torch.ones(model.num_parameters))
