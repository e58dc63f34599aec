"""
Tests for the domain module.

This module contains tests for the intervals, the domains of the rounds and the
Dirichlet conditions derived from a reference solution.
"""

import math

import numpy as np
import pytest
import torch

from progressive_pinn.domain import (
    DomainSpec,
    Interval,
    dirichlet_boundary_conditions,
)


def reference(points: torch.Tensor) -> torch.Tensor:
    """Return `t + x + y`."""
    return points.sum(dim=1, keepdim=True)


@pytest.mark.parametrize(
    ("lower", "upper"),
    [(1.0, 1.0), (2.0, 1.0), (0.0, math.inf), (math.nan, 1.0)],
)
def test_invalid_interval(lower: float, upper: float) -> None:
    """
    Test that empty or infinite intervals are rejected.

    Parameters
    ----------
    lower : float
        The lower end.
    upper : float
        The upper end.
    """
    with pytest.raises(ValueError):
        Interval(lower, upper)


def test_interval_length() -> None:
    """Test the length of an interval."""
    assert Interval(-1.0, 2.0).length == 3.0


def test_dirichlet_faces() -> None:
    """Test the faces of the box and their coordinates."""
    space = (Interval(0.0, 2.0), Interval(-1.0, 1.0))

    conditions = dirichlet_boundary_conditions(reference, space)

    assert list(conditions) == ["t_min", "x_min", "x_max", "y_min", "y_max"]

    expected = {
        "t_min": (0, 0.0),
        "x_min": (1, 0.0),
        "x_max": (1, 2.0),
        "y_min": (2, -1.0),
        "y_max": (2, 1.0),
    }
    for name, (axis, value) in expected.items():
        assert conditions[name].name == name
        assert conditions[name].axis == axis
        assert conditions[name].value == value


def test_dirichlet_residual() -> None:
    """Test that the residual vanishes on the reference solution."""
    conditions = dirichlet_boundary_conditions(reference, (Interval(0.0, 1.0),), ("x",))

    points = torch.tensor([[0.0, 0.5], [0.2, 1.0]])
    u = reference(points)

    for condition in conditions.values():
        assert torch.equal(condition(points, u), torch.zeros_like(u))
        assert torch.allclose(condition(points, u + 1.0), torch.ones_like(u))


def test_dirichlet_names_must_match() -> None:
    """Test that one coordinate name is needed per interval."""
    with pytest.raises(ValueError):
        dirichlet_boundary_conditions(reference, (Interval(0.0, 1.0),), ("x", "y"))


def test_domain_validation() -> None:
    """Test the validation of the domain."""
    space = (Interval(0.0, 1.0), Interval(0.0, 1.0))

    with pytest.raises(ValueError):
        DomainSpec(time_interval=Interval(0.5, 1.0), space_intervals=space)

    with pytest.raises(ValueError):
        DomainSpec(time_interval=Interval(0.0, 1.0), space_intervals=())

    with pytest.raises(ValueError):
        DomainSpec(
            time_interval=Interval(0.0, 1.0),
            space_intervals=space,
            space_names=("x",),
        )


def test_domain_is_immutable() -> None:
    """Test that the domain and its conditions cannot be changed."""
    space = (Interval(0.0, 1.0), Interval(0.0, 1.0))
    conditions = dirichlet_boundary_conditions(reference, space)

    domain = DomainSpec(
        time_interval=Interval(0.0, 1.0),
        space_intervals=space,
        boundary_conditions=conditions,
    )

    with pytest.raises(AttributeError):
        domain.time_interval = Interval(0.0, 2.0)  # type: ignore[misc]

    with pytest.raises(TypeError):
        domain.boundary_conditions["extra"] = conditions["t_min"]  # type: ignore[index]

    conditions.pop("t_min")
    assert "t_min" in domain.boundary_conditions


def test_domain_bounds_and_copy() -> None:
    """Test the corners of the box and the change of the final time."""
    space = (Interval(0.0, 2.0), Interval(-1.0, 1.0))
    domain = DomainSpec(
        time_interval=Interval(0.0, 0.1),
        space_intervals=space,
        boundary_conditions=dirichlet_boundary_conditions(reference, space),
    )

    lower, upper = domain.bounds()
    assert np.allclose(lower, [0.0, 0.0, -1.0])
    assert np.allclose(upper, [0.1, 2.0, 1.0])
    assert domain.dim == 3

    longer = domain.with_time_upper(0.3)
    assert longer.time_interval == Interval(0.0, 0.3)
    assert longer.space_intervals == domain.space_intervals
    assert dict(longer.boundary_conditions) == dict(domain.boundary_conditions)
    assert domain.time_interval.upper == 0.1
