"""
Tests for the plots module.

This module contains tests for the evaluation of a model on a grid, the plot of
the round losses and the animation observer.
"""

import matplotlib as mpl

mpl.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402
import torch  # noqa: E402

from progressive_pinn.callbacks import RoundHistory  # noqa: E402
from progressive_pinn.domain import DomainSpec, Interval  # noqa: E402
from progressive_pinn.models import PINN  # noqa: E402
from progressive_pinn.networks import FeedforwardBuilder  # noqa: E402
from progressive_pinn.plots import (  # noqa: E402
    SolutionAnimation,
    evaluate_on_grid,
    plot_round_losses,
)
from progressive_pinn.progressive import TrainingResult  # noqa: E402


def reference(points: torch.Tensor) -> torch.Tensor:
    """Return `t + x + y`."""
    return points.sum(dim=1, keepdim=True)


@pytest.fixture
def domain() -> DomainSpec:
    """Return the domain `[0, 0.5] x [0, 2] x [0, 2]`."""
    return DomainSpec(
        time_interval=Interval(0.0, 0.5),
        space_intervals=(Interval(0.0, 2.0), Interval(0.0, 2.0)),
    )


def test_evaluate_on_grid(domain: DomainSpec) -> None:
    """Test the shapes and the reference values on the grid."""
    model = PINN(FeedforwardBuilder([3, 4, 1]))

    t, x, y, predicted, exact = evaluate_on_grid(
        model,
        reference,
        domain,
        nt=3,
        nx=4,
        ny=5,
    )

    assert t.shape == (3,)
    assert x.shape == (4,)
    assert y.shape == (5,)
    assert predicted.shape == exact.shape == (3, 4, 5)
    assert np.isclose(t[-1], 0.5)
    assert np.isclose(exact[2, 3, 4], 0.5 + 2.0 + 2.0)
    assert np.isclose(exact[0, 0, 0], 0.0)


def test_evaluate_on_grid_requires_two_dimensions() -> None:
    """Test that only domains with two spatial coordinates are supported."""
    domain = DomainSpec(
        time_interval=Interval(0.0, 1.0),
        space_intervals=(Interval(0.0, 1.0),),
        space_names=("x",),
    )

    with pytest.raises(ValueError):
        evaluate_on_grid(PINN(FeedforwardBuilder([2, 4, 1])), reference, domain)


def test_plot_round_losses() -> None:
    """Test the plot of the final loss of every round."""
    history = RoundHistory(rounds=[1, 2], times=[0.1, 0.3], losses=[1e-1, 1e-2])

    fig, ax = plot_round_losses(history)

    assert ax.get_yscale() == "log"
    assert len(ax.lines) == 1
    plt.close(fig)


def test_solution_animation(tmp_path, domain: DomainSpec) -> None:  # noqa: ANN001
    """Test that the observer loads the parameters and saves one file per round."""
    model = PINN(FeedforwardBuilder([3, 4, 1]))
    parameters = torch.zeros(model.num_parameters)

    observer = SolutionAnimation(
        model=model,
        reference=reference,
        directory=tmp_path,
        nt=2,
        nx=4,
        ny=4,
    )
    observer(1, domain, TrainingResult(parameters, 0.5, domain))

    assert observer.saved == [tmp_path / "round_001.gif"]
    assert observer.saved[0].exists()
    assert torch.equal(model.get_parameter_vector(), parameters)
