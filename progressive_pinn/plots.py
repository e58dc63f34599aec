"""
Module for plotting functions.

The functions in this module are used for visualization of the results of
the training process.

This module provides:
    - set_log_scale_with_latex: Apply log scale with LaTeX-style tick labels.
    - plot_losses: Plot the total loss and the loss of each condition of a round.
    - plot_round_losses: Plot the final loss of every round against its final time.
    - evaluate_on_grid: Evaluate a model and a reference solution on a grid.
    - animate_solution: Animate the predicted, analytic and error surfaces over time.
    - SolutionAnimation: Observer that saves the animation after every round.
"""

from dataclasses import dataclass, field
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import torch
from matplotlib import animation
from matplotlib.ticker import LogFormatterMathtext

from progressive_pinn.callbacks import RoundHistory, RoundObserver
from progressive_pinn.domain import AnalyticSolution, DomainSpec
from progressive_pinn.models import PINN
from progressive_pinn.progressive import TrainingResult
from progressive_pinn.trainers.trainer_data import TrainerData
from progressive_pinn.utilities import cartesian_product_of_rows, to_numpy


def set_log_scale_with_latex(
    ax: plt.Axes,
    axis: str = "y",
    label_only_base: bool = False,
) -> None:
    """
    Apply log scale with LaTeX-style tick labels (e.g., $10^{-2}$).

    Parameters
    ----------
    ax : matplotlib.axes.Axes
        The axes to apply the log scale to.
    axis : str, optional
        The axis to apply the log scale to ('x' or 'y'). Default is 'y'.
    label_only_base : bool, optional
        Whether to label only the base of the log scale. Default is False.
    """
    formatter = LogFormatterMathtext()
    formatter.labelOnlyBase = label_only_base

    if axis == "y":
        ax.set_yscale("log")
        ax.yaxis.set_major_formatter(formatter)
    elif axis == "x":
        ax.set_xscale("log")
        ax.xaxis.set_major_formatter(formatter)


def plot_losses(
    trainer_data: TrainerData,
    figsize: tuple = (20, 10),
) -> tuple[plt.Figure, np.ndarray]:
    """
    Plot the total training loss and the loss of each condition of a round.

    Parameters
    ----------
    trainer_data : TrainerData
        The trainer_data that was used for training.
    figsize : tuple, optional
        The size of the figure. Defaults to (20, 10).

    Returns
    -------
    fig : matplotlib.figure.Figure
        The figure.
    ax : np.ndarray
        The axes.
    """
    fig, ax = plt.subplots(1, 2, figsize=figsize)

    ax[0].set_title("Total loss")
    ax[0].plot(trainer_data.losses_train.i, trainer_data.losses_train.v, label="train")

    ax[1].set_title("Train losses per condition")
    for c in trainer_data.pde.conditions:
        ax[1].plot(c.loss.i, c.loss.v, label=c.name)

    for a in ax:
        set_log_scale_with_latex(a)
        a.set_xlabel("Iteration")
        a.grid()
        a.legend()

    return fig, ax


def plot_round_losses(
    history: RoundHistory,
    figsize: tuple = (10, 6),
) -> tuple[plt.Figure, plt.Axes]:
    """
    Plot the final loss of every round against the final time of its domain.

    Parameters
    ----------
    history : RoundHistory
        The observer that collected the rounds.
    figsize : tuple, optional
        The size of the figure. Defaults to (10, 6).

    Returns
    -------
    fig : matplotlib.figure.Figure
        The figure.
    ax : matplotlib.axes.Axes
        The axes.
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.plot(history.times, history.losses, "o-", linewidth=2)
    for k, t, v in zip(history.rounds, history.times, history.losses, strict=True):
        ax.annotate(f"{k}", (t, v), textcoords="offset points", xytext=(0, 6))

    ax.set_title("Final loss per round")
    ax.set_xlabel("Final time of the round")
    ax.set_ylabel("Loss")
    set_log_scale_with_latex(ax)
    ax.grid(True)

    return fig, ax


def evaluate_on_grid(
    model: PINN,
    reference: AnalyticSolution,
    domain: DomainSpec,
    nt: int = 20,
    nx: int = 50,
    ny: int = 50,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Evaluate a model and a reference solution on a regular space-time grid.

    Only domains with two spatial coordinates are supported.

    Parameters
    ----------
    model : PINN
        The trained model.
    reference : AnalyticSolution
        The analytic solution.
    domain : DomainSpec
        The domain to cover.
    nt, nx, ny : int, optional
        The number of grid points per coordinate.

    Returns
    -------
    t, x, y : np.ndarray
        The grid coordinates.
    predicted, exact : np.ndarray
        The model output and the reference, of shape (nt, nx, ny).
    """
    if len(domain.space_intervals) != 2:
        raise ValueError("Only domains with two spatial coordinates can be plotted.")

    ti, xi, yi = domain.intervals
    device = next(model.parameters()).device

    t = torch.linspace(ti.lower, ti.upper, nt)[:, None]
    x = torch.linspace(xi.lower, xi.upper, nx)[:, None]
    y = torch.linspace(yi.lower, yi.upper, ny)[:, None]

    points = cartesian_product_of_rows(t, x, y).to(device)

    model.eval()
    with torch.no_grad():
        _, u = model(points)
        u_exact = reference(points)

    predicted = to_numpy(u).reshape(nt, nx, ny)
    exact = to_numpy(u_exact).reshape(nt, nx, ny)

    return (
        to_numpy(t).squeeze(-1),
        to_numpy(x).squeeze(-1),
        to_numpy(y).squeeze(-1),
        predicted,
        exact,
    )


def animate_solution(
    model: PINN,
    reference: AnalyticSolution,
    domain: DomainSpec,
    nt: int = 20,
    nx: int = 50,
    ny: int = 50,
    interval: int = 200,
    figsize: tuple = (18, 5),
) -> tuple[plt.Figure, np.ndarray, animation.FuncAnimation]:
    """
    Animate the predicted, analytic and absolute error surfaces over time.

    Parameters
    ----------
    model : PINN
        The trained model.
    reference : AnalyticSolution
        The analytic solution.
    domain : DomainSpec
        The domain to cover.
    nt, nx, ny : int, optional
        The number of grid points per coordinate; `nt` is the number of frames.
    interval : int, optional
        The delay between frames in milliseconds.
    figsize : tuple, optional
        The size of the figure.

    Returns
    -------
    tuple[plt.Figure, np.ndarray, animation.FuncAnimation]
        The figure, axes, and animation.
    """
    t, x, y, predicted, exact = evaluate_on_grid(model, reference, domain, nt, nx, ny)
    error = np.abs(predicted - exact)

    fig, axs = plt.subplots(1, 3, figsize=figsize)

    extent = (float(x[0]), float(x[-1]), float(y[0]), float(y[-1]))
    vmin = min(predicted.min(), exact.min())
    vmax = max(predicted.max(), exact.max())

    panels = []
    for ax, data, title, limits in (
        (axs[0], predicted, "Predicted", (vmin, vmax)),
        (axs[1], exact, "Analytic", (vmin, vmax)),
        (axs[2], error, "Absolute error", (0.0, error.max())),
    ):
        image = ax.imshow(
            data[0].T,
            origin="lower",
            extent=extent,
            vmin=limits[0],
            vmax=limits[1],
            cmap="viridis",
            aspect="auto",
        )
        fig.colorbar(image, ax=ax)
        ax.set_title(title)
        ax.set_xlabel(domain.space_names[0])
        ax.set_ylabel(domain.space_names[1])
        panels.append((image, data))

    suptitle = fig.suptitle(f"t = {t[0]:.3f}")

    def animate(i: int) -> list:
        """
        Show the `i`-th time slice.

        Parameters
        ----------
        i : int
            The index of the frame.

        Returns
        -------
        list
            The updated artists.
        """
        for image, data in panels:
            image.set_data(data[i].T)
        suptitle.set_text(f"t = {t[i]:.3f}")
        return [image for image, _ in panels]

    anime = animation.FuncAnimation(
        fig,
        animate,
        frames=len(t),
        interval=interval,
        blit=False,
    )

    return fig, axs, anime


@dataclass
class SolutionAnimation(RoundObserver):
    """
    Save an animation of the solution after every round.

    The parameters of the round are loaded into `model`, and the animation
    covers the domain of the round. Files are named `round_<index>.gif`.

    Attributes
    ----------
    model : PINN
        The model to evaluate.
    reference : AnalyticSolution
        The analytic solution.
    directory : str | Path
        The output directory, created if missing.
    nt, nx, ny : int
        The grid resolution.
    fps : int
        Frames per second of the saved file.
    saved : list[Path]
        The files written so far.
    """

    model: PINN
    reference: AnalyticSolution
    directory: str | Path = "figures"
    nt: int = 20
    nx: int = 50
    ny: int = 50
    fps: int = 5
    saved: list[Path] = field(default_factory=list)

    def __call__(
        self,
        round_index: int,
        domain: DomainSpec,
        result: TrainingResult,
    ) -> None:
        """
        Render and save the animation of a round.

        Parameters
        ----------
        round_index : int
            The 1-based index of the round.
        domain : DomainSpec
            The domain on which the round was trained.
        result : TrainingResult
            The outcome of the round.
        """
        self.model.set_parameter_vector(torch.as_tensor(result.parameters))

        fig, _, anime = animate_solution(
            self.model,
            self.reference,
            domain,
            nt=self.nt,
            nx=self.nx,
            ny=self.ny,
        )

        path = Path(self.directory) / f"round_{round_index:03}.gif"
        path.parent.mkdir(parents=True, exist_ok=True)
        anime.save(path, writer=animation.PillowWriter(fps=self.fps))
        plt.close(fig)

        self.saved.append(path)
