#!/usr/bin/env python3
r"""
Progressive solution of the diffusion equation on a square using a PINN.

.. math::
    u_t = u_{xx} + u_{yy}
    u(t, x, y) = e^{x + y} \cos(x + y + 4 t)

The network is first trained on the whole domain. Then it is retrained on the
time windows [0, 0.1], [0, 0.3], ..., each round starting from the parameters
of the previous one, with 100 fewer iterations per round.
"""

from pathlib import Path

import click
import matplotlib.pyplot as plt

from examples.equations.diffusion_2d.pde import (
    SPACE_INTERVALS,
    T_MAX,
    reference,
    residual,
)
from progressive_pinn.callbacks import (
    CallbackLog,
    ParameterCheckpoint,
    RoundHistory,
    RoundLog,
    RoundObserverLike,
    RoundObservers,
)
from progressive_pinn.config import NetworkConfig, ScheduleConfig, SolverConfig
from progressive_pinn.domain import DomainSpec, Interval
from progressive_pinn.errors import SolverFailure
from progressive_pinn.models import PINN
from progressive_pinn.networks import FeedforwardBuilder
from progressive_pinn.plots import (
    SolutionAnimation,
    animate_solution,
    plot_losses,
    plot_round_losses,
)
from progressive_pinn.progressive import ProgressiveTrainer
from progressive_pinn.solvers import PINNSolver


def train(
    *,
    schedule: ScheduleConfig,
    solver_config: SolverConfig,
    warmup_iterations: int,
    output: Path,
    animate: bool,
) -> None:
    """Train the PINN on the whole domain, then progressively in time."""
    network = NetworkConfig()

    model = PINN(FeedforwardBuilder(network.layer_sizes, network.activation))

    solver = PINNSolver.from_config(
        model=model,
        residual=residual,
        config=solver_config,
        callbacks=[CallbackLog(print_every=100, log_file=output / "train.log")],
    )

    history = RoundHistory()
    observers: list[RoundObserverLike] = [
        RoundLog(log_file=output / "rounds.log"),
        history,
        ParameterCheckpoint(directory=output / "checkpoints"),
    ]
    if animate:
        observers.append(
            SolutionAnimation(
                model=model,
                reference=reference,
                directory=output / "figures",
            ),
        )

    trainer = ProgressiveTrainer(
        solver=solver,
        space_intervals=SPACE_INTERVALS,
        reference=reference,
        time_max=schedule.time_max,
        budget_decrement=schedule.budget_decrement,
        min_iterations=schedule.min_iterations,
        observer=RoundObservers(observers=observers),
    )

    print(f"Warm-up on t in [0, {schedule.time_max}]")
    warmup = solver.train(
        trainer.domain_for(schedule.time_max),
        solver.initial_parameters(),
        warmup_iterations,
    )

    fig, _ = plot_losses(solver.last_trainer_data)
    fig.savefig(output / "warmup_losses.png")
    plt.close(fig)

    try:
        state = trainer.run(
            schedule.time_checkpoints,
            warmup.parameters,
            schedule.initial_iteration_budget,
        )
    except SolverFailure as e:
        if e.state is not None:
            model.set_parameter_vector(e.state.parameters)
            model.save(output / "model_pinn.pt")
        raise click.ClickException(str(e)) from e

    model.set_parameter_vector(state.parameters)
    model.save(output / "model_pinn.pt")

    fig, _ = plot_round_losses(history)
    fig.savefig(output / "round_losses.png")
    plt.close(fig)


def plot_all(output: Path, time_max: float) -> None:
    """Animate the trained solution on the whole domain."""
    model = PINN.load(output / "model_pinn.pt")

    domain = DomainSpec(
        time_interval=Interval(0.0, time_max),
        space_intervals=SPACE_INTERVALS,
    )

    _, _, anime = animate_solution(model, reference, domain)
    plt.show()


@click.command()
@click.option("--plot", is_flag=True, help="Plot instead of training.")
@click.option("--time-max", default=T_MAX, show_default=True, help="Final time.")
@click.option("--first", default=0.1, show_default=True, help="First checkpoint.")
@click.option("--step", default=0.2, show_default=True, help="Checkpoint spacing.")
@click.option("--iterations", default=2500, show_default=True, help="First budget.")
@click.option("--decrement", default=100, show_default=True, help="Budget decrement.")
@click.option("--warmup-iterations", default=2500, show_default=True)
@click.option("--learning-rate", default=1e-2, show_default=True)
@click.option(
    "--sampler",
    type=click.Choice(["sobol", "uniform", "grid"]),
    default="sobol",
    show_default=True,
)
@click.option("--seed", type=int, default=None)
@click.option("--device", default="cpu", show_default=True)
@click.option("--animate/--no-animate", default=True, show_default=True)
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("data/diffusion_2d"),
    show_default=True,
)
def main(
    plot: bool,
    time_max: float,
    first: float,
    step: float,
    iterations: int,
    decrement: int,
    warmup_iterations: int,
    learning_rate: float,
    sampler: str,
    seed: int | None,
    device: str,
    animate: bool,
    output: Path,
) -> None:
    """
    Run the training or plotting.

    Parameters
    ----------
    plot : bool
        If True, run the plotting function.
    """
    if plot:
        plot_all(output, time_max)
        return

    output.mkdir(parents=True, exist_ok=True)

    train(
        schedule=ScheduleConfig.from_range(
            first=first,
            step=step,
            time_max=time_max,
            initial_iteration_budget=iterations,
            budget_decrement=decrement,
        ),
        solver_config=SolverConfig(
            learning_rate=learning_rate,
            sampler=sampler,
            seed=seed,
            device=device,
        ),
        warmup_iterations=warmup_iterations,
        output=output,
        animate=animate,
    )


if __name__ == "__main__":
    main()
