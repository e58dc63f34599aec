"""
Solvers that train a PINN on the domain of one round.

`PINNSolver` implements the `SolverHandle` protocol of the progressive trainer
with torch: it loads a flat parameter vector into the model, builds the PDE of
the round from the domain, optimizes it with a fresh optimizer for at most the
given number of iterations, and returns the flat parameter vector it reached.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import torch

from progressive_pinn.callbacks import Callback, Callbacks
from progressive_pinn.config import SolverConfig
from progressive_pinn.domain import DomainSpec
from progressive_pinn.errors import SolverFailure
from progressive_pinn.models import PINN
from progressive_pinn.pde import PDE, PDEResidual
from progressive_pinn.progressive import TrainingResult
from progressive_pinn.sampling import Sampler, SobolSampler, get_sampler
from progressive_pinn.stoppers import Stopper, Stoppers
from progressive_pinn.trainers.trainer import Trainer
from progressive_pinn.trainers.trainer_data import TrainerData
from progressive_pinn.trainers.utilities import get_optimizer, get_scheduler
from progressive_pinn.utilities import DeviceLikeType, ParameterVector


@dataclass(kw_only=True)
class PINNSolver:
    """
    Train a PINN on a domain, starting from a given parameter vector.

    Attributes
    ----------
    model : PINN
        The network. Its parameters are overwritten at the start of every round.
    residual : PDEResidual
        The residual of the equation.
    sampler : Sampler
        The collocation sampler.
    optimizer : str
        The optimizer type, see `get_optimizer`, by default "adam".
    learning_rate : float
        The learning rate, by default 1e-2.
    optimizer_kwargs : Mapping[str, Any]
        Additional keyword arguments for the optimizer.
    scheduler : str | None
        The scheduler type, see `get_scheduler`, by default None.
    scheduler_kwargs : Mapping[str, Any]
        Additional keyword arguments for the scheduler.
    loss_weights : Mapping[str, float] | None
        The weight of each condition, keyed by condition name ("pde", "t_min",
        "x_min", ...).
    resample_every : int | None
        The number of iterations between resampling the collocation points.
    callbacks : Sequence[Callback]
        Callbacks of the inner training loop.
    stoppers : Sequence[Stopper]
        Early stopping criteria of the inner training loop.
    device : DeviceLikeType
        The device of the model and of the points.
    last_trainer_data : TrainerData | None
        The trainer data of the most recent round.
    """

    model: PINN
    residual: PDEResidual
    sampler: Sampler = field(default_factory=SobolSampler)
    optimizer: str = "adam"
    learning_rate: float = 1e-2
    optimizer_kwargs: Mapping[str, Any] = field(default_factory=dict)
    scheduler: str | None = None
    scheduler_kwargs: Mapping[str, Any] = field(default_factory=dict)
    loss_weights: Mapping[str, float] | None = None
    resample_every: int | None = None
    callbacks: Sequence[Callback] = ()
    stoppers: Sequence[Stopper] = ()
    device: DeviceLikeType = "cpu"

    last_trainer_data: TrainerData | None = field(
        init=False,
        repr=False,
        default=None,
    )

    def __post_init__(self) -> None:
        """Move the model to the device."""
        self.model.to(self.device)

    @classmethod
    def from_config(
        cls,
        *,
        model: PINN,
        residual: PDEResidual,
        config: SolverConfig,
        **kwargs: Any,
    ) -> "PINNSolver":
        """
        Create a solver from a `SolverConfig`.

        Parameters
        ----------
        model : PINN
            The network.
        residual : PDEResidual
            The residual of the equation.
        config : SolverConfig
            The optimization and sampling settings.
        **kwargs
            Additional attributes of the solver (callbacks, stoppers, ...).

        Returns
        -------
        PINNSolver
            The solver.
        """
        return cls(
            model=model,
            residual=residual,
            sampler=get_sampler(
                config.sampler,
                n_interior=config.n_interior,
                n_boundary=config.n_boundary,
                seed=config.seed,
            ),
            optimizer=config.optimizer,
            learning_rate=config.learning_rate,
            resample_every=config.resample_every,
            device=config.device,
            **kwargs,
        )

    def initial_parameters(self) -> ParameterVector:
        """
        Return the current parameters of the model as a flat vector.

        Returns
        -------
        ParameterVector
            The parameters of the model.
        """
        return self.model.get_parameter_vector()

    def train(
        self,
        domain: DomainSpec,
        initial_params: ParameterVector,
        max_iterations: int,
    ) -> TrainingResult:
        """
        Train the model on a domain.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.
        initial_params : ParameterVector
            The parameters the optimization starts from.
        max_iterations : int
            The maximum number of optimizer steps.

        Returns
        -------
        TrainingResult
            The parameters reached, the final loss and the domain.

        Raises
        ------
        SolverFailure
            If the optimization fails or the loss is not finite.
        """
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}.")

        self.model.set_parameter_vector(torch.as_tensor(initial_params))

        pde = PDE.from_domain(
            domain=domain,
            residual=self.residual,
            sampler=self.sampler,
            loss_weights=self.loss_weights,
            resample_every=self.resample_every,
            device=self.device,
        )

        optimizer = get_optimizer(
            self.optimizer,
            self.model.parameters(),
            self.learning_rate,
            **self.optimizer_kwargs,
        )

        trainer_data = TrainerData(
            pde=pde,
            iterations=max_iterations,
            model=self.model,
            optimizer=optimizer,
            scheduler=get_scheduler(
                self.scheduler,
                optimizer,
                **self.scheduler_kwargs,
            ),
            device=self.device,
        )
        self.last_trainer_data = trainer_data

        trainer = Trainer(
            trainer_data=trainer_data,
            callbacks=Callbacks(
                trainer_data=trainer_data,
                callbacks=list(self.callbacks),
            ),
            stoppers=Stoppers(
                trainer_data=trainer_data,
                stoppers=list(self.stoppers),
            ),
        )

        try:
            trainer.train()
        except (FloatingPointError, RuntimeError) as e:
            raise SolverFailure(f"Training failed: {e}") from e

        final_loss = trainer_data.losses_train.last()

        if not math.isfinite(final_loss):
            raise SolverFailure(f"Training ended with loss {final_loss}.")

        return TrainingResult(
            parameters=self.model.get_parameter_vector(),
            final_loss=final_loss,
            domain=domain,
        )
