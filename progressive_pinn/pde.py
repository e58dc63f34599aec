"""
Partial Differential Equation (PDE) module.

This module collects the loss terms that a network must minimize to approximate
the solution of a PDE on the domain of one training round.

The module provides:
    - Condition: A class to manage a loss term evaluated on sampled points.
    - Residual: The PDE residual evaluated inside the domain.
    - BoundaryLoss: A boundary or initial condition evaluated on a face.
    - Conditions: A class to manage a collection of conditions.
    - PDE: A class to manage the weighted sum of the conditions.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

import torch
from torch import Tensor, nn

from progressive_pinn.domain import BoundaryCondition, DomainSpec
from progressive_pinn.sampling import Sampler
from progressive_pinn.utilities import DeviceLikeType, LossHistory

PDEResidual = Callable[[Tensor, Tensor], Tensor]
"""Map the network input (N, 1 + d) and output (N, 1) to the PDE residual."""


@dataclass(kw_only=True)
class Condition(ABC):
    """
    Abstract base class for the loss terms of the PDE.

    Attributes
    ----------
    name : str
        The name of the condition, used in logs and plots.
    domain : DomainSpec
        The domain on which the points are sampled.
    sampler : Sampler
        The collocation sampler.
    device : DeviceLikeType
        The device to place the points on.
    points : Tensor
        The current collocation points, sampled at construction.
    loss : LossHistory
        The recorded values of the condition's loss.
    """

    name: str
    domain: DomainSpec
    sampler: Sampler
    device: DeviceLikeType = "cpu"

    points: Tensor = field(init=False, repr=False)

    loss: LossHistory = field(init=False, repr=False, default_factory=LossHistory)

    def __post_init__(self) -> None:
        """Sample the initial points."""
        self.sample_points()

    def sample_points(self) -> None:
        """Sample new points and prepare them for differentiation."""
        points = self.draw()

        if points.dim() != 2 or points.shape[1] != self.domain.dim:
            raise ValueError(
                f"Condition {self.name} sampled points of shape "
                f"{tuple(points.shape)}, expected (N, {self.domain.dim}).",
            )

        self.points = points.to(self.device).requires_grad_(True)

    @abstractmethod
    def draw(self) -> Tensor:
        """
        Draw new points for the condition.

        Returns
        -------
        Tensor
            Points of shape (N, domain.dim).
        """
        raise NotImplementedError

    def __call__(self, model: nn.Module) -> Tensor:
        """
        Evaluate the condition for the given model.

        Parameters
        ----------
        model : nn.Module
            The model, returning its input and its output.

        Returns
        -------
        Tensor
            The residual of the condition at the points.
        """
        z, y = model(self.points)

        return self.eval(z, y)

    @abstractmethod
    def eval(self, x: Tensor, y: Tensor) -> Tensor:
        """
        Evaluate the condition for given output and input.

        Parameters
        ----------
        x : Tensor
            The input of the model.
        y : Tensor
            The output of the model.

        Returns
        -------
        Tensor
            The residual of the condition.
        """
        raise NotImplementedError


@dataclass(kw_only=True)
class Residual(Condition):
    """
    The residual of the PDE inside the domain.

    Attributes
    ----------
    function : PDEResidual
        The residual of the equation as a function of the network input and
        output.
    """

    function: PDEResidual

    def draw(self) -> Tensor:
        """
        Draw points inside the space-time box.

        Returns
        -------
        Tensor
            The interior points.
        """
        return self.sampler.interior(self.domain)

    def eval(self, x: Tensor, y: Tensor) -> Tensor:
        """
        Evaluate the residual of the PDE.

        Parameters
        ----------
        x : Tensor
            Input coordinates tensor.
        y : Tensor
            Output values tensor.

        Returns
        -------
        Tensor
            The residual of the PDE at the given points.
        """
        return self.function(x, y)


@dataclass(kw_only=True)
class BoundaryLoss(Condition):
    """
    A boundary (or initial) condition on one face of the box.

    Attributes
    ----------
    condition : BoundaryCondition
        The face and residual of the condition.
    """

    condition: BoundaryCondition

    def draw(self) -> Tensor:
        """
        Draw points on the face of the condition.

        Returns
        -------
        Tensor
            The face points.
        """
        return self.sampler.boundary(self.domain, self.condition)

    def eval(self, x: Tensor, y: Tensor) -> Tensor:
        """
        Evaluate the boundary condition.

        Parameters
        ----------
        x : Tensor
            Input coordinates tensor.
        y : Tensor
            Output values tensor.

        Returns
        -------
        Tensor
            The difference between the predicted and prescribed values.
        """
        return self.condition(x, y)


@dataclass(kw_only=True)
class Conditions:
    """
    A container class for a collection of conditions.

    Attributes
    ----------
    conditions : list[Condition]
        A list of condition objects to be managed.
    """

    conditions: list[Condition] = field(default_factory=list)

    def __iter__(self) -> Iterator[Condition]:
        """
        Return an iterator over the conditions in the collection.

        Returns
        -------
        Iterator[Condition]
            An iterator that yields each condition in the collection.
        """
        return iter(self.conditions)

    def __getitem__(self, index: int) -> Condition:
        """
        Return the condition at the given index.

        Parameters
        ----------
        index : int
            The index of the condition to retrieve.

        Returns
        -------
        Condition
            The condition at the specified index.
        """
        return self.conditions[index]

    def __len__(self) -> int:
        """
        Return the number of conditions.

        Returns
        -------
        int
            The number of conditions.
        """
        return len(self.conditions)

    @property
    def names(self) -> list[str]:
        """Return the names of the conditions."""
        return [c.name for c in self.conditions]

    def l2_loss(self, model: nn.Module) -> Tensor:
        """
        Compute the mean squared residual of every condition.

        Parameters
        ----------
        model : nn.Module
            The model to evaluate the conditions for.

        Returns
        -------
        Tensor
            A vector with one loss per condition.
        """
        return torch.stack(
            [
                torch.mean(
                    torch.linalg.vector_norm(condition(model), ord=2, dim=1) ** 2,
                )
                for condition in self.conditions
            ],
        )

    def eval(self, model: nn.Module, iteration: int) -> Tensor:
        """
        Evaluate the conditions and store the loss of each.

        Parameters
        ----------
        model : nn.Module
            The model to evaluate the conditions for.
        iteration : int
            The current iteration.

        Returns
        -------
        Tensor
            The loss of every condition at the current iteration.
        """
        res = self.l2_loss(model)
        for value, condition in zip(res, self.conditions, strict=True):
            condition.loss[iteration] = value.item()

        return res


@dataclass(kw_only=True)
class PDE:
    """
    The weighted sum of the loss terms of a PDE on one domain.

    Attributes
    ----------
    conditions : Conditions
        The residual and boundary conditions.
    loss_weights : Tensor
        One weight per condition.
    resample_every : int | None
        The number of iterations between resampling the points of all the
        conditions. None keeps the points sampled at construction.
    """

    conditions: Conditions
    loss_weights: Tensor = field(default_factory=lambda: torch.tensor([]))
    resample_every: int | None = None

    def __post_init__(self) -> None:
        """Validate the loss weights, defaulting to equal weights."""
        n = len(self.conditions)

        if n == 0:
            raise ValueError("A PDE needs at least one condition.")

        if self.loss_weights.numel() == 0:
            self.loss_weights = torch.ones(n)

        if self.loss_weights.dim() != 1 or self.loss_weights.shape[0] != n:
            raise ValueError(
                f"Expected {n} loss weights, "
                f"got shape {tuple(self.loss_weights.shape)}.",
            )

        if self.resample_every is not None and self.resample_every <= 0:
            raise ValueError("`resample_every` must be positive.")

    @classmethod
    def from_domain(
        cls,
        *,
        domain: DomainSpec,
        residual: PDEResidual,
        sampler: Sampler,
        loss_weights: Mapping[str, float] | None = None,
        resample_every: int | None = None,
        device: DeviceLikeType = "cpu",
    ) -> "PDE":
        """
        Build the PDE of a round from its domain.

        The first condition is the residual, named "pde", followed by one
        condition per boundary identifier of the domain.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.
        residual : PDEResidual
            The residual of the equation.
        sampler : Sampler
            The collocation sampler.
        loss_weights : Mapping[str, float] | None, optional
            Weights keyed by condition name; missing names get weight 1.
        resample_every : int | None, optional
            The number of iterations between resampling the points.
        device : DeviceLikeType, optional
            The device of the points, by default "cpu".

        Returns
        -------
        PDE
            The PDE.
        """
        conditions: list[Condition] = [
            Residual(
                name="pde",
                domain=domain,
                sampler=sampler,
                function=residual,
                device=device,
            ),
        ]
        conditions += [
            BoundaryLoss(
                name=name,
                domain=domain,
                sampler=sampler,
                condition=condition,
                device=device,
            )
            for name, condition in domain.boundary_conditions.items()
        ]

        weights = loss_weights or {}
        unknown = set(weights) - {c.name for c in conditions}
        if unknown:
            raise ValueError(f"Loss weights given for unknown conditions: {unknown}")

        return cls(
            conditions=Conditions(conditions=conditions),
            loss_weights=torch.tensor(
                [float(weights.get(c.name, 1.0)) for c in conditions],
                device=device,
            ),
            resample_every=resample_every,
        )

    def resample_conditions(self, iteration: int) -> None:
        """
        Resample the points of the conditions if it is time to do so.

        Parameters
        ----------
        iteration : int
            The current training iteration.
        """
        if (
            self.resample_every is None
            or iteration == 0
            or iteration % self.resample_every != 0
        ):
            return

        for condition in self.conditions:
            condition.sample_points()

    def loss_train(self, model: nn.Module, iteration: int) -> Tensor:
        """
        Compute the training loss and record the loss of each condition.

        Parameters
        ----------
        model : nn.Module
            The model to evaluate the conditions for.
        iteration : int
            The current training iteration.

        Returns
        -------
        Tensor
            The computed training loss.
        """
        res = self.conditions.eval(model, iteration)

        return torch.dot(self.loss_weights, res)

    def loss_train_for_closure(self, model: nn.Module) -> Tensor:
        """
        Compute the training loss without recording it.

        It is intended to be used as a closure for optimizers that require a
        closure function.

        Parameters
        ----------
        model : nn.Module
            The model to evaluate the conditions for.

        Returns
        -------
        Tensor
            The computed training loss.
        """
        res = self.conditions.l2_loss(model)

        return torch.dot(self.loss_weights, res)
