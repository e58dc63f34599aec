"""
Space-time domains of the training rounds.

A domain is a box: a time interval that always starts at zero and a fixed list of
spatial intervals. Every face of the box that carries a Dirichlet condition is
described by a `BoundaryCondition`. The input points of the network are ordered as
`(t, x_1, ..., x_d)`.

This module provides:
    - Interval: a closed interval `[lower, upper]`.
    - BoundaryCondition: a residual attached to one face of the box.
    - DomainSpec: the immutable description of the region of one round.
    - dirichlet_boundary_conditions: build the conditions on the faces of the box
    from an analytic reference solution.
"""

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType

import numpy as np
from torch import Tensor

AnalyticSolution = Callable[[Tensor], Tensor]
"""Map points of shape (N, 1 + d) to reference values of shape (N, 1)."""

BoundaryResidual = Callable[[Tensor, Tensor], Tensor]
"""Map points and network outputs to the misfit of the condition."""


@dataclass(frozen=True)
class Interval:
    """
    A closed interval of the real line.

    Attributes
    ----------
    lower : float
        The lower end.
    upper : float
        The upper end, strictly larger than `lower`.
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        """Check that the interval is finite and not empty."""
        if not (math.isfinite(self.lower) and math.isfinite(self.upper)):
            raise ValueError(f"Interval ends must be finite, got {self}.")
        if self.lower >= self.upper:
            raise ValueError(
                f"Interval lower end {self.lower} must be smaller than "
                f"upper end {self.upper}.",
            )

    @property
    def length(self) -> float:
        """Return the length of the interval."""
        return self.upper - self.lower


@dataclass(frozen=True)
class BoundaryCondition:
    """
    A condition imposed on one face of the space-time box.

    Attributes
    ----------
    name : str
        Identifier of the face, e.g. "t_min" or "x_max".
    axis : int
        The input column that is constant on the face, 0 is time.
    value : float
        The value of that column on the face.
    residual : BoundaryResidual
        Function of the points and of the network output that vanishes when the
        condition is satisfied.
    """

    name: str
    axis: int
    value: float
    residual: BoundaryResidual

    def __call__(self, points: Tensor, u: Tensor) -> Tensor:
        """
        Evaluate the residual of the condition.

        Parameters
        ----------
        points : Tensor
            Points on the face, shape (N, 1 + d).
        u : Tensor
            Network output at the points, shape (N, 1).

        Returns
        -------
        Tensor
            The residual at the points.
        """
        return self.residual(points, u)


@dataclass(frozen=True)
class DomainSpec:
    """
    The space-time region of one training round.

    Attributes
    ----------
    time_interval : Interval
        The time interval, its lower end is always 0.
    space_intervals : tuple[Interval, ...]
        The spatial extent, one interval per spatial coordinate.
    boundary_conditions : Mapping[str, BoundaryCondition]
        The conditions keyed by face identifier. Stored read-only.
    space_names : tuple[str, ...]
        Names of the spatial coordinates, used for the face identifiers.
    """

    time_interval: Interval
    space_intervals: tuple[Interval, ...]
    boundary_conditions: Mapping[str, BoundaryCondition] = field(
        default_factory=dict,
    )
    space_names: tuple[str, ...] = ("x", "y")

    def __post_init__(self) -> None:
        """Validate the domain and freeze its containers."""
        if self.time_interval.lower != 0:
            raise ValueError(
                f"The time interval must start at 0, got {self.time_interval.lower}.",
            )
        if len(self.space_intervals) == 0:
            raise ValueError("At least one spatial interval is required.")
        if len(self.space_names) != len(self.space_intervals):
            raise ValueError(
                f"Got {len(self.space_names)} coordinate names for "
                f"{len(self.space_intervals)} spatial intervals.",
            )

        for name, condition in self.boundary_conditions.items():
            if not 0 <= condition.axis <= len(self.space_intervals):
                raise ValueError(f"Boundary condition {name} has an invalid axis.")

        object.__setattr__(self, "space_intervals", tuple(self.space_intervals))
        object.__setattr__(self, "space_names", tuple(self.space_names))
        object.__setattr__(
            self,
            "boundary_conditions",
            MappingProxyType(dict(self.boundary_conditions)),
        )

    @property
    def dim(self) -> int:
        """Return the number of input coordinates, time included."""
        return 1 + len(self.space_intervals)

    @property
    def intervals(self) -> tuple[Interval, ...]:
        """Return the time interval followed by the spatial intervals."""
        return (self.time_interval, *self.space_intervals)

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Return the lower and upper corners of the box.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            The lower and upper ends, in `(t, x_1, ..., x_d)` order.
        """
        lower = np.array([i.lower for i in self.intervals], dtype=float)
        upper = np.array([i.upper for i in self.intervals], dtype=float)
        return lower, upper

    def with_time_upper(self, upper: float) -> "DomainSpec":
        """
        Return a copy of the domain with a different final time.

        Parameters
        ----------
        upper : float
            The new upper end of the time interval.

        Returns
        -------
        DomainSpec
            The new domain; space and boundary conditions are shared.
        """
        return replace(self, time_interval=Interval(0.0, upper))


def dirichlet_boundary_conditions(
    reference: AnalyticSolution,
    space_intervals: Sequence[Interval],
    space_names: Sequence[str] = ("x", "y"),
) -> dict[str, BoundaryCondition]:
    """
    Build Dirichlet conditions on the faces of the box from a reference solution.

    One condition is created at `t = 0` ("t_min") and two per spatial coordinate
    ("x_min", "x_max", ...). Every residual is `u - reference(points)`. The
    faces do not depend on the final time, so the same conditions are valid for
    every round.

    Parameters
    ----------
    reference : AnalyticSolution
        The analytic solution that provides the boundary values.
    space_intervals : Sequence[Interval]
        The spatial extent of the box.
    space_names : Sequence[str], optional
        Names of the spatial coordinates, by default ("x", "y").

    Returns
    -------
    dict[str, BoundaryCondition]
        The conditions keyed by face identifier.
    """
    if len(space_names) != len(space_intervals):
        raise ValueError("One coordinate name per spatial interval is required.")

    def residual(points: Tensor, u: Tensor) -> Tensor:
        return u - reference(points)

    conditions = {
        "t_min": BoundaryCondition(name="t_min", axis=0, value=0.0, residual=residual),
    }

    for axis, (name, interval) in enumerate(
        zip(space_names, space_intervals, strict=True),
        start=1,
    ):
        for suffix, value in (("min", interval.lower), ("max", interval.upper)):
            key = f"{name}_{suffix}"
            conditions[key] = BoundaryCondition(
                name=key,
                axis=axis,
                value=float(value),
                residual=residual,
            )

    return conditions
