"""
Collocation point samplers.

A sampler places points inside the space-time box of a `DomainSpec` (for the PDE
residual) and on the faces of the box (for the boundary conditions). The
residual loss is the mean of the squared residual over these points, i.e. a
quadrature estimate of its integral over the domain.

This module provides:
    - Sampler: base class.
    - SobolSampler: scrambled Sobol (quasi-random) points.
    - UniformSampler: independent uniform points.
    - GridSampler: points of a regular grid.
    - get_sampler: create a sampler by name.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import torch
from torch import Tensor

from progressive_pinn.domain import BoundaryCondition, DomainSpec
from progressive_pinn.utilities import cartesian_product_of_rows


@dataclass(kw_only=True)
class Sampler(ABC):
    """
    Abstract base class for collocation samplers.

    Attributes
    ----------
    n_interior : int
        Number of points inside the box.
    n_boundary : int
        Number of points on each face.
    dtype : torch.dtype
        The floating point type of the points.
    """

    n_interior: int = 1000
    n_boundary: int = 200
    dtype: torch.dtype = torch.float32

    def __post_init__(self) -> None:
        """Check the number of points."""
        if self.n_interior <= 0 or self.n_boundary <= 0:
            raise ValueError("The number of sampled points must be positive.")

    @abstractmethod
    def unit(self, n: int, dim: int) -> Tensor:
        """
        Return `n` points of the unit cube of dimension `dim`.

        Parameters
        ----------
        n : int
            Number of points.
        dim : int
            Dimension of the cube.

        Returns
        -------
        Tensor
            Points of shape (n', dim), with n' close to n.
        """
        raise NotImplementedError

    def interior(self, domain: DomainSpec) -> Tensor:
        """
        Sample points inside the box of the domain.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.

        Returns
        -------
        Tensor
            Points of shape (N, domain.dim).
        """
        lower, upper = domain.bounds()
        u = self.unit(self.n_interior, domain.dim)
        return self._scale(u, lower, upper)

    def boundary(self, domain: DomainSpec, condition: BoundaryCondition) -> Tensor:
        """
        Sample points on the face of the box where a condition is imposed.

        Parameters
        ----------
        domain : DomainSpec
            The domain of the round.
        condition : BoundaryCondition
            The condition, its `axis` column is fixed to its `value`.

        Returns
        -------
        Tensor
            Points of shape (N, domain.dim).
        """
        lower, upper = domain.bounds()
        free = [k for k in range(domain.dim) if k != condition.axis]

        u = self.unit(self.n_boundary, len(free))
        face = self._scale(u, lower[free], upper[free])

        points = torch.empty((face.shape[0], domain.dim), dtype=self.dtype)
        points[:, free] = face
        points[:, condition.axis] = condition.value
        return points

    def _scale(self, u: Tensor, lower: np.ndarray, upper: np.ndarray) -> Tensor:
        lo = torch.as_tensor(lower, dtype=self.dtype)
        hi = torch.as_tensor(upper, dtype=self.dtype)
        return (lo + (hi - lo) * u.to(self.dtype)).to(self.dtype)


@dataclass(kw_only=True)
class SobolSampler(Sampler):
    """
    Scrambled Sobol sequence sampler.

    Attributes
    ----------
    seed : int | None
        Seed of the scrambling, None for a random seed.

    Notes
    -----
    One engine is kept per dimension and advanced by every draw, so successive
    draws (resampling, different faces) give different points while a seeded
    sampler still produces a reproducible sequence.
    """

    seed: int | None = None

    _engines: dict[int, torch.quasirandom.SobolEngine] = field(
        init=False,
        repr=False,
        default_factory=dict,
    )

    def unit(self, n: int, dim: int) -> Tensor:
        """
        Draw `n` Sobol points of the unit cube.

        Parameters
        ----------
        n : int
            Number of points.
        dim : int
            Dimension of the cube.

        Returns
        -------
        Tensor
            Points of shape (n, dim).
        """
        if dim not in self._engines:
            self._engines[dim] = torch.quasirandom.SobolEngine(
                dimension=dim,
                scramble=True,
                seed=self.seed,
            )
        engine = self._engines[dim]
        return engine.draw(n, dtype=torch.float64)


@dataclass(kw_only=True)
class UniformSampler(Sampler):
    """
    Independent uniform sampler.

    Attributes
    ----------
    seed : int | None
        Seed of the generator, None for a random seed.
    """

    seed: int | None = None

    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Create the random generator."""
        super().__post_init__()
        self._rng = np.random.default_rng(self.seed)

    def unit(self, n: int, dim: int) -> Tensor:
        """
        Draw `n` uniform points of the unit cube.

        Parameters
        ----------
        n : int
            Number of points.
        dim : int
            Dimension of the cube.

        Returns
        -------
        Tensor
            Points of shape (n, dim).
        """
        return torch.from_numpy(self._rng.uniform(0.0, 1.0, (n, dim)))


@dataclass(kw_only=True)
class GridSampler(Sampler):
    """
    Regular grid sampler.

    The number of points per coordinate is chosen so that the grid has about
    `n_interior` (or `n_boundary` on a face) points in total. Both ends of each
    coordinate are included.
    """

    def unit(self, n: int, dim: int) -> Tensor:
        """
        Return a regular grid of the unit cube with about `n` points.

        Parameters
        ----------
        n : int
            Target number of points.
        dim : int
            Dimension of the cube.

        Returns
        -------
        Tensor
            Points of shape (m**dim, dim) with m = max(2, round(n ** (1 / dim))).
        """
        m = max(2, round(n ** (1.0 / dim)))
        axis = torch.linspace(0.0, 1.0, m, dtype=torch.float64)[:, None]
        return cartesian_product_of_rows(*([axis] * dim))


def get_sampler(stype: str, **kwargs: Any) -> Sampler:
    """
    Create a sampler based on the given type and parameters.

    Parameters
    ----------
    stype : str
        The type of sampler to create. Can be 'sobol', 'uniform' or 'grid'.
    **kwargs
        Additional keyword arguments for the sampler.

    Returns
    -------
    Sampler
        The created sampler.
    """
    match stype.lower():
        case "sobol":
            return SobolSampler(**kwargs)
        case "uniform":
            return UniformSampler(**kwargs)
        case "grid":
            kwargs.pop("seed", None)
            return GridSampler(**kwargs)
        case _:
            raise ValueError(f"Unknown sampler type: {stype}")
