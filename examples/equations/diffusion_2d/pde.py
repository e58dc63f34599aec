r"""
Description of the diffusion equation on a square.

.. math::
    u_t = u_{xx} + u_{yy}, \quad (t, x, y) \in [0, 2] \times [0, 2] \times [0, 2]
    u(t, x, y) = e^{x + y} \cos(x + y + 4 t)

The initial condition and the Dirichlet conditions on the four sides of the
square are taken from the analytic solution.
"""

import numpy as np
import torch
from torch import Tensor

from progressive_pinn.domain import Interval
from progressive_pinn.gradients import hessian, jacobian

T_MAX = 2.0

SPACE_INTERVALS = (Interval(0.0, 2.0), Interval(0.0, 2.0))


def analytical_solution(
    t: torch.Tensor | np.ndarray,
    x: torch.Tensor | np.ndarray,
    y: torch.Tensor | np.ndarray,
) -> torch.Tensor | np.ndarray:
    """
    Compute the analytical solution of the diffusion equation.

    Parameters
    ----------
    t : torch.Tensor | np.ndarray
        Time coordinates.
    x : torch.Tensor | np.ndarray
        First spatial coordinates.
    y : torch.Tensor | np.ndarray
        Second spatial coordinates.

    Returns
    -------
    torch.Tensor | np.ndarray
        The analytical solution at the given coordinates.
    """
    if isinstance(t, torch.Tensor):
        return torch.exp(x + y) * torch.cos(x + y + 4 * t)

    return np.exp(x + y) * np.cos(x + y + 4 * t)


def reference(points: Tensor) -> Tensor:
    """
    Evaluate the analytical solution on points `(t, x, y)`.

    Parameters
    ----------
    points : Tensor
        Points of shape (N, 3).

    Returns
    -------
    Tensor
        The solution, of shape (N, 1).
    """
    return analytical_solution(points[:, 0:1], points[:, 1:2], points[:, 2:3])


def residual(x: Tensor, y: Tensor) -> Tensor:
    """
    Evaluate the residual of the diffusion equation.

    Parameters
    ----------
    x : Tensor
        Input coordinates `(t, x, y)`, of shape (N, 3).
    y : Tensor
        Output values, of shape (N, 1).

    Returns
    -------
    Tensor
        `u_t - u_xx - u_yy` at the given points.
    """
    assert x.shape[0] == y.shape[0]

    dy_dt = jacobian(y, x, j=0)
    dy_dxx = hessian(y, x, i=1, j=1)
    dy_dyy = hessian(y, x, i=2, j=2)

    return dy_dt - dy_dxx - dy_dyy
