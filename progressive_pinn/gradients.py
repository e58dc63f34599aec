"""
Provide cached derivatives of network outputs with respect to their inputs.

Derivatives are computed with reverse-mode automatic differentiation and cached
per `(output, input)` pair, so that a first derivative used both on its own and
inside a second derivative is computed once. The cache holds references to
tensors of the current computation graph and must be cleared at every
optimization step with `clear`.

The caching scheme follows the `gradients` module of `deepxde`.
Original source: https://github.com/lululxvi/deepxde
"""

__all__ = ["clear", "hessian", "jacobian"]

import torch


class Jacobian:
    """
    Lazily computed Jacobian J[i, j] = dy_i / dx_j of a batch of outputs.

    Parameters
    ----------
    ys : torch.Tensor
        Output tensor of shape (batch_size, dim_y).
    xs : torch.Tensor
        Input tensor of shape (batch_size, dim_x).
    """

    def __init__(self, ys: torch.Tensor, xs: torch.Tensor) -> None:
        self.ys = ys
        self.xs = xs
        self.dim_y = ys.shape[1]
        self.dim_x = xs.shape[1]
        self.J: dict[int, torch.Tensor] = {}

    def __call__(self, i: int = 0, j: int | None = None) -> torch.Tensor:
        """
        Return the row J[i, :] or the entry J[i, j].

        Parameters
        ----------
        i : int
            The output component.
        j : int | None
            The input component, None for the whole gradient of y_i.

        Returns
        -------
        torch.Tensor
            Tensor of shape (batch_size, dim_x) or (batch_size, 1).
        """
        if not 0 <= i < self.dim_y:
            raise ValueError(f"i={i} is not valid.")
        if j is not None and not 0 <= j < self.dim_x:
            raise ValueError(f"j={j} is not valid.")

        if i not in self.J:
            y = self.ys[:, i : i + 1]
            self.J[i] = torch.autograd.grad(
                y,
                self.xs,
                grad_outputs=torch.ones_like(y),
                create_graph=True,
                allow_unused=True,
                materialize_grads=True,
            )[0]

        if j is None:
            return self.J[i]

        return self.J[i][:, j : j + 1]


_cache: dict[tuple[torch.Tensor, torch.Tensor], Jacobian] = {}


def jacobian(
    ys: torch.Tensor,
    xs: torch.Tensor,
    i: int = 0,
    j: int | None = None,
) -> torch.Tensor:
    """
    Compute dy_i / dx_j for every row of a batch.

    Parameters
    ----------
    ys : torch.Tensor
        Output tensor of shape (batch_size, dim_y).
    xs : torch.Tensor
        Input tensor of shape (batch_size, dim_x), part of the graph of `ys`.
    i : int, optional
        The output component, by default 0.
    j : int | None, optional
        The input component. If None, the whole gradient of y_i is returned.

    Returns
    -------
    torch.Tensor
        The requested derivative.
    """
    key = (ys, xs)
    if key not in _cache:
        _cache[key] = Jacobian(ys, xs)
    return _cache[key](i, j)


def hessian(
    ys: torch.Tensor,
    xs: torch.Tensor,
    component: int = 0,
    i: int = 0,
    j: int = 0,
) -> torch.Tensor:
    """
    Compute d^2 y_component / dx_i dx_j for every row of a batch.

    Parameters
    ----------
    ys : torch.Tensor
        Output tensor of shape (batch_size, dim_y).
    xs : torch.Tensor
        Input tensor of shape (batch_size, dim_x).
    component : int, optional
        The output component, by default 0.
    i : int, optional
        The first input component, by default 0.
    j : int, optional
        The second input component, by default 0.

    Returns
    -------
    torch.Tensor
        Tensor of shape (batch_size, 1).
    """
    grad_y = jacobian(ys, xs, i=component)
    return jacobian(grad_y, xs, i=i, j=j)


def clear() -> None:
    """Clear cached derivatives."""
    _cache.clear()
