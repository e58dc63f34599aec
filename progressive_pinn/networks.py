"""Builders of the feed-forward networks used as PDE solution approximators."""

from torch import nn


class ActivationBuilder:
    """
    A builder for activation functions.

    Parameters
    ----------
    name : str
        Name of the activation function.
    """

    def __init__(self, name: str):
        """
        Initialize an activation builder.

        Parameters
        ----------
        name : str
            Name of the activation function. Available options are:
            - "tanh"
            - "sigmoid"
            - "relu"
            - "silu"
        """
        self.name = name.lower()

        if self.name not in ("tanh", "sigmoid", "relu", "silu"):
            raise ValueError(f"Unknown activation function: {self.name}")

    def build(self) -> nn.Module:
        """
        Build an activation function.

        Returns
        -------
        nn.Module
            The activation function.
        """
        match self.name:
            case "tanh":
                return nn.Tanh()
            case "sigmoid":
                return nn.Sigmoid()
            case "relu":
                return nn.ReLU()
            case _:
                return nn.SiLU()


class FeedforwardBuilder:
    """
    A builder for fully connected feed-forward networks.

    Parameters
    ----------
    layer_sizes : list[int]
        Number of features of each layer, input and output included.
    activation : str
        Name of the activation function applied after every hidden layer.
    """

    layer_sizes: list[int]
    activation_builder: ActivationBuilder

    def __init__(self, layer_sizes: list[int], activation: str = "tanh"):
        """
        Initialize a network builder.

        Parameters
        ----------
        layer_sizes : list[int]
            Number of features of each layer, input and output included.
        activation : str
            Name of the activation function, by default "tanh".
        """
        if len(layer_sizes) < 3:
            raise ValueError("Must have at least 3 layers: input, hidden, output.")

        if any(n <= 0 for n in layer_sizes):
            raise ValueError(f"Layer sizes must be positive, got {layer_sizes}.")

        self.layer_sizes = list(layer_sizes)
        self.activation_builder = ActivationBuilder(activation)

    def __call__(self) -> nn.Sequential:
        """
        Build a feedforward network.

        Returns
        -------
        nn.Sequential
            The network, with Xavier-initialized weights and zero biases.
        """
        layers: list[nn.Module] = []
        for i in range(len(self.layer_sizes) - 2):
            layers.append(nn.Linear(self.layer_sizes[i], self.layer_sizes[i + 1]))
            layers.append(self.activation_builder.build())

        layers.append(nn.Linear(self.layer_sizes[-2], self.layer_sizes[-1]))

        model = nn.Sequential(*layers)
        for layer in model:
            if isinstance(layer, nn.Linear):
                nn.init.xavier_uniform_(layer.weight)
                nn.init.zeros_(layer.bias)
        return model
