"""Activation functions used by percepnet layers."""

from __future__ import annotations

from enum import Enum

import numpy as np

from .types import Array


class ActivationFunction(str, Enum):
    """Per-unit non-linearity of a layer."""

    LINEAR = "linear"
    LOGISTIC_SIGMOID = "sigmoid"
    TANH = "tanh"
    RECTIFIER = "relu"
    SOFTMAX = "softmax"

    @classmethod
    def parse(cls, value: "ActivationFunction | str") -> "ActivationFunction":
        """Resolve an enum member from its value or name (case-insensitive)."""

        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in {member.value, member.name.lower()}:
                return member
        available = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown activation function {value!r}. Available: {available}")

    def __call__(self, z: Array) -> Array:
        return _FORWARD[self](z)

    def derivative(self, output: Array) -> Array:
        """Return ``f'`` expressed in terms of the activation output."""

        if self is ActivationFunction.SOFTMAX:
            raise ValueError("softmax has no per-unit derivative")
        return _DERIVATIVE[self](output)


def linear(z: Array) -> Array:
    return z


def sigmoid(z: Array) -> Array:
    """Logistic sigmoid, clipped to keep ``exp`` finite."""

    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))


def tanh(z: Array) -> Array:
    return np.tanh(z)


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def softmax(z: Array) -> Array:
    shifted = z - np.max(z)
    e = np.exp(shifted)
    return e / np.sum(e)


_FORWARD = {
    ActivationFunction.LINEAR: linear,
    ActivationFunction.LOGISTIC_SIGMOID: sigmoid,
    ActivationFunction.TANH: tanh,
    ActivationFunction.RECTIFIER: relu,
    ActivationFunction.SOFTMAX: softmax,
}

_DERIVATIVE = {
    ActivationFunction.LINEAR: lambda o: np.ones_like(o),
    ActivationFunction.LOGISTIC_SIGMOID: lambda o: o * (1.0 - o),
    ActivationFunction.TANH: lambda o: 1.0 - o * o,
    ActivationFunction.RECTIFIER: lambda o: (o > 0.0).astype(o.dtype),
}


__all__ = ["ActivationFunction", "linear", "relu", "sigmoid", "softmax", "tanh"]
