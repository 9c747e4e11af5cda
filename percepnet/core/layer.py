"""A fully-connected layer of a multilayer perceptron."""

from __future__ import annotations

import math

import numpy as np

from .activations import ActivationFunction
from .errors import ArchitectureError
from .types import Array


class Layer:
    """One feed-forward stage ``output = f(W @ [x, 1])``.

    The weight matrix has shape ``(output_units, input_units + 1)``; its last
    column holds the bias, which is driven by the constant 1.0 appended to
    every input.  The layer's own output buffer carries the same constant in
    its last slot so the next layer can consume it directly.

    All buffers are overwritten in place on every step and belong to this
    layer alone.
    """

    def __init__(
        self,
        input_units: int,
        output_units: int,
        activation: ActivationFunction | str = ActivationFunction.LOGISTIC_SIGMOID,
        *,
        weights: Array | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if int(input_units) < 1 or int(output_units) < 1:
            raise ArchitectureError(
                f"Invalid layer size: {input_units} inputs, {output_units} outputs"
            )
        self.input_units = int(input_units)
        self.output_units = int(output_units)
        self.activation = ActivationFunction.parse(activation)

        shape = (self.output_units, self.input_units + 1)
        if weights is None:
            rng = rng if rng is not None else np.random.default_rng(0)
            r = 1.0 / math.sqrt(self.input_units)
            self._weight = rng.uniform(-r, r, size=shape)
        else:
            self._weight = self._checked(weights)
        self._velocity = np.zeros(shape)
        self._gradient = np.zeros(shape)
        self._output = np.ones(self.output_units + 1)
        self._error = np.zeros(self.output_units)

    # ------------------------------------------------------------------
    # Builders

    @classmethod
    def linear(cls, input_units: int, output_units: int, **kwargs) -> "Layer":
        return cls(input_units, output_units, ActivationFunction.LINEAR, **kwargs)

    @classmethod
    def sigmoid(cls, input_units: int, output_units: int, **kwargs) -> "Layer":
        return cls(input_units, output_units, ActivationFunction.LOGISTIC_SIGMOID, **kwargs)

    @classmethod
    def tanh(cls, input_units: int, output_units: int, **kwargs) -> "Layer":
        return cls(input_units, output_units, ActivationFunction.TANH, **kwargs)

    @classmethod
    def relu(cls, input_units: int, output_units: int, **kwargs) -> "Layer":
        return cls(input_units, output_units, ActivationFunction.RECTIFIER, **kwargs)

    @classmethod
    def softmax(cls, input_units: int, output_units: int, **kwargs) -> "Layer":
        return cls(input_units, output_units, ActivationFunction.SOFTMAX, **kwargs)

    # ------------------------------------------------------------------
    # Buffers

    @property
    def output(self) -> Array:
        """Activations of this layer (a view, without the bias slot)."""

        return self._output[: self.output_units]

    @property
    def augmented_output(self) -> Array:
        """Activations followed by the constant bias input 1.0."""

        return self._output

    @property
    def error(self) -> Array:
        """Per-unit error signal (a view written by the trainer)."""

        return self._error

    @property
    def gradient(self) -> Array:
        return self._gradient

    @property
    def weights(self) -> Array:
        """A copy of the weight matrix, bias in the last column."""

        return self._weight.copy()

    @property
    def velocity(self) -> Array:
        return self._velocity.copy()

    def set_weights(self, weights: Array, velocity: Array | None = None) -> None:
        """Replace the weights; momentum is reset unless ``velocity`` is given."""

        checked = self._checked(weights)
        new_velocity = np.zeros_like(checked) if velocity is None else self._checked(velocity)
        self._weight = checked
        self._velocity = new_velocity

    def _checked(self, matrix: Array) -> Array:
        arr = np.array(matrix, dtype=np.float64)
        expected = (self.output_units, self.input_units + 1)
        if arr.shape != expected:
            raise ArchitectureError(
                f"Invalid weight shape {arr.shape}, expected {expected}"
            )
        return arr

    # ------------------------------------------------------------------
    # Numerics

    def propagate(self, x: Array) -> None:
        """Compute the activations for ``x`` (length ``input_units + 1``)."""

        self._output[: self.output_units] = self.activation(self._weight @ x)

    def compute_gradient(self, x: Array) -> None:
        """Outer product of the error buffer with the layer input ``x``."""

        np.outer(self._error, x, out=self._gradient)

    def backpropagate(self, upper: "Layer") -> None:
        """Pull ``upper``'s error back through its weights into this layer."""

        signal = upper._weight[:, : self.output_units].T @ upper._error
        self._error[:] = signal * self.activation.derivative(self.output)

    def update(self, eta: float, alpha: float, decay: float) -> None:
        """Apply the gradient with momentum after shrinking the weights by ``decay``."""

        self._velocity *= alpha
        self._velocity += eta * self._gradient
        self._weight *= decay
        self._weight += self._velocity

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.input_units}, {self.output_units}, "
            f"activation={self.activation.value!r})"
        )


__all__ = ["Layer"]
