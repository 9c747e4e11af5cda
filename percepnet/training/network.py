"""Stochastic-gradient trainer over a fixed stack of layers."""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Mapping, Sequence

import numpy as np
import structlog

from ..core.activations import ActivationFunction
from ..core.errors import (
    ArchitectureError,
    InvalidParameterError,
    InvalidStateError,
)
from ..core.layer import Layer
from ..core.objectives import ObjectiveFunction, gradient_rule
from ..core.types import Array, Hyperparameters, StateDict

logger = structlog.get_logger(__name__)

DEFAULT_DECAY_FLOOR = 0.9


class Network:
    """Multilayer perceptron trained one instance at a time.

    The network owns an immutable tuple of layers (the input layer is not one
    of them), an augmented-input buffer whose last slot is the constant bias
    input 1.0, and a target buffer.  A training step runs

        propagate -> compute_output_error -> backpropagate -> update

    synchronously.  Buffers are mutated in place, so one instance must never
    serve two steps at once; use one network per worker instead.
    """

    def __init__(
        self,
        objective: ObjectiveFunction | str,
        layers: Sequence[Layer],
        *,
        hyperparameters: Hyperparameters | None = None,
        decay_floor: float = DEFAULT_DECAY_FLOOR,
    ) -> None:
        layers = tuple(layers)
        if len(layers) < 2:
            raise ArchitectureError(f"Too few layers: {len(layers)}")
        if len({id(layer) for layer in layers}) != len(layers):
            raise ArchitectureError("The same layer instance appears more than once")

        for i in range(1, len(layers)):
            if layers[i].input_units != layers[i - 1].output_units:
                raise ArchitectureError(
                    "Invalid network architecture. Layer %d has %d neurons while "
                    "layer %d takes %d inputs"
                    % (i - 1, layers[i - 1].output_units, i, layers[i].input_units)
                )

        for i, layer in enumerate(layers[:-1]):
            if layer.activation is ActivationFunction.SOFTMAX:
                raise ArchitectureError(
                    f"Softmax is only valid in the output layer, found at layer {i}"
                )

        decay_floor = float(decay_floor)
        if not (0.0 < decay_floor <= 1.0):
            raise InvalidParameterError(f"Invalid decay floor: {decay_floor}")

        self._objective = ObjectiveFunction.parse(objective)
        self._layers = layers
        self._hyper = hyperparameters or Hyperparameters()
        self._decay_floor = decay_floor
        self._p = layers[0].input_units
        self._x1 = np.zeros(self._p + 1)
        self._x1[self._p] = 1.0
        self._target = np.zeros(layers[-1].output_units)
        self._busy = False

        logger.debug(
            "network_built",
            objective=self._objective.value,
            layers=[repr(layer) for layer in layers],
            learning_rate=self._hyper.learning_rate,
            momentum=self._hyper.momentum,
            weight_decay=self._hyper.weight_decay,
        )

    # ------------------------------------------------------------------
    # Topology

    @property
    def objective(self) -> ObjectiveFunction:
        return self._objective

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self._layers

    @property
    def input_units(self) -> int:
        return self._p

    @property
    def output_units(self) -> int:
        return self._layers[-1].output_units

    @property
    def output_layer(self) -> Layer:
        return self._layers[-1]

    @property
    def decay_floor(self) -> float:
        return self._decay_floor

    # ------------------------------------------------------------------
    # Hyper-parameters

    @property
    def hyperparameters(self) -> Hyperparameters:
        return self._hyper

    @property
    def learning_rate(self) -> float:
        return self._hyper.learning_rate

    @learning_rate.setter
    def learning_rate(self, eta: float) -> None:
        self._hyper = replace(self._hyper, learning_rate=eta)

    @property
    def momentum(self) -> float:
        return self._hyper.momentum

    @momentum.setter
    def momentum(self, alpha: float) -> None:
        # 0.0 disables momentum
        self._hyper = replace(self._hyper, momentum=alpha)

    @property
    def weight_decay(self) -> float:
        return self._hyper.weight_decay

    @weight_decay.setter
    def weight_decay(self, lam: float) -> None:
        # every connection weight shrinks by (1 - 2 * eta * lambda) per update
        self._hyper = replace(self._hyper, weight_decay=lam)

    def set_learning_rate(self, eta: float) -> None:
        self.learning_rate = eta

    def set_momentum(self, alpha: float) -> None:
        self.momentum = alpha

    def set_weight_decay(self, lam: float) -> None:
        self.weight_decay = lam

    # ------------------------------------------------------------------
    # Step operations

    def propagate(self, x: Sequence[float] | Array) -> None:
        """Push ``x`` through every layer in forward order."""

        x = self._as_vector(x)
        if x.shape[0] != self._p:
            raise InvalidParameterError(
                f"Invalid input vector size: {x.shape[0]}, expected: {self._p}"
            )
        self._x1[: self._p] = x
        self._layers[0].propagate(self._x1)
        for i in range(1, len(self._layers)):
            self._layers[i].propagate(self._layers[i - 1].augmented_output)

    def compute_output_error(
        self, target: Sequence[float] | Array, weight: float = 1.0
    ) -> float:
        """Write the output-layer error for ``target`` and return the weighted loss."""

        target = self._checked_target(target)
        weight = self._checked_weight(weight)
        layer = self.output_layer
        rule = gradient_rule(self._objective, layer.activation)
        self._target[:] = target
        gradient, loss = rule(self._target, layer.output)
        layer.error[:] = weight * gradient
        return weight * loss

    def backpropagate(self, target: Sequence[float] | Array | None = None) -> None:
        """Compute every layer's gradient, output layer first.

        When ``target`` is given the output error is computed from it first;
        otherwise the output layer's error buffer is used as it stands.
        """

        if target is not None:
            self.compute_output_error(target)
        layers = self._layers
        for i in range(len(layers) - 1, 0, -1):
            layers[i].compute_gradient(layers[i - 1].augmented_output)
            layers[i - 1].backpropagate(layers[i])
        layers[0].compute_gradient(self._x1)

    def update(self) -> None:
        """Apply one synchronized weight update across all layers."""

        decay = self._checked_decay()
        eta = self._hyper.learning_rate
        alpha = self._hyper.momentum
        for layer in self._layers:
            layer.update(eta, alpha, decay)

    def train(
        self,
        x: Sequence[float] | Array,
        y: Sequence[float] | Array,
        weight: float = 1.0,
    ) -> float:
        """Run one full training step on ``(x, y)`` and return its loss."""

        with self._step():
            self._checked_decay()
            x = self._as_vector(x)
            if x.shape[0] != self._p:
                raise InvalidParameterError(
                    f"Invalid input vector size: {x.shape[0]}, expected: {self._p}"
                )
            self._checked_target(y)
            self._checked_weight(weight)
            gradient_rule(self._objective, self.output_layer.activation)

            self.propagate(x)
            loss = self.compute_output_error(y, weight)
            self.backpropagate()
            self.update()
        return loss

    def predict(self, x: Sequence[float] | Array) -> Array:
        """Return a copy of the output activations for ``x``."""

        self.propagate(x)
        return self.output_layer.output.copy()

    # ------------------------------------------------------------------
    # Persistence

    def state_dict(self) -> StateDict:
        state: StateDict = {}
        for idx, layer in enumerate(self._layers):
            state[f"W{idx}"] = layer.weights
            state[f"V{idx}"] = layer.velocity
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx in range(len(self._layers)):
            key = f"W{idx}"
            if key not in state:
                raise KeyError(f"Missing weight {key} in state dict")
        staged = []
        for idx, layer in enumerate(self._layers):
            weights = layer._checked(state[f"W{idx}"])
            velocity = state.get(f"V{idx}")
            staged.append((layer, weights, None if velocity is None else layer._checked(velocity)))
        for layer, weights, velocity in staged:
            layer.set_weights(weights, velocity)

    def parameter_count(self) -> int:
        return int(sum(layer.output_units * (layer.input_units + 1) for layer in self._layers))

    # ------------------------------------------------------------------
    # Internal helpers

    @contextmanager
    def _step(self) -> Iterator[None]:
        if self._busy:
            raise InvalidStateError("A training step is already in progress on this network")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _checked_decay(self) -> float:
        decay = self._hyper.decay
        if decay < self._decay_floor:
            raise InvalidStateError(
                "Invalid learning rate (eta = %.2f) and/or decay (lambda = %.2f)"
                % (self._hyper.learning_rate, self._hyper.weight_decay)
            )
        return decay

    def _checked_target(self, target: Sequence[float] | Array) -> Array:
        target = self._as_vector(target)
        units = self.output_units
        if target.shape[0] != units:
            raise InvalidParameterError(
                f"Invalid target vector size: {target.shape[0]}, expected: {units}"
            )
        return target

    @staticmethod
    def _checked_weight(weight: float) -> float:
        weight = float(weight)
        if not math.isfinite(weight) or weight < 0.0:
            raise InvalidParameterError(f"Invalid instance weight: {weight}")
        return weight

    @staticmethod
    def _as_vector(values: Sequence[float] | Array) -> Array:
        return np.asarray(values, dtype=np.float64).reshape(-1)


def build_network(
    dims: Sequence[int],
    *,
    hidden: ActivationFunction | str = ActivationFunction.LOGISTIC_SIGMOID,
    output: ActivationFunction | str = ActivationFunction.LOGISTIC_SIGMOID,
    objective: ObjectiveFunction | str = ObjectiveFunction.LEAST_MEAN_SQUARES,
    seed: int = 0,
    hyperparameters: Hyperparameters | None = None,
    decay_floor: float = DEFAULT_DECAY_FLOOR,
) -> Network:
    """Build a network from layer widths ``[d_in, h_1, ..., d_out]``."""

    dims = [int(d) for d in dims]
    if len(dims) < 3:
        raise ArchitectureError(
            f"Need an input width, at least one hidden width and an output width, got {dims}"
        )
    rng = np.random.default_rng(seed)
    layers = [
        Layer(in_dim, out_dim, hidden, rng=rng)
        for in_dim, out_dim in zip(dims[:-2], dims[1:-1])
    ]
    layers.append(Layer(dims[-2], dims[-1], output, rng=rng))
    return Network(
        objective,
        layers,
        hyperparameters=hyperparameters,
        decay_floor=decay_floor,
    )


__all__ = ["DEFAULT_DECAY_FLOOR", "Network", "build_network"]
