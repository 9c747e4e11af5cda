"""Supervised models built on the shared perceptron trainer."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .core.activations import ActivationFunction
from .core.errors import InvalidParameterError
from .core.objectives import ObjectiveFunction
from .core.types import Array, Batch, Hyperparameters
from .training.network import DEFAULT_DECAY_FLOOR, Network, build_network
from .training.trainer import Schedule, Trainer


class _Model:
    """Shared plumbing: a network plus its epoch trainer."""

    task_type = "regression"

    def __init__(self, network: Network) -> None:
        self.network = network

    @property
    def hyperparameters(self) -> Hyperparameters:
        return self.network.hyperparameters

    def _fit(
        self,
        x: Array,
        targets: Array,
        *,
        epochs: int,
        seed: int,
        sample_weights: Sequence[float] | Array | None,
        schedule: Schedule | None,
        callbacks: Sequence[object] | None,
    ) -> None:
        trainer = Trainer(self.network, callbacks=callbacks)
        trainer.run(
            Batch(inputs=x, targets=targets),
            epochs=epochs,
            seed=seed,
            sample_weights=sample_weights,
            task_type=self.task_type,
            schedule=schedule,
        )


class MLPClassifier(_Model):
    """Classifier with cross-entropy loss.

    Two classes use a single logistic-sigmoid output unit; more classes use a
    softmax output layer over one-hot targets.  Labels are integers in
    ``[0, num_classes)``.
    """

    def __init__(
        self,
        input_units: int,
        num_classes: int,
        hidden: Sequence[int] = (10,),
        *,
        activation: ActivationFunction | str = ActivationFunction.LOGISTIC_SIGMOID,
        hyperparameters: Hyperparameters | None = None,
        decay_floor: float = DEFAULT_DECAY_FLOOR,
        seed: int = 0,
    ) -> None:
        if int(num_classes) < 2:
            raise InvalidParameterError(f"Invalid number of classes: {num_classes}")
        self.num_classes = int(num_classes)
        self.task_type = "binary" if self.num_classes == 2 else "multiclass"
        if self.num_classes == 2:
            d_out, output = 1, ActivationFunction.LOGISTIC_SIGMOID
        else:
            d_out, output = self.num_classes, ActivationFunction.SOFTMAX
        network = build_network(
            [int(input_units), *[int(h) for h in hidden], d_out],
            hidden=activation,
            output=output,
            objective=ObjectiveFunction.CROSS_ENTROPY,
            seed=seed,
            hyperparameters=hyperparameters,
            decay_floor=decay_floor,
        )
        super().__init__(network)

    def _encode(self, labels: Sequence[int] | Array) -> Array:
        labels = np.asarray(labels).reshape(-1).astype(int)
        if labels.size and (labels.min() < 0 or labels.max() >= self.num_classes):
            raise InvalidParameterError(
                f"Class labels must lie in [0, {self.num_classes}), got {labels.min()}..{labels.max()}"
            )
        if self.num_classes == 2:
            return labels.astype(np.float64).reshape(-1, 1)
        return np.eye(self.num_classes)[labels]

    def fit(
        self,
        x: Array,
        y: Sequence[int] | Array,
        *,
        epochs: int = 10,
        seed: int = 0,
        sample_weights: Sequence[float] | Array | None = None,
        schedule: Schedule | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> "MLPClassifier":
        x = np.asarray(x, dtype=np.float64)
        self._fit(
            x,
            self._encode(y),
            epochs=epochs,
            seed=seed,
            sample_weights=sample_weights,
            schedule=schedule,
            callbacks=callbacks,
        )
        return self

    def update(self, x: Sequence[float] | Array, label: int, weight: float = 1.0) -> float:
        """Online learning on a single instance; returns its loss."""

        return self.network.train(x, self._encode([label])[0], weight)

    def predict_proba(self, x: Array) -> Array:
        """Posterior probabilities, one row per instance and column per class."""

        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        out = np.vstack([self.network.predict(row) for row in x])
        if self.num_classes == 2:
            return np.hstack([1.0 - out, out])
        return out

    def predict(self, x: Array) -> Array:
        return np.argmax(self.predict_proba(x), axis=1)


class MLPRegressor(_Model):
    """Regressor with a linear output layer and least-mean-squares loss."""

    def __init__(
        self,
        input_units: int,
        hidden: Sequence[int] = (10,),
        output_units: int = 1,
        *,
        activation: ActivationFunction | str = ActivationFunction.LOGISTIC_SIGMOID,
        hyperparameters: Hyperparameters | None = None,
        decay_floor: float = DEFAULT_DECAY_FLOOR,
        seed: int = 0,
    ) -> None:
        network = build_network(
            [int(input_units), *[int(h) for h in hidden], int(output_units)],
            hidden=activation,
            output=ActivationFunction.LINEAR,
            objective=ObjectiveFunction.LEAST_MEAN_SQUARES,
            seed=seed,
            hyperparameters=hyperparameters,
            decay_floor=decay_floor,
        )
        super().__init__(network)

    def _reshape_targets(self, y: Array) -> Array:
        return np.asarray(y, dtype=np.float64).reshape(-1, self.network.output_units)

    def fit(
        self,
        x: Array,
        y: Array,
        *,
        epochs: int = 10,
        seed: int = 0,
        sample_weights: Sequence[float] | Array | None = None,
        schedule: Schedule | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> "MLPRegressor":
        self._fit(
            np.asarray(x, dtype=np.float64),
            self._reshape_targets(y),
            epochs=epochs,
            seed=seed,
            sample_weights=sample_weights,
            schedule=schedule,
            callbacks=callbacks,
        )
        return self

    def update(self, x: Sequence[float] | Array, y: float | Sequence[float], weight: float = 1.0) -> float:
        return self.network.train(x, np.atleast_1d(np.asarray(y, dtype=np.float64)), weight)

    def predict(self, x: Array) -> Array:
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        out = np.vstack([self.network.predict(row) for row in x])
        if self.network.output_units == 1:
            return out.reshape(-1)
        return out


__all__ = ["MLPClassifier", "MLPRegressor"]
