"""Core typing contracts for percepnet."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict

import numpy as np

from .errors import InvalidParameterError

Array = np.ndarray

StateDict = Dict[str, Array]

MAX_WEIGHT_DECAY = 0.1


@dataclass(frozen=True)
class Batch:
    """A block of training instances."""

    inputs: Array
    targets: Array


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`percepnet.training.pipelines.run_pipeline`."""

    steps: int
    metrics_path: str
    manifest_path: str
    checkpoint_path: str = ""


@dataclass(frozen=True)
class Hyperparameters:
    """Learning rate, momentum and weight decay of an SGD step.

    Instances are validated on construction; use :func:`dataclasses.replace`
    to derive a changed copy, which re-runs the validation.
    """

    learning_rate: float = 0.1
    momentum: float = 0.0
    weight_decay: float = 0.0

    def __post_init__(self) -> None:
        eta = float(self.learning_rate)
        alpha = float(self.momentum)
        lam = float(self.weight_decay)
        if not math.isfinite(eta) or eta <= 0.0:
            raise InvalidParameterError(f"Invalid learning rate: {self.learning_rate}")
        if not (0.0 <= alpha < 1.0):
            raise InvalidParameterError(f"Invalid momentum factor: {self.momentum}")
        if not (0.0 <= lam <= MAX_WEIGHT_DECAY):
            raise InvalidParameterError(f"Invalid weight decay factor: {self.weight_decay}")
        object.__setattr__(self, "learning_rate", eta)
        object.__setattr__(self, "momentum", alpha)
        object.__setattr__(self, "weight_decay", lam)

    @property
    def decay(self) -> float:
        """Multiplicative shrink applied to connection weights each update."""

        return 1.0 - 2.0 * self.learning_rate * self.weight_decay


__all__ = ["Array", "Batch", "Hyperparameters", "RunResult", "StateDict"]
