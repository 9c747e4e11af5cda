"""Objective functions and the gradient rules of the output layer.

The rule applied to the output layer depends on both the objective and the
output activation.  Rules are looked up in a table keyed by that pair; each
entry is a pure function ``(target, output) -> (gradient, loss)`` where
``gradient`` is the error signal written to the output layer (before the
per-instance weight is applied).
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Tuple

import numpy as np

from .activations import ActivationFunction
from .errors import UnsupportedCombinationError
from .types import Array

GradientRule = Callable[[Array, Array], Tuple[Array, float]]

LOG_UNDERFLOW = 1e-300
LOG_FLOOR = -690.7755


class ObjectiveFunction(str, Enum):
    """Loss formulation driving training."""

    LEAST_MEAN_SQUARES = "least_mean_squares"
    CROSS_ENTROPY = "cross_entropy"

    @classmethod
    def parse(cls, value: "ObjectiveFunction | str") -> "ObjectiveFunction":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {"lms": cls.LEAST_MEAN_SQUARES, "mse": cls.LEAST_MEAN_SQUARES, "ce": cls.CROSS_ENTROPY}
        if key in aliases:
            return aliases[key]
        for member in cls:
            if key == member.value:
                return member
        available = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown objective function {value!r}. Available: {available}")


def safe_log(x: Array | float) -> Array:
    """Natural log that maps anything below ``1e-300`` to ``-690.7755``."""

    x = np.asarray(x, dtype=np.float64)
    guarded = np.maximum(x, LOG_UNDERFLOW)
    return np.where(x < LOG_UNDERFLOW, LOG_FLOOR, np.log(guarded))


def _lms(target: Array, output: Array) -> tuple[Array, float]:
    g = target - output
    return g, float(0.5 * np.sum(g * g))


def _lms_sigmoid(target: Array, output: Array) -> tuple[Array, float]:
    g, loss = _lms(target, output)
    return g * output * (1.0 - output), loss


def _cross_entropy_softmax(target: Array, output: Array) -> tuple[Array, float]:
    # softmax + cross-entropy already yields target - output
    loss = float(-np.sum(target * safe_log(output)))
    return target - output, loss


def _cross_entropy_sigmoid(target: Array, output: Array) -> tuple[Array, float]:
    loss = float(
        np.sum(-target * safe_log(output) - (1.0 - target) * safe_log(1.0 - output))
    )
    g = target - output
    return g * output * (1.0 - output), loss


def _build_table() -> Dict[tuple[ObjectiveFunction, ActivationFunction], GradientRule]:
    table: Dict[tuple[ObjectiveFunction, ActivationFunction], GradientRule] = {}
    for activation in ActivationFunction:
        rule = _lms_sigmoid if activation is ActivationFunction.LOGISTIC_SIGMOID else _lms
        table[(ObjectiveFunction.LEAST_MEAN_SQUARES, activation)] = rule
    table[(ObjectiveFunction.CROSS_ENTROPY, ActivationFunction.SOFTMAX)] = _cross_entropy_softmax
    table[(ObjectiveFunction.CROSS_ENTROPY, ActivationFunction.LOGISTIC_SIGMOID)] = _cross_entropy_sigmoid
    return table


RULES = _build_table()


def gradient_rule(
    objective: ObjectiveFunction, activation: ActivationFunction
) -> GradientRule:
    """Return the output-layer rule for ``(objective, activation)``."""

    try:
        return RULES[(objective, activation)]
    except KeyError:
        raise UnsupportedCombinationError(
            f"Unsupported activation function {activation.value} "
            f"for objective function {objective.value}"
        ) from None


def supports(objective: ObjectiveFunction, activation: ActivationFunction) -> bool:
    return (objective, activation) in RULES


__all__ = [
    "GradientRule",
    "LOG_FLOOR",
    "ObjectiveFunction",
    "RULES",
    "gradient_rule",
    "safe_log",
    "supports",
]
