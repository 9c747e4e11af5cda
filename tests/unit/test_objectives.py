import math

import numpy as np
import pytest

from percepnet.core.activations import ActivationFunction
from percepnet.core.errors import UnsupportedCombinationError
from percepnet.core.objectives import (
    LOG_FLOOR,
    ObjectiveFunction,
    gradient_rule,
    safe_log,
    supports,
)

LMS = ObjectiveFunction.LEAST_MEAN_SQUARES
CE = ObjectiveFunction.CROSS_ENTROPY


def test_safe_log_guards_underflow():
    assert float(safe_log(0.0)) == LOG_FLOOR == -690.7755
    assert float(safe_log(1e-301)) == LOG_FLOOR
    assert math.isclose(float(safe_log(1e-300)), math.log(1e-300))
    assert math.isclose(float(safe_log(2.0)), math.log(2.0))


@pytest.mark.parametrize(
    "activation",
    [ActivationFunction.LINEAR, ActivationFunction.TANH, ActivationFunction.RECTIFIER, ActivationFunction.SOFTMAX],
)
def test_lms_without_sigmoid_is_unscaled(activation):
    target = np.array([1.0, 0.0])
    output = np.array([0.25, 0.5])
    gradient, loss = gradient_rule(LMS, activation)(target, output)
    assert np.allclose(gradient, target - output)
    assert math.isclose(loss, 0.5 * (0.75**2 + 0.5**2))


def test_lms_with_sigmoid_scales_by_derivative():
    target = np.array([1.0])
    output = np.array([0.8])
    gradient, _ = gradient_rule(LMS, ActivationFunction.LOGISTIC_SIGMOID)(target, output)
    assert np.allclose(gradient, (1.0 - 0.8) * 0.8 * 0.2)


def test_cross_entropy_softmax():
    target = np.array([0.0, 1.0, 0.0])
    output = np.array([0.2, 0.7, 0.1])
    gradient, loss = gradient_rule(CE, ActivationFunction.SOFTMAX)(target, output)
    assert np.allclose(gradient, target - output)
    assert math.isclose(loss, -math.log(0.7))


def test_cross_entropy_sigmoid_is_binary():
    target = np.array([1.0])
    output = np.array([0.9])
    gradient, loss = gradient_rule(CE, ActivationFunction.LOGISTIC_SIGMOID)(target, output)
    assert math.isclose(loss, -math.log(0.9))
    assert np.allclose(gradient, 0.1 * 0.9 * 0.1)


def test_cross_entropy_sigmoid_saturated_output_is_finite():
    _, loss = gradient_rule(CE, ActivationFunction.LOGISTIC_SIGMOID)(np.array([0.0]), np.array([1.0]))
    assert math.isfinite(loss)
    assert math.isclose(loss, 690.7755)


@pytest.mark.parametrize(
    "activation",
    [ActivationFunction.LINEAR, ActivationFunction.TANH, ActivationFunction.RECTIFIER],
)
def test_cross_entropy_unsupported_pairings(activation):
    assert not supports(CE, activation)
    with pytest.raises(UnsupportedCombinationError):
        gradient_rule(CE, activation)


def test_every_lms_pairing_is_supported():
    assert all(supports(LMS, activation) for activation in ActivationFunction)


def test_objective_parse_aliases():
    assert ObjectiveFunction.parse("lms") is LMS
    assert ObjectiveFunction.parse("cross_entropy") is CE
    with pytest.raises(ValueError):
        ObjectiveFunction.parse("hinge")
