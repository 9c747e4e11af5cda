import numpy as np
import pytest

from percepnet.core.activations import ActivationFunction
from percepnet.core.errors import ArchitectureError
from percepnet.core.layer import Layer


def test_propagate_appends_bias_slot():
    layer = Layer.linear(2, 1, weights=[[1.0, 2.0, 0.5]])
    layer.propagate(np.array([1.0, 1.0, 1.0]))
    assert layer.output.tolist() == [3.5]
    assert layer.augmented_output.tolist() == [3.5, 1.0]


def test_sigmoid_output_is_bounded():
    layer = Layer.sigmoid(3, 4, rng=np.random.default_rng(0))
    layer.propagate(np.array([100.0, -100.0, 50.0, 1.0]))
    assert np.all(layer.output >= 0.0) and np.all(layer.output <= 1.0)


def test_random_initialisation_range_and_seed():
    a = Layer.tanh(4, 3, rng=np.random.default_rng(5))
    b = Layer.tanh(4, 3, rng=np.random.default_rng(5))
    assert a.weights.shape == (3, 5)
    assert np.all(np.abs(a.weights) <= 0.5)
    assert np.array_equal(a.weights, b.weights)


def test_weight_shape_is_validated():
    with pytest.raises(ArchitectureError):
        Layer(2, 2, "sigmoid", weights=np.zeros((2, 2)))
    layer = Layer(2, 2, "sigmoid")
    with pytest.raises(ArchitectureError):
        layer.set_weights(np.zeros((3, 3)))


def test_compute_gradient_is_outer_product():
    layer = Layer.linear(2, 2, weights=np.zeros((2, 3)))
    layer.error[:] = [1.0, -2.0]
    x = np.array([0.5, 3.0, 1.0])
    layer.compute_gradient(x)
    assert np.allclose(layer.gradient, np.outer([1.0, -2.0], x))


def test_backpropagate_skips_upper_bias_column():
    lower = Layer.sigmoid(1, 2, weights=np.zeros((2, 2)))
    lower.propagate(np.array([0.0, 1.0]))  # both units output 0.5
    upper = Layer.linear(2, 1, weights=[[2.0, -1.0, 100.0]])
    upper.error[:] = [0.4]
    lower.backpropagate(upper)
    # f'(0.5) = 0.25 for the logistic sigmoid
    assert np.allclose(lower.error, [2.0 * 0.4 * 0.25, -1.0 * 0.4 * 0.25])


def test_update_applies_momentum_and_decay_to_every_weight():
    w = np.array([[1.0, 2.0, 3.0]])
    layer = Layer.linear(2, 1, weights=w)
    layer.error[:] = [1.0]
    layer.compute_gradient(np.array([1.0, 1.0, 1.0]))

    layer.update(eta=0.1, alpha=0.5, decay=0.9)
    v1 = 0.1 * np.ones((1, 3))
    expected = 0.9 * w + v1
    assert np.allclose(layer.velocity, v1)
    assert np.allclose(layer.weights, expected)

    layer.update(eta=0.1, alpha=0.5, decay=0.9)
    v2 = 0.5 * v1 + 0.1
    expected = 0.9 * expected + v2
    assert np.allclose(layer.velocity, v2)
    assert np.allclose(layer.weights, expected)


def test_decay_shrinks_the_bias_column():
    layer = Layer.linear(1, 1, weights=[[1.0, 1.0]])
    layer.update(eta=0.1, alpha=0.0, decay=0.9)
    assert np.allclose(layer.weights, [[0.9, 0.9]])


def test_weights_property_is_a_copy():
    layer = Layer.relu(2, 2, weights=np.ones((2, 3)))
    snapshot = layer.weights
    snapshot[:] = 0.0
    assert np.all(layer.weights == 1.0)


def test_activation_parse_accepts_names_and_values():
    assert ActivationFunction.parse("sigmoid") is ActivationFunction.LOGISTIC_SIGMOID
    assert ActivationFunction.parse("LOGISTIC_SIGMOID") is ActivationFunction.LOGISTIC_SIGMOID
    assert ActivationFunction.parse("relu") is ActivationFunction.RECTIFIER
    with pytest.raises(ValueError):
        ActivationFunction.parse("swish")


def test_softmax_has_no_unit_derivative():
    with pytest.raises(ValueError):
        ActivationFunction.SOFTMAX.derivative(np.array([0.5, 0.5]))
    out = ActivationFunction.SOFTMAX(np.array([1.0, 2.0, 3.0]))
    assert np.isclose(out.sum(), 1.0)
