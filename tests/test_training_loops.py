from __future__ import annotations

from typing import Mapping

import numpy as np

from percepnet.core.types import Batch, Hyperparameters
from percepnet.data import get
from percepnet.training.network import build_network
from percepnet.training.trainer import Trainer, load_checkpoint


class _Capture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((epoch, {k: float(v) for k, v in metrics.items()}))


def test_xor_is_learnt(tmp_path) -> None:
    data = get("xor")
    network = build_network(
        [2, 8, 1],
        hidden="tanh",
        output="sigmoid",
        objective="least_mean_squares",
        seed=0,
        hyperparameters=Hyperparameters(learning_rate=0.5, momentum=0.5),
    )
    capture = _Capture()
    trainer = Trainer(network)
    result = trainer.run(
        data,
        epochs=2000,
        seed=0,
        task_type="binary",
        split_loggers={"train": [capture]},
        checkpoint_dir=tmp_path,
    )

    assert result.steps == 2000 * 4
    first = capture.history[0][1]
    last = capture.history[-1][1]
    assert last["loss"] < first["loss"]
    assert last["accuracy"] == 1.0
    predictions = np.array([network.predict(x)[0] for x in data.inputs])
    assert np.array_equal(predictions >= 0.5, data.targets.reshape(-1) >= 0.5)


def test_regression_training_improves_r2() -> None:
    rng = np.random.default_rng(0)
    x = np.linspace(-1.0, 1.0, 64).reshape(-1, 1)
    y = np.sin(np.pi * x) + 0.05 * rng.standard_normal(x.shape)
    network = build_network(
        [1, 16, 1],
        hidden="tanh",
        output="linear",
        seed=0,
        hyperparameters=Hyperparameters(learning_rate=0.05, momentum=0.3),
    )
    capture = _Capture()
    Trainer(network, callbacks=[capture]).run(
        Batch(inputs=x, targets=y),
        epochs=150,
        seed=0,
        task_type="regression",
        metric_names=["r2", "mae"],
    )

    first = capture.history[0][1]
    last = capture.history[-1][1]
    assert last["loss"] < first["loss"]
    assert last["r2"] > 0.5


def test_runs_are_deterministic() -> None:
    data = get("blobs", n_classes=3, n_per_class=10, seed=2)

    def run() -> dict:
        network = build_network([2, 5, 3], output="softmax", objective="cross_entropy", seed=4)
        Trainer(network).run(data, epochs=5, seed=8, task_type="multiclass")
        return network.state_dict()

    first, second = run(), run()
    for key, value in first.items():
        assert np.array_equal(value, second[key])


def test_run_leaves_global_random_state_alone() -> None:
    data = get("xor")
    network = build_network([2, 3, 1], seed=5)
    np.random.seed(123)
    expected = np.random.random()
    np.random.seed(123)
    Trainer(network).run(data, epochs=2, seed=0, task_type="binary")
    assert np.random.random() == expected


def test_early_stopping_and_validation(tmp_path) -> None:
    data = get("sine", n_points=20)
    train, val = data.split(0.25, seed=0)
    network = build_network(
        [1, 4, 1],
        output="linear",
        seed=1,
        hyperparameters=Hyperparameters(learning_rate=1e-12),
    )
    train_capture, val_capture = _Capture(), _Capture()
    result = Trainer(network).run(
        train,
        epochs=10,
        seed=0,
        val_data=val,
        split_loggers={"train": [train_capture], "val": [val_capture]},
        early_stopping_patience=2,
        checkpoint_dir=tmp_path,
    )

    assert len(val_capture.history) == 3
    assert result.steps == 3 * len(train)
    assert {"loss", "mae", "rmse", "r2"} <= set(val_capture.history[0][1])
    assert (tmp_path / "best.ckpt").exists()
    assert result.checkpoint_path == str(tmp_path / "last.ckpt")


def test_checkpoint_restores_network(tmp_path) -> None:
    data = get("xor")
    network = build_network([2, 3, 1], seed=5)
    Trainer(network).run(data, epochs=20, seed=0, task_type="binary", checkpoint_dir=tmp_path)

    state = load_checkpoint(tmp_path / "last.ckpt")
    restored = build_network([2, 3, 1], seed=99)
    restored.load_state_dict(state)
    for x in data.inputs:
        assert np.array_equal(network.predict(x), restored.predict(x))


def test_sample_weights_of_zero_freeze_training() -> None:
    data = get("xor")
    network = build_network([2, 3, 1], seed=5)
    before = network.state_dict()
    Trainer(network).run(data, epochs=3, seed=0, task_type="binary", sample_weights=np.zeros(4))
    for key, value in network.state_dict().items():
        assert np.array_equal(before[key], value)
