"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import Dataset, register_dataset


@register_dataset("xor")
def make_xor(repeats: int = 1, **_: object) -> Dataset:
    """The four XOR points, optionally repeated."""

    x = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    y = np.array([[0.0], [1.0], [1.0], [0.0]])
    repeats = max(1, int(repeats))
    return Dataset(
        name="xor",
        inputs=np.tile(x, (repeats, 1)),
        targets=np.tile(y, (repeats, 1)),
        task_type="binary",
        num_classes=2,
        provenance={"type": "xor", "repeats": repeats},
    )


@register_dataset("sine")
def make_sine(freq: float = 1.0, n_points: int = 64, noise: float = 0.05, seed: int = 0, **_: object) -> Dataset:
    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, int(n_points)).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    return Dataset(
        name="sine",
        inputs=x,
        targets=y,
        task_type="regression",
        provenance={"type": "sine", "freq": freq, "n_points": int(n_points), "noise": noise, "seed": seed},
    )


@register_dataset("blobs")
def make_blobs(
    n_classes: int = 3,
    n_per_class: int = 30,
    d_in: int = 2,
    spread: float = 0.3,
    seed: int = 0,
    **_: object,
) -> Dataset:
    """Gaussian clusters around random centres, one-hot targets."""

    n_classes = int(n_classes)
    if n_classes < 2:
        raise ValueError("blobs needs at least 2 classes")
    rng = np.random.default_rng(seed)
    centres = rng.uniform(-2.0, 2.0, size=(n_classes, int(d_in)))
    inputs = []
    labels = []
    for label, centre in enumerate(centres):
        inputs.append(centre + spread * rng.standard_normal(size=(int(n_per_class), int(d_in))))
        labels.append(np.full(int(n_per_class), label))
    x = np.vstack(inputs)
    y = np.eye(n_classes)[np.concatenate(labels)]
    order = rng.permutation(x.shape[0])
    return Dataset(
        name="blobs",
        inputs=x[order],
        targets=y[order],
        task_type="multiclass",
        num_classes=n_classes,
        provenance={
            "type": "blobs",
            "n_classes": n_classes,
            "n_per_class": int(n_per_class),
            "d_in": int(d_in),
            "spread": spread,
            "seed": seed,
        },
    )


__all__ = ["make_blobs", "make_sine", "make_xor"]
