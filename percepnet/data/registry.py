"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

import numpy as np

from ..core.types import Array

TASK_TYPES = frozenset({"regression", "binary", "multiclass"})


@dataclass(frozen=True)
class Dataset:
    """Paired input/target vectors held in memory.

    Attributes
    ----------
    inputs:
        Array of shape ``(n, d_in)``.
    targets:
        Array of shape ``(n, d_out)``.  Multiclass targets are one-hot.
    task_type:
        One of ``{"regression", "binary", "multiclass"}``.
    num_classes:
        Number of classes for classification tasks.
    provenance:
        Generation parameters, written to the run manifest.
    """

    name: str
    inputs: Array
    targets: Array
    task_type: str
    num_classes: int | None = None
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def d_in(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def d_out(self) -> int:
        return int(self.targets.shape[1])

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    def split(self, val_split: float = 0.0, *, seed: int = 0) -> tuple["Dataset", "Dataset | None"]:
        """Return deterministic train/validation partitions."""

        if not 0.0 <= val_split < 1.0:
            raise ValueError("val_split must be in [0, 1)")
        n_val = int(round(len(self) * val_split))
        if n_val == 0:
            return self, None
        rng = np.random.default_rng(seed)
        indices = rng.permutation(len(self))
        return self._take(indices[n_val:], "train"), self._take(indices[:n_val], "val")

    def _take(self, indices: Array, split: str) -> "Dataset":
        return Dataset(
            name=f"{self.name}:{split}",
            inputs=self.inputs[indices],
            targets=self.targets[indices],
            task_type=self.task_type,
            num_classes=self.num_classes,
            provenance=dict(self.provenance),
        )


DatasetFactory = Callable[..., Dataset]

_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory, directly or as a decorator."""

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    return _decorator


def get(name: str, /, **options: Any) -> Dataset:
    """Build the dataset registered as ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {name!r}. Available datasets: {available}")
    dataset = _REGISTRY[name](**options)
    _validate(dataset)
    return dataset


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate(dataset: Dataset) -> None:
    if dataset.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {dataset.task_type}")
    if dataset.task_type != "regression" and dataset.num_classes is None:
        raise ValueError("Classification datasets must define num_classes")
    if dataset.inputs.ndim != 2 or dataset.targets.ndim != 2:
        raise ValueError("Dataset inputs and targets must be 2-D arrays")
    if dataset.inputs.shape[0] != dataset.targets.shape[0]:
        raise ValueError(
            f"Dataset has {dataset.inputs.shape[0]} inputs but {dataset.targets.shape[0]} targets"
        )


__all__ = ["Dataset", "available_datasets", "get", "register_dataset"]
