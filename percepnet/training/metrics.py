"""Metric helpers for the epoch trainer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mae", "rmse", "r2"]
    if task_type in {"binary", "multiclass"}:
        return ["accuracy"]
    raise ValueError(f"Unknown task type: {task_type}")


def _labels(values: Array, task_type: str) -> Array:
    if task_type == "multiclass" or (values.ndim == 2 and values.shape[1] > 1):
        return np.argmax(values, axis=1)
    return (values.reshape(-1) >= 0.5).astype(int)


def compute_metric(
    name: str,
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> MetricResult:
    """Evaluate ``name`` on network outputs (activations, not logits)."""

    key = name.lower()
    preds = predictions
    targs = targets
    if key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "r2":
        mean = np.mean(targs, axis=0, keepdims=True)
        ss_res = float(np.sum((targs - preds) ** 2))
        ss_tot = float(np.sum((targs - mean) ** 2))
        value = 1.0 if ss_tot == 0 else float(1 - ss_res / (ss_tot + 1e-9))
    elif key == "accuracy":
        value = float(np.mean(_labels(preds, task_type) == _labels(targs, task_type)))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str],
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets, task_type=task_type)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "default_metrics"]
