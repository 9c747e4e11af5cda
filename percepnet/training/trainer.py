"""Deterministic epoch loops over a :class:`~percepnet.training.network.Network`."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Sequence

import numpy as np
import structlog

from ..core.types import Array, Batch, RunResult
from .metrics import compute_metrics, default_metrics
from .network import Network

logger = structlog.get_logger(__name__)

Schedule = Callable[[int], float]


class Trainer:
    """Run per-instance SGD epochs with callbacks, schedules and checkpoints."""

    def __init__(
        self,
        network: Network,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.callbacks = list(callbacks or [])

    def run(
        self,
        data: Batch,
        epochs: int,
        seed: int,
        *,
        sample_weights: Sequence[float] | Array | None = None,
        val_data: Batch | None = None,
        task_type: str = "regression",
        metric_names: Sequence[str] | str = (),
        schedule: Schedule | None = None,
        shuffle: bool = True,
        eval_every: int = 1,
        split_loggers: Mapping[str, Sequence[object]] | None = None,
        early_stopping_patience: int | None = None,
        checkpoint_dir: str | Path | None = None,
    ) -> RunResult:
        """Train for ``epochs`` passes over ``data``.

        ``data`` and ``val_data`` only need ``inputs`` and ``targets`` arrays,
        so both :class:`~percepnet.core.types.Batch` and
        :class:`~percepnet.data.registry.Dataset` are accepted.
        """

        inputs = np.asarray(data.inputs, dtype=np.float64)
        targets = np.asarray(data.targets, dtype=np.float64)
        if inputs.shape[0] != targets.shape[0]:
            raise ValueError(
                f"Got {inputs.shape[0]} inputs but {targets.shape[0]} targets"
            )
        n = inputs.shape[0]
        if n == 0:
            raise ValueError("Cannot train on an empty dataset")
        if sample_weights is None:
            weights = np.ones(n)
        else:
            weights = np.asarray(sample_weights, dtype=np.float64).reshape(-1)
            if weights.shape[0] != n:
                raise ValueError(f"Got {weights.shape[0]} sample weights for {n} instances")

        if isinstance(metric_names, str):
            if metric_names == "default" or metric_names.strip() == "":
                metric_names = default_metrics(task_type)
            else:
                metric_names = [m.strip() for m in metric_names.split(",") if m.strip()]
        if not metric_names:
            metric_names = default_metrics(task_type)

        rng = np.random.default_rng(seed)
        split_loggers = split_loggers or {}
        checkpoint_path = ""
        if checkpoint_dir is not None:
            checkpoint_dir = Path(checkpoint_dir)
            checkpoint_dir.mkdir(parents=True, exist_ok=True)

        best_loss = float("inf")
        epochs_no_improve = 0
        total_steps = 0
        for epoch in range(1, epochs + 1):
            if schedule is not None:
                self.network.learning_rate = schedule(epoch)

            order = rng.permutation(n) if shuffle else np.arange(n)
            total = 0.0
            for idx in order:
                total += self.network.train(inputs[idx], targets[idx], weights[idx])
            total_steps += n

            train_metrics = {"loss": total / n}
            train_metrics.update(self._score(inputs, targets, metric_names, task_type))
            train_metrics["learning_rate"] = self.network.learning_rate
            self._emit_epoch("train", epoch, train_metrics, split_loggers)

            val_metrics = None
            if val_data is not None and epoch % max(1, eval_every) == 0:
                val_metrics = self.evaluate(val_data, metric_names, task_type=task_type)
                self._emit_epoch("val", epoch, val_metrics, split_loggers)

            target_metrics = val_metrics or train_metrics
            current_loss = float(target_metrics.get("loss", 0.0))
            logger.debug("epoch_complete", epoch=epoch, loss=current_loss)
            if current_loss < best_loss - 1e-9:
                best_loss = current_loss
                epochs_no_improve = 0
                if checkpoint_dir is not None:
                    self._save_checkpoint(checkpoint_dir / "best.ckpt", self.network.state_dict())
            else:
                epochs_no_improve += 1
                if early_stopping_patience and epochs_no_improve >= early_stopping_patience:
                    logger.info("early_stopping", epoch=epoch, best_loss=best_loss)
                    break

        if checkpoint_dir is not None:
            last = checkpoint_dir / "last.ckpt"
            self._save_checkpoint(last, self.network.state_dict())
            checkpoint_path = str(last)
        return RunResult(
            steps=total_steps,
            metrics_path="",
            manifest_path="",
            checkpoint_path=checkpoint_path,
        )

    def evaluate(
        self,
        data: Batch,
        metric_names: Sequence[str] = (),
        *,
        task_type: str = "regression",
    ) -> dict[str, float]:
        """Mean loss and metrics of the current weights on ``data``."""

        inputs = np.asarray(data.inputs, dtype=np.float64)
        targets = np.asarray(data.targets, dtype=np.float64)
        total = 0.0
        for x, y in zip(inputs, targets):
            self.network.propagate(x)
            total += self.network.compute_output_error(y)
        metrics = {"loss": total / max(1, inputs.shape[0])}
        metrics.update(self._score(inputs, targets, metric_names, task_type))
        return metrics

    # ------------------------------------------------------------------
    # Internal helpers

    def _score(
        self,
        inputs: Array,
        targets: Array,
        metric_names: Sequence[str],
        task_type: str,
    ) -> Mapping[str, float]:
        if not metric_names:
            return {}
        predictions = np.vstack([self.network.predict(x) for x in inputs])
        return compute_metrics(metric_names, predictions, targets, task_type=task_type)

    def _emit_epoch(
        self,
        split: str,
        epoch: int,
        metrics: Mapping[str, float],
        loggers: Mapping[str, Sequence[object]],
    ) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
        for callback in loggers.get(split, []):
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)

    @staticmethod
    def _save_checkpoint(path: Path, state: Mapping[str, Array]) -> None:
        payload = {name: value for name, value in state.items()}
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            np.savez_compressed(handle, **payload)


def load_checkpoint(path: str | Path) -> dict[str, Array]:
    """Read a checkpoint written by :class:`Trainer`."""

    with np.load(Path(path)) as archive:
        return {name: archive[name] for name in archive.files}


__all__ = ["Schedule", "Trainer", "load_checkpoint"]
