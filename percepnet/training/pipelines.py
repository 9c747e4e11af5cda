"""Config-driven training runs and presets."""

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

import structlog
import yaml

from ..core.activations import ActivationFunction
from ..core.objectives import ObjectiveFunction
from ..core.types import Hyperparameters, RunResult
from ..data import registry
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from .network import DEFAULT_DECAY_FLOOR, Network, build_network
from .trainer import Trainer

logger = structlog.get_logger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-sigmoid": {
        "data": {"name": "xor", "options": {}},
        "model": {
            "hidden": [3],
            "hidden_activation": "sigmoid",
            "output_activation": "sigmoid",
            "objective": "least_mean_squares",
        },
        "train": {
            "epochs": 2000,
            "seed": 7,
            "learning_rate": 0.5,
            "momentum": 0.5,
            "weight_decay": 0.0,
            "run_dir": "runs/xor-sigmoid",
        },
    },
    "sine-regression": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 64, "seed": 0}},
        "model": {
            "hidden": [16],
            "hidden_activation": "tanh",
            "output_activation": "linear",
            "objective": "least_mean_squares",
        },
        "train": {
            "epochs": 200,
            "seed": 3,
            "learning_rate": 0.05,
            "momentum": 0.3,
            "weight_decay": 0.0,
            "val_split": 0.2,
            "run_dir": "runs/sine-regression",
        },
    },
    "blobs-softmax": {
        "data": {"name": "blobs", "options": {"n_classes": 3, "n_per_class": 30, "seed": 0}},
        "model": {
            "hidden": [8],
            "hidden_activation": "sigmoid",
            "output_activation": "softmax",
            "objective": "cross_entropy",
        },
        "train": {
            "epochs": 50,
            "seed": 1,
            "learning_rate": 0.1,
            "momentum": 0.2,
            "weight_decay": 0.001,
            "val_split": 0.2,
            "run_dir": "runs/blobs-softmax",
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None

_REQUIRED_SECTIONS = {"data", "model", "train"}


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    available = presets()
    try:
        return available[name]
    except KeyError as exc:
        names = ", ".join(sorted(available))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {names}") from exc


def load_config(path: str | Path) -> Mapping[str, object]:
    """Read a JSON or YAML run config."""

    return _read_preset_file(Path(path))


def build_from_config(model_cfg: Mapping[str, object], train_cfg: Mapping[str, object], d_in: int, d_out: int) -> Network:
    """Build the network described by the ``model`` and ``train`` sections."""

    hidden = [int(h) for h in model_cfg.get("hidden", [10])]  # type: ignore[union-attr]
    if not hidden:
        raise ValueError("model.hidden must list at least one hidden layer width")
    hyper = Hyperparameters(
        learning_rate=float(train_cfg.get("learning_rate", 0.1)),
        momentum=float(train_cfg.get("momentum", 0.0)),
        weight_decay=float(train_cfg.get("weight_decay", 0.0)),
    )
    return build_network(
        [int(d_in), *hidden, int(d_out)],
        hidden=ActivationFunction.parse(str(model_cfg.get("hidden_activation", "sigmoid"))),
        output=ActivationFunction.parse(str(model_cfg.get("output_activation", "sigmoid"))),
        objective=ObjectiveFunction.parse(str(model_cfg.get("objective", "least_mean_squares"))),
        seed=int(train_cfg.get("seed", 0)),
        hyperparameters=hyper,
        decay_floor=float(train_cfg.get("decay_floor", DEFAULT_DECAY_FLOOR)),
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train the network described by ``config`` and write run artifacts."""

    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = registry.get(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    seed = int(train_cfg.get("seed", 0))
    train_set, val_set = dataset.split(float(train_cfg.get("val_split", 0.0)), seed=seed)

    network = build_from_config(model_cfg, train_cfg, dataset.d_in, dataset.d_out)
    run_dir = Path(str(train_cfg.get("run_dir", f"runs/{dataset.name}")))
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=[network.input_units, *[layer.output_units for layer in network.layers]],
        objective=network.objective.value,
        activations=[layer.activation.value for layer in network.layers],
        hyperparameters=network.hyperparameters,
        param_count=network.parameter_count(),
    )

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics_train.csv", split="train")
    capture_val = MetricsCapture()
    split_loggers: Dict[str, list] = {"train": [train_jsonl, train_csv]}
    if val_set is not None:
        val_jsonl = JsonlSink(run_dir / "metrics_val.jsonl", split="val", seed=seed)
        split_loggers["val"] = [val_jsonl, CsvSink(run_dir / "metrics_val.csv", split="val"), capture_val]

    patience = train_cfg.get("early_stopping_patience")
    trainer = Trainer(network)
    result = trainer.run(
        train_set,
        epochs=int(train_cfg.get("epochs", 1)),
        seed=seed,
        val_data=val_set,
        task_type=dataset.task_type,
        metric_names=train_cfg.get("metrics", "default"),  # type: ignore[arg-type]
        shuffle=bool(train_cfg.get("shuffle", True)),
        eval_every=int(train_cfg.get("eval_every", 1)),
        split_loggers=split_loggers,
        early_stopping_patience=int(patience) if patience is not None else None,
        checkpoint_dir=run_dir,
    )

    if capture_val.last is not None:
        (run_dir / "metrics_val.json").write_text(json.dumps(capture_val.last, indent=2))

    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        network={
            "objective": network.objective.value,
            "layers": [
                {"input_units": layer.input_units, "output_units": layer.output_units, "activation": layer.activation.value}
                for layer in network.layers
            ],
            "parameters": network.parameter_count(),
        },
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    logger.info("run_complete", run_dir=str(run_dir), steps=result.steps)

    return RunResult(
        steps=result.steps,
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        checkpoint_path=result.checkpoint_path,
    )


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: list[int],
    objective: str,
    activations: list[str],
    hyperparameters: Hyperparameters,
    param_count: int,
) -> None:
    print("=== percepnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {dims}")
    print(f"Activations   : {activations}")
    print(f"Objective     : {objective}")
    print(f"Learning rate : {hyperparameters.learning_rate}")
    print(f"Momentum      : {hyperparameters.momentum}")
    print(f"Weight decay  : {hyperparameters.weight_decay}")
    print(f"Parameters    : {param_count}")
    print("=====================")


__all__ = ["build_from_config", "load_config", "load_preset", "presets", "run_pipeline"]
