import json
from pathlib import Path

import pytest

from percepnet.training import pipelines


def _config(run_dir: Path) -> dict:
    return {
        "data": {"name": "blobs", "options": {"n_classes": 3, "n_per_class": 10, "seed": 0}},
        "model": {
            "hidden": [4],
            "hidden_activation": "sigmoid",
            "output_activation": "softmax",
            "objective": "cross_entropy",
        },
        "train": {
            "epochs": 3,
            "seed": 11,
            "learning_rate": 0.1,
            "momentum": 0.2,
            "weight_decay": 0.001,
            "val_split": 0.2,
            "run_dir": str(run_dir),
        },
    }


def test_pipeline_produces_artifacts(tmp_path):
    config = _config(tmp_path / "run")
    result = pipelines.run_pipeline(config)

    assert result.steps == 3 * 24
    assert Path(result.metrics_path).exists()
    assert Path(result.checkpoint_path).exists()
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 11
    assert manifest["dataset"]["type"] == "blobs"
    assert manifest["network"]["objective"] == "cross_entropy"
    assert [layer["activation"] for layer in manifest["network"]["layers"]] == ["sigmoid", "softmax"]

    metrics = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line]
    assert [entry["epoch"] for entry in metrics] == [1, 2, 3]
    assert all(entry["split"] == "train" and "loss" in entry and "accuracy" in entry for entry in metrics)
    assert (tmp_path / "run" / "metrics_val.jsonl").exists()
    assert (tmp_path / "run" / "metrics_train.csv").read_text().startswith("accuracy,epoch")


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run1"))
    second = pipelines.run_pipeline(_config(tmp_path / "run2"))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()


def test_pipeline_rejects_invalid_hyperparameters(tmp_path):
    from percepnet.core.errors import InvalidParameterError

    config = _config(tmp_path / "run")
    config["train"]["weight_decay"] = 0.5
    with pytest.raises(InvalidParameterError):
        pipelines.run_pipeline(config)
    with pytest.raises(KeyError):
        pipelines.run_pipeline({"data": config["data"]})


def test_builtin_presets_are_complete():
    available = pipelines.presets()
    assert {"xor-sigmoid", "sine-regression", "blobs-softmax"} <= set(available)
    for cfg in available.values():
        assert {"data", "model", "train"} <= set(cfg)
    with pytest.raises(KeyError, match="Available presets"):
        pipelines.load_preset("does-not-exist")


def test_yaml_presets_are_loaded(tmp_path, monkeypatch):
    preset_dir = tmp_path / "presets"
    preset_dir.mkdir()
    (preset_dir / "tiny.yaml").write_text(
        "data:\n  name: xor\nmodel:\n  hidden: [2]\ntrain:\n  epochs: 1\n"
    )
    monkeypatch.setattr(pipelines, "_PRESET_DIR", preset_dir)
    monkeypatch.setattr(pipelines, "_FILE_PRESETS_CACHE", None)
    preset = pipelines.load_preset("tiny")
    assert preset["model"]["hidden"] == [2]

    (preset_dir / "broken.yaml").write_text("data:\n  name: xor\n")
    monkeypatch.setattr(pipelines, "_FILE_PRESETS_CACHE", None)
    with pytest.raises(KeyError, match="missing required sections"):
        pipelines.presets()
