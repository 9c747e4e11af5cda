"""percepnet public API."""

from .core import activations, objectives, types  # noqa: F401
from .core.activations import ActivationFunction
from .core.errors import (
    ArchitectureError,
    InvalidParameterError,
    InvalidStateError,
    PercepnetError,
    UnsupportedCombinationError,
)
from .core.layer import Layer
from .core.objectives import ObjectiveFunction
from .core.types import Hyperparameters
from .models import MLPClassifier, MLPRegressor
from .training.network import Network, build_network
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "ActivationFunction",
    "ArchitectureError",
    "Hyperparameters",
    "InvalidParameterError",
    "InvalidStateError",
    "Layer",
    "MLPClassifier",
    "MLPRegressor",
    "Network",
    "ObjectiveFunction",
    "PercepnetError",
    "Trainer",
    "UnsupportedCombinationError",
    "activations",
    "build_network",
    "load_preset",
    "objectives",
    "presets",
    "run_pipeline",
    "types",
]
