"""Core numerical primitives for percepnet."""

from . import activations, errors, layer, objectives, types

__all__ = ["activations", "errors", "layer", "objectives", "types"]
