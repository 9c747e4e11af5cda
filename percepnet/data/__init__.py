"""Dataset registry and built-in datasets."""

# Ensure built-in datasets register themselves when the package is imported.
from . import synthetic as _synthetic  # noqa: F401
from .registry import Dataset, available_datasets, get, register_dataset

__all__ = ["Dataset", "available_datasets", "get", "register_dataset"]
