"""Error taxonomy for the perceptron training core."""

from __future__ import annotations


class PercepnetError(Exception):
    """Base class for every error raised by percepnet."""


class ArchitectureError(PercepnetError, ValueError):
    """The layer topology is invalid (too few layers or mismatched widths)."""


class InvalidParameterError(PercepnetError, ValueError):
    """A hyper-parameter or an input vector is out of range or mis-shaped."""


class InvalidStateError(PercepnetError, RuntimeError):
    """Individually valid settings that are jointly unsafe, or a re-entrant step."""


class UnsupportedCombinationError(PercepnetError, ValueError):
    """No gradient rule exists for an (objective, activation) pairing."""


__all__ = [
    "PercepnetError",
    "ArchitectureError",
    "InvalidParameterError",
    "InvalidStateError",
    "UnsupportedCombinationError",
]
