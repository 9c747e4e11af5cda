"""Training components: the network trainer, epoch loops and pipelines."""

from .network import Network, build_network
from .trainer import Trainer, load_checkpoint

__all__ = ["Network", "Trainer", "build_network", "load_checkpoint"]
