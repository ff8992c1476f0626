# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Probabilistic roadmap navigation for crowds of agents."""

from .config import NavConfig, load_config
from .errors import EmptyQueueError, SolveCancelled, SolveFailed
from .navigation import NavigationController

__version__ = "0.1.0"

__all__ = [
    "NavConfig",
    "load_config",
    "NavigationController",
    "EmptyQueueError",
    "SolveCancelled",
    "SolveFailed",
    "__version__",
]
