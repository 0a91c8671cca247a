"""Application layer - Link coordination over the registry."""

from .connection_coordinator import ConnectionCoordinator

__all__ = ["ConnectionCoordinator"]
