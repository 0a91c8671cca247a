"""corenet-registry - Service registry with heartbeat liveness and link policy."""

from .application.connection_coordinator import ConnectionCoordinator
from .infrastructure.bootstrap import RegistryStack, build_registry_stack
from .infrastructure.in_memory_registry import InMemoryRegistry

__all__ = ["ConnectionCoordinator", "InMemoryRegistry", "RegistryStack", "build_registry_stack"]
__version__ = "0.1.0"
