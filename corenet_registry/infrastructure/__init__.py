"""Infrastructure layer - In-memory adapters, timers and configuration."""

from .config import CoordinatorConfig, RegistryConfig
from .heartbeat_sweeper import HeartbeatSweeper
from .in_memory_event_bus import InMemoryEventBus
from .in_memory_inventory import InMemoryComponentInventory
from .in_memory_link_repository import InMemoryLinkRepository
from .in_memory_registry import InMemoryRegistry
from .simple_logger import SimpleLogger
from .system_clock import ManualClock, SystemClock
from .task_scheduler import KeyedTaskScheduler

__all__ = [
    "CoordinatorConfig",
    "HeartbeatSweeper",
    "InMemoryComponentInventory",
    "InMemoryEventBus",
    "InMemoryLinkRepository",
    "InMemoryRegistry",
    "KeyedTaskScheduler",
    "ManualClock",
    "RegistryConfig",
    "SimpleLogger",
    "SystemClock",
]
