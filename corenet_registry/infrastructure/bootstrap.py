"""Bootstrap module wiring the default in-memory stack.

Builds the registry, the link coordinator and the heartbeat sweeper over
shared clock, logger, event bus and inventory instances.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..application.connection_coordinator import ConnectionCoordinator
from ..domain.value_objects import Duration
from ..ports.clock import ClockPort
from ..ports.logger import LoggerPort
from .config import CoordinatorConfig, RegistryConfig
from .heartbeat_sweeper import HeartbeatSweeper
from .in_memory_event_bus import InMemoryEventBus
from .in_memory_inventory import InMemoryComponentInventory
from .in_memory_link_repository import InMemoryLinkRepository
from .in_memory_registry import InMemoryRegistry
from .simple_logger import SimpleLogger
from .system_clock import SystemClock


@dataclass
class RegistryStack:
    """The wired components of one registry process."""

    registry: InMemoryRegistry
    coordinator: ConnectionCoordinator
    sweeper: HeartbeatSweeper
    inventory: InMemoryComponentInventory
    links: InMemoryLinkRepository
    events: InMemoryEventBus
    clock: ClockPort
    logger: LoggerPort

    async def start(self) -> None:
        """Start the background heartbeat sweep."""
        await self.sweeper.start()

    async def stop(self) -> None:
        """Stop the sweep and cancel every pending timer."""
        await self.sweeper.stop()
        await self.coordinator.shutdown()
        await self.registry.close()

    async def __aenter__(self) -> RegistryStack:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()


def build_registry_stack(
    registry_config: RegistryConfig | None = None,
    coordinator_config: CoordinatorConfig | None = None,
    clock: ClockPort | None = None,
    logger: LoggerPort | None = None,
    inventory: InMemoryComponentInventory | None = None,
) -> RegistryStack:
    """Build the default stack.

    Args:
        registry_config: Registry settings (default: from environment)
        coordinator_config: Coordinator settings (default: from environment)
        clock: Shared clock (default: SystemClock)
        logger: Shared logger (default: SimpleLogger)
        inventory: Pre-populated inventory, if any

    Returns:
        A stack that has not been started yet
    """
    registry_config = registry_config or RegistryConfig.from_env()
    coordinator_config = coordinator_config or CoordinatorConfig.from_env()
    clock = clock or SystemClock()
    logger = logger or SimpleLogger()
    if inventory is None:
        inventory = InMemoryComponentInventory()
    events = InMemoryEventBus(logger=logger)
    links = InMemoryLinkRepository()

    registry = InMemoryRegistry(
        config=registry_config,
        clock=clock,
        logger=logger,
        event_publisher=events,
        inventory=inventory,
    )
    coordinator = ConnectionCoordinator(
        registry=registry,
        inventory=inventory,
        link_repository=links,
        config=coordinator_config,
        clock=clock,
        logger=logger,
        event_publisher=events,
    )
    sweeper = HeartbeatSweeper(
        registry,
        interval=Duration(seconds=registry_config.sweep_interval),
        clock=clock,
        logger=logger,
    )
    return RegistryStack(
        registry=registry,
        coordinator=coordinator,
        sweeper=sweeper,
        inventory=inventory,
        links=links,
        events=events,
        clock=clock,
        logger=logger,
    )
