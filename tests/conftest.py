"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest
import pytest_asyncio

from corenet_registry.application.connection_coordinator import ConnectionCoordinator
from corenet_registry.domain.enums import ComponentType
from corenet_registry.infrastructure.config import CoordinatorConfig, RegistryConfig
from corenet_registry.infrastructure.in_memory_event_bus import InMemoryEventBus
from corenet_registry.infrastructure.in_memory_inventory import InMemoryComponentInventory
from corenet_registry.infrastructure.in_memory_link_repository import InMemoryLinkRepository
from corenet_registry.infrastructure.in_memory_registry import InMemoryRegistry
from corenet_registry.infrastructure.system_clock import ManualClock
from corenet_registry.ports.logger import LoggerPort
from tests.builders import T0, make_component


@pytest.fixture
def clock():
    """A manual clock starting at a fixed instant."""
    return ManualClock(T0)


@pytest.fixture
def mock_logger():
    """Create a mock logger."""
    return Mock(spec=LoggerPort)


@pytest.fixture
def event_bus(mock_logger):
    return InMemoryEventBus(logger=mock_logger)


@pytest.fixture
def inventory():
    """Inventory with an NRF and an AMF on one subnet and an SMF on another."""
    return InMemoryComponentInventory(
        [
            make_component("nrf-1", ComponentType.NRF, "192.168.1.10"),
            make_component("amf-1", ComponentType.AMF, "192.168.1.20"),
            make_component("smf-1", ComponentType.SMF, "10.0.0.9"),
        ]
    )


@pytest.fixture
def registry_config():
    """Default timings with short post-removal tasks."""
    return RegistryConfig(purge_delay=0.05, advisory_interval=0.05)


@pytest.fixture
def coordinator_config():
    """Short registration delay; renewals effectively only fire once."""
    return CoordinatorConfig(registration_delay=0.01, renewal_interval=3600)


@pytest_asyncio.fixture
async def registry(registry_config, clock, mock_logger, event_bus, inventory):
    """Registry over the manual clock, closed after the test."""
    registry = InMemoryRegistry(
        config=registry_config,
        clock=clock,
        logger=mock_logger,
        event_publisher=event_bus,
        inventory=inventory,
    )
    yield registry
    await registry.close()


@pytest_asyncio.fixture
async def coordinator(registry, inventory, coordinator_config, clock, mock_logger, event_bus):
    """Coordinator wired to the registry fixture, shut down after the test."""
    coordinator = ConnectionCoordinator(
        registry=registry,
        inventory=inventory,
        link_repository=InMemoryLinkRepository(),
        config=coordinator_config,
        clock=clock,
        logger=mock_logger,
        event_publisher=event_bus,
    )
    yield coordinator
    await coordinator.shutdown()
