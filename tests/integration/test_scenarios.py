"""End-to-end scenarios over the wired in-memory stack.

Time that matters to the state machine is driven by a manual clock; only the
short post-removal and registration timers run on the event loop.
"""

import asyncio

import pytest
import pytest_asyncio

from corenet_registry.domain.enums import (
    AuditKind,
    ComponentType,
    DeregistrationReason,
    LinkRejectionReason,
    RegistrationStatus,
)
from corenet_registry.domain.events import UnregisteredInstanceNoticeEvent
from corenet_registry.domain.models import Link, LinkRejection
from corenet_registry.infrastructure.bootstrap import build_registry_stack
from corenet_registry.infrastructure.config import CoordinatorConfig, RegistryConfig
from corenet_registry.infrastructure.in_memory_inventory import InMemoryComponentInventory
from tests.builders import make_component

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def stack(clock, mock_logger):
    """A started stack whose sweeper never fires on its own."""
    inventory = InMemoryComponentInventory(
        [
            make_component("nrf-1", ComponentType.NRF, "192.168.1.10"),
            make_component("amf-1", ComponentType.AMF, "192.168.1.20"),
            make_component("smf-1", ComponentType.SMF, "10.0.0.9"),
            make_component("smf-2", ComponentType.SMF, "192.168.1.30"),
        ]
    )
    stack = build_registry_stack(
        registry_config=RegistryConfig(
            sweep_interval=3600, purge_delay=0.2, advisory_interval=0.05
        ),
        coordinator_config=CoordinatorConfig(registration_delay=0.01, renewal_interval=3600),
        clock=clock,
        logger=mock_logger,
        inventory=inventory,
    )
    async with stack:
        yield stack


async def link_and_register(stack, source_id: str, target_id: str) -> Link:
    link = await stack.coordinator.create_link(source_id, target_id)
    assert isinstance(link, Link)
    await asyncio.sleep(0.05)
    return link


@pytest.mark.asyncio
async def test_amf_registers_through_nrf_link(stack):
    """Linking an AMF to the NRF registers it, audits it and makes it discoverable."""
    await link_and_register(stack, "amf-1", "nrf-1")

    profile = await stack.registry.get_profile("amf-1")
    assert profile.status == RegistrationStatus.REGISTERED

    record = await stack.registry.get_registration_record("amf-1")
    assert record.kind == AuditKind.REGISTRATION
    assert record.display_name == "AMF-1"
    assert record.request_payload["nfType"] == "AMF"
    assert record.response_payload["heartBeatTimer"] == 60

    found = await stack.registry.discover("AMF")
    assert [p.instance_id for p in found] == ["amf-1"]
    assert stack.coordinator.is_renewing("amf-1")

    assert stack.events.event_types()[:3] == [
        "LinkCreated",
        "InstanceRegistered",
        "HeartbeatRenewed",
    ]


@pytest.mark.asyncio
async def test_cross_subnet_link_refused(stack):
    """An AMF cannot be linked to an SMF on another subnet, but can on its own."""
    refused = await stack.coordinator.create_link("amf-1", "smf-1")

    assert isinstance(refused, LinkRejection)
    assert refused.reason == LinkRejectionReason.SUBNET_MISMATCH

    accepted = await stack.coordinator.create_link("amf-1", "smf-2")

    assert isinstance(accepted, Link)
    assert accepted.interface_label == "Namf_Communication"
    assert [link.id for link in await stack.coordinator.list_links()] == [accepted.id]
    assert stack.events.event_types() == ["LinkRejected", "LinkCreated"]


@pytest.mark.asyncio
async def test_silence_restore_and_removal(stack, clock):
    """Timeout degrades the profile, a renewal restores it, longer silence removes it."""
    await link_and_register(stack, "amf-1", "nrf-1")
    stack.coordinator.stop_renewal("amf-1")

    clock.advance(121)
    await stack.registry.sweep()
    assert (await stack.registry.get_profile("amf-1")).status == RegistrationStatus.UNAVAILABLE
    assert await stack.registry.discover() == []

    assert await stack.registry.renew_heartbeat("amf-1") is True
    assert (await stack.registry.get_profile("amf-1")).status == RegistrationStatus.REGISTERED

    clock.advance(151)
    report = await stack.registry.sweep()

    assert report.marked_unavailable == ["amf-1"]
    assert report.removed == ["amf-1"]
    profile = await stack.registry.get_profile("amf-1")
    assert profile.status == RegistrationStatus.REMOVED
    assert profile.deregistration_reason == DeregistrationReason.HEARTBEAT_TIMEOUT

    # A renewal cannot bring a removed profile back
    assert await stack.registry.renew_heartbeat("amf-1") is False


@pytest.mark.asyncio
async def test_link_deletion_deregisters_then_purges(stack):
    """Deleting the NRF link removes the profile, nags while present, then purges it."""
    link = await link_and_register(stack, "amf-1", "nrf-1")

    assert await stack.coordinator.delete_link(link.id) is True

    profile = await stack.registry.get_profile("amf-1")
    assert profile.status == RegistrationStatus.REMOVED
    assert profile.deregistration_reason == DeregistrationReason.LINK_REMOVED
    record = await stack.registry.get_deregistration_record("amf-1")
    assert record.request_payload["reason"] == "LINK_REMOVED"

    await asyncio.sleep(0.3)

    assert await stack.registry.get_profile("amf-1") is None
    assert stack.events.history(UnregisteredInstanceNoticeEvent)
    assert "InstancePurged" in stack.events.event_types()


@pytest.mark.asyncio
async def test_relinking_starts_a_new_lifecycle(stack, clock):
    link = await link_and_register(stack, "amf-1", "nrf-1")
    await stack.coordinator.delete_link(link.id)
    clock.advance(10)

    await link_and_register(stack, "nrf-1", "amf-1")

    profile = await stack.registry.get_profile("amf-1")
    assert profile.status == RegistrationStatus.REGISTERED
    assert profile.registered_at == clock.now()
    assert len(await stack.registry.registration_history()) == 2

    notices = len(stack.events.history(UnregisteredInstanceNoticeEvent))
    await asyncio.sleep(0.3)
    assert len(stack.events.history(UnregisteredInstanceNoticeEvent)) == notices
    assert await stack.registry.get_profile("amf-1") is not None
