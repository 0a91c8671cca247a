"""Tests for the in-memory registry store."""

import asyncio

import pytest

from corenet_registry.domain.enums import (
    AuditKind,
    ComponentType,
    DeregistrationReason,
    RegistrationStatus,
)
from corenet_registry.domain.events import (
    InstanceDeregisteredEvent,
    InstancePurgedEvent,
    InstanceStatusChangedEvent,
    UnregisteredInstanceNoticeEvent,
)
from corenet_registry.domain.exceptions import (
    DuplicateRegistrationError,
    RegistrationValidationError,
)
from corenet_registry.domain.models import ProfileUpdate
from corenet_registry.infrastructure.config import RegistryConfig
from corenet_registry.infrastructure.in_memory_registry import InMemoryRegistry
from corenet_registry.ports.registry import RegistryPort
from tests.builders import T0, amf_update


class TestRegistration:
    """Test cases for register."""

    @pytest.mark.asyncio
    async def test_register_new_instance(self, registry):
        result = await registry.register("amf-1", amf_update())

        assert isinstance(registry, RegistryPort)
        assert result.instance_id == "amf-1"
        assert result.status == RegistrationStatus.REGISTERED
        assert result.heartbeat_interval_ms == 60_000
        assert result.validity_seconds == 3600

        profile = await registry.get_profile("amf-1")
        assert profile.registered_at == T0
        assert profile.last_renewal == T0
        assert [s.service_name for s in profile.services] == ["namf-comm"]

    @pytest.mark.asyncio
    async def test_register_without_update(self, registry):
        await registry.register("anon-123456")

        profile = await registry.get_profile("anon-123456")
        assert profile.component_type is None
        assert profile.display_name == "NF-123456"

    @pytest.mark.asyncio
    async def test_re_registration_preserves_registered_at(self, registry, clock):
        await registry.register("amf-1", amf_update(capacity=10))
        clock.advance(30)

        await registry.register("amf-1", ProfileUpdate(load=5))

        profile = await registry.get_profile("amf-1")
        assert profile.registered_at == T0
        assert profile.last_renewal == clock.now()
        assert profile.capacity == 10
        assert profile.load == 5
        assert (await registry.get_statistics()).total == 1

    @pytest.mark.asyncio
    async def test_re_registration_restores_unavailable(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()

        result = await registry.register("amf-1")

        assert result.status == RegistrationStatus.REGISTERED
        assert (await registry.get_profile("amf-1")).registered_at == T0

    @pytest.mark.asyncio
    async def test_re_registration_of_unavailable_publishes_status_change(
        self, registry, clock, event_bus
    ):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()
        event_bus.clear()

        await registry.register("amf-1", amf_update())

        assert event_bus.event_types() == ["InstanceRegistered", "InstanceStatusChanged"]
        change = event_bus.history(InstanceStatusChangedEvent)[0]
        assert (change.old_status, change.new_status) == ("UNAVAILABLE", "REGISTERED")
        assert change.reason == "RE_REGISTRATION"

    @pytest.mark.asyncio
    async def test_re_registration_of_registered_has_no_status_change(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.register("amf-1", amf_update())

        assert event_bus.history(InstanceStatusChangedEvent) == []

    @pytest.mark.asyncio
    async def test_registration_after_removal_starts_new_lifecycle(self, registry, clock):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        clock.advance(10)

        await registry.register("amf-1", amf_update())

        profile = await registry.get_profile("amf-1")
        assert profile.status == RegistrationStatus.REGISTERED
        assert profile.registered_at == clock.now()
        assert profile.deregistered_at is None

    @pytest.mark.asyncio
    async def test_each_registration_is_audited(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.register("amf-1", amf_update())

        history = await registry.registration_history()
        assert len(history) == 2
        assert all(record.kind == AuditKind.REGISTRATION for record in history)

        record = await registry.get_registration_record("amf-1")
        assert record is history[-1]
        assert record.request_payload["nfInstanceId"] == "amf-1"
        assert record.request_payload["nfType"] == "AMF"
        assert record.request_payload["ipv4Addresses"] == ["192.168.1.20"]
        assert record.request_payload["allowedNfTypes"] == ["SMF"]
        assert record.request_payload["nfServices"][0]["serviceName"] == "namf-comm"
        assert record.response_payload["heartBeatTimer"] == 60

    @pytest.mark.asyncio
    async def test_registration_event(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.register("amf-1", amf_update())

        events = event_bus.history()
        assert [e.event_type for e in events] == ["InstanceRegistered", "InstanceRegistered"]
        assert events[0].re_registration is False
        assert events[1].re_registration is True


class TestStrictRegistration:
    """Test cases for the opt-in strict modes."""

    @pytest.mark.asyncio
    async def test_duplicates_rejected_when_enabled(self, clock, mock_logger):
        registry = InMemoryRegistry(
            config=RegistryConfig(reject_duplicate_registrations=True),
            clock=clock,
            logger=mock_logger,
        )
        await registry.register("amf-1", amf_update())

        with pytest.raises(DuplicateRegistrationError):
            await registry.register("amf-1", amf_update())

        assert len(await registry.registration_history()) == 1

    @pytest.mark.asyncio
    async def test_duplicate_of_removed_instance_allowed(self, clock, mock_logger):
        registry = InMemoryRegistry(
            config=RegistryConfig(reject_duplicate_registrations=True),
            clock=clock,
            logger=mock_logger,
        )
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")

        result = await registry.register("amf-1", amf_update())

        assert result.status == RegistrationStatus.REGISTERED
        await registry.close()

    @pytest.mark.asyncio
    async def test_required_fields_enforced_when_enabled(self, clock, mock_logger):
        registry = InMemoryRegistry(
            config=RegistryConfig(enforce_required_fields=True),
            clock=clock,
            logger=mock_logger,
        )

        with pytest.raises(RegistrationValidationError) as exc_info:
            await registry.register("amf-1", ProfileUpdate(display_name="AMF"))

        assert exc_info.value.missing_fields == ["component_type", "address"]
        assert await registry.get_profile("amf-1") is None
        assert await registry.registration_history() == []


class TestHeartbeat:
    """Test cases for renew_heartbeat."""

    @pytest.mark.asyncio
    async def test_renew_known_instance(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(45)

        assert await registry.renew_heartbeat("amf-1") is True
        assert (await registry.get_profile("amf-1")).last_renewal == clock.now()

    @pytest.mark.asyncio
    async def test_renew_unknown_instance(self, registry, mock_logger):
        assert await registry.renew_heartbeat("ghost") is False
        mock_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_renew_removed_instance(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")

        assert await registry.renew_heartbeat("amf-1") is False
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REMOVED

    @pytest.mark.asyncio
    async def test_renew_restores_unavailable(self, registry, clock, event_bus):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()
        event_bus.clear()

        assert await registry.renew_heartbeat("amf-1") is True

        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REGISTERED
        assert event_bus.event_types() == ["HeartbeatRenewed", "InstanceStatusChanged"]
        change = event_bus.history(InstanceStatusChangedEvent)[0]
        assert (change.old_status, change.new_status) == ("UNAVAILABLE", "REGISTERED")


class TestSweep:
    """Test cases for the heartbeat timeout state machine."""

    @pytest.mark.asyncio
    async def test_within_timeout_nothing_changes(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(120)

        report = await registry.sweep()

        assert report.changed is False
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REGISTERED

    @pytest.mark.asyncio
    async def test_past_timeout_marks_unavailable(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)

        report = await registry.sweep()

        assert report.marked_unavailable == ["amf-1"]
        assert report.removed == []
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.UNAVAILABLE
        assert await registry.discover() == []

    @pytest.mark.asyncio
    async def test_repeated_sweep_is_stable(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()

        report = await registry.sweep()

        assert report.changed is False

    @pytest.mark.asyncio
    async def test_past_grace_removes(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()
        clock.advance(30)

        report = await registry.sweep()

        assert report.removed == ["amf-1"]
        profile = await registry.get_profile("amf-1")
        assert profile.status == RegistrationStatus.REMOVED
        assert profile.deregistration_reason == DeregistrationReason.HEARTBEAT_TIMEOUT

    @pytest.mark.asyncio
    async def test_removal_boundary_is_exclusive(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()
        clock.advance(29)

        report = await registry.sweep()

        assert report.changed is False
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_renewal_inside_grace_period_restores(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(121)
        await registry.sweep()
        clock.advance(28)

        assert await registry.renew_heartbeat("amf-1") is True
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REGISTERED

        clock.advance(31)
        report = await registry.sweep()

        assert report.changed is False
        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REGISTERED

    @pytest.mark.asyncio
    async def test_single_late_sweep_walks_both_transitions(self, registry, clock, event_bus):
        await registry.register("amf-1", amf_update())
        clock.advance(151)
        event_bus.clear()

        report = await registry.sweep()

        assert report.marked_unavailable == ["amf-1"]
        assert report.removed == ["amf-1"]
        changes = [
            (e.old_status, e.new_status) for e in event_bus.history(InstanceStatusChangedEvent)
        ]
        assert changes == [("REGISTERED", "UNAVAILABLE"), ("UNAVAILABLE", "REMOVED")]

    @pytest.mark.asyncio
    async def test_removal_is_audited(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(151)
        await registry.sweep()

        record = await registry.get_deregistration_record("amf-1")
        assert record.kind == AuditKind.DEREGISTRATION
        assert record.request_payload["reason"] == "HEARTBEAT_TIMEOUT"
        assert record.request_payload["action"] == "DEREGISTER"
        assert record.response_payload["nfStatus"] == "REMOVED"
        assert record.response_payload["result"] == "DEREGISTERED"

    @pytest.mark.asyncio
    async def test_sweep_only_touches_silent_instances(self, registry, clock):
        await registry.register("amf-1", amf_update())
        clock.advance(100)
        await registry.register("smf-1", ProfileUpdate(component_type=ComponentType.SMF))
        clock.advance(30)

        report = await registry.sweep()

        assert report.marked_unavailable == ["amf-1"]
        assert (await registry.get_profile("smf-1")).status == RegistrationStatus.REGISTERED


class TestDiscovery:
    """Test cases for discover."""

    @pytest.mark.asyncio
    async def test_filters(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.register("smf-1", ProfileUpdate(component_type=ComponentType.SMF))
        await registry.register("anon")

        assert [p.instance_id for p in await registry.discover()] == ["amf-1", "smf-1", "anon"]
        assert [p.instance_id for p in await registry.discover("SMF")] == ["smf-1"]
        assert [p.instance_id for p in await registry.discover(ComponentType.AMF)] == ["amf-1"]
        assert [p.instance_id for p in await registry.discover(service_name="namf-comm")] == [
            "amf-1"
        ]
        assert [
            p.instance_id for p in await registry.discover(service_name="smf-1-nsmf-pdusession")
        ] == ["smf-1"]
        assert await registry.discover("AMF", "nsmf-pdusession") == []

    @pytest.mark.asyncio
    async def test_unknown_type_matches_nothing(self, registry):
        await registry.register("amf-1", amf_update())
        assert await registry.discover("XYZ") == []

    @pytest.mark.asyncio
    async def test_removed_instances_hidden(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")

        assert await registry.discover() == []

    @pytest.mark.asyncio
    async def test_results_are_snapshots(self, registry):
        await registry.register("amf-1", amf_update())

        found = (await registry.discover())[0]
        found.display_name = "changed"

        assert (await registry.get_profile("amf-1")).display_name != "changed"


class TestDeregistration:
    """Test cases for deregister."""

    @pytest.mark.asyncio
    async def test_deregister(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        event_bus.clear()

        assert await registry.deregister("amf-1") is True

        profile = await registry.get_profile("amf-1")
        assert profile.status == RegistrationStatus.REMOVED
        assert profile.deregistration_reason == DeregistrationReason.MANUAL
        assert event_bus.event_types() == ["InstanceStatusChanged", "InstanceDeregistered"]
        assert event_bus.history(InstanceDeregisteredEvent)[0].reason == "MANUAL"

    @pytest.mark.asyncio
    async def test_deregister_with_reason(self, registry):
        await registry.register("amf-1", amf_update())

        await registry.deregister("amf-1", DeregistrationReason.LINK_REMOVED)

        record = await registry.get_deregistration_record("amf-1")
        assert record.request_payload["reason"] == "LINK_REMOVED"

    @pytest.mark.asyncio
    async def test_unknown_instance_is_a_noop(self, registry, mock_logger, event_bus):
        assert await registry.deregister("ghost") is False

        assert await registry.deregistration_history() == []
        assert event_bus.history() == []
        mock_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_repeat_deregistration_is_audited(self, registry, clock, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        assert len(await registry.deregistration_history()) == 1
        clock.advance(5)

        assert await registry.deregister("amf-1", DeregistrationReason.LINK_REMOVED) is True

        assert len(await registry.deregistration_history()) == 2
        record = await registry.get_deregistration_record("amf-1")
        assert record.request_payload["reason"] == "LINK_REMOVED"
        profile = await registry.get_profile("amf-1")
        assert profile.status == RegistrationStatus.REMOVED
        assert profile.deregistration_reason == DeregistrationReason.LINK_REMOVED
        assert profile.deregistered_at == clock.now()
        assert len(event_bus.history(InstanceStatusChangedEvent)) == 1
        assert event_bus.history(InstanceDeregisteredEvent)[-1].previous_status == "REMOVED"

    @pytest.mark.asyncio
    async def test_repeat_deregistration_keeps_purge_timer(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        await registry.deregister("amf-1")

        await asyncio.sleep(0.15)

        assert await registry.get_profile("amf-1") is None
        assert len(event_bus.history(InstancePurgedEvent)) == 1
        assert len(await registry.deregistration_history()) == 2


class TestPurgeAndAdvisory:
    """Test cases for the tasks that follow a removal."""

    @pytest.mark.asyncio
    async def test_removed_profile_is_purged(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")

        await asyncio.sleep(0.15)

        assert await registry.get_profile("amf-1") is None
        assert len(event_bus.history(InstancePurgedEvent)) == 1
        # The audit trail outlives the profile
        assert await registry.get_deregistration_record("amf-1") is not None

    @pytest.mark.asyncio
    async def test_re_registration_cancels_purge(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        await registry.register("amf-1", amf_update())

        await asyncio.sleep(0.15)

        profile = await registry.get_profile("amf-1")
        assert profile.status == RegistrationStatus.REGISTERED

    @pytest.mark.asyncio
    async def test_advisory_notice_while_component_present(self, registry, event_bus, clock):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        clock.advance(42)

        await asyncio.sleep(0.08)

        notices = event_bus.history(UnregisteredInstanceNoticeEvent)
        assert notices
        assert notices[0].instance_id == "amf-1"
        assert notices[0].seconds_since_deregistration == 42
        assert notices[0].address == "192.168.1.20"
        assert notices[0].deregistration_reason == "MANUAL"

    @pytest.mark.asyncio
    async def test_advisory_stops_when_component_leaves(self, registry, event_bus, inventory):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        await inventory.remove_component("amf-1")

        await asyncio.sleep(0.15)

        assert event_bus.history(UnregisteredInstanceNoticeEvent) == []

    @pytest.mark.asyncio
    async def test_advisory_not_started_for_unknown_component(self, registry, event_bus):
        await registry.register("udm-9", ProfileUpdate(component_type=ComponentType.UDM))
        await registry.deregister("udm-9")

        await asyncio.sleep(0.15)

        assert event_bus.history(UnregisteredInstanceNoticeEvent) == []

    @pytest.mark.asyncio
    async def test_re_registration_stops_advisory(self, registry, event_bus):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")
        await registry.register("amf-1", amf_update())

        await asyncio.sleep(0.15)

        assert event_bus.history(UnregisteredInstanceNoticeEvent) == []

    @pytest.mark.asyncio
    async def test_close_cancels_pending_tasks(self, registry):
        await registry.register("amf-1", amf_update())
        await registry.deregister("amf-1")

        await registry.close()
        await asyncio.sleep(0.15)

        assert (await registry.get_profile("amf-1")).status == RegistrationStatus.REMOVED


class TestQueries:
    @pytest.mark.asyncio
    async def test_statistics(self, registry, clock):
        await registry.register("amf-1", amf_update())
        await registry.register("smf-1", ProfileUpdate(component_type=ComponentType.SMF))
        await registry.register("nrf-1", ProfileUpdate(component_type=ComponentType.NRF))
        await registry.deregister("nrf-1")
        clock.advance(121)
        await registry.renew_heartbeat("smf-1")
        await registry.sweep()

        stats = await registry.get_statistics()

        assert (stats.total, stats.registered, stats.unavailable, stats.removed) == (3, 1, 1, 1)

    @pytest.mark.asyncio
    async def test_missing_records(self, registry):
        assert await registry.get_profile("ghost") is None
        assert await registry.get_registration_record("ghost") is None
        assert await registry.get_deregistration_record("ghost") is None
        assert await registry.list_profiles() == []
