"""In-memory registry store.

Holds every component profile for the lifetime of the process, applies the
heartbeat timeouts when swept, and keeps the registration and deregistration
audit trails. All mutations run under a single ``asyncio.Lock``; events are
published after the lock is released so subscribers may call back in.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from pydantic.alias_generators import to_camel

from ..domain.aggregates import ComponentProfile, apply_profile_update
from ..domain.enums import AuditKind, ComponentType, DeregistrationReason, RegistrationStatus
from ..domain.events import (
    DomainEvent,
    HeartbeatRenewedEvent,
    InstanceDeregisteredEvent,
    InstancePurgedEvent,
    InstanceRegisteredEvent,
    InstanceStatusChangedEvent,
    UnregisteredInstanceNoticeEvent,
)
from ..domain.exceptions import DuplicateRegistrationError, RegistrationValidationError
from ..domain.models import (
    AuditRecord,
    DeregistrationRequest,
    DeregistrationResponse,
    ProfileUpdate,
    RegistrationRequest,
    RegistrationResponse,
    RegistrationResult,
    RegistryStatistics,
    SweepReport,
)
from ..ports.clock import ClockPort
from ..ports.event_publisher import EventPublisherPort
from ..ports.inventory import ComponentInventoryPort
from ..ports.logger import LoggerPort
from ..ports.registry import RegistryPort
from .config import RegistryConfig
from .task_scheduler import KeyedTaskScheduler


def _purge_key(instance_id: str) -> str:
    return f"purge:{instance_id}"


def _advisory_key(instance_id: str) -> str:
    return f"advisory:{instance_id}"


class InMemoryRegistry(RegistryPort):
    """Registry store implementing the profile status state machine.

    REGISTERED -> UNAVAILABLE once a profile has been silent for longer than
    the heartbeat timeout; REMOVED once it has been silent for longer than
    timeout plus grace. A renewal brings an UNAVAILABLE profile back. REMOVED
    profiles are purged after ``purge_delay`` unless registered again first.
    """

    def __init__(
        self,
        config: RegistryConfig | None = None,
        clock: ClockPort | None = None,
        logger: LoggerPort | None = None,
        event_publisher: EventPublisherPort | None = None,
        inventory: ComponentInventoryPort | None = None,
        scheduler: KeyedTaskScheduler | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            config: Timing and strictness settings
            clock: Time source for every timeout decision
            logger: Logger for lifecycle events
            event_publisher: Outlet for domain events, optional
            inventory: Component inventory for the advisory notice, optional
            scheduler: Timer facility for purge and advisory tasks
        """
        self._config = config or RegistryConfig()
        self._clock = clock or self._create_default_clock()
        self._logger = logger or self._create_default_logger()
        self._events = event_publisher
        self._inventory = inventory
        self._scheduler = scheduler or KeyedTaskScheduler(logger=self._logger)

        self._lock = asyncio.Lock()
        self._profiles: dict[str, ComponentProfile] = {}
        self._registration_history: list[AuditRecord] = []
        self._deregistration_history: list[AuditRecord] = []
        self._latest_registration: dict[str, AuditRecord] = {}
        self._latest_deregistration: dict[str, AuditRecord] = {}

    def _create_default_clock(self) -> ClockPort:
        from .system_clock import SystemClock

        return SystemClock()

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from .simple_logger import SimpleLogger

        return SimpleLogger()

    @property
    def config(self) -> RegistryConfig:
        return self._config

    # Lifecycle operations

    async def register(
        self, instance_id: str, update: ProfileUpdate | None = None
    ) -> RegistrationResult:
        update = update or ProfileUpdate()

        async with self._lock:
            existing = self._profiles.get(instance_id)
            is_live = existing is not None and not existing.is_removed
            previous_status = existing.status if existing is not None else None

            if is_live and self._config.reject_duplicate_registrations:
                self._logger.warning("Rejected duplicate registration", instance_id=instance_id)
                raise DuplicateRegistrationError(instance_id)

            now = self._clock.now()
            profile = apply_profile_update(
                instance_id,
                update,
                existing,
                now,
                heartbeat_interval_ms=self._config.heartbeat_interval_ms,
            )

            if self._config.enforce_required_fields:
                missing = []
                if profile.component_type is None:
                    missing.append("component_type")
                if profile.network is None:
                    missing.append("address")
                if missing:
                    raise RegistrationValidationError(instance_id, missing)

            self._profiles[instance_id] = profile
            self._scheduler.cancel(_purge_key(instance_id))
            self._scheduler.cancel(_advisory_key(instance_id))

            record = self._registration_record(profile, now)
            self._registration_history.append(record)
            self._latest_registration[instance_id] = record

        self._logger.info(
            "Instance registered",
            instance_id=instance_id,
            component_type=_type_value(profile.component_type),
            re_registration=is_live,
            services=len(profile.services),
        )
        await self._publish(
            InstanceRegisteredEvent(
                instance_id=instance_id,
                component_type=_type_value(profile.component_type),
                status=profile.status.value,
                heartbeat_interval_ms=profile.heartbeat_interval_ms,
                re_registration=is_live,
            )
        )
        if previous_status == RegistrationStatus.UNAVAILABLE:
            await self._publish(
                InstanceStatusChangedEvent(
                    instance_id=instance_id,
                    old_status=previous_status.value,
                    new_status=profile.status.value,
                    reason="RE_REGISTRATION",
                )
            )

        return RegistrationResult(
            instance_id=instance_id,
            status=profile.status,
            heartbeat_interval_ms=profile.heartbeat_interval_ms,
            validity_seconds=self._config.validity_seconds,
        )

    async def renew_heartbeat(self, instance_id: str) -> bool:
        async with self._lock:
            profile = self._profiles.get(instance_id)
            if profile is None:
                self._logger.warning("Heartbeat from unknown instance", instance_id=instance_id)
                return False
            if profile.is_removed:
                self._logger.warning(
                    "Heartbeat from removed instance ignored", instance_id=instance_id
                )
                return False

            previous = profile.renew(self._clock.now())
            status = profile.status

        events: list[DomainEvent] = [
            HeartbeatRenewedEvent(instance_id=instance_id, status=status.value)
        ]
        if previous is not None:
            self._logger.info(
                "Instance restored by heartbeat",
                instance_id=instance_id,
                previous_status=previous.value,
            )
            events.append(
                InstanceStatusChangedEvent(
                    instance_id=instance_id,
                    old_status=previous.value,
                    new_status=status.value,
                    reason="HEARTBEAT_RESTORED",
                )
            )
        else:
            self._logger.debug("Heartbeat renewed", instance_id=instance_id)

        for event in events:
            await self._publish(event)
        return True

    async def discover(
        self,
        component_type: ComponentType | str | None = None,
        service_name: str | None = None,
    ) -> list[ComponentProfile]:
        wanted = ComponentType.parse(component_type)
        if component_type is not None and wanted is None:
            return []

        async with self._lock:
            return [
                profile.model_copy(deep=True)
                for profile in self._profiles.values()
                if profile.is_discoverable
                and (wanted is None or profile.component_type == wanted)
                and (service_name is None or profile.has_service(service_name))
            ]

    async def deregister(
        self,
        instance_id: str,
        reason: DeregistrationReason = DeregistrationReason.MANUAL,
    ) -> bool:
        async with self._lock:
            events = await self._deregister_locked(instance_id, reason, self._clock.now())

        if events is None:
            return False
        for event in events:
            await self._publish(event)
        return True

    async def sweep(self) -> SweepReport:
        report = SweepReport()
        events: list[DomainEvent] = []

        async with self._lock:
            now = self._clock.now()
            expired: list[str] = []

            for instance_id, profile in self._profiles.items():
                if profile.is_removed:
                    continue

                silence = profile.time_since_renewal(now).seconds
                if silence <= self._config.heartbeat_timeout:
                    continue

                if profile.status == RegistrationStatus.REGISTERED:
                    profile.mark_unavailable(now)
                    report.marked_unavailable.append(instance_id)
                    self._logger.warning(
                        "Heartbeat timeout, instance unavailable",
                        instance_id=instance_id,
                        silence=f"{silence:.1f}s",
                    )
                    events.append(
                        InstanceStatusChangedEvent(
                            instance_id=instance_id,
                            old_status=RegistrationStatus.REGISTERED.value,
                            new_status=RegistrationStatus.UNAVAILABLE.value,
                            reason=DeregistrationReason.HEARTBEAT_TIMEOUT.value,
                        )
                    )

                if silence > self._config.removal_after:
                    expired.append(instance_id)

            # Collected first so the map is not mutated while iterating
            for instance_id in expired:
                removal_events = await self._deregister_locked(
                    instance_id, DeregistrationReason.HEARTBEAT_TIMEOUT, now
                )
                if removal_events is not None:
                    report.removed.append(instance_id)
                    events.extend(removal_events)

        for event in events:
            await self._publish(event)
        return report

    # Queries

    async def get_profile(self, instance_id: str) -> ComponentProfile | None:
        async with self._lock:
            profile = self._profiles.get(instance_id)
            return profile.model_copy(deep=True) if profile else None

    async def list_profiles(self) -> list[ComponentProfile]:
        async with self._lock:
            return [profile.model_copy(deep=True) for profile in self._profiles.values()]

    async def get_registration_record(self, instance_id: str) -> AuditRecord | None:
        return self._latest_registration.get(instance_id)

    async def get_deregistration_record(self, instance_id: str) -> AuditRecord | None:
        return self._latest_deregistration.get(instance_id)

    async def registration_history(self) -> list[AuditRecord]:
        return list(self._registration_history)

    async def deregistration_history(self) -> list[AuditRecord]:
        return list(self._deregistration_history)

    async def get_statistics(self) -> RegistryStatistics:
        async with self._lock:
            statuses = [profile.status for profile in self._profiles.values()]
        return RegistryStatistics(
            total=len(statuses),
            registered=statuses.count(RegistrationStatus.REGISTERED),
            unavailable=statuses.count(RegistrationStatus.UNAVAILABLE),
            removed=statuses.count(RegistrationStatus.REMOVED),
        )

    async def close(self) -> None:
        await self._scheduler.cancel_all()
        self._logger.info("Registry closed", profiles=len(self._profiles))

    # Internals

    async def _deregister_locked(
        self, instance_id: str, reason: DeregistrationReason, now: datetime
    ) -> list[DomainEvent] | None:
        """Move a profile to REMOVED and audit it. Caller must hold the lock.

        A profile that is already REMOVED but not yet purged is audited again
        with the new reason; its pending purge and advisory tasks are kept.
        """
        profile = self._profiles.get(instance_id)
        if profile is None:
            self._logger.warning(
                "Deregistration of unknown instance ignored",
                instance_id=instance_id,
                reason=reason.value,
            )
            return None

        if profile.is_removed:
            profile.restamp_removal(now, reason)
            self._append_deregistration(profile, reason, now)
            self._logger.info(
                "Removed instance deregistered again",
                instance_id=instance_id,
                reason=reason.value,
            )
            return [
                InstanceDeregisteredEvent(
                    instance_id=instance_id,
                    component_type=_type_value(profile.component_type),
                    previous_status=RegistrationStatus.REMOVED.value,
                    reason=reason.value,
                )
            ]

        previous = profile.mark_removed(now, reason)
        self._append_deregistration(profile, reason, now)

        self._schedule_purge(instance_id)
        await self._start_advisory(profile)

        self._logger.info(
            "Instance deregistered",
            instance_id=instance_id,
            reason=reason.value,
            previous_status=previous.value,
        )
        return [
            InstanceStatusChangedEvent(
                instance_id=instance_id,
                old_status=previous.value,
                new_status=RegistrationStatus.REMOVED.value,
                reason=reason.value,
            ),
            InstanceDeregisteredEvent(
                instance_id=instance_id,
                component_type=_type_value(profile.component_type),
                previous_status=previous.value,
                reason=reason.value,
            ),
        ]

    def _append_deregistration(
        self, profile: ComponentProfile, reason: DeregistrationReason, now: datetime
    ) -> None:
        record = self._deregistration_record(profile, reason, now)
        self._deregistration_history.append(record)
        self._latest_deregistration[profile.instance_id] = record

    def _schedule_purge(self, instance_id: str) -> None:
        async def purge() -> None:
            async with self._lock:
                profile = self._profiles.get(instance_id)
                # Registered again in the meantime
                if profile is None or not profile.is_removed:
                    return
                del self._profiles[instance_id]
            self._logger.debug("Removed profile purged", instance_id=instance_id)
            await self._publish(InstancePurgedEvent(instance_id=instance_id))

        self._scheduler.schedule_once(_purge_key(instance_id), self._config.purge_delay, purge)

    async def _start_advisory(self, profile: ComponentProfile) -> None:
        if self._inventory is None:
            return
        instance_id = profile.instance_id
        if await self._inventory.get_component(instance_id) is None:
            return

        deregistered_at = profile.deregistered_at
        reason = profile.deregistration_reason
        component_type = _type_value(profile.component_type)
        display_name = profile.display_name

        async def notice() -> bool:
            component = await self._inventory.get_component(instance_id)
            if component is None:
                return False
            current = self._profiles.get(instance_id)
            if current is not None and not current.is_removed:
                return False

            elapsed = int((self._clock.now() - deregistered_at).total_seconds())
            self._logger.warning(
                "Deregistered instance still present in inventory",
                instance_id=instance_id,
                seconds_since_deregistration=elapsed,
            )
            await self._publish(
                UnregisteredInstanceNoticeEvent(
                    instance_id=instance_id,
                    component_type=component_type,
                    display_name=display_name,
                    address=component.address,
                    seconds_since_deregistration=max(elapsed, 0),
                    deregistration_reason=reason.value if reason else None,
                )
            )
            return True

        self._scheduler.schedule_recurring(
            _advisory_key(instance_id), self._config.advisory_interval, notice
        )

    def _registration_record(self, profile: ComponentProfile, now: datetime) -> AuditRecord:
        request = RegistrationRequest(
            nf_instance_id=profile.instance_id,
            nf_type=_type_value(profile.component_type),
            nf_status=profile.status,
            ipv4_addresses=[profile.network.address] if profile.network else [],
            allowed_nf_types=[peer.value for peer in profile.allowed_peer_types],
            priority=profile.priority,
            capacity=profile.capacity,
            load=profile.load,
            nf_services=[
                _camel_dump(service.model_dump(mode="json")) for service in profile.services
            ],
        )
        response = RegistrationResponse(
            nf_instance_id=profile.instance_id,
            nf_type=_type_value(profile.component_type),
            nf_status=profile.status,
            heart_beat_timer=int(self._config.heartbeat_interval),
        )
        return AuditRecord(
            instance_id=profile.instance_id,
            component_type=profile.component_type,
            display_name=profile.display_name,
            kind=AuditKind.REGISTRATION,
            timestamp=now,
            request_payload=request.to_payload(),
            response_payload=response.to_payload(),
        )

    def _deregistration_record(
        self, profile: ComponentProfile, reason: DeregistrationReason, now: datetime
    ) -> AuditRecord:
        request = DeregistrationRequest(
            nf_instance_id=profile.instance_id,
            nf_type=_type_value(profile.component_type),
            reason=reason.value,
            timestamp=now,
        )
        response = DeregistrationResponse(
            nf_instance_id=profile.instance_id,
            nf_type=_type_value(profile.component_type),
            deregistered_at=now,
        )
        return AuditRecord(
            instance_id=profile.instance_id,
            component_type=profile.component_type,
            display_name=profile.display_name,
            kind=AuditKind.DEREGISTRATION,
            timestamp=now,
            request_payload=request.to_payload(),
            response_payload=response.to_payload(),
        )

    async def _publish(self, event: DomainEvent) -> None:
        if self._events is None:
            return
        try:
            await self._events.publish(event)
        except Exception as e:
            self._logger.error(
                f"Failed to publish event: {e}",
                event_type=event.event_type,
                instance_id=event.aggregate_id,
            )


def _type_value(component_type: ComponentType | None) -> str | None:
    return component_type.value if component_type else None


def _camel_dump(data: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}
