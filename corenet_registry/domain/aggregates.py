"""Domain aggregates following Domain-Driven Design principles.

The component profile is the aggregate root of the registry. It owns the
status state machine; the registry store decides *when* a transition happens
and the profile enforces *which* transitions are legal.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import ComponentType, DeregistrationReason, LinkProtocol, RegistrationStatus
from .exceptions import InvalidStatusTransitionError
from .models import ProfileUpdate, ServiceDescriptor
from .services import ServiceCatalog
from .value_objects import DEFAULT_SERVICE_PORT, Duration, NetworkAddress


class ComponentProfile(BaseModel):
    """Registry record for one registered instance.

    Status moves REGISTERED -> UNAVAILABLE -> REMOVED, or back from
    UNAVAILABLE to REGISTERED on renewal. REMOVED is terminal.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Identity
    instance_id: str = Field(..., min_length=1)
    component_type: ComponentType | None = None
    display_name: str

    # State
    status: RegistrationStatus = Field(default=RegistrationStatus.REGISTERED)
    services: list[ServiceDescriptor] = Field(default_factory=list)
    network: NetworkAddress | None = None
    http_protocol: LinkProtocol = Field(default=LinkProtocol.HTTP2)
    allowed_peer_types: list[ComponentType] = Field(default_factory=list)
    capacity: int = Field(default=100, ge=0)
    load: int = Field(default=0, ge=0)
    priority: int = Field(default=0, ge=0)
    heartbeat_interval_ms: int = Field(default=60_000, gt=0)

    # Timestamps
    registered_at: datetime
    last_renewal: datetime
    status_changed_at: datetime
    deregistered_at: datetime | None = None
    deregistration_reason: DeregistrationReason | None = None

    @property
    def is_discoverable(self) -> bool:
        return self.status == RegistrationStatus.REGISTERED

    @property
    def is_removed(self) -> bool:
        return self.status == RegistrationStatus.REMOVED

    def has_service(self, name_or_id: str) -> bool:
        """Check for a service matching a name or a service instance id."""
        return any(service.matches(name_or_id) for service in self.services)

    def time_since_renewal(self, now: datetime) -> Duration:
        return Duration.from_timedelta(now - self.last_renewal)

    def renew(self, now: datetime) -> RegistrationStatus | None:
        """Record a renewal.

        Business Rules:
        - A REMOVED profile cannot be renewed; it must register again
        - An UNAVAILABLE profile goes back to REGISTERED

        Returns:
            The previous status if the renewal changed it, None otherwise
        """
        if self.status == RegistrationStatus.REMOVED:
            raise InvalidStatusTransitionError(
                self.instance_id, self.status.value, RegistrationStatus.REGISTERED.value
            )

        self.last_renewal = now
        if self.status == RegistrationStatus.UNAVAILABLE:
            self._move_to(RegistrationStatus.REGISTERED, now)
            return RegistrationStatus.UNAVAILABLE
        return None

    def mark_unavailable(self, now: datetime) -> None:
        """Degrade a REGISTERED profile after a missed heartbeat window."""
        if self.status != RegistrationStatus.REGISTERED:
            raise InvalidStatusTransitionError(
                self.instance_id, self.status.value, RegistrationStatus.UNAVAILABLE.value
            )
        self._move_to(RegistrationStatus.UNAVAILABLE, now)

    def mark_removed(self, now: datetime, reason: DeregistrationReason) -> RegistrationStatus:
        """End the lifecycle.

        Returns:
            The status the profile had before removal
        """
        if self.status == RegistrationStatus.REMOVED:
            raise InvalidStatusTransitionError(
                self.instance_id, self.status.value, RegistrationStatus.REMOVED.value
            )
        previous = self.status
        self._move_to(RegistrationStatus.REMOVED, now)
        self.deregistered_at = now
        self.deregistration_reason = reason
        for service in self.services:
            service.status = RegistrationStatus.REMOVED
        return previous

    def restamp_removal(self, now: datetime, reason: DeregistrationReason) -> None:
        """Record a repeated deregistration of an already REMOVED profile."""
        if self.status != RegistrationStatus.REMOVED:
            raise InvalidStatusTransitionError(
                self.instance_id, self.status.value, RegistrationStatus.REMOVED.value
            )
        self.deregistered_at = now
        self.deregistration_reason = reason

    def _move_to(self, status: RegistrationStatus, now: datetime) -> None:
        self.status = status
        self.status_changed_at = now

    def __str__(self) -> str:
        kind = self.component_type.value if self.component_type else "?"
        return f"ComponentProfile({kind}/{self.instance_id} - {self.status.value})"


def default_display_name(instance_id: str, component_type: ComponentType | None) -> str:
    """'<TYPE>-<last 6 chars of id>', the label used when none is given."""
    kind = component_type.value if component_type else "NF"
    return f"{kind}-{instance_id[-6:]}"


def apply_profile_update(
    instance_id: str,
    update: ProfileUpdate,
    existing: ComponentProfile | None,
    now: datetime,
    heartbeat_interval_ms: int,
) -> ComponentProfile:
    """Build the profile that results from a register call.

    A live existing profile (REGISTERED or UNAVAILABLE) is a re-registration:
    unset update fields fall back to its values and ``registered_at`` is
    preserved. A REMOVED or missing profile starts a new lifecycle from
    defaults. Either way the result is REGISTERED with a fresh renewal
    timestamp, and services are derived from the component type.
    """
    base = existing if existing is not None and not existing.is_removed else None

    def pick(value, fallback, default):
        if value is not None:
            return value
        return fallback if fallback is not None else default

    component_type = pick(update.component_type, base.component_type if base else None, None)

    network = base.network if base else None
    if update.address is not None:
        network = NetworkAddress(
            address=update.address,
            port=pick(update.port, network.port if network else None, DEFAULT_SERVICE_PORT),
            scheme=pick(update.scheme, network.scheme if network else None, "http"),
        )
    elif network is not None and (update.port is not None or update.scheme is not None):
        network = network.model_copy(
            update={
                "port": update.port if update.port is not None else network.port,
                "scheme": (update.scheme or network.scheme).lower(),
            }
        )

    capacity = pick(update.capacity, base.capacity if base else None, 100)
    load = pick(update.load, base.load if base else None, 0)
    priority = pick(update.priority, base.priority if base else None, 0)

    allowed_peer_types = update.allowed_peer_types
    if allowed_peer_types is None:
        if base is not None and base.component_type == component_type:
            allowed_peer_types = list(base.allowed_peer_types)
        else:
            allowed_peer_types = ServiceCatalog.allowed_peer_types(component_type)

    # A type change resets the label
    keep_label = base is not None and base.component_type == component_type
    display_name = update.display_name or (
        base.display_name if keep_label else default_display_name(instance_id, component_type)
    )

    return ComponentProfile(
        instance_id=instance_id,
        component_type=component_type,
        display_name=display_name,
        status=RegistrationStatus.REGISTERED,
        services=ServiceCatalog.build_services(
            instance_id, component_type, network, capacity=capacity, load=load, priority=priority
        ),
        network=network,
        http_protocol=pick(
            update.http_protocol, base.http_protocol if base else None, LinkProtocol.HTTP2
        ),
        allowed_peer_types=allowed_peer_types,
        capacity=capacity,
        load=load,
        priority=priority,
        heartbeat_interval_ms=heartbeat_interval_ms,
        registered_at=base.registered_at if base else now,
        last_renewal=now,
        status_changed_at=now,
    )
