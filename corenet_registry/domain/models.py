"""Domain models using Pydantic for validation."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import (
    AuditKind,
    ComponentType,
    LinkProtocol,
    LinkRejectionReason,
    LinkStatus,
    RegistrationStatus,
)
from .value_objects import DEFAULT_SERVICE_PORT, NetworkAddress


class ServiceDescriptor(BaseModel):
    """A service offered by a registered instance."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    service_instance_id: str = Field(..., min_length=1, description="Service instance identifier")
    service_name: str = Field(..., min_length=1, description="Service name, e.g. 'namf-comm'")
    api_version: str = Field(default="v1", description="API version as used in URIs")
    api_full_version: str = Field(default="1.0.0", description="Full API version")
    scheme: str = Field(default="http", description="URI scheme")
    endpoint: str = Field(..., description="Endpoint in address:port form")
    allowed_peer_types: list[ComponentType] = Field(default_factory=list)
    capacity: int = Field(default=100, ge=0)
    load: int = Field(default=0, ge=0)
    priority: int = Field(default=0, ge=0)
    status: RegistrationStatus = Field(default=RegistrationStatus.REGISTERED)

    def matches(self, name_or_id: str) -> bool:
        """Check whether this service is the one named or identified."""
        return name_or_id in (self.service_name, self.service_instance_id)


class Component(BaseModel):
    """An entry in the external component inventory.

    The registry and the link coordinator only read these by id; the
    inventory adapter owns them.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, validate_assignment=True)

    instance_id: str = Field(..., min_length=1, description="Instance identifier")
    component_type: ComponentType = Field(..., description="Component role")
    name: str = Field(default="", description="Human label")
    address: str = Field(..., min_length=1, description="IPv4 address")
    port: int = Field(default=DEFAULT_SERVICE_PORT, ge=0, le=65535)
    http_protocol: LinkProtocol = Field(default=LinkProtocol.HTTP2)

    @property
    def label(self) -> str:
        """Name if set, otherwise the instance id."""
        return self.name or self.instance_id

    @property
    def network(self) -> NetworkAddress:
        return NetworkAddress(address=self.address, port=self.port)


class ProfileUpdate(BaseModel):
    """Registration input applied over an existing or default profile.

    Every field is optional. A field left as None keeps the value of the live
    profile being re-registered, or the default for a new lifecycle:

    - component_type: no default; the profile stays untyped
    - display_name: "<TYPE>-<last 6 chars of instance id>"
    - address / port / scheme: no network / 7777 / "http"
    - http_protocol: "HTTP/2"
    - allowed_peer_types: catalog defaults for the component type
    - capacity / load / priority: 100 / 0 / 0

    Services are never taken from the update; they are always derived from
    the component type.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    component_type: ComponentType | None = None
    display_name: str | None = None
    address: str | None = None
    port: int | None = Field(default=None, ge=0, le=65535)
    scheme: str | None = None
    http_protocol: LinkProtocol | None = None
    allowed_peer_types: list[ComponentType] | None = None
    capacity: int | None = Field(default=None, ge=0)
    load: int | None = Field(default=None, ge=0)
    priority: int | None = Field(default=None, ge=0)

    @classmethod
    def from_component(cls, component: Component) -> "ProfileUpdate":
        """Build the profile a component announces when it links to the registry."""
        return cls(
            component_type=component.component_type,
            display_name=component.name or None,
            address=component.address,
            port=component.port,
            http_protocol=component.http_protocol,
        )


class RegistrationResult(BaseModel):
    """Outcome of a register call."""

    instance_id: str
    status: RegistrationStatus
    heartbeat_interval_ms: int
    validity_seconds: int


class _WirePayload(BaseModel):
    """Base for request/response bodies kept in the audit trail."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RegistrationRequest(_WirePayload):
    nf_instance_id: str
    nf_type: str | None
    nf_status: RegistrationStatus = RegistrationStatus.REGISTERED
    ipv4_addresses: list[str] = Field(default_factory=list)
    allowed_nf_types: list[str] = Field(default_factory=list)
    priority: int = 0
    capacity: int = 100
    load: int = 0
    nf_services: list[dict[str, Any]] = Field(default_factory=list)
    nf_profile_changes_support_ind: bool = True


class RegistrationResponse(_WirePayload):
    nf_instance_id: str
    nf_type: str | None
    nf_status: RegistrationStatus = RegistrationStatus.REGISTERED
    heart_beat_timer: int
    nf_profile_changes_ind: bool = True


class DeregistrationRequest(_WirePayload):
    nf_instance_id: str
    nf_type: str | None
    action: str = "DEREGISTER"
    reason: str
    timestamp: datetime


class DeregistrationResponse(_WirePayload):
    nf_instance_id: str
    nf_type: str | None
    nf_status: RegistrationStatus = RegistrationStatus.REMOVED
    result: str = "DEREGISTERED"
    deregistered_at: datetime


class AuditRecord(BaseModel):
    """A registration or deregistration as seen by the registry."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    component_type: ComponentType | None
    display_name: str
    kind: AuditKind
    timestamp: datetime
    request_payload: dict[str, Any] = Field(default_factory=dict)
    response_payload: dict[str, Any] = Field(default_factory=dict)


class RegistryStatistics(BaseModel):
    """Profile counts by status."""

    total: int = 0
    registered: int = 0
    unavailable: int = 0
    removed: int = 0


class SweepReport(BaseModel):
    """Instances a single sweep pass moved forward."""

    marked_unavailable: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.marked_unavailable or self.removed)


def _new_link_id() -> str:
    return f"conn-{uuid.uuid4().hex[:12]}"


class Link(BaseModel):
    """A policy-validated logical connection between two instances."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=_new_link_id)
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    interface_label: str = Field(..., min_length=1)
    protocol: LinkProtocol = Field(default=LinkProtocol.HTTP2)
    status: LinkStatus = Field(default=LinkStatus.CONNECTED)
    created_at: datetime
    is_manual: bool = True
    visible: bool = True

    @field_validator("target_id")
    @classmethod
    def validate_not_self(cls, v: str, info) -> str:
        """A link never joins an instance to itself."""
        if info.data.get("source_id") == v:
            raise ValueError("Link endpoints must differ")
        return v

    def involves(self, instance_id: str) -> bool:
        return instance_id in (self.source_id, self.target_id)

    def other_end(self, instance_id: str) -> str:
        """Return the endpoint opposite to instance_id."""
        return self.target_id if self.source_id == instance_id else self.source_id


class LinkRejection(BaseModel):
    """Why a link was refused. These are user-correctable, never fatal."""

    model_config = ConfigDict(frozen=True)

    reason: LinkRejectionReason
    message: str
    source_id: str
    target_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class SubnetGroup(BaseModel):
    network: str
    component_count: int
    components: list[dict[str, str]] = Field(default_factory=list)


class LinkStatistics(BaseModel):
    """Link counts plus the subnet layout of the inventory."""

    total: int = 0
    by_protocol: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    subnets: list[SubnetGroup] = Field(default_factory=list)
