"""Domain events for registry lifecycle and link changes.

Events carry enough structured fields (ids, statuses, reasons) for an
external observer to render or log them without knowing how the core works.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    """Base class for domain events.

    Domain events are immutable facts about something that already happened.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        frozen=True,
    )

    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique event identifier",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event occurred",
    )
    aggregate_id: str = Field(
        ...,
        description="ID of the aggregate that emitted this event",
    )
    aggregate_type: str = Field(
        ...,
        description="Type of the aggregate",
    )
    event_type: str = Field(
        ...,
        description="Type of the event",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event metadata",
    )


class _InstanceEvent(DomainEvent):
    """Event about a registry profile; the aggregate is the instance."""

    instance_id: str = Field(..., description="Instance identifier")

    EVENT_TYPE: ClassVar[str] = ""

    def __init__(self, **data: Any) -> None:
        data["event_type"] = self.EVENT_TYPE
        data["aggregate_type"] = "ComponentProfile"
        data.setdefault("aggregate_id", data.get("instance_id", ""))
        super().__init__(**data)


class InstanceRegisteredEvent(_InstanceEvent):
    """Emitted when an instance registers or re-registers."""

    EVENT_TYPE: ClassVar[str] = "InstanceRegistered"

    component_type: str | None = Field(None, description="Component role")
    status: str = Field(..., description="Status after registration")
    heartbeat_interval_ms: int = Field(..., description="Accepted renewal cadence")
    re_registration: bool = Field(False, description="True if a live profile was overwritten")


class HeartbeatRenewedEvent(_InstanceEvent):
    """Emitted for every accepted renewal."""

    EVENT_TYPE: ClassVar[str] = "HeartbeatRenewed"

    status: str = Field(..., description="Status after the renewal")


class InstanceStatusChangedEvent(_InstanceEvent):
    """Emitted when the state machine moves a profile."""

    EVENT_TYPE: ClassVar[str] = "InstanceStatusChanged"

    old_status: str = Field(..., description="Previous status")
    new_status: str = Field(..., description="New status")
    reason: str | None = Field(None, description="Reason for status change")


class InstanceDeregisteredEvent(_InstanceEvent):
    """Emitted when a profile enters REMOVED."""

    EVENT_TYPE: ClassVar[str] = "InstanceDeregistered"

    component_type: str | None = Field(None, description="Component role")
    previous_status: str = Field(..., description="Status before removal")
    reason: str = Field(..., description="Reason for deregistration")


class InstancePurgedEvent(_InstanceEvent):
    """Emitted when a REMOVED profile is dropped from the live map."""

    EVENT_TYPE: ClassVar[str] = "InstancePurged"


class UnregisteredInstanceNoticeEvent(_InstanceEvent):
    """Recurring notice that a deregistered instance is still present."""

    EVENT_TYPE: ClassVar[str] = "UnregisteredInstanceNotice"

    component_type: str | None = Field(None, description="Component role")
    display_name: str = Field(..., description="Human label of the instance")
    address: str | None = Field(None, description="Address from the inventory")
    seconds_since_deregistration: int = Field(..., ge=0)
    deregistration_reason: str | None = Field(None)


class _LinkEvent(DomainEvent):
    """Event about a link between two instances."""

    source_id: str = Field(..., description="Source instance")
    target_id: str = Field(..., description="Target instance")

    EVENT_TYPE: ClassVar[str] = ""

    def __init__(self, **data: Any) -> None:
        data["event_type"] = self.EVENT_TYPE
        data["aggregate_type"] = "Link"
        data.setdefault(
            "aggregate_id", data.get("link_id") or f"{data['source_id']}->{data['target_id']}"
        )
        super().__init__(**data)


class LinkCreatedEvent(_LinkEvent):
    """Emitted when a link passes admission and is stored."""

    EVENT_TYPE: ClassVar[str] = "LinkCreated"

    link_id: str = Field(..., description="Link identifier")
    interface_label: str = Field(..., description="Interface name of the pair")
    protocol: str = Field(..., description="Protocol label")
    is_manual: bool = Field(True, description="User-initiated link")


class LinkRejectedEvent(_LinkEvent):
    """Emitted when admission refuses a link."""

    EVENT_TYPE: ClassVar[str] = "LinkRejected"

    reason: str = Field(..., description="Rejection reason code")
    message: str = Field(..., description="Human-readable explanation")


class LinkRemovedEvent(_LinkEvent):
    """Emitted when a link is deleted."""

    EVENT_TYPE: ClassVar[str] = "LinkRemoved"

    link_id: str = Field(..., description="Link identifier")
