"""Domain enums for type safety and consistency.

This module centralizes the closed enumerations used across the registry,
so component roles, statuses and reason codes are never passed around as
free-form string literals.
"""

from enum import Enum


class ComponentType(str, Enum):
    """Role of a network component.

    The set is closed; callers that hold a raw string should go through
    ``ComponentType.parse`` which maps unknown roles to ``None``.
    """

    NRF = "NRF"  # Repository function, the registry role
    AMF = "AMF"
    SMF = "SMF"
    UPF = "UPF"
    AUSF = "AUSF"
    UDM = "UDM"
    UDR = "UDR"
    PCF = "PCF"
    NSSF = "NSSF"
    NEF = "NEF"
    AF = "AF"
    GNB = "gNB"
    UE = "UE"
    MYSQL = "MySQL"
    EXT_DN = "ext-dn"

    @classmethod
    def parse(cls, value: "ComponentType | str | None") -> "ComponentType | None":
        """Resolve a raw value to a component type, or None when unknown."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class RegistrationStatus(str, Enum):
    """Registry status of a component profile.

    REGISTERED -> UNAVAILABLE -> REMOVED, with UNAVAILABLE -> REGISTERED
    on renewal. REMOVED is terminal for a lifecycle.
    """

    REGISTERED = "REGISTERED"
    UNAVAILABLE = "UNAVAILABLE"
    REMOVED = "REMOVED"


class DeregistrationReason(str, Enum):
    """Why a profile left the registry."""

    MANUAL = "MANUAL"
    HEARTBEAT_TIMEOUT = "HEARTBEAT_TIMEOUT"
    LINK_REMOVED = "LINK_REMOVED"


class AuditKind(str, Enum):
    """Kind of audit record kept by the registry."""

    REGISTRATION = "REGISTRATION"
    DEREGISTRATION = "DEREGISTRATION"


class LinkStatus(str, Enum):
    """Status of a logical link."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class LinkProtocol(str, Enum):
    """HTTP protocol label carried by a link."""

    HTTP2 = "HTTP/2"
    HTTP1 = "HTTP/1"


class LinkRejectionReason(str, Enum):
    """Reason codes for refused link creation, checked in this order."""

    UNKNOWN_ENDPOINT = "UNKNOWN_ENDPOINT"
    SELF_LINK = "SELF_LINK"
    SUBNET_MISMATCH = "SUBNET_MISMATCH"
    INCOMPATIBLE_TYPES = "INCOMPATIBLE_TYPES"
