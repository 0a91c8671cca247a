"""Domain layer - Core registry entities, policy tables and events."""

from .aggregates import ComponentProfile, apply_profile_update, default_display_name
from .enums import (
    AuditKind,
    ComponentType,
    DeregistrationReason,
    LinkProtocol,
    LinkRejectionReason,
    LinkStatus,
    RegistrationStatus,
)
from .exceptions import (
    CoreNetError,
    DuplicateRegistrationError,
    InvalidStatusTransitionError,
    RegistrationValidationError,
    RegistryError,
)
from .models import (
    AuditRecord,
    Component,
    Link,
    LinkRejection,
    LinkStatistics,
    ProfileUpdate,
    RegistrationResult,
    RegistryStatistics,
    ServiceDescriptor,
    SweepReport,
)
from .services import ConnectivityPolicy, ServiceCatalog
from .value_objects import Duration, NetworkAddress

__all__ = [
    "AuditKind",
    "AuditRecord",
    "Component",
    "ComponentProfile",
    "ComponentType",
    "ConnectivityPolicy",
    "CoreNetError",
    "DeregistrationReason",
    "DuplicateRegistrationError",
    "Duration",
    "InvalidStatusTransitionError",
    "Link",
    "LinkProtocol",
    "LinkRejection",
    "LinkRejectionReason",
    "LinkStatistics",
    "LinkStatus",
    "NetworkAddress",
    "ProfileUpdate",
    "RegistrationResult",
    "RegistrationStatus",
    "RegistrationValidationError",
    "RegistryError",
    "RegistryStatistics",
    "ServiceCatalog",
    "ServiceDescriptor",
    "SweepReport",
    "apply_profile_update",
    "default_display_name",
]
