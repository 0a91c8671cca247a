"""Registry port - Interface for the component registry store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..domain.aggregates import ComponentProfile
from ..domain.enums import ComponentType, DeregistrationReason
from ..domain.models import (
    AuditRecord,
    ProfileUpdate,
    RegistrationResult,
    RegistryStatistics,
    SweepReport,
)


class RegistryPort(ABC):
    """Abstract interface for registry operations.

    This port defines the contract for registry implementations, covering
    registration, heartbeat renewal, discovery, deregistration and the
    timeout sweep that drives the status state machine.
    """

    @abstractmethod
    async def register(
        self, instance_id: str, update: ProfileUpdate | None = None
    ) -> RegistrationResult:
        """Register an instance, or re-register a live one.

        Args:
            instance_id: Instance identifier
            update: Profile fields to apply over the existing or default profile

        Returns:
            The registration outcome with the accepted heartbeat interval

        Raises:
            RegistrationValidationError: If required fields are enforced and missing
            DuplicateRegistrationError: If duplicates are rejected and the id is live
        """
        ...

    @abstractmethod
    async def renew_heartbeat(self, instance_id: str) -> bool:
        """Record a heartbeat for an instance.

        Returns:
            False if the instance is unknown or REMOVED, True otherwise
        """
        ...

    @abstractmethod
    async def discover(
        self,
        component_type: ComponentType | str | None = None,
        service_name: str | None = None,
    ) -> list[ComponentProfile]:
        """Find REGISTERED profiles.

        Args:
            component_type: Only profiles of this role, if given
            service_name: Only profiles offering this service name or id, if given

        Returns:
            Snapshots of matching profiles
        """
        ...

    @abstractmethod
    async def deregister(
        self,
        instance_id: str,
        reason: DeregistrationReason = DeregistrationReason.MANUAL,
    ) -> bool:
        """Move an instance to REMOVED.

        Returns:
            True if the instance is known, False for an unknown id
        """
        ...

    @abstractmethod
    async def sweep(self) -> SweepReport:
        """Apply heartbeat timeouts to every live profile in one pass."""
        ...

    @abstractmethod
    async def get_profile(self, instance_id: str) -> ComponentProfile | None:
        """Get a snapshot of one profile, REMOVED ones included."""
        ...

    @abstractmethod
    async def list_profiles(self) -> list[ComponentProfile]:
        """Snapshots of every profile still held."""
        ...

    @abstractmethod
    async def get_registration_record(self, instance_id: str) -> AuditRecord | None:
        """Latest registration audit entry for an instance."""
        ...

    @abstractmethod
    async def get_deregistration_record(self, instance_id: str) -> AuditRecord | None:
        """Latest deregistration audit entry for an instance."""
        ...

    @abstractmethod
    async def registration_history(self) -> list[AuditRecord]:
        """All registration audit entries in order."""
        ...

    @abstractmethod
    async def deregistration_history(self) -> list[AuditRecord]:
        """All deregistration audit entries in order."""
        ...

    @abstractmethod
    async def get_statistics(self) -> RegistryStatistics:
        """Profile counts by status."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Cancel outstanding background tasks."""
        ...
