"""Domain-specific exceptions.

Most registry failure paths return a value instead of raising: unknown ids
give ``None``/``False`` and refused links give a ``LinkRejection``. The
exceptions below cover programming errors against the state machine and the
opt-in strict registration modes.
"""


class CoreNetError(Exception):
    """Base exception for all corenet registry errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RegistryError(CoreNetError):
    """Registry-related errors."""

    def __init__(self, message: str, instance_id: str | None = None):
        super().__init__(message)
        self.instance_id = instance_id
        if instance_id:
            self.details["instance_id"] = instance_id


class RegistrationValidationError(RegistryError):
    """Raised when strict registration finds required fields missing."""

    def __init__(self, instance_id: str, missing_fields: list[str]):
        super().__init__(
            f"Registration for '{instance_id}' is missing required fields: "
            f"{', '.join(missing_fields)}",
            instance_id=instance_id,
        )
        self.missing_fields = missing_fields
        self.details["missing_fields"] = missing_fields


class DuplicateRegistrationError(RegistryError):
    """Raised when duplicate rejection is enabled and the id is already live."""

    def __init__(self, instance_id: str):
        super().__init__(f"Instance '{instance_id}' is already registered", instance_id=instance_id)


class InvalidStatusTransitionError(RegistryError):
    """Raised when a profile is asked to make a transition its state forbids."""

    def __init__(self, instance_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move instance '{instance_id}' from {current} to {target}",
            instance_id=instance_id,
        )
        self.current_status = current
        self.target_status = target
        self.details["current_status"] = current
        self.details["target_status"] = target
