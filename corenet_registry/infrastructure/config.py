"""Configuration objects for the registry and the link coordinator."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.enums import ComponentType, LinkProtocol

ENV_PREFIX = "CORENET_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_overrides(fields: dict[str, Any]) -> dict[str, Any]:
    """Collect ``CORENET_<FIELD>`` environment values for the given fields."""
    values: dict[str, Any] = {}
    for name, annotation in fields.items():
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is None or raw == "":
            continue
        if annotation is bool:
            values[name] = raw.strip().lower() in _TRUE_VALUES
        else:
            values[name] = raw.strip()
    return values


class RegistryConfig(BaseModel):
    """Timing and strictness settings of the registry store.

    All durations are in seconds. A profile that has not renewed for
    ``heartbeat_timeout`` becomes UNAVAILABLE, and REMOVED once a further
    ``grace_period`` has passed.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    # Heartbeat settings
    heartbeat_interval: float = Field(
        default=60.0,
        gt=0,
        description="Renewal cadence granted to registered instances",
    )
    heartbeat_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Silence after which a profile becomes UNAVAILABLE",
    )
    grace_period: float = Field(
        default=30.0,
        ge=0,
        description="Extra silence after the timeout before removal",
    )
    sweep_interval: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between timeout sweeps",
    )

    # Post-removal tasks
    purge_delay: float = Field(
        default=5.0,
        ge=0,
        description="Delay before a REMOVED profile is dropped",
    )
    advisory_interval: float = Field(
        default=20.0,
        gt=0,
        description="Cadence of the notice for deregistered instances still present",
    )

    validity_seconds: int = Field(
        default=3600,
        gt=0,
        description="Registration validity reported to callers",
    )

    # Strict modes, off by default
    enforce_required_fields: bool = Field(
        default=False,
        description="Reject registrations without a component type or address",
    )
    reject_duplicate_registrations: bool = Field(
        default=False,
        description="Reject registration of an id that is already live",
    )

    @model_validator(mode="after")
    def validate_timeout_window(self) -> RegistryConfig:
        """The timeout must leave room for at least one renewal."""
        if self.heartbeat_timeout <= self.heartbeat_interval:
            raise ValueError(
                f"heartbeat_timeout ({self.heartbeat_timeout}s) must be greater than "
                f"heartbeat_interval ({self.heartbeat_interval}s)"
            )
        return self

    @property
    def heartbeat_interval_ms(self) -> int:
        return int(self.heartbeat_interval * 1000)

    @property
    def removal_after(self) -> float:
        """Seconds of silence after which a profile is REMOVED."""
        return self.heartbeat_timeout + self.grace_period

    @classmethod
    def from_env(cls, **overrides: Any) -> RegistryConfig:
        """Build a config from ``CORENET_*`` variables, then explicit overrides."""
        annotations = {name: field.annotation for name, field in cls.model_fields.items()}
        values = _env_overrides(annotations)
        values.update(overrides)
        return cls(**values)


class CoordinatorConfig(BaseModel):
    """Settings of the link coordinator."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    registration_delay: float = Field(
        default=1.5,
        ge=0,
        description="Delay between a registry link and the peer's registration",
    )
    renewal_interval: float = Field(
        default=60.0,
        gt=0,
        description="Cadence of heartbeat renewals sent for linked instances",
    )
    default_protocol: LinkProtocol = Field(
        default=LinkProtocol.HTTP2,
        description="Protocol label given to new links",
    )
    registry_role: ComponentType = Field(
        default=ComponentType.NRF,
        description="Component type that acts as the registry",
    )

    @field_validator("registry_role", mode="before")
    @classmethod
    def parse_registry_role(cls, v: Any) -> ComponentType:
        """Accept the role as an enum or its string value."""
        parsed = ComponentType.parse(v)
        if parsed is None:
            raise ValueError(f"Unknown component type for registry role: {v}")
        return parsed

    @classmethod
    def from_env(cls, **overrides: Any) -> CoordinatorConfig:
        """Build a config from ``CORENET_*`` variables, then explicit overrides."""
        annotations = {name: field.annotation for name, field in cls.model_fields.items()}
        values = _env_overrides(annotations)
        values.update(overrides)
        return cls(**values)
