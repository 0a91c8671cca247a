"""Domain value objects.

These wrap the primitive address and duration values the registry works with,
so validation and formatting live in one place.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SERVICE_PORT = 7777


class NetworkAddress(BaseModel):
    """Value object for where a component can be reached.

    The address is kept as given; subnet grouping is derived from its first
    three dot-separated octets.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    address: str = Field(..., description="IPv4 address of the component")
    port: int = Field(default=DEFAULT_SERVICE_PORT, ge=0, le=65535, description="Service port")
    scheme: str = Field(default="http", description="URI scheme of the service endpoints")

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Normalize the scheme to lowercase."""
        return v.lower()

    @property
    def subnet(self) -> str:
        """The /24 prefix, e.g. '192.168.1' for '192.168.1.5'."""
        return subnet_prefix(self.address)

    @property
    def endpoint(self) -> str:
        """Endpoint in 'address:port' form."""
        return f"{self.address}:{self.port}"

    def __str__(self) -> str:
        return f"{self.scheme}://{self.endpoint}"


def subnet_prefix(address: str) -> str:
    """Return the first three dot-separated octets of an address.

    Shorter addresses are returned unchanged so the comparison never raises.
    """
    return ".".join(address.strip().split(".")[:3])


class Duration(BaseModel):
    """Value object representing a non-negative time duration."""

    model_config = ConfigDict(frozen=True)

    seconds: float = Field(..., ge=0, description="Duration in seconds")

    @classmethod
    def from_timedelta(cls, td: timedelta) -> "Duration":
        """Create Duration from a timedelta, clamping negative spans to zero."""
        return cls(seconds=max(td.total_seconds(), 0.0))

    def __str__(self) -> str:
        """Human-readable form such as '2m 5s'."""
        if self.seconds < 1:
            return f"{self.seconds}s"

        total = int(self.seconds)
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)

        parts = []
        if hours:
            parts.append(f"{hours}h")
        if minutes:
            parts.append(f"{minutes}m")
        if seconds or not parts:
            parts.append(f"{seconds}s")
        return " ".join(parts)
