"""Repository port for links.

Links are the coordinator's state, kept apart from the registry's profiles.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..domain.models import Link


class LinkRepository(ABC):
    """Abstract repository for links.

    This is a port interface that must be implemented by infrastructure adapters.
    """

    @abstractmethod
    async def save(self, link: Link) -> None:
        """Save a link."""
        ...

    @abstractmethod
    async def get(self, link_id: str) -> Link | None:
        """Get a link by id."""
        ...

    @abstractmethod
    async def list_all(self) -> Sequence[Link]:
        """List all links in creation order."""
        ...

    @abstractmethod
    async def list_for_instance(self, instance_id: str) -> Sequence[Link]:
        """List links with the instance at either end."""
        ...

    @abstractmethod
    async def delete(self, link_id: str) -> bool:
        """Delete a link; True if it existed."""
        ...
