"""In-memory implementation of the LinkRepository.

This is an infrastructure adapter that implements the LinkRepository port
for the single-process coordinator.
"""

from collections.abc import Sequence

from ..domain.models import Link
from ..ports.link_repository import LinkRepository


class InMemoryLinkRepository(LinkRepository):
    """In-memory implementation of LinkRepository."""

    def __init__(self) -> None:
        """Initialize the in-memory storage."""
        # Insertion order is creation order
        self._storage: dict[str, Link] = {}

    async def save(self, link: Link) -> None:
        """Save a link to memory."""
        self._storage[link.id] = link

    async def get(self, link_id: str) -> Link | None:
        """Get a link by id."""
        return self._storage.get(link_id)

    async def list_all(self) -> Sequence[Link]:
        """List all links."""
        return list(self._storage.values())

    async def list_for_instance(self, instance_id: str) -> Sequence[Link]:
        """List links touching an instance."""
        return [link for link in self._storage.values() if link.involves(instance_id)]

    async def delete(self, link_id: str) -> bool:
        """Delete a link from memory."""
        return self._storage.pop(link_id, None) is not None

    def clear(self) -> None:
        """Clear all stored links (useful for testing)."""
        self._storage.clear()
