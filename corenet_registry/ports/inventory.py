"""Inventory port - the external record of which components exist."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..domain.models import Component


class ComponentInventoryPort(ABC):
    """Abstract interface over the component inventory.

    The registry and coordinator never own components; they look them up by
    id whenever they need to know whether one still exists.
    """

    @abstractmethod
    async def get_component(self, instance_id: str) -> Component | None:
        """Get a component by id.

        Returns:
            The component if present, None otherwise
        """
        ...

    @abstractmethod
    async def list_components(self) -> list[Component]:
        """List every component in the inventory."""
        ...

    @abstractmethod
    async def add_component(self, component: Component) -> None:
        """Add or replace a component."""
        ...

    @abstractmethod
    async def remove_component(self, instance_id: str) -> bool:
        """Remove a component.

        Returns:
            True if something was removed
        """
        ...
