"""In-memory implementation of the component inventory."""

from ..domain.models import Component
from ..ports.inventory import ComponentInventoryPort


class InMemoryComponentInventory(ComponentInventoryPort):
    """Inventory held in a dict, keyed by instance id, insertion ordered."""

    def __init__(self, components: list[Component] | None = None) -> None:
        self._storage: dict[str, Component] = {}
        for component in components or []:
            self._storage[component.instance_id] = component

    async def get_component(self, instance_id: str) -> Component | None:
        return self._storage.get(instance_id)

    async def list_components(self) -> list[Component]:
        return list(self._storage.values())

    async def add_component(self, component: Component) -> None:
        self._storage[component.instance_id] = component

    async def remove_component(self, instance_id: str) -> bool:
        return self._storage.pop(instance_id, None) is not None

    def clear(self) -> None:
        """Clear all components (useful for testing)."""
        self._storage.clear()
