"""Connection coordinator - link admission and the registry side effects of links.

A link to the registry role is what makes a component register: shortly
after the link is created the peer is registered and starts renewing, and
deleting the link deregisters it again.
"""

from __future__ import annotations

from ..domain.aggregates import ComponentProfile
from ..domain.enums import (
    ComponentType,
    DeregistrationReason,
    LinkProtocol,
    LinkRejectionReason,
    LinkStatus,
)
from ..domain.events import LinkCreatedEvent, LinkRejectedEvent, LinkRemovedEvent
from ..domain.models import (
    Component,
    Link,
    LinkRejection,
    LinkStatistics,
    ProfileUpdate,
    SubnetGroup,
)
from ..domain.services import ConnectivityPolicy
from ..infrastructure.config import CoordinatorConfig
from ..infrastructure.in_memory_link_repository import InMemoryLinkRepository
from ..infrastructure.task_scheduler import KeyedTaskScheduler
from ..ports.clock import ClockPort
from ..ports.event_publisher import EventPublisherPort
from ..ports.inventory import ComponentInventoryPort
from ..ports.link_repository import LinkRepository
from ..ports.logger import LoggerPort
from ..ports.registry import RegistryPort


def _registration_key(link_id: str) -> str:
    return f"register:{link_id}"


def _renewal_key(instance_id: str) -> str:
    return f"renew:{instance_id}"


class ConnectionCoordinator:
    """Creates and deletes links and keeps the registry in step with them.

    Admission checks run in a fixed order and the first failure is returned
    as a ``LinkRejection``: unknown endpoint, self link, different subnets,
    incompatible types.
    """

    def __init__(
        self,
        registry: RegistryPort,
        inventory: ComponentInventoryPort,
        link_repository: LinkRepository | None = None,
        config: CoordinatorConfig | None = None,
        clock: ClockPort | None = None,
        logger: LoggerPort | None = None,
        event_publisher: EventPublisherPort | None = None,
        scheduler: KeyedTaskScheduler | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            registry: Registry the linked components register with
            inventory: Source of truth for which components exist
            link_repository: Storage for links
            config: Delays, renewal cadence and the registry role
            clock: Time source for link timestamps
            logger: Logger for link lifecycle
            event_publisher: Outlet for link events, optional
            scheduler: Timer facility for registration and renewal tasks
        """
        self._registry = registry
        self._inventory = inventory
        self._links = link_repository or InMemoryLinkRepository()
        self._config = config or CoordinatorConfig()
        self._clock = clock or self._create_default_clock()
        self._logger = logger or self._create_default_logger()
        self._events = event_publisher
        self._scheduler = scheduler or KeyedTaskScheduler(logger=self._logger)

    def _create_default_clock(self) -> ClockPort:
        from ..infrastructure.system_clock import SystemClock

        return SystemClock()

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from ..infrastructure.simple_logger import SimpleLogger

        return SimpleLogger()

    @property
    def config(self) -> CoordinatorConfig:
        return self._config

    # Policy pass-through

    @staticmethod
    def is_admissible(type_a: ComponentType | str, type_b: ComponentType | str) -> bool:
        return ConnectivityPolicy.is_admissible(type_a, type_b)

    @staticmethod
    def interface_label(type_a: ComponentType | str, type_b: ComponentType | str) -> str:
        return ConnectivityPolicy.interface_label(type_a, type_b)

    # Link lifecycle

    async def create_link(
        self, source_id: str, target_id: str, manual: bool = True
    ) -> Link | LinkRejection:
        """Validate and create a link between two inventory components.

        Args:
            source_id: Initiating component
            target_id: Other component
            manual: False for links created by automation; they are not drawn

        Returns:
            The stored link, or the reason it was refused
        """
        source = await self._inventory.get_component(source_id)
        target = await self._inventory.get_component(target_id)

        rejection = self._check_admission(source_id, target_id, source, target)
        if rejection is not None:
            self._logger.warning(
                rejection.message,
                source_id=source_id,
                target_id=target_id,
                reason=rejection.reason.value,
            )
            await self._publish(
                LinkRejectedEvent(
                    source_id=source_id,
                    target_id=target_id,
                    reason=rejection.reason.value,
                    message=rejection.message,
                )
            )
            return rejection

        link = Link(
            source_id=source_id,
            target_id=target_id,
            interface_label=ConnectivityPolicy.interface_label(
                source.component_type, target.component_type
            ),
            protocol=self._config.default_protocol,
            created_at=self._clock.now(),
            is_manual=manual,
            visible=manual,
        )
        await self._links.save(link)

        self._logger.info(
            "Link created",
            link_id=link.id,
            source=source.label,
            target=target.label,
            interface=link.interface_label,
        )
        await self._publish(
            LinkCreatedEvent(
                link_id=link.id,
                source_id=source_id,
                target_id=target_id,
                interface_label=link.interface_label,
                protocol=link.protocol.value,
                is_manual=manual,
            )
        )

        peer_id = self._registry_peer(source, target)
        if peer_id is not None:
            self._schedule_registration(link.id, peer_id)

        return link

    async def create_manual_link(self, source_id: str, target_id: str) -> Link | LinkRejection:
        return await self.create_link(source_id, target_id, manual=True)

    async def create_auto_link(self, source_id: str, target_id: str) -> Link | LinkRejection:
        """Create a link on behalf of automation; it is kept but not visible."""
        return await self.create_link(source_id, target_id, manual=False)

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link, deregistering the peer if it was a registry link.

        Returns:
            False if no such link exists
        """
        link = await self._links.get(link_id)
        if link is None:
            self._logger.warning("Link not found", link_id=link_id)
            return False

        self._scheduler.cancel(_registration_key(link_id))

        source_type = await self._type_of(link.source_id)
        target_type = await self._type_of(link.target_id)
        peer_id = self._registry_peer_by_type(link, source_type, target_type)
        if peer_id is not None:
            await self._registry.deregister(peer_id, DeregistrationReason.LINK_REMOVED)
            self.stop_renewal(peer_id)

        await self._links.delete(link_id)
        self._logger.info("Link deleted", link_id=link_id)
        await self._publish(
            LinkRemovedEvent(link_id=link_id, source_id=link.source_id, target_id=link.target_id)
        )
        return True

    # Queries

    async def get_link(self, link_id: str) -> Link | None:
        return await self._links.get(link_id)

    async def list_links(self, include_hidden: bool = True) -> list[Link]:
        links = await self._links.list_all()
        return [link for link in links if include_hidden or link.visible]

    async def links_for(self, instance_id: str) -> list[Link]:
        return list(await self._links.list_for_instance(instance_id))

    async def valid_targets(
        self, instance_id: str, same_subnet_only: bool = False
    ) -> list[Component]:
        """Components this one could be linked to.

        Args:
            instance_id: Component asking
            same_subnet_only: Also require the same /24 prefix

        Returns:
            Admissible components other than the one asking; empty if it is unknown
        """
        source = await self._inventory.get_component(instance_id)
        if source is None:
            self._logger.warning(
                "Valid targets requested for unknown component", instance_id=instance_id
            )
            return []

        return [
            candidate
            for candidate in await self._inventory.list_components()
            if candidate.instance_id != instance_id
            and ConnectivityPolicy.is_admissible(source.component_type, candidate.component_type)
            and (
                not same_subnet_only
                or ConnectivityPolicy.same_subnet(source.address, candidate.address)
            )
        ]

    async def discover_peers(
        self,
        requester_id: str,
        component_type: ComponentType | str | None = None,
        service_name: str | None = None,
    ) -> list[ComponentProfile]:
        """Registry discovery narrowed to roles the requester may talk to."""
        requester_type = await self._type_of(requester_id)
        if requester_type is None:
            self._logger.warning("Discovery by unknown requester", requester_id=requester_id)
            return []

        profiles = await self._registry.discover(component_type, service_name)
        return [
            profile
            for profile in profiles
            if profile.instance_id != requester_id
            and profile.component_type is not None
            and ConnectivityPolicy.is_admissible(requester_type, profile.component_type)
        ]

    async def link_statistics(self) -> LinkStatistics:
        """Link counts by protocol and status plus the subnet layout."""
        links = await self._links.list_all()
        components = await self._inventory.list_components()

        by_protocol = {protocol.value: 0 for protocol in LinkProtocol}
        by_status = {status.value: 0 for status in LinkStatus}
        for link in links:
            by_protocol[link.protocol.value] += 1
            by_status[link.status.value] += 1

        groups: dict[str, list[Component]] = {}
        for component in components:
            groups.setdefault(ConnectivityPolicy.subnet_of(component.address), []).append(component)

        return LinkStatistics(
            total=len(links),
            by_protocol=by_protocol,
            by_status=by_status,
            subnets=[
                SubnetGroup(
                    network=f"{subnet}.0/24",
                    component_count=len(members),
                    components=[
                        {
                            "name": member.label,
                            "type": member.component_type.value,
                            "address": member.address,
                        }
                        for member in members
                    ],
                )
                for subnet, members in groups.items()
            ],
        )

    # Renewal cadence

    def start_renewal(self, instance_id: str) -> bool:
        """Start renewing an instance's registration.

        The first renewal is sent at once, then every ``renewal_interval``.

        Returns:
            False if renewal was already running for the instance
        """
        key = _renewal_key(instance_id)
        if self._scheduler.is_scheduled(key):
            return False

        async def renew() -> bool:
            if await self._inventory.get_component(instance_id) is None:
                self._logger.info("Component gone, renewal stopped", instance_id=instance_id)
                return False
            if not await self._registry.renew_heartbeat(instance_id):
                self._logger.info(
                    "Registry refused renewal, renewal stopped", instance_id=instance_id
                )
                return False
            return True

        self._scheduler.schedule_recurring(
            key, self._config.renewal_interval, renew, run_immediately=True
        )
        self._logger.info(
            "Renewal started", instance_id=instance_id, interval=f"{self._config.renewal_interval}s"
        )
        return True

    def stop_renewal(self, instance_id: str) -> None:
        if self._scheduler.cancel(_renewal_key(instance_id)):
            self._logger.info("Renewal stopped", instance_id=instance_id)

    def is_renewing(self, instance_id: str) -> bool:
        return self._scheduler.is_scheduled(_renewal_key(instance_id))

    async def shutdown(self) -> None:
        """Cancel pending registrations and every renewal."""
        await self._scheduler.cancel_all()
        self._logger.info("Connection coordinator shut down")

    # Internals

    def _check_admission(
        self,
        source_id: str,
        target_id: str,
        source: Component | None,
        target: Component | None,
    ) -> LinkRejection | None:
        def reject(reason: LinkRejectionReason, message: str, **details) -> LinkRejection:
            return LinkRejection(
                reason=reason,
                message=message,
                source_id=source_id,
                target_id=target_id,
                details=details,
            )

        if source is None or target is None:
            missing = [i for i, c in ((source_id, source), (target_id, target)) if c is None]
            return reject(
                LinkRejectionReason.UNKNOWN_ENDPOINT,
                f"Unknown component: {', '.join(missing)}",
                missing=missing,
            )

        if source_id == target_id:
            return reject(LinkRejectionReason.SELF_LINK, "Cannot link a component to itself")

        source_subnet = ConnectivityPolicy.subnet_of(source.address)
        target_subnet = ConnectivityPolicy.subnet_of(target.address)
        if source_subnet != target_subnet:
            return reject(
                LinkRejectionReason.SUBNET_MISMATCH,
                f"Components must share a subnet: {source.label} is on {source_subnet}.0/24, "
                f"{target.label} is on {target_subnet}.0/24",
                source_subnet=source_subnet,
                target_subnet=target_subnet,
            )

        if not ConnectivityPolicy.is_admissible(source.component_type, target.component_type):
            return reject(
                LinkRejectionReason.INCOMPATIBLE_TYPES,
                f"{source.component_type.value} cannot be linked to {target.component_type.value}",
                source_type=source.component_type.value,
                target_type=target.component_type.value,
            )

        return None

    def _registry_peer(self, source: Component, target: Component) -> str | None:
        role = self._config.registry_role
        if target.component_type == role and source.component_type != role:
            return source.instance_id
        if source.component_type == role and target.component_type != role:
            return target.instance_id
        return None

    def _registry_peer_by_type(
        self,
        link: Link,
        source_type: ComponentType | None,
        target_type: ComponentType | None,
    ) -> str | None:
        role = self._config.registry_role
        if target_type == role and source_type not in (role, None):
            return link.source_id
        if source_type == role and target_type not in (role, None):
            return link.target_id
        return None

    async def _type_of(self, instance_id: str) -> ComponentType | None:
        """Role from the inventory, falling back to the registry profile."""
        component = await self._inventory.get_component(instance_id)
        if component is not None:
            return component.component_type
        profile = await self._registry.get_profile(instance_id)
        return profile.component_type if profile else None

    def _schedule_registration(self, link_id: str, peer_id: str) -> None:
        async def register() -> None:
            if await self._links.get(link_id) is None:
                self._logger.debug("Link gone before registration", link_id=link_id)
                return
            component = await self._inventory.get_component(peer_id)
            if component is None:
                self._logger.debug("Component gone before registration", instance_id=peer_id)
                return

            result = await self._registry.register(peer_id, ProfileUpdate.from_component(component))
            self._logger.info(
                "Linked component registered",
                instance_id=peer_id,
                link_id=link_id,
                heartbeat_interval_ms=result.heartbeat_interval_ms,
            )
            self.start_renewal(peer_id)

        self._scheduler.schedule_once(
            _registration_key(link_id), self._config.registration_delay, register
        )

    async def _publish(self, event) -> None:
        if self._events is None:
            return
        try:
            await self._events.publish(event)
        except Exception as e:
            self._logger.error(f"Failed to publish event: {e}", event_type=event.event_type)
