"""Command line tool for inspecting link policy and exercising the registry."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .domain.aggregates import ComponentProfile
from .domain.enums import ComponentType
from .domain.models import Component, LinkRejection
from .domain.services import ConnectivityPolicy, ServiceCatalog
from .infrastructure.bootstrap import build_registry_stack
from .infrastructure.config import CoordinatorConfig, RegistryConfig
from .infrastructure.in_memory_event_bus import describe
from .infrastructure.in_memory_inventory import InMemoryComponentInventory
from .infrastructure.simple_logger import SimpleLogger
from .infrastructure.system_clock import ManualClock

console = Console()

_STATUS_STYLES = {"REGISTERED": "green", "UNAVAILABLE": "yellow", "REMOVED": "red"}

_TYPE_CHOICE = click.Choice([t.value for t in ComponentType], case_sensitive=False)


def _resolve_type(value: str) -> ComponentType:
    """Match a choice case-insensitively back to the enum value."""
    for component_type in ComponentType:
        if component_type.value.lower() == value.lower():
            return component_type
    raise click.BadParameter(f"Unknown component type: {value}")


@click.group()
@click.version_option(package_name="corenet-registry")
def main() -> None:
    """Service registry and link policy tools for a simulated 5G core."""


@main.command("check-link")
@click.argument("type_a", type=_TYPE_CHOICE)
@click.argument("type_b", type=_TYPE_CHOICE)
@click.option("--addr-a", help="Address of the first component")
@click.option("--addr-b", help="Address of the second component")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
def check_link(
    type_a: str, type_b: str, addr_a: str | None, addr_b: str | None, as_json: bool
) -> None:
    """Tell whether two component types may be linked, and over which interface."""
    a = _resolve_type(type_a)
    b = _resolve_type(type_b)

    result: dict[str, Any] = {
        "type_a": a.value,
        "type_b": b.value,
        "admissible": ConnectivityPolicy.is_admissible(a, b),
        "interface": ConnectivityPolicy.interface_label(a, b),
    }
    if addr_a and addr_b:
        result["same_subnet"] = ConnectivityPolicy.same_subnet(addr_a, addr_b)
        result["subnet_a"] = ConnectivityPolicy.subnet_of(addr_a)
        result["subnet_b"] = ConnectivityPolicy.subnet_of(addr_b)

    allowed = result["admissible"] and result.get("same_subnet", True)

    if as_json:
        click.echo(json.dumps(result, indent=2))
    else:
        verdict = "[green]✓ Link allowed[/green]" if allowed else "[red]✗ Link refused[/red]"
        console.print(Panel(verdict, style="bold"))
        console.print(f"  • Types: {a.value} <-> {b.value}")
        console.print(f"  • Compatible: {'yes' if result['admissible'] else 'no'}")
        console.print(f"  • Interface: {result['interface']}")
        if "same_subnet" in result:
            console.print(
                f"  • Subnets: {result['subnet_a']} / {result['subnet_b']} "
                f"({'same' if result['same_subnet'] else 'different'})"
            )

    sys.exit(0 if allowed else 1)


@main.command()
@click.argument("component_type", type=_TYPE_CHOICE)
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
def services(component_type: str, as_json: bool) -> None:
    """List the services a component type exposes."""
    resolved = _resolve_type(component_type)
    templates = ServiceCatalog.templates_for(resolved)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "component_type": resolved.value,
                    "services": [t.model_dump(mode="json") for t in templates],
                    "allowed_peer_types": [
                        t.value for t in ServiceCatalog.allowed_peer_types(resolved)
                    ],
                },
                indent=2,
            )
        )
        return

    if not templates:
        console.print(f"[yellow]{resolved.value} exposes no services[/yellow]")
        return

    table = Table(title=f"{resolved.value} services", box=box.ROUNDED)
    table.add_column("Service", style="bold")
    table.add_column("Version")
    table.add_column("Allowed peers")
    for template in templates:
        table.add_row(
            template.service_name,
            template.api_full_version,
            ", ".join(t.value for t in template.allowed_peer_types) or "-",
        )
    console.print(table)


@main.command()
@click.option(
    "--silence",
    type=float,
    default=160.0,
    show_default=True,
    help="Seconds the registered component stays silent",
)
@click.option("--verbose", "-v", is_flag=True, help="Show registry log output")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
def simulate(silence: float, verbose: bool, as_json: bool) -> None:
    """Link an AMF to the NRF, then let its heartbeats lapse."""
    steps, events = asyncio.run(_run_simulation(silence, verbose))

    if as_json:
        click.echo(json.dumps({"steps": steps, "events": events}, indent=2))
        return

    for step in steps:
        console.print(Panel(step["title"], style="bold"))
        if "rejection" in step:
            rejection = step["rejection"]
            console.print(f"  [red]✗ {rejection['reason']}[/red]: {rejection['message']}")
        console.print(_profile_table(step["profiles"]))

    console.print("\n[bold]Events:[/bold]")
    for event in events:
        console.print(f"  • {event['event_type']}: {event['aggregate_id']}")


async def _run_simulation(
    silence: float, verbose: bool
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    clock = ManualClock()
    logger = SimpleLogger(level=logging.INFO if verbose else logging.WARNING)
    inventory = InMemoryComponentInventory(
        [
            Component(
                instance_id="nrf-1",
                component_type=ComponentType.NRF,
                name="NRF-1",
                address="192.168.1.10",
            ),
            Component(
                instance_id="amf-1",
                component_type=ComponentType.AMF,
                name="AMF-1",
                address="192.168.1.20",
            ),
            Component(
                instance_id="smf-1",
                component_type=ComponentType.SMF,
                name="SMF-1",
                address="10.0.0.9",
            ),
        ]
    )
    registry_config = RegistryConfig()
    coordinator_config = CoordinatorConfig(registration_delay=0.01, renewal_interval=3600)
    stack = build_registry_stack(
        registry_config=registry_config,
        coordinator_config=coordinator_config,
        clock=clock,
        logger=logger,
        inventory=inventory,
    )

    steps: list[dict[str, Any]] = []

    async def snapshot(title: str, **extra: Any) -> None:
        profiles = await stack.registry.list_profiles()
        steps.append(
            {
                "title": title,
                "time": clock.now().isoformat(),
                "profiles": [_profile_row(profile) for profile in profiles],
                **extra,
            }
        )

    try:
        await stack.coordinator.create_link("amf-1", "nrf-1")
        await asyncio.sleep(coordinator_config.registration_delay + 0.05)
        await snapshot("AMF-1 linked to NRF-1")

        rejected = await stack.coordinator.create_link("amf-1", "smf-1")
        if isinstance(rejected, LinkRejection):
            await snapshot("AMF-1 -> SMF-1 refused", rejection=rejected.model_dump(mode="json"))

        # From here on only the sweep moves the state machine
        stack.coordinator.stop_renewal("amf-1")
        elapsed = 0.0
        for checkpoint in (registry_config.heartbeat_timeout + 1, silence):
            if checkpoint <= elapsed:
                continue
            clock.advance(checkpoint - elapsed)
            elapsed = checkpoint
            await stack.registry.sweep()
            await snapshot(f"After {elapsed:.0f}s of silence")

        events = [describe(event) for event in stack.events.history()]
    finally:
        await stack.stop()

    return steps, events


def _profile_row(profile: ComponentProfile) -> dict[str, Any]:
    return {
        "instance_id": profile.instance_id,
        "type": profile.component_type.value if profile.component_type else None,
        "name": profile.display_name,
        "status": profile.status.value,
        "services": [service.service_name for service in profile.services],
        "last_renewal": profile.last_renewal.isoformat(),
    }


def _profile_table(rows: list[dict[str, Any]]) -> Table:
    table = Table(box=box.ROUNDED)
    table.add_column("Instance", style="bold")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Services")
    for row in rows:
        style = _STATUS_STYLES.get(row["status"], "white")
        table.add_row(
            row["instance_id"],
            row["type"] or "-",
            f"[{style}]{row['status']}[/{style}]",
            ", ".join(row["services"]) or "-",
        )
    return table


if __name__ == "__main__":
    main()
