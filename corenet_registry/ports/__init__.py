"""Ports layer - Interfaces for external collaborators."""

from .clock import ClockPort
from .event_publisher import EventPublisherPort
from .inventory import ComponentInventoryPort
from .link_repository import LinkRepository
from .logger import LoggerPort
from .registry import RegistryPort

__all__ = [
    "ClockPort",
    "ComponentInventoryPort",
    "EventPublisherPort",
    "LinkRepository",
    "LoggerPort",
    "RegistryPort",
]
