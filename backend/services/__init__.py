"""
Services package
Event delivery and build execution behind the HTTP API

build_service is imported directly (services.build_service) because the
pipeline itself depends on event_service.
"""
from .event_service import EventBus, EventType

__all__ = [
    "EventBus",
    "EventType",
]
