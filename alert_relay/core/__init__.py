"""
Core domain models and pure functions for the alert relay service.

This module contains the domain models and pure business logic
that are independent of external I/O and infrastructure concerns.
"""

from .models import AlertRecord, DomainAlertRecord, Zone, Hotspot, RelayPayload
from .normalize import parse_relay_payload, parse_create_request
from .priority import classify_priority
from .status_map import to_citizen_status
from .hotspots import find_hotspots

__all__ = [
    "AlertRecord", "DomainAlertRecord", "Zone", "Hotspot", "RelayPayload",
    "parse_relay_payload", "parse_create_request", "classify_priority",
    "to_citizen_status", "find_hotspots",
]
