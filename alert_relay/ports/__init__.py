"""
Port interfaces for the alert relay service.

This module defines the port interfaces (Protocols) that define
the contracts between the orchestrators and external adapters.
"""

from .alerts import AlertStorePort
from .domain_alerts import DomainAlertStorePort
from .zones import ZoneStorePort
from .directory import ServiceDirectoryPort
from .relay import RelayPort, StatusNotifierPort

__all__ = [
    "AlertStorePort", "DomainAlertStorePort", "ZoneStorePort",
    "ServiceDirectoryPort", "RelayPort", "StatusNotifierPort",
]
