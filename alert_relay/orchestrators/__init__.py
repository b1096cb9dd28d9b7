"""
Orchestrators for the alert relay service.

This module contains the orchestrators that coordinate
the flow between ports and adapters.
"""

from .citizen_flow import CitizenAlertService
from .correlation import HotspotService, ZoneCorrelator, ZoneService
from .ingestion import IngestionEndpoint
from .redelivery import RelayRedeliveryWorker
from .status_bridge import StatusBridge

__all__ = [
    "CitizenAlertService", "HotspotService", "IngestionEndpoint",
    "RelayRedeliveryWorker", "StatusBridge", "ZoneCorrelator", "ZoneService",
]
