"""
SQLite storage adapters for the alert relay service.
"""

from .sqlite_alerts import SQLiteAlertStore
from .sqlite_domain_alerts import SQLiteDomainAlertStore
from .sqlite_zones import SQLiteZoneStore
from .sqlite_outbox import SQLiteRelayOutbox

__all__ = ["SQLiteAlertStore", "SQLiteDomainAlertStore", "SQLiteZoneStore", "SQLiteRelayOutbox"]
