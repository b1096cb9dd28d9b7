"""
HTTP adapters for service-to-service calls.
"""

from .client import RelayClient, ServiceClient, StatusWebhookClient

__all__ = ["RelayClient", "ServiceClient", "StatusWebhookClient"]
