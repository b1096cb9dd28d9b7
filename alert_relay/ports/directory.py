"""
Service directory port interface.
"""

from typing import Optional, Protocol
from alert_relay.core.models import ServiceTarget

class ServiceDirectoryPort(Protocol):
    """서비스 디렉터리 조회 포트 (외부 협력자)"""

    async def lookup(self, service_id: str) -> Optional[ServiceTarget]:
        ...

    async def lookup_by_category(self, category: str) -> Optional[ServiceTarget]:
        ...
