"""
Zone store port interface.
"""

from typing import List, Optional, Protocol, Sequence
from alert_relay.core.models import Zone

class ZoneStorePort(Protocol):
    """위험 구역 저장소 포트 인터페이스"""

    async def create(self, zone: Zone) -> Zone:
        ...

    async def get(self, zone_id: str) -> Optional[Zone]:
        ...

    async def list_all(self) -> List[Zone]:
        ...

    async def find_containing(self, point: Sequence[float]) -> List[Zone]:
        ...

    async def increment_alert_count(self, zone_id: str, at: Optional[str] = None) -> None:
        """원자적 증가 (저장소 계층에서 수행)"""
        ...
