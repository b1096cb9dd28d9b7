"""
Domain alert store port interface.
"""

from typing import List, Optional, Protocol, Tuple
from alert_relay.core.models import DomainAlertRecord, DomainComment

class DomainAlertStorePort(Protocol):
    """도메인 측 경보 저장소 포트 인터페이스"""

    async def find_by_reference(self, origin_service_id: str, origin_alert_id: str) -> Optional[DomainAlertRecord]:
        ...

    async def insert_if_absent(self, record: DomainAlertRecord) -> Tuple[str, bool]:
        """
        중복 제거 키가 없을 때만 저장합니다.

        Returns:
            (레코드 ID, 새로 생성 여부)
        """
        ...

    async def get(self, alert_id: str) -> Optional[DomainAlertRecord]:
        ...

    async def mark_zone_updated(self, alert_id: str) -> bool:
        """zone_updated 를 False → True 로 원자적으로 바꿉니다. 바꾼 경우에만 True."""
        ...

    async def update_status(self, alert_id: str, status: str) -> bool:
        ...

    async def add_comment(self, alert_id: str, comment: DomainComment) -> None:
        ...

    async def list_coordinates(self) -> List[List[float]]:
        ...
