"""
Citizen alert store port interface.
"""

from typing import List, Optional, Protocol
from alert_relay.core.models import AlertRecord, Comment, StatusEntry

class AlertStorePort(Protocol):
    """시민 측 경보 저장소 포트 인터페이스"""

    async def create(self, alert: AlertRecord) -> AlertRecord:
        ...

    async def get(self, alert_id: str) -> Optional[AlertRecord]:
        ...

    async def set_relay_reference(self, alert_id: str, reference_id: str) -> bool:
        """
        릴레이 참조를 기록합니다. 이미 설정되어 있으면 아무것도 하지 않습니다.

        Returns:
            이번 호출로 기록되었으면 True
        """
        ...

    async def append_status(self, alert_id: str, entry: StatusEntry) -> None:
        ...

    async def add_comment(self, alert_id: str, comment: Comment) -> None:
        ...

    async def list_by_citizen(self, citizen_id: str) -> List[AlertRecord]:
        ...

    async def list_public(self) -> List[AlertRecord]:
        """익명이 아닌 경보 전체"""
        ...
