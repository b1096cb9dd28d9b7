"""
Outbound relay and status notification port interfaces.
"""

from typing import Optional, Protocol
from alert_relay.core.models import AlertRecord, RelayResult, ServiceTarget

class RelayPort(Protocol):
    """시민 서비스 → 도메인 서비스 릴레이 포트"""

    async def relay(self, alert: AlertRecord, target: ServiceTarget) -> RelayResult:
        """
        경보를 도메인 서비스로 전송합니다.

        Raises:
            ServiceUnavailable: 대상 비활성, 타임아웃, 2xx 외 응답, 네트워크 오류
        """
        ...

    async def forward_comment(self, target: ServiceTarget, reference_id: str,
                              text: str, citizen_id: Optional[str]) -> None:
        ...

class StatusNotifierPort(Protocol):
    """도메인 서비스 → 시민 서비스 웹훅 포트"""

    async def push_status(self, target: ServiceTarget, alert_id: str, status: str,
                          comment: Optional[str], updated_by: str) -> None:
        ...

    async def push_comment(self, target: ServiceTarget, alert_id: str,
                           text: str, author: str) -> None:
        ...
