"""
Service-to-service HTTP clients for the alert relay service.

RelayClient pushes citizen alerts and comments to domain services;
StatusWebhookClient pushes domain status changes and comments back to
the citizen service. Every request carries the shared-secret header and
a bounded total timeout. Neither client retries: failures surface as
ServiceUnavailable and the caller decides what to record.
"""

import asyncio
import time
from typing import Any, Dict, Optional, Tuple
import aiohttp
from alert_relay.core.errors import ServiceUnavailable
from alert_relay.core.models import AlertRecord, RelayResult, ServiceTarget
from alert_relay.core.normalize import build_relay_payload
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger

log = get_logger("alert_relay.http")

class ServiceClient:
    """공유 비밀 헤더를 붙이는 서비스 간 HTTP 클라이언트 기반 클래스"""

    def __init__(self,
                 api_key: str,
                 header_name: str = "X-Service-Key",
                 timeout: float = 10.0):
        """
        초기화합니다.

        Args:
            api_key: 서비스 간 공유 비밀
            header_name: 공유 비밀을 담는 헤더 이름
            timeout: 요청 전체 타임아웃 (초)
        """
        self.api_key = api_key
        self.header_name = header_name
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers={
                self.header_name: self.api_key,
                "Content-Type": "application/json"
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )

    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        self.session = self._new_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        if self.session:
            await self.session.close()
            self.session = None

    async def _make_request(self, method: str, url: str, **kwargs) -> Tuple[int, Dict[str, Any]]:
        """
        요청을 한 번 수행합니다 (재시도 없음).

        Args:
            method: HTTP 메서드
            url: 전체 URL
            **kwargs: 추가 요청 매개변수

        Returns:
            (상태 코드, JSON 본문). 본문이 JSON 객체가 아니면 빈 딕셔너리.

        Raises:
            ServiceUnavailable: 타임아웃, 네트워크 오류, 2xx 외 응답
        """
        async def _request(session: aiohttp.ClientSession):
            async with session.request(method, url, **kwargs) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
                if not 200 <= response.status < 300:
                    raise ServiceUnavailable(f"HTTP {response.status} from {url}")
                return response.status, data if isinstance(data, dict) else {}

        try:
            if self.session is not None:
                return await _request(self.session)
            # 세션 없이 호출되면 일회용 세션을 사용
            async with self._new_session() as session:
                return await _request(session)
        except asyncio.TimeoutError:
            raise ServiceUnavailable(f"timeout after {self.timeout}s calling {url}")
        except aiohttp.ClientError as e:
            raise ServiceUnavailable(f"network error calling {url}: {e}")

    @staticmethod
    def _require_active(target: ServiceTarget) -> str:
        if not target.is_active:
            raise ServiceUnavailable(f"service {target.id} is not active")
        if not target.base_url:
            raise ServiceUnavailable(f"service {target.id} has no base URL")
        return target.base_url.rstrip("/")

class RelayClient(ServiceClient):
    """시민 서비스 → 도메인 서비스 릴레이 클라이언트"""

    async def relay(self, alert: AlertRecord, target: ServiceTarget) -> RelayResult:
        """
        경보를 도메인 서비스로 전송합니다.

        Args:
            alert: 시민 측 경보 레코드
            target: 디렉터리에서 조회한 대상 서비스

        Returns:
            serviceReferenceId 가 담긴 RelayResult

        Raises:
            ServiceUnavailable: 대상 비활성, 타임아웃, 2xx 외 응답,
                네트워크 오류, serviceReferenceId 누락
        """
        base_url = self._require_active(target)
        payload = build_relay_payload(alert).to_wire()

        t0 = time.perf_counter()
        try:
            status, data = await self._make_request("POST", f"{base_url}/alerts", json=payload)
        finally:
            metrics.relay_seconds.observe(time.perf_counter() - t0)

        reference_id = data.get("serviceReferenceId")
        if not reference_id:
            raise ServiceUnavailable(f"HTTP {status} from {target.id} without serviceReferenceId")

        log.info(f"릴레이 성공 alert_id:{alert.id} service:{target.id} reference:{reference_id}")
        return RelayResult(ok=True, service_reference_id=str(reference_id))

    async def forward_comment(self, target: ServiceTarget, reference_id: str,
                              text: str, citizen_id: Optional[str]) -> None:
        """시민 댓글을 도메인 서비스로 전달합니다."""
        base_url = self._require_active(target)
        await self._make_request(
            "POST",
            f"{base_url}/alerts/{reference_id}/comments",
            json={"text": text, "authorType": "citizen", "citizenId": citizen_id}
        )
        log.info(f"댓글 전달 성공 service:{target.id} reference:{reference_id}")

class StatusWebhookClient(ServiceClient):
    """도메인 서비스 → 시민 서비스 웹훅 클라이언트"""

    async def push_status(self, target: ServiceTarget, alert_id: str, status: str,
                          comment: Optional[str], updated_by: str) -> None:
        base_url = self._require_active(target)
        await self._make_request(
            "POST",
            f"{base_url}/webhooks/status",
            json={"alertId": alert_id, "status": status, "comment": comment, "updatedBy": updated_by}
        )
        log.info(f"상태 전달 성공 service:{target.id} alert_id:{alert_id} status:{status}")

    async def push_comment(self, target: ServiceTarget, alert_id: str,
                           text: str, author: str) -> None:
        base_url = self._require_active(target)
        await self._make_request(
            "POST",
            f"{base_url}/webhooks/comments",
            json={"alertId": alert_id, "text": text, "author": author}
        )
        log.info(f"댓글 웹훅 전달 성공 service:{target.id} alert_id:{alert_id}")
