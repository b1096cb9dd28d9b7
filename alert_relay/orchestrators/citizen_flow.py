"""
Citizen-side orchestrator for the alert relay service.

Creates citizen alerts, relays them to the owning domain service and
applies status / comment updates pushed back by domain services.
The local record is always written first; relay problems are recorded
on the alert and in the relay outbox but never fail the citizen request.
"""

import json
import uuid
from typing import Any, List, Optional, Sequence, Tuple
from alert_relay.common.geo import haversine_distance_km, validate_point
from alert_relay.core.errors import AlertNotFound, InvalidPayload, ServiceUnavailable, error_reason
from alert_relay.core.models import (
    AlertRecord, Comment, IdentityClaims, RelayResult, ServiceTarget, StatusEntry, SYSTEM_ACTOR,
)
from alert_relay.core.normalize import parse_create_request
from alert_relay.core.status_map import to_citizen_status
from alert_relay.adapters.storage.sqlite_outbox import KIND_COMMENT, KIND_RELAY, SQLiteRelayOutbox
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.ports.alerts import AlertStorePort
from alert_relay.ports.directory import ServiceDirectoryPort
from alert_relay.ports.relay import RelayPort

log = get_logger("alert_relay.citizen")

class CitizenAlertService:
    """시민 측 경보 오케스트레이터"""

    def __init__(self,
                 store: AlertStorePort,
                 directory: ServiceDirectoryPort,
                 relay: RelayPort,
                 *,
                 outbox: Optional[SQLiteRelayOutbox] = None,
                 nearby_max_distance_m: float = 5000.0,
                 nearby_limit: int = 50):
        """
        초기화합니다.

        Args:
            store: 시민 측 경보 저장소
            directory: 서비스 디렉터리
            relay: 릴레이 클라이언트
            outbox: 실패한 릴레이를 기록할 Outbox (없으면 기록하지 않음)
            nearby_max_distance_m: 주변 경보 조회 기본 반경 (미터)
            nearby_limit: 주변 경보 조회 기본 개수
        """
        self.store = store
        self.directory = directory
        self.relay = relay
        self.outbox = outbox
        self.nearby_max_distance_m = nearby_max_distance_m
        self.nearby_limit = nearby_limit

        log.info("시민 측 경보 서비스 초기화됨")

    async def create_alert(self, raw: Any, claims: IdentityClaims) -> AlertRecord:
        """
        경보를 생성하고 담당 서비스로 릴레이합니다.

        Args:
            raw: 요청 본문
            claims: 게이트웨이 신원 클레임

        Returns:
            릴레이 결과(참조 ID 또는 실패 댓글)가 반영된 레코드

        Raises:
            InvalidPayload: 검증 실패 (레코드를 만들지 않음)
        """
        target: Optional[ServiceTarget] = None
        known = None
        service_id = raw.get("serviceId") if isinstance(raw, dict) else None
        if isinstance(service_id, str) and service_id.strip():
            target = await self.directory.lookup(service_id.strip())
            known = target is not None
        elif isinstance(raw, dict) and isinstance(raw.get("category"), str):
            # serviceId 가 없으면 카테고리 담당 서비스로 보냄
            target = await self.directory.lookup_by_category(raw["category"])
            if target is not None:
                raw = dict(raw, serviceId=target.id)
                known = True

        request = parse_create_request(raw, known_service=known)

        alert = AlertRecord(
            id=uuid.uuid4().hex,
            citizen_id=None if request.is_anonymous else claims.subject,
            service_id=request.service_id,
            category=request.category,
            description=request.description,
            location=request.location,
            proofs=request.proofs,
            is_anonymous=request.is_anonymous,
            status="pending",
            status_history=[StatusEntry(status="pending", comment="Alert created", actor=SYSTEM_ACTOR)],
        )
        await self.store.create(alert)
        metrics.alerts_created.labels(category=alert.category).inc()
        log.info(f"경보 생성됨 alert_id:{alert.id} category:{alert.category} service:{alert.service_id}")

        await self.relay_alert(alert, target)

        return await self.store.get(alert.id) or alert

    async def relay_alert(self, alert: AlertRecord, target: Optional[ServiceTarget] = None) -> RelayResult:
        """
        경보를 도메인 서비스로 릴레이합니다. 예외를 던지지 않습니다.

        성공하면 relay_reference 만 기록하고 상태는 건드리지 않습니다.
        실패하면 시스템 댓글과 Outbox 항목을 남깁니다.
        """
        try:
            target = target or await self.directory.lookup(alert.service_id)
            if target is None:
                raise ServiceUnavailable(f"service {alert.service_id} not found in directory")
            result = await self.relay.relay(alert, target)
        except ServiceUnavailable as e:
            await self._record_relay_failure(alert, e.message)
            return RelayResult(ok=False, error=e.message)
        except Exception as e:
            log.error(f"릴레이 중 예외 발생 alert_id:{alert.id} error:{e!r}")
            await self._record_relay_failure(alert, error_reason(e))
            return RelayResult(ok=False, error=error_reason(e))

        try:
            if not await self.store.set_relay_reference(alert.id, result.service_reference_id):
                log.info(f"릴레이 참조가 이미 설정됨 alert_id:{alert.id}")
        except Exception as e:
            # 재전송하면 도메인 측 중복 제거가 같은 참조를 돌려줌
            log.error(f"릴레이 참조 저장 실패 alert_id:{alert.id} error:{e!r}")
            await self._enqueue(KIND_RELAY, alert.id, None, error_reason(e))
            return RelayResult(ok=False, error=error_reason(e))

        metrics.relays.labels(service=target.id, outcome="ok").inc()
        return result

    async def _record_relay_failure(self, alert: AlertRecord, reason: str) -> None:
        metrics.relays.labels(service=alert.service_id, outcome="failed").inc()
        log.warning(f"릴레이 실패 alert_id:{alert.id} service:{alert.service_id} reason:{reason}")

        try:
            await self.store.add_comment(alert.id, Comment(
                author=SYSTEM_ACTOR,
                text=f"Relay to service failed. Reason: {reason}",
            ))
        except Exception as e:
            log.error(f"릴레이 실패 댓글 기록 실패 alert_id:{alert.id} error:{e!r}")
        await self._enqueue(KIND_RELAY, alert.id, None, reason)

    async def _enqueue(self, kind: str, alert_id: str, payload: Optional[str], reason: str) -> None:
        """Outbox에 재전송 항목을 남깁니다. 실패해도 예외를 던지지 않습니다."""
        if self.outbox is None:
            return
        try:
            await self.outbox.enqueue(kind, alert_id, payload, error=reason)
            metrics.outbox_size.set(await self.outbox.get_count())
        except Exception as e:
            log.error(f"Outbox 기록 실패 kind:{kind} alert_id:{alert_id} error:{e!r}")

    async def add_comment(self, alert_id: str, text: str, claims: IdentityClaims) -> AlertRecord:
        """
        시민 댓글을 추가하고 도메인 서비스로 전달합니다 (전달은 최선 노력).

        Raises:
            AlertNotFound: 경보가 없거나 다른 시민의 경보인 경우
            InvalidPayload: 빈 댓글
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidPayload("comment text is required", ["missing_text"])

        alert = await self.store.get(alert_id)
        # 다른 시민의 경보는 존재 자체를 드러내지 않음
        if alert is None or (claims.subject and alert.citizen_id != claims.subject):
            raise AlertNotFound(f"alert {alert_id} not found")

        await self.store.add_comment(alert_id, Comment(author=claims.subject or "anonymous", text=text.strip()))

        try:
            target = await self.directory.lookup(alert.service_id)
            if target is not None:
                await self.relay.forward_comment(target, alert.relay_reference or alert.id, text.strip(),
                                                 None if alert.is_anonymous else alert.citizen_id)
                metrics.comment_forwards.labels(outcome="ok").inc()
        except Exception as e:
            metrics.comment_forwards.labels(outcome="failed").inc()
            log.warning(f"댓글 전달 실패 alert_id:{alert_id} reason:{error_reason(e)}")
            await self._enqueue(KIND_COMMENT, alert_id, json.dumps({"text": text.strip()}), error_reason(e))

        return await self.store.get(alert_id) or alert

    async def update_alert_status(self, alert_id: str, status: str,
                                  comment: Optional[str] = None,
                                  actor: Optional[str] = None) -> AlertRecord:
        """
        도메인 서비스가 보낸 상태를 시민 측 상태로 매핑하여 적용합니다.

        Args:
            alert_id: 시민 측 경보 ID
            status: 도메인 상태 (시민 측 어휘도 허용)
            comment: 상태 변경 사유
            actor: 변경 주체

        Raises:
            AlertNotFound: 경보가 없는 경우
            InvalidPayload: 알 수 없는 상태
        """
        alert = await self.store.get(alert_id)
        if alert is None:
            raise AlertNotFound(f"alert {alert_id} not found")

        citizen_status = to_citizen_status(status)
        await self.store.append_status(alert_id, StatusEntry(
            status=citizen_status,
            comment=comment,
            actor=actor or SYSTEM_ACTOR,
        ))
        log.info(f"상태 갱신 alert_id:{alert_id} {status} -> {citizen_status}")
        return await self.store.get(alert_id) or alert

    async def add_service_comment(self, alert_id: str, text: str, author: Optional[str] = None) -> AlertRecord:
        """도메인 서비스가 보낸 댓글을 추가합니다."""
        if not isinstance(text, str) or not text.strip():
            raise InvalidPayload("comment text is required", ["missing_text"])

        alert = await self.store.get(alert_id)
        if alert is None:
            raise AlertNotFound(f"alert {alert_id} not found")

        await self.store.add_comment(alert_id, Comment(author=author or "Service", text=text.strip(),
                                                       from_service=True))
        return await self.store.get(alert_id) or alert

    async def get_alert(self, alert_id: str) -> AlertRecord:
        alert = await self.store.get(alert_id)
        if alert is None:
            raise AlertNotFound(f"alert {alert_id} not found")
        return alert

    async def list_citizen_alerts(self, citizen_id: str) -> List[AlertRecord]:
        return await self.store.list_by_citizen(citizen_id)

    async def alerts_nearby(self, point: Sequence[float],
                            max_distance_m: Optional[float] = None,
                            limit: Optional[int] = None) -> List[Tuple[AlertRecord, float]]:
        """
        주변 경보를 가까운 순으로 조회합니다. 익명 경보는 제외됩니다.

        Args:
            point: [경도, 위도]
            max_distance_m: 최대 거리 (미터)
            limit: 최대 개수

        Returns:
            (경보, 거리(미터)) 목록
        """
        if not validate_point(point):
            raise InvalidPayload("invalid coordinates", ["invalid_location"])

        max_distance_m = self.nearby_max_distance_m if max_distance_m is None else max_distance_m
        limit = self.nearby_limit if limit is None else limit

        found = []
        for alert in await self.store.list_public():
            distance_m = haversine_distance_km(point, alert.location.coordinates) * 1000
            if distance_m <= max_distance_m:
                found.append((alert, distance_m))

        found.sort(key=lambda item: item[1])
        return found[:limit]
