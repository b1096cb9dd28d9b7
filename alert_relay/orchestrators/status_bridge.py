"""
Domain-side status bridge.

The domain record is the source of truth for operational status. Every
change is persisted locally first and then pushed best-effort to the
origin citizen service of each external reference; a failed push is
reported in the outcome and never rolls back the domain change.
"""

from typing import List, Optional
from alert_relay.core.errors import AlertNotFound, InvalidPayload, ServiceUnavailable, error_reason
from alert_relay.core.models import BridgeOutcome, DomainAlertRecord, DomainComment, PushOutcome
from alert_relay.core.status_map import is_domain_status, to_citizen_status
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.ports.directory import ServiceDirectoryPort
from alert_relay.ports.domain_alerts import DomainAlertStorePort
from alert_relay.ports.relay import StatusNotifierPort

log = get_logger("alert_relay.status_bridge")

DEFAULT_ACTOR = "Service agent"

class StatusBridge:
    """도메인 상태 변경 → 시민 서비스 동기화"""

    def __init__(self,
                 store: DomainAlertStorePort,
                 directory: ServiceDirectoryPort,
                 notifier: StatusNotifierPort):
        self.store = store
        self.directory = directory
        self.notifier = notifier

    async def _get(self, domain_alert_id: str) -> DomainAlertRecord:
        record = await self.store.get(domain_alert_id)
        if record is None:
            raise AlertNotFound(f"alert {domain_alert_id} not found")
        return record

    async def change_status(self, domain_alert_id: str, status: str,
                            comment: Optional[str] = None,
                            actor: Optional[str] = None) -> BridgeOutcome:
        """
        도메인 상태를 변경하고 원본 시민 서비스에 알립니다.

        Args:
            domain_alert_id: 도메인 경보 ID
            status: 새 도메인 상태
            comment: 변경 사유 (있으면 댓글로도 저장)
            actor: 변경 주체

        Returns:
            참조별 전달 결과를 담은 BridgeOutcome

        Raises:
            InvalidPayload: 알 수 없는 상태
            AlertNotFound: 레코드가 없는 경우
        """
        if not is_domain_status(status):
            raise InvalidPayload(f"unknown status: {status!r}", ["invalid_status"])

        record = await self._get(domain_alert_id)
        actor = actor or DEFAULT_ACTOR

        # 로컬 변경이 먼저 확정됨
        await self.store.update_status(record.id, status)
        if comment:
            await self.store.add_comment(record.id, DomainComment(author=actor, text=comment))
        log.info(f"도메인 상태 변경 alert_id:{record.id} {record.status} -> {status}")

        pushes: List[PushOutcome] = []
        for ref in record.external_references:
            try:
                target = await self.directory.lookup(ref.origin_service_id)
                if target is None:
                    raise ServiceUnavailable(f"service {ref.origin_service_id} not found in directory")
                await self.notifier.push_status(target, ref.origin_alert_id, status, comment, actor)
                metrics.status_pushes.labels(kind="status", outcome="ok").inc()
                pushes.append(PushOutcome(origin_service_id=ref.origin_service_id,
                                          origin_alert_id=ref.origin_alert_id, delivered=True))
            except Exception as e:
                metrics.status_pushes.labels(kind="status", outcome="failed").inc()
                log.warning(f"상태 전달 실패 alert_id:{record.id} origin:{ref.origin_service_id}/"
                            f"{ref.origin_alert_id} reason:{error_reason(e)}")
                pushes.append(PushOutcome(origin_service_id=ref.origin_service_id,
                                          origin_alert_id=ref.origin_alert_id,
                                          delivered=False, error=error_reason(e)))

        return BridgeOutcome(
            domain_alert_id=record.id,
            status=status,
            citizen_status=to_citizen_status(status),
            pushes=pushes,
        )

    async def add_service_comment(self, domain_alert_id: str, text: str,
                                  actor: Optional[str] = None) -> List[PushOutcome]:
        """
        서비스 댓글을 저장하고 원본 시민 서비스로 전달합니다 (최선 노력).

        Raises:
            InvalidPayload: 빈 댓글
            AlertNotFound: 레코드가 없는 경우
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidPayload("comment text is required", ["missing_text"])

        record = await self._get(domain_alert_id)
        actor = actor or DEFAULT_ACTOR
        await self.store.add_comment(record.id, DomainComment(author=actor, text=text.strip()))

        pushes: List[PushOutcome] = []
        for ref in record.external_references:
            try:
                target = await self.directory.lookup(ref.origin_service_id)
                if target is None:
                    raise ServiceUnavailable(f"service {ref.origin_service_id} not found in directory")
                await self.notifier.push_comment(target, ref.origin_alert_id, text.strip(), actor)
                metrics.status_pushes.labels(kind="comment", outcome="ok").inc()
                pushes.append(PushOutcome(origin_service_id=ref.origin_service_id,
                                          origin_alert_id=ref.origin_alert_id, delivered=True))
            except Exception as e:
                metrics.status_pushes.labels(kind="comment", outcome="failed").inc()
                log.warning(f"댓글 전달 실패 alert_id:{record.id} reason:{error_reason(e)}")
                pushes.append(PushOutcome(origin_service_id=ref.origin_service_id,
                                          origin_alert_id=ref.origin_alert_id,
                                          delivered=False, error=error_reason(e)))
        return pushes
