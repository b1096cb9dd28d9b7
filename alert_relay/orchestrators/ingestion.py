"""
Domain-side ingestion of relayed citizen alerts.

Pipeline: validate -> dedup -> classify -> convert proofs -> persist ->
correlate with zones. Only validation failures reach the caller as
errors; a repeated relay is answered with the existing record id and a
correlation failure is logged without failing the ingestion.
"""

import uuid
from typing import Any, Optional
from alert_relay.core.errors import AlertNotFound, InvalidPayload
from alert_relay.core.models import (
    DomainAlertRecord, DomainComment, ExternalReference, IngestResult, RelayPayload,
)
from alert_relay.core.normalize import parse_relay_payload, proofs_to_attachments
from alert_relay.core.priority import classify_priority
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.ports.domain_alerts import DomainAlertStorePort
from .correlation import ZoneCorrelator

log = get_logger("alert_relay.ingestion")

def build_title(domain_category: str, origin_category: Optional[str]) -> str:
    return f"{domain_category.capitalize()} alert - {origin_category or 'General'}"

def citizen_author(citizen_id: Optional[str]) -> str:
    return f"Citizen {citizen_id}" if citizen_id else "Anonymous citizen"

class IngestionEndpoint:
    """릴레이된 경보 수집기 (도메인 서비스 측)"""

    def __init__(self,
                 store: DomainAlertStorePort,
                 correlator: ZoneCorrelator,
                 *,
                 category: str = "hygiene"):
        """
        초기화합니다.

        Args:
            store: 도메인 경보 저장소
            correlator: 구역 상관 분석기
            category: 이 도메인 서비스의 카테고리
        """
        self.store = store
        self.correlator = correlator
        self.category = category

        log.info(f"수집기 초기화됨 category:{category}")

    async def ingest(self, raw: Any, caller_service_id: str) -> IngestResult:
        """
        릴레이된 경보를 수집합니다.

        Args:
            raw: 릴레이 페이로드
            caller_service_id: 호출 서비스 ID (중복 제거 키의 일부)

        Returns:
            IngestResult. 중복이면 기존 레코드 ID와 duplicate=True.

        Raises:
            InvalidPayload: 필수 필드 누락 (레코드를 만들지 않음)
        """
        with metrics.ingest_seconds.time():
            return await self._ingest(raw, caller_service_id)

    async def _ingest(self, raw: Any, caller_service_id: str) -> IngestResult:
        try:
            payload = parse_relay_payload(raw)
        except InvalidPayload as e:
            metrics.ingestions.labels(outcome="invalid").inc()
            log.warning(f"릴레이 페이로드 거부 caller:{caller_service_id} reasons:{e.reasons}")
            raise

        # 중복 제거
        existing = await self.store.find_by_reference(caller_service_id, payload.alert_id)
        if existing is not None:
            metrics.ingestions.labels(outcome="duplicate").inc()
            log.info(f"이미 수집된 경보 origin:{caller_service_id}/{payload.alert_id} -> {existing.id}")
            return IngestResult(accepted=True, domain_alert_id=existing.id, duplicate=True)

        record = self._to_record(payload, caller_service_id)
        record_id, created = await self.store.insert_if_absent(record)
        if not created:
            metrics.ingestions.labels(outcome="duplicate").inc()
            return IngestResult(accepted=True, domain_alert_id=record_id, duplicate=True)

        metrics.ingestions.labels(outcome="created").inc()
        metrics.alerts_priority.labels(priority=record.priority).inc()
        log.info(f"경보 수집됨 origin:{caller_service_id}/{payload.alert_id} -> {record_id} "
                 f"priority:{record.priority}")

        try:
            await self.correlator.correlate(record)
        except Exception as e:
            log.error(f"구역 상관 분석 오류 alert_id:{record_id} error:{str(e)}")

        return IngestResult(accepted=True, domain_alert_id=record_id, duplicate=False)

    def _to_record(self, payload: RelayPayload, caller_service_id: str) -> DomainAlertRecord:
        citizen_id = None if payload.is_anonymous else payload.citizen_id
        return DomainAlertRecord(
            id=uuid.uuid4().hex,
            title=build_title(self.category, payload.category),
            description=payload.description,
            category=self.category,
            status="new",
            priority=classify_priority(payload.description),
            location=payload.location,
            attachments=proofs_to_attachments(payload.proofs),
            external_references=[ExternalReference(
                origin_service_id=caller_service_id,
                origin_alert_id=payload.alert_id,
                citizen_id=citizen_id,
            )],
            created_by=citizen_author(citizen_id),
        )

    async def receive_comment(self, reference: str, text: Any, *,
                              author_type: Optional[str] = None,
                              citizen_id: Optional[str] = None,
                              caller_service_id: str) -> DomainAlertRecord:
        """
        시민 서비스가 전달한 댓글을 저장합니다.

        reference 는 로컬 ID 또는 호출 서비스의 원본 경보 ID 입니다.

        Raises:
            InvalidPayload: 빈 댓글
            AlertNotFound: 레코드를 찾을 수 없는 경우
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidPayload("comment text is required", ["missing_text"])

        record = await self.store.get(reference)
        if record is None:
            record = await self.store.find_by_reference(caller_service_id, reference)
        if record is None:
            raise AlertNotFound(f"alert {reference} not found")

        author = citizen_author(citizen_id) if author_type == "citizen" else "Citizen service"
        await self.store.add_comment(record.id, DomainComment(author=author, text=text.strip()))
        log.info(f"외부 댓글 저장 alert_id:{record.id} author:{author}")
        return await self.store.get(record.id) or record
