"""
Opt-in redelivery of failed relays.

Walks the relay outbox and retries each due item once per pass, spacing
attempts with exponential backoff. Items whose alert already carries a
relay reference are dropped; items that exhaust their attempts are
dropped with an error log. The domain side deduplicates on
(origin service, origin alert id), so redelivering an alert that did
arrive is harmless.
"""

import asyncio
import json
import time
from alert_relay.adapters.storage.sqlite_outbox import KIND_COMMENT, KIND_RELAY, OutboxItem, SQLiteRelayOutbox
from alert_relay.common.retry import backoff_delay
from alert_relay.core.errors import ServiceUnavailable, error_reason
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.ports.alerts import AlertStorePort
from alert_relay.ports.directory import ServiceDirectoryPort
from alert_relay.ports.relay import RelayPort
from alert_relay.settings import Relay

log = get_logger("alert_relay.redelivery")

class RelayRedeliveryWorker:
    """릴레이 Outbox 재전송 워커"""

    def __init__(self,
                 store: AlertStorePort,
                 directory: ServiceDirectoryPort,
                 relay: RelayPort,
                 outbox: SQLiteRelayOutbox,
                 config: Relay):
        """
        초기화합니다.

        Args:
            store: 시민 측 경보 저장소
            directory: 서비스 디렉터리
            relay: 릴레이 클라이언트
            outbox: 릴레이 Outbox
            config: 재전송 간격/횟수/백오프 설정
        """
        self.store = store
        self.directory = directory
        self.relay = relay
        self.outbox = outbox
        self.config = config

    async def run_once(self) -> int:
        """
        재시도 시각이 지난 항목을 한 번씩 재전송합니다.

        Returns:
            이번 패스에서 성공한 항목 수
        """
        delivered = 0
        for item in await self.outbox.list_due():
            try:
                await self._deliver(item)
            except Exception as e:
                await self._fail(item, error_reason(e))
                continue
            await self.outbox.delete(item.id)
            metrics.redeliveries.labels(outcome="delivered").inc()
            delivered += 1

        metrics.outbox_size.set(await self.outbox.get_count())
        return delivered

    async def _deliver(self, item: OutboxItem) -> None:
        alert = await self.store.get(item.alert_id)
        if alert is None:
            log.warning(f"Outbox 항목의 경보 없음 id:{item.id} alert_id:{item.alert_id}")
            return

        target = await self.directory.lookup(alert.service_id)
        if target is None:
            raise ServiceUnavailable(f"service {alert.service_id} not found in directory")

        if item.kind == KIND_RELAY:
            if alert.relay_reference:
                log.info(f"이미 릴레이된 경보 alert_id:{alert.id}")
                return
            result = await self.relay.relay(alert, target)
            await self.store.set_relay_reference(alert.id, result.service_reference_id)
            log.info(f"재전송 성공 alert_id:{alert.id} reference:{result.service_reference_id}")
        elif item.kind == KIND_COMMENT:
            text = json.loads(item.payload or "{}").get("text", "")
            await self.relay.forward_comment(target, alert.relay_reference or alert.id, text,
                                             None if alert.is_anonymous else alert.citizen_id)
            log.info(f"댓글 재전송 성공 alert_id:{alert.id}")
        else:
            log.error(f"알 수 없는 Outbox 항목 종류 id:{item.id} kind:{item.kind}")

    async def _fail(self, item: OutboxItem, reason: str) -> None:
        attempts = item.attempts + 1
        if attempts >= self.config.redelivery_max_attempts:
            await self.outbox.delete(item.id)
            metrics.redeliveries.labels(outcome="abandoned").inc()
            log.error(f"재전송 포기 alert_id:{item.alert_id} attempts:{attempts} reason:{reason}")
            return

        delay = backoff_delay(attempts, self.config.backoff_initial_sec, self.config.backoff_max_sec)
        await self.outbox.mark_attempt(item.id, reason, int(time.time() + delay))
        metrics.redeliveries.labels(outcome="failed").inc()
        log.warning(f"재전송 실패 alert_id:{item.alert_id} attempts:{attempts} "
                    f"next_in:{delay:.0f}s reason:{reason}")

    async def start(self) -> None:
        """주기적으로 run_once 를 실행합니다."""
        log.info(f"재전송 워커 시작 interval:{self.config.redelivery_interval_sec}s")
        while True:
            try:
                await self.run_once()
            except Exception as e:
                log.error(f"재전송 패스 오류 error:{str(e)}")
            await asyncio.sleep(self.config.redelivery_interval_sec)
