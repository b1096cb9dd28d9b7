"""
Service wiring for the alert relay application.

Builds stores, clients and orchestrators from Settings. The same
container backs the HTTP application, the redelivery CLI and the tests.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Optional
from alert_relay.adapters.directory.static import StaticServiceDirectory
from alert_relay.adapters.http.client import RelayClient, StatusWebhookClient
from alert_relay.adapters.storage import (
    SQLiteAlertStore, SQLiteDomainAlertStore, SQLiteRelayOutbox, SQLiteZoneStore,
)
from alert_relay.observability.logging_setup import get_logger
from alert_relay.orchestrators import (
    CitizenAlertService, HotspotService, IngestionEndpoint, RelayRedeliveryWorker,
    StatusBridge, ZoneCorrelator, ZoneService,
)
from alert_relay.settings import Settings

log = get_logger("alert_relay.services")

@dataclass
class Services:
    """애플리케이션 구성 요소 묶음"""
    settings: Settings
    alert_store: SQLiteAlertStore
    domain_store: SQLiteDomainAlertStore
    zone_store: SQLiteZoneStore
    outbox: SQLiteRelayOutbox
    directory: StaticServiceDirectory
    relay_client: RelayClient
    webhook_client: StatusWebhookClient
    citizen: CitizenAlertService
    correlator: ZoneCorrelator
    ingestion: IngestionEndpoint
    zones: ZoneService
    hotspots: HotspotService
    bridge: StatusBridge
    redelivery: RelayRedeliveryWorker
    _redelivery_task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def serves_citizen(self) -> bool:
        return self.settings.app.mode in ("citizen", "all")

    @property
    def serves_domain(self) -> bool:
        return self.settings.app.mode in ("domain", "all")

    async def init(self) -> None:
        """저장소 스키마를 초기화합니다."""
        for path in (self.settings.storage.citizen_db_path, self.settings.storage.domain_db_path):
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)

        if self.serves_citizen:
            await self.alert_store.init()
            await self.outbox.init()
        if self.serves_domain:
            await self.domain_store.init()
            await self.zone_store.init()
        log.info(f"저장소 초기화 완료 mode:{self.settings.app.mode}")

    async def start(self) -> None:
        """HTTP 세션을 열고 (설정된 경우) 재전송 워커를 시작합니다."""
        await self.relay_client.__aenter__()
        await self.webhook_client.__aenter__()
        if self.serves_citizen and self.settings.relay.redelivery_enabled:
            self._redelivery_task = asyncio.create_task(self.redelivery.start())

    async def stop(self) -> None:
        if self._redelivery_task is not None:
            self._redelivery_task.cancel()
            try:
                await self._redelivery_task
            except asyncio.CancelledError:
                pass
            self._redelivery_task = None
        await self.relay_client.__aexit__(None, None, None)
        await self.webhook_client.__aexit__(None, None, None)

def build_services(settings: Settings) -> Services:
    """설정으로부터 구성 요소를 생성합니다."""
    alert_store = SQLiteAlertStore(settings.storage.citizen_db_path)
    outbox = SQLiteRelayOutbox(settings.storage.citizen_db_path)
    domain_store = SQLiteDomainAlertStore(settings.storage.domain_db_path)
    zone_store = SQLiteZoneStore(settings.storage.domain_db_path)
    directory = StaticServiceDirectory(settings.directory.services)

    relay_client = RelayClient(settings.security.service_api_key, settings.security.header_name,
                               timeout=settings.relay.timeout_sec)
    webhook_client = StatusWebhookClient(settings.security.service_api_key, settings.security.header_name,
                                         timeout=settings.domain.webhook_timeout_sec)

    citizen = CitizenAlertService(
        alert_store, directory, relay_client,
        outbox=outbox,
        nearby_max_distance_m=settings.correlation.nearby_max_distance_m,
        nearby_limit=settings.correlation.nearby_limit,
    )
    correlator = ZoneCorrelator(domain_store, zone_store)

    return Services(
        settings=settings,
        alert_store=alert_store,
        domain_store=domain_store,
        zone_store=zone_store,
        outbox=outbox,
        directory=directory,
        relay_client=relay_client,
        webhook_client=webhook_client,
        citizen=citizen,
        correlator=correlator,
        ingestion=IngestionEndpoint(domain_store, correlator, category=settings.domain.category),
        zones=ZoneService(zone_store),
        hotspots=HotspotService(domain_store, zone_store,
                                radius_km=settings.correlation.hotspot_radius_km,
                                min_points=settings.correlation.hotspot_min_points),
        bridge=StatusBridge(domain_store, directory, webhook_client),
        redelivery=RelayRedeliveryWorker(alert_store, directory, relay_client, outbox, settings.relay),
    )
