"""
Zone correlation and hotspot detection for the domain side.

ZoneCorrelator increments the counters of every zone containing a newly
ingested alert, exactly once per alert (guarded by the record's
zone_updated flag). HotspotService computes hotspots on demand from a
snapshot of domain alert coordinates; nothing it computes is stored.
"""

import uuid
from typing import Any, List, Optional, Sequence
from pydantic import ValidationError
from alert_relay.common.geo import validate_point
from alert_relay.core.errors import GeoComputationDegenerate, InvalidPayload
from alert_relay.core.hotspots import find_hotspots
from alert_relay.core.models import DomainAlertRecord, Hotspot, Zone, ZoneSummary
from alert_relay.core.normalize import parse_zone
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.ports.domain_alerts import DomainAlertStorePort
from alert_relay.ports.zones import ZoneStorePort

log = get_logger("alert_relay.correlation")

class ZoneCorrelator:
    """경보-구역 상관 분석기"""

    def __init__(self, alerts: DomainAlertStorePort, zones: ZoneStorePort):
        self.alerts = alerts
        self.zones = zones

    async def correlate(self, record: DomainAlertRecord) -> List[Zone]:
        """
        경보 위치를 포함하는 구역의 카운터를 증가시킵니다.

        zone_updated 플래그를 바꾼 호출만 카운터를 올립니다. 같은 레코드로
        여러 번 호출되어도 각 구역은 한 번만 증가합니다.

        Args:
            record: 방금 저장된 도메인 경보

        Returns:
            이번 호출로 증가된 구역 목록 (이미 처리된 경우 빈 목록)
        """
        if not await self.alerts.mark_zone_updated(record.id):
            log.debug(f"이미 상관 분석된 경보 alert_id:{record.id}")
            return []

        zones = await self.zones.find_containing(record.location.coordinates)
        for zone in zones:
            await self.zones.increment_alert_count(zone.id, at=record.created_at)
            metrics.zone_increments.inc()

        if zones:
            log.info(f"구역 카운터 증가 alert_id:{record.id} zones:{[z.id for z in zones]}")
        return zones

class ZoneService:
    """위험 구역 등록/조회"""

    def __init__(self, zones: ZoneStorePort):
        self.zones = zones

    async def create_zone(self, raw: Any) -> Zone:
        """
        구역을 등록합니다.

        Raises:
            InvalidPayload: 필드 누락
            GeoComputationDegenerate: 경계 링이 닫히지 않았거나 꼭짓점 부족
        """
        fields = parse_zone(raw)
        try:
            zone = Zone(id=uuid.uuid4().hex, **fields)
        except ValidationError as e:
            failed = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            if failed == ["boundary"]:
                raise GeoComputationDegenerate("invalid zone boundary", ["malformed_vertices"])
            raise InvalidPayload("invalid zone", [f"invalid_{name}" for name in failed])
        return await self.zones.create(zone)

    async def list_zones(self) -> List[Zone]:
        return await self.zones.list_all()

    async def zones_containing(self, point: Sequence[float]) -> List[Zone]:
        if not validate_point(point):
            raise InvalidPayload("invalid coordinates", ["invalid_location"])
        return await self.zones.find_containing(point)

class HotspotService:
    """요청 시점 핫스팟 계산기"""

    def __init__(self,
                 alerts: DomainAlertStorePort,
                 zones: ZoneStorePort,
                 *,
                 radius_km: float = 1.0,
                 min_points: int = 5):
        """
        초기화합니다.

        Args:
            alerts: 도메인 경보 저장소 (좌표 스냅샷 제공)
            zones: 구역 저장소
            radius_km: 기본 반경 (킬로미터)
            min_points: 기본 최소 점 수
        """
        self.alerts = alerts
        self.zones = zones
        self.radius_km = radius_km
        self.min_points = min_points

    async def detect(self, radius_km: Optional[float] = None, min_points: Optional[int] = None) -> List[Hotspot]:
        """
        핫스팟을 계산하고 각 중심을 포함하는 구역을 붙입니다.

        Raises:
            InvalidPayload: 반경이 0 이하이거나 최소 점 수가 1 미만
        """
        radius_km = self.radius_km if radius_km is None else radius_km
        min_points = self.min_points if min_points is None else min_points
        if radius_km <= 0 or min_points < 1:
            raise InvalidPayload("invalid hotspot parameters", ["invalid_radius_or_min_points"])

        snapshot = await self.alerts.list_coordinates()
        with metrics.hotspot_seconds.time():
            hotspots = find_hotspots(snapshot, radius_km, min_points)

        for hotspot in hotspots:
            zones = await self.zones.find_containing(hotspot.center)
            hotspot.zones = [ZoneSummary(id=z.id, name=z.name, risk_level=z.risk_level) for z in zones]

        log.info(f"핫스팟 계산 완료 points:{len(snapshot)} hotspots:{len(hotspots)} radius_km:{radius_km}")
        return hotspots
