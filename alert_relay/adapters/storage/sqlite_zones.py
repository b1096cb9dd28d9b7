"""
SQLite-based risk zone store.

Boundaries are stored as JSON rings. Containment is evaluated in Python
over every zone, which is a linear scan; the alert counter is only ever
changed by a single UPDATE statement so concurrent correlations cannot
lose increments.
"""

import json
from typing import List, Optional, Sequence
import aiosqlite
from alert_relay.common.geo import point_in_polygon, ring_problems
from alert_relay.core.errors import GeoComputationDegenerate
from alert_relay.core.models import Zone, now_iso
from alert_relay.observability.logging_setup import get_logger

log = get_logger("alert_relay.store.zones")

SCHEMA = """
CREATE TABLE IF NOT EXISTS zones (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    risk_level TEXT NOT NULL,
    boundary TEXT NOT NULL,
    alert_count INTEGER NOT NULL DEFAULT 0,
    last_alert_date TEXT,
    last_inspection TEXT,
    responsible_team TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_zones_risk ON zones(risk_level);
"""

class SQLiteZoneStore:
    """SQLite 기반 위험 구역 저장소"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteZoneStore 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteZoneStore 스키마 초기화 완료")

    async def create(self, zone: Zone) -> Zone:
        """
        구역을 저장합니다.

        Raises:
            GeoComputationDegenerate: 링이 닫히지 않았거나 꼭짓점이 부족한 경우
        """
        problems = ring_problems(zone.boundary)
        if problems:
            raise GeoComputationDegenerate("invalid zone boundary", problems)

        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO zones (id, name, description, risk_level, boundary, alert_count, "
                "last_alert_date, last_inspection, responsible_team, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (zone.id, zone.name, zone.description, zone.risk_level, json.dumps(zone.boundary),
                 zone.alert_count, zone.last_alert_date, zone.last_inspection, zone.responsible_team,
                 zone.created_at, zone.updated_at)
            )
            await db.commit()
        log.info(f"구역 생성 id:{zone.id} name:{zone.name} risk:{zone.risk_level}")
        return zone

    async def get(self, zone_id: str) -> Optional[Zone]:
        zones = await self._select("SELECT * FROM zones WHERE id = ?", (zone_id,))
        return zones[0] if zones else None

    async def list_all(self) -> List[Zone]:
        return await self._select("SELECT * FROM zones ORDER BY created_at", ())

    async def find_containing(self, point: Sequence[float]) -> List[Zone]:
        """
        점을 포함하는 모든 구역을 찾습니다.

        저장된 링이 퇴화된 경우 해당 구역은 건너뜁니다 (예외 없음).

        Args:
            point: [경도, 위도]

        Returns:
            포함하는 구역 목록
        """
        result = []
        for zone in await self.list_all():
            if ring_problems(zone.boundary):
                log.debug(f"퇴화된 구역 건너뜀 id:{zone.id}")
                continue
            if point_in_polygon(point, zone.boundary):
                result.append(zone)
        return result

    async def increment_alert_count(self, zone_id: str, at: Optional[str] = None) -> None:
        """
        경보 카운터를 1 증가시키고 마지막 경보 시각을 기록합니다.

        Args:
            zone_id: 구역 ID
            at: 경보 시각 (없으면 현재 시각)
        """
        at = at or now_iso()
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "UPDATE zones SET alert_count = alert_count + 1, last_alert_date = ?, updated_at = ? "
                "WHERE id = ?",
                (at, now_iso(), zone_id)
            )
            await db.commit()

    async def get_count(self) -> int:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM zones")
            result = await cursor.fetchone()
            return result[0] if result else 0

    async def _select(self, query: str, params: tuple) -> List[Zone]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()

        return [
            Zone(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                risk_level=row["risk_level"],
                boundary=json.loads(row["boundary"]),
                alert_count=row["alert_count"],
                last_alert_date=row["last_alert_date"],
                last_inspection=row["last_inspection"],
                responsible_team=row["responsible_team"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]
