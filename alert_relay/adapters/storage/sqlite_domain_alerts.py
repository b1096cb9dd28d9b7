"""
SQLite-based domain alert store.

The dedup key (origin_service_id, origin_alert_id) is the primary key of
the reference table, so two concurrent ingestions of the same relay can
never both create a record: the loser's transaction is rolled back and
the winner's id is returned instead.
"""

import json
from typing import List, Optional, Tuple
import aiosqlite
from alert_relay.core.models import (
    Attachment, DomainAlertRecord, DomainComment, ExternalReference, Location, now_iso,
)
from alert_relay.observability.logging_setup import get_logger

log = get_logger("alert_relay.store.domain_alerts")

SCHEMA = """
CREATE TABLE IF NOT EXISTS domain_alerts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    category TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'new',
    priority TEXT NOT NULL DEFAULT 'medium',
    lon REAL NOT NULL,
    lat REAL NOT NULL,
    address TEXT,
    attachments TEXT NOT NULL,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    zone_updated INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_domain_alerts_status ON domain_alerts(status, created_at);
CREATE TABLE IF NOT EXISTS domain_alert_refs (
    origin_service_id TEXT NOT NULL,
    origin_alert_id TEXT NOT NULL,
    citizen_id TEXT,
    domain_alert_id TEXT NOT NULL,
    PRIMARY KEY (origin_service_id, origin_alert_id)
);
CREATE INDEX IF NOT EXISTS idx_refs_domain ON domain_alert_refs(domain_alert_id);
CREATE TABLE IF NOT EXISTS domain_alert_comments (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT NOT NULL,
    author TEXT NOT NULL,
    text TEXT NOT NULL,
    at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_domain_comments_alert ON domain_alert_comments(alert_id, seq);
"""

class SQLiteDomainAlertStore:
    """SQLite 기반 도메인 측 경보 저장소"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteDomainAlertStore 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteDomainAlertStore 스키마 초기화 완료")

    async def find_by_reference(self, origin_service_id: str, origin_alert_id: str) -> Optional[DomainAlertRecord]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT a.* FROM domain_alerts a JOIN domain_alert_refs r ON r.domain_alert_id = a.id "
                "WHERE r.origin_service_id = ? AND r.origin_alert_id = ?",
                (origin_service_id, origin_alert_id)
            )
            row = await cursor.fetchone()
            return await self._load(db, row) if row else None

    async def insert_if_absent(self, record: DomainAlertRecord) -> Tuple[str, bool]:
        """
        중복 제거 키가 없을 때만 레코드를 저장합니다.

        Args:
            record: 저장할 도메인 경보 (external_references 포함)

        Returns:
            (레코드 ID, 새로 생성 여부). 키가 이미 있으면 기존 레코드 ID와 False.
        """
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO domain_alerts (id, title, description, category, status, priority, lon, lat, "
                "address, attachments, created_by, created_at, updated_at, zone_updated) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (record.id, record.title, record.description, record.category, record.status,
                 record.priority, record.location.lon, record.location.lat, record.location.address,
                 json.dumps([a.model_dump() for a in record.attachments]), record.created_by,
                 record.created_at, record.updated_at, 1 if record.zone_updated else 0)
            )
            try:
                for ref in record.external_references:
                    await db.execute(
                        "INSERT INTO domain_alert_refs (origin_service_id, origin_alert_id, citizen_id, domain_alert_id) "
                        "VALUES (?, ?, ?, ?)",
                        (ref.origin_service_id, ref.origin_alert_id, ref.citizen_id, record.id)
                    )
            except aiosqlite.IntegrityError:
                # 동시 재전송 경쟁에서 짐: 승자의 레코드를 돌려준다
                await db.rollback()
                for ref in record.external_references:
                    cursor = await db.execute(
                        "SELECT domain_alert_id FROM domain_alert_refs WHERE origin_service_id = ? AND origin_alert_id = ?",
                        (ref.origin_service_id, ref.origin_alert_id)
                    )
                    row = await cursor.fetchone()
                    if row:
                        log.info(f"중복 참조 감지 origin:{ref.origin_service_id}/{ref.origin_alert_id} -> {row[0]}")
                        return row[0], False
                raise
            await db.commit()
            return record.id, True

    async def get(self, alert_id: str) -> Optional[DomainAlertRecord]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM domain_alerts WHERE id = ?", (alert_id,))
            row = await cursor.fetchone()
            return await self._load(db, row) if row else None

    async def mark_zone_updated(self, alert_id: str) -> bool:
        """
        zone_updated 플래그를 원자적으로 False → True 로 바꿉니다.

        Returns:
            이번 호출이 플래그를 바꾼 경우에만 True
        """
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "UPDATE domain_alerts SET zone_updated = 1 WHERE id = ? AND zone_updated = 0",
                (alert_id,)
            )
            await db.commit()
            return cursor.rowcount == 1

    async def update_status(self, alert_id: str, status: str) -> bool:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "UPDATE domain_alerts SET status = ?, updated_at = ? WHERE id = ?",
                (status, now_iso(), alert_id)
            )
            await db.commit()
            return cursor.rowcount == 1

    async def add_comment(self, alert_id: str, comment: DomainComment) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO domain_alert_comments (alert_id, author, text, at) VALUES (?, ?, ?, ?)",
                (alert_id, comment.author, comment.text, comment.at)
            )
            await db.execute("UPDATE domain_alerts SET updated_at = ? WHERE id = ?", (comment.at, alert_id))
            await db.commit()

    async def list_coordinates(self) -> List[List[float]]:
        """핫스팟 계산용 좌표 스냅샷"""
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT lon, lat FROM domain_alerts ORDER BY created_at")
            return [[row[0], row[1]] for row in await cursor.fetchall()]

    async def get_count(self) -> int:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM domain_alerts")
            result = await cursor.fetchone()
            return result[0] if result else 0

    async def _load(self, db: aiosqlite.Connection, row) -> DomainAlertRecord:
        cursor = await db.execute(
            "SELECT origin_service_id, origin_alert_id, citizen_id FROM domain_alert_refs WHERE domain_alert_id = ?",
            (row["id"],)
        )
        refs = [ExternalReference(origin_service_id=r[0], origin_alert_id=r[1], citizen_id=r[2])
                for r in await cursor.fetchall()]

        cursor = await db.execute(
            "SELECT author, text, at FROM domain_alert_comments WHERE alert_id = ? ORDER BY seq",
            (row["id"],)
        )
        comments = [DomainComment(author=r[0], text=r[1], at=r[2]) for r in await cursor.fetchall()]

        return DomainAlertRecord(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            category=row["category"],
            status=row["status"],
            priority=row["priority"],
            location=Location(coordinates=[row["lon"], row["lat"]], address=row["address"]),
            attachments=[Attachment.model_validate(a) for a in json.loads(row["attachments"])],
            comments=comments,
            external_references=refs,
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            zone_updated=bool(row["zone_updated"]),
        )
