"""
SQLite-based citizen alert store.

Alerts are never deleted; status history and comments live in
append-only side tables so concurrent appends never overwrite each other.
"""

import json
from typing import List, Optional
import aiosqlite
from alert_relay.core.models import AlertRecord, Comment, Location, Proof, StatusEntry, now_iso
from alert_relay.observability.logging_setup import get_logger

log = get_logger("alert_relay.store.alerts")

SCHEMA = """
CREATE TABLE IF NOT EXISTS alerts (
    id TEXT PRIMARY KEY,
    citizen_id TEXT,
    service_id TEXT NOT NULL,
    category TEXT NOT NULL,
    description TEXT NOT NULL,
    lon REAL NOT NULL,
    lat REAL NOT NULL,
    address TEXT,
    proofs TEXT NOT NULL,
    is_anonymous INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    relay_reference TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alerts_citizen ON alerts(citizen_id, created_at);
CREATE TABLE IF NOT EXISTS alert_status_history (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT NOT NULL,
    status TEXT NOT NULL,
    comment TEXT,
    actor TEXT NOT NULL,
    at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_history_alert ON alert_status_history(alert_id, seq);
CREATE TABLE IF NOT EXISTS alert_comments (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT NOT NULL,
    author TEXT NOT NULL,
    text TEXT NOT NULL,
    from_service INTEGER NOT NULL DEFAULT 0,
    at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_comments_alert ON alert_comments(alert_id, seq);
"""

_INSERT_HISTORY = "INSERT INTO alert_status_history (alert_id, status, comment, actor, at) VALUES (?, ?, ?, ?, ?)"
_INSERT_COMMENT = "INSERT INTO alert_comments (alert_id, author, text, from_service, at) VALUES (?, ?, ?, ?, ?)"

class SQLiteAlertStore:
    """SQLite 기반 시민 측 경보 저장소"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteAlertStore 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteAlertStore 스키마 초기화 완료")

    async def create(self, alert: AlertRecord) -> AlertRecord:
        """경보와 초기 상태 이력/댓글을 한 트랜잭션으로 저장합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO alerts (id, citizen_id, service_id, category, description, lon, lat, address, "
                "proofs, is_anonymous, status, relay_reference, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (alert.id, alert.citizen_id, alert.service_id, alert.category, alert.description,
                 alert.location.lon, alert.location.lat, alert.location.address,
                 json.dumps([p.model_dump() for p in alert.proofs]),
                 1 if alert.is_anonymous else 0, alert.status, alert.relay_reference,
                 alert.created_at, alert.updated_at)
            )
            for entry in alert.status_history:
                await db.execute(_INSERT_HISTORY, (alert.id, entry.status, entry.comment, entry.actor, entry.at))
            for comment in alert.comments:
                await db.execute(_INSERT_COMMENT, (alert.id, comment.author, comment.text,
                                                   1 if comment.from_service else 0, comment.at))
            await db.commit()
        return alert

    async def get(self, alert_id: str) -> Optional[AlertRecord]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return await self._load(db, row)

    async def set_relay_reference(self, alert_id: str, reference_id: str) -> bool:
        """
        릴레이 참조를 한 번만 기록합니다.

        Args:
            alert_id: 시민 측 경보 ID
            reference_id: 도메인 서비스가 돌려준 ID

        Returns:
            이번 호출로 기록되었으면 True, 이미 설정되어 있었으면 False
        """
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "UPDATE alerts SET relay_reference = ?, updated_at = ? "
                "WHERE id = ? AND relay_reference IS NULL",
                (reference_id, now_iso(), alert_id)
            )
            await db.commit()
            return cursor.rowcount == 1

    async def append_status(self, alert_id: str, entry: StatusEntry) -> None:
        """현재 상태를 바꾸고 이력에 추가합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "UPDATE alerts SET status = ?, updated_at = ? WHERE id = ?",
                (entry.status, entry.at, alert_id)
            )
            await db.execute(_INSERT_HISTORY, (alert_id, entry.status, entry.comment, entry.actor, entry.at))
            await db.commit()

    async def add_comment(self, alert_id: str, comment: Comment) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(_INSERT_COMMENT, (alert_id, comment.author, comment.text,
                                               1 if comment.from_service else 0, comment.at))
            await db.execute("UPDATE alerts SET updated_at = ? WHERE id = ?", (comment.at, alert_id))
            await db.commit()

    async def list_by_citizen(self, citizen_id: str) -> List[AlertRecord]:
        return await self._select("SELECT * FROM alerts WHERE citizen_id = ? ORDER BY created_at DESC",
                                  (citizen_id,))

    async def list_public(self) -> List[AlertRecord]:
        return await self._select("SELECT * FROM alerts WHERE is_anonymous = 0 ORDER BY created_at DESC", ())

    async def get_count(self) -> int:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM alerts")
            result = await cursor.fetchone()
            return result[0] if result else 0

    async def _select(self, query: str, params: tuple) -> List[AlertRecord]:
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [await self._load(db, row) for row in rows]

    async def _load(self, db: aiosqlite.Connection, row) -> AlertRecord:
        cursor = await db.execute(
            "SELECT status, comment, actor, at FROM alert_status_history WHERE alert_id = ? ORDER BY seq",
            (row["id"],)
        )
        history = [StatusEntry(status=r[0], comment=r[1], actor=r[2], at=r[3]) for r in await cursor.fetchall()]

        cursor = await db.execute(
            "SELECT author, text, from_service, at FROM alert_comments WHERE alert_id = ? ORDER BY seq",
            (row["id"],)
        )
        comments = [Comment(author=r[0], text=r[1], from_service=bool(r[2]), at=r[3])
                    for r in await cursor.fetchall()]

        return AlertRecord(
            id=row["id"],
            citizen_id=row["citizen_id"],
            service_id=row["service_id"],
            category=row["category"],
            description=row["description"],
            location=Location(coordinates=[row["lon"], row["lat"]], address=row["address"]),
            proofs=[Proof.model_validate(p) for p in json.loads(row["proofs"])],
            is_anonymous=bool(row["is_anonymous"]),
            status=row["status"],
            status_history=history,
            relay_reference=row["relay_reference"],
            comments=comments,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
