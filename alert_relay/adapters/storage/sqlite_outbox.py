"""
SQLite-based relay outbox.

Failed relays and comment forwards are recorded here so an operator-run
redelivery worker can retry them later. The request path only enqueues;
it never drains the outbox itself.
"""

import aiosqlite
import time
from dataclasses import dataclass
from typing import List, Optional
from alert_relay.observability.logging_setup import get_logger

log = get_logger("alert_relay.outbox")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS relay_outbox (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    alert_id TEXT NOT NULL,
    payload TEXT,
    last_error TEXT,
    created_at INTEGER NOT NULL,
    next_attempt_at INTEGER NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_relay_outbox_due ON relay_outbox(next_attempt_at);
"""

KIND_RELAY = "relay"
KIND_COMMENT = "comment"

@dataclass
class OutboxItem:
    """Outbox 항목"""
    id: int
    kind: str
    alert_id: str
    payload: Optional[str]
    last_error: Optional[str]
    attempts: int
    next_attempt_at: int

class SQLiteRelayOutbox:
    """SQLite 기반 릴레이 Outbox"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteRelayOutbox 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info(f"SQLiteRelayOutbox 스키마 초기화 완료: {self.path}")

    async def enqueue(self, kind: str, alert_id: str, payload: Optional[str] = None,
                      error: Optional[str] = None) -> int:
        """
        실패한 전송을 Outbox에 추가합니다.

        Args:
            kind: "relay" 또는 "comment"
            alert_id: 시민 측 경보 ID
            payload: 재전송에 필요한 추가 데이터 (댓글 본문 등, JSON)
            error: 실패 사유

        Returns:
            생성된 항목의 ID
        """
        now = int(time.time())

        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "INSERT INTO relay_outbox (kind, alert_id, payload, last_error, created_at, next_attempt_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (kind, alert_id, payload, error, now, now)
            )
            await db.commit()
            return cursor.lastrowid

    async def list_due(self, limit: int = 50, now: Optional[int] = None) -> List[OutboxItem]:
        """
        재시도 시각이 지난 항목을 오래된 순으로 조회합니다 (삭제하지 않음).
        """
        now = int(time.time()) if now is None else now
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(
                "SELECT id, kind, alert_id, payload, last_error, attempts, next_attempt_at FROM relay_outbox "
                "WHERE next_attempt_at <= ? ORDER BY id ASC LIMIT ?",
                (now, limit)
            )
            rows = await cursor.fetchall()

        return [OutboxItem(id=r[0], kind=r[1], alert_id=r[2], payload=r[3],
                           last_error=r[4], attempts=r[5], next_attempt_at=r[6]) for r in rows]

    async def peek_oldest(self) -> Optional[OutboxItem]:
        items = await self.list_due(limit=1, now=2 ** 62)
        return items[0] if items else None

    async def mark_attempt(self, oid: int, error: str, next_attempt_at: int) -> None:
        """
        발송 시도 횟수를 증가시키고 다음 시도 시각을 기록합니다.

        Args:
            oid: Outbox 항목 ID
            error: 이번 실패 사유
            next_attempt_at: 다음 시도 시각 (epoch 초)
        """
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "UPDATE relay_outbox SET attempts = attempts + 1, last_error = ?, next_attempt_at = ? "
                "WHERE id = ?",
                (error, next_attempt_at, oid)
            )
            await db.commit()

    async def delete(self, oid: int) -> None:
        """항목을 삭제합니다 (재전송 성공 또는 포기)."""
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM relay_outbox WHERE id = ?", (oid,))
            await db.commit()

    async def get_count(self) -> int:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM relay_outbox")
            result = await cursor.fetchone()
            return result[0] if result else 0
