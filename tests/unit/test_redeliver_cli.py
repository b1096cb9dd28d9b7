"""
재전송 CLI 테스트
"""

import os
from unittest.mock import AsyncMock, patch
from alert_relay import redeliver
from alert_relay.adapters.storage.sqlite_alerts import SQLiteAlertStore
from alert_relay.adapters.storage.sqlite_outbox import KIND_RELAY, SQLiteRelayOutbox


class TestRedeliverCli:
    """python -m alert_relay.redeliver 테스트"""

    async def test_once_with_empty_outbox(self, monkeypatch, temp_dir):
        monkeypatch.setenv("CITIZEN_DB_PATH", os.path.join(temp_dir, "citizen.db"))
        monkeypatch.delenv("SERVICES_JSON", raising=False)

        assert await redeliver.run(once=True) == 0
        assert await SQLiteRelayOutbox(os.path.join(temp_dir, "citizen.db")).get_count() == 0

    async def test_once_drops_orphan_item(self, monkeypatch, temp_dir):
        """경보가 없는 Outbox 항목은 버려짐"""
        path = os.path.join(temp_dir, "citizen.db")
        monkeypatch.setenv("CITIZEN_DB_PATH", path)
        monkeypatch.setenv("SERVICES_JSON", "[]")
        store = SQLiteAlertStore(path)
        await store.init()
        outbox = SQLiteRelayOutbox(path)
        await outbox.init()
        await outbox.enqueue(KIND_RELAY, "a1", error="timeout")

        assert await redeliver.run(once=True) == 0
        assert await outbox.get_count() == 0

    def test_main_parses_once_flag(self):
        with patch.object(redeliver, "run", AsyncMock(return_value=0)) as run, \
             patch.object(redeliver, "setup_logger"):
            assert redeliver.main(["--once"]) == 0
        run.assert_awaited_once_with(True)

    def test_main_interrupted(self):
        with patch.object(redeliver, "run", AsyncMock(side_effect=KeyboardInterrupt)), \
             patch.object(redeliver, "setup_logger"):
            assert redeliver.main([]) == 130
