"""
시민 측 오케스트레이터 단위 테스트

실제 SQLite 저장소와 목업 릴레이 클라이언트를 사용합니다.
"""

import pytest
from unittest.mock import AsyncMock, patch
from alert_relay.adapters.directory.static import StaticServiceDirectory
from alert_relay.adapters.storage.sqlite_alerts import SQLiteAlertStore
from alert_relay.adapters.storage.sqlite_outbox import KIND_COMMENT, KIND_RELAY, SQLiteRelayOutbox
from alert_relay.core.errors import AlertNotFound, InvalidPayload, ServiceUnavailable
from alert_relay.core.models import IdentityClaims, RelayResult
from alert_relay.orchestrators.citizen_flow import CitizenAlertService


CITIZEN = IdentityClaims(subject="c-42", role="citizen")


@pytest.fixture
async def store(temp_db_path):
    store = SQLiteAlertStore(temp_db_path)
    await store.init()
    return store


@pytest.fixture
async def outbox(temp_db_path):
    outbox = SQLiteRelayOutbox(temp_db_path)
    await outbox.init()
    return outbox


@pytest.fixture
def service(store, outbox, sample_settings, mock_relay):
    mock_relay.relay.return_value = RelayResult(ok=True, service_reference_id="D-1")
    directory = StaticServiceDirectory(sample_settings.directory.services)
    return CitizenAlertService(store, directory, mock_relay, outbox=outbox)


class TestCreateAlert:
    """경보 생성 + 릴레이 테스트"""

    async def test_create_relays_and_records_reference(self, service, sample_alert_body, mock_relay):
        alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert alert.status == "pending"
        assert alert.citizen_id == "c-42"
        assert alert.relay_reference == "D-1"
        assert alert.status_history[0].comment == "Alert created"
        assert alert.status_history[0].actor == "system"
        relayed_alert, target = mock_relay.relay.call_args.args
        assert relayed_alert.id == alert.id
        assert target.id == "hygiene-service"

    async def test_anonymous_alert_has_no_citizen(self, service, sample_alert_body):
        sample_alert_body["isAnonymous"] = True
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        assert alert.is_anonymous is True
        assert alert.citizen_id is None

    async def test_invalid_body_creates_nothing(self, service, store, sample_alert_body, mock_relay):
        sample_alert_body["proofs"] = []
        with pytest.raises(InvalidPayload):
            await service.create_alert(sample_alert_body, CITIZEN)

        assert await store.get_count() == 0
        mock_relay.relay.assert_not_called()

    async def test_unknown_service_rejected(self, service, store, sample_alert_body):
        sample_alert_body["serviceId"] = "nonexistent-service"
        with pytest.raises(InvalidPayload) as exc:
            await service.create_alert(sample_alert_body, CITIZEN)
        assert exc.value.reasons == ["unknown_service"]
        assert await store.get_count() == 0

    async def test_service_resolved_from_category(self, service, sample_alert_body, mock_relay):
        del sample_alert_body["serviceId"]

        alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert alert.service_id == "hygiene-service"
        assert alert.relay_reference == "D-1"

    async def test_no_service_for_category(self, service, store, sample_alert_body):
        """활성 담당 서비스가 없는 카테고리는 거부"""
        del sample_alert_body["serviceId"]
        sample_alert_body["category"] = "transport"

        with pytest.raises(InvalidPayload) as exc:
            await service.create_alert(sample_alert_body, CITIZEN)
        assert exc.value.reasons == ["missing_service_id"]
        assert await store.get_count() == 0

    async def test_relay_failure_isolated(self, service, store, outbox, sample_alert_body, mock_relay):
        """릴레이 실패: 레코드는 남고 시스템 댓글 + Outbox 항목"""
        mock_relay.relay.side_effect = ServiceUnavailable("timeout after 10s")

        alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert await store.get_count() == 1
        assert alert.status == "pending"
        assert alert.relay_reference is None
        assert len(alert.comments) == 1
        assert alert.comments[0].author == "system"
        assert alert.comments[0].text == "Relay to service failed. Reason: timeout after 10s"
        items = await outbox.list_due()
        assert [(i.kind, i.alert_id) for i in items] == [(KIND_RELAY, alert.id)]

    async def test_unexpected_relay_error_isolated(self, service, store, outbox, sample_alert_body, mock_relay):
        """ServiceUnavailable 이 아닌 예외도 시민 요청을 실패시키지 않음"""
        mock_relay.relay.side_effect = RuntimeError("connection reset")

        alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert await store.get_count() == 1
        assert alert.status == "pending"
        assert alert.relay_reference is None
        assert alert.comments[0].text == "Relay to service failed. Reason: connection reset"
        items = await outbox.list_due()
        assert [(i.kind, i.alert_id, i.last_error) for i in items] == [(KIND_RELAY, alert.id, "connection reset")]

    async def test_reference_write_failure_isolated(self, service, store, outbox, sample_alert_body):
        """참조 저장 실패 시 레코드는 남고 재전송 대상으로 기록"""
        with patch.object(store, "set_relay_reference", AsyncMock(side_effect=RuntimeError("database is locked"))):
            alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert alert.status == "pending"
        assert alert.relay_reference is None
        assert [i.kind for i in await outbox.list_due()] == [KIND_RELAY]

    async def test_inactive_service_keeps_record(self, store, outbox, sample_settings, sample_alert_body):
        """비활성 서비스: 실제 RelayClient 가 네트워크 전에 실패"""
        from alert_relay.adapters.http.client import RelayClient
        directory = StaticServiceDirectory(sample_settings.directory.services)
        service = CitizenAlertService(store, directory, RelayClient("secret"), outbox=outbox)
        sample_alert_body["serviceId"] = "transport-service"
        sample_alert_body["category"] = "transport"

        alert = await service.create_alert(sample_alert_body, CITIZEN)

        assert alert.relay_reference is None
        assert "not active" in alert.comments[0].text
        assert await outbox.get_count() == 1

    async def test_relay_alert_does_not_change_status(self, service, sample_alert_body):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        assert [h.status for h in alert.status_history] == ["pending"]


class TestComments:
    """시민 댓글 테스트"""

    async def test_comment_forwarded_with_reference(self, service, sample_alert_body, mock_relay):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        updated = await service.add_comment(alert.id, "Still overflowing", CITIZEN)

        assert updated.comments[-1].text == "Still overflowing"
        target, reference, text, citizen_id = mock_relay.forward_comment.call_args.args
        assert (reference, text, citizen_id) == ("D-1", "Still overflowing", "c-42")

    async def test_forward_failure_only_logged(self, service, outbox, sample_alert_body, mock_relay):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        mock_relay.forward_comment.side_effect = ServiceUnavailable("HTTP 502")

        updated = await service.add_comment(alert.id, "hello", CITIZEN)

        assert updated.comments[-1].text == "hello"
        assert [i.kind for i in await outbox.list_due()] == [KIND_COMMENT]

    async def test_unexpected_forward_error_isolated(self, service, outbox, sample_alert_body, mock_relay):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        mock_relay.forward_comment.side_effect = RuntimeError("connection reset")

        updated = await service.add_comment(alert.id, "hello", CITIZEN)

        assert updated.comments[-1].text == "hello"
        assert [i.kind for i in await outbox.list_due()] == [KIND_COMMENT]

    async def test_other_citizen_cannot_comment(self, service, sample_alert_body):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        with pytest.raises(AlertNotFound):
            await service.add_comment(alert.id, "hi", IdentityClaims(subject="c-99"))

    async def test_empty_comment(self, service, sample_alert_body):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        with pytest.raises(InvalidPayload):
            await service.add_comment(alert.id, "   ", CITIZEN)


class TestStatusUpdates:
    """도메인 서비스 → 시민 측 상태 반영 테스트"""

    @pytest.mark.parametrize("domain_status,citizen_status,label", [
        ("new", "pending", "In progress"),
        ("assigned", "processing", "In progress"),
        ("in_progress", "processing", "In progress"),
        ("resolved", "resolved", "Resolved"),
        ("closed", "rejected", "Rejected"),
        ("received", "received", "In progress"),
    ])
    async def test_status_mapped(self, service, sample_alert_body, domain_status, citizen_status, label):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        updated = await service.update_alert_status(alert.id, domain_status, "update", "Agent 7")

        assert updated.status == citizen_status
        assert updated.status_label == label
        assert updated.status_history[-1].actor == "Agent 7"
        assert len(updated.status_history) == 2

    async def test_unknown_alert(self, service):
        with pytest.raises(AlertNotFound):
            await service.update_alert_status("missing", "resolved")

    async def test_unknown_status(self, service, sample_alert_body):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        with pytest.raises(InvalidPayload):
            await service.update_alert_status(alert.id, "archived")

    async def test_service_comment(self, service, sample_alert_body):
        alert = await service.create_alert(sample_alert_body, CITIZEN)
        updated = await service.add_service_comment(alert.id, "Team dispatched", "Hygiene")
        assert updated.comments[-1].from_service is True
        assert updated.comments[-1].author == "Hygiene"


class TestQueries:
    """조회 테스트"""

    async def test_nearby_excludes_anonymous_and_sorts(self, service, sample_alert_body):
        near = await service.create_alert(dict(sample_alert_body, coordinates=[14.701, -17.43]), CITIZEN)
        far = await service.create_alert(dict(sample_alert_body, coordinates=[14.73, -17.43]), CITIZEN)
        await service.create_alert(dict(sample_alert_body, coordinates=[14.70, -17.43], isAnonymous=True), CITIZEN)
        await service.create_alert(dict(sample_alert_body, coordinates=[15.5, -17.43]), CITIZEN)

        found = await service.alerts_nearby([14.70, -17.43])

        assert [a.id for a, _ in found] == [near.id, far.id]
        assert found[0][1] < found[1][1] <= 5000

    async def test_nearby_limit_and_distance(self, service, sample_alert_body):
        for i in range(3):
            await service.create_alert(dict(sample_alert_body, coordinates=[14.70 + i * 0.001, -17.43]), CITIZEN)

        assert len(await service.alerts_nearby([14.70, -17.43], limit=2)) == 2
        assert len(await service.alerts_nearby([14.70, -17.43], max_distance_m=50)) == 1

    async def test_nearby_invalid_point(self, service):
        with pytest.raises(InvalidPayload):
            await service.alerts_nearby([500, 0])

    async def test_list_citizen_alerts(self, service, sample_alert_body):
        await service.create_alert(sample_alert_body, CITIZEN)
        await service.create_alert(sample_alert_body, IdentityClaims(subject="c-7"))
        assert len(await service.list_citizen_alerts("c-42")) == 1

    async def test_get_missing(self, service):
        with pytest.raises(AlertNotFound):
            await service.get_alert("missing")
