"""
Observability 모듈 단위 테스트

헬스/레디니스/메트릭/정보 엔드포인트, 메트릭 수집, 로깅 설정을 테스트합니다.
"""

import logging
import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from alert_relay.observability import metrics
from alert_relay.observability.health import create_app
from alert_relay.observability.logging_setup import InterceptHandler, get_logger, setup_logging_dev
from alert_relay.services import build_services


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestHealthEndpoints:
    """헬스 체크 엔드포인트 테스트"""

    @pytest.fixture
    def settings(self, sample_settings):
        sample_settings.observability.log_level = "INFO"
        return sample_settings

    @pytest.fixture
    def client(self, settings):
        """테스트용 클라이언트 (lifespan 포함)"""
        app = create_app(settings, build_services(settings))
        with TestClient(app) as client:
            yield client

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "test-service"
        assert "timestamp" in data

    def test_ready_endpoint(self, client):
        """레디니스 체크: 두 저장소 모두 초기화됨"""
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_ready_reports_storage_failure(self, client):
        with patch("alert_relay.adapters.storage.sqlite_alerts.SQLiteAlertStore.get_count",
                   side_effect=RuntimeError("disk I/O error")):
            response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        content = response.text
        assert "# HELP" in content
        assert "uptime_seconds" in content

    def test_metrics_disabled(self, settings):
        settings.observability.metrics_enabled = False
        with TestClient(create_app(settings, build_services(settings))) as client:
            assert client.get("/metrics").status_code == 503

    def test_info_endpoint(self, client):
        response = client.get("/info")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "test-service"
        assert data["version"] == "1.0.0"
        assert data["mode"] == "all"
        assert data["log_level"] == "INFO"
        assert "uptime_seconds" in data

    def test_routers_follow_mode(self, settings):
        """citizen 모드에서는 도메인 라우트가 없음"""
        settings.app.mode = "citizen"
        with TestClient(create_app(settings, build_services(settings))) as client:
            assert client.get("/domain/zones").status_code == 404
            assert client.get("/citizen/alerts/nearby", params={"lon": 14.7, "lat": -17.43}).status_code == 200


class TestMetricsCollection:
    """메트릭 수집 테스트"""

    def test_ingestions_counter(self):
        before = sample("alert_ingestions_total", outcome="created")

        metrics.ingestions.labels(outcome="created").inc()
        metrics.ingestions.labels(outcome="created").inc(2)

        assert sample("alert_ingestions_total", outcome="created") == before + 3

    def test_relays_counter_labels(self):
        before = sample("alert_relays_total", service="hygiene-service", outcome="failed")
        metrics.relays.labels(service="hygiene-service", outcome="failed").inc()
        assert sample("alert_relays_total", service="hygiene-service", outcome="failed") == before + 1

    def test_ingest_histogram(self):
        before = sample("ingest_duration_seconds_count")
        metrics.ingest_seconds.observe(0.002)
        assert sample("ingest_duration_seconds_count") == before + 1

    def test_outbox_gauge(self):
        metrics.outbox_size.set(4)
        metrics.outbox_size.inc(2)
        metrics.outbox_size.dec(1)
        assert sample("relay_outbox_size") == 5

    def test_hotspot_timer_context_manager(self):
        before = sample("hotspot_detection_duration_seconds_count")
        with metrics.hotspot_seconds.time():
            pass
        assert sample("hotspot_detection_duration_seconds_count") == before + 1


class TestLoggingSetup:
    """로깅 설정 테스트"""

    def test_intercept_handler_emit(self):
        handler = InterceptHandler()

        record = Mock()
        record.levelname = "INFO"
        record.levelno = 20
        record.getMessage.return_value = "Test message"
        record.exc_info = None

        with patch("alert_relay.observability.logging_setup.logger") as mock_logger:
            mock_logger.level.return_value.name = "INFO"
            handler.emit(record)

            mock_logger.opt.assert_called_once()
            mock_logger.opt.return_value.log.assert_called_once_with("INFO", "Test message")

    def test_intercept_handler_unknown_level(self):
        handler = InterceptHandler()

        record = Mock()
        record.levelname = "CUSTOM"
        record.levelno = 25
        record.getMessage.return_value = "Custom message"
        record.exc_info = None

        with patch("alert_relay.observability.logging_setup.logger") as mock_logger:
            mock_logger.level.side_effect = ValueError("unknown level")
            handler.emit(record)

            mock_logger.opt.return_value.log.assert_called_once_with(25, "Custom message")

    def test_get_logger_binds_name(self):
        with patch("alert_relay.observability.logging_setup.logger") as mock_logger:
            get_logger("alert_relay.test", alert_id="a1")
            mock_logger.bind.assert_called_once_with(name="alert_relay.test", alert_id="a1")

    def test_setup_logging_dev_hooks_stdlib(self):
        setup_logging_dev("DEBUG")

        assert any(isinstance(h, InterceptHandler) for h in logging.getLogger().handlers)
        uvicorn_logger = logging.getLogger("uvicorn")
        assert uvicorn_logger.propagate is False
        assert isinstance(uvicorn_logger.handlers[0], InterceptHandler)
