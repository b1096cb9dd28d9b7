"""
환경변수 → 설정 로딩 테스트
"""

import json
from alert_relay.main import build_settings


class TestBuildSettings:
    """build_settings 테스트"""

    def test_defaults(self, monkeypatch):
        for name in ("APP_MODE", "SERVICE_API_KEY", "SERVICES_JSON", "REDELIVERY_ENABLED"):
            monkeypatch.delenv(name, raising=False)

        s = build_settings()

        assert s.app.mode == "all"
        assert s.security.service_api_key == ""
        assert s.security.header_name == "X-Service-Key"
        assert s.relay.redelivery_enabled is False
        assert s.correlation.hotspot_radius_km == 1.0
        assert s.correlation.hotspot_min_points == 5
        assert s.directory.services == []

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("APP_MODE", "domain")
        monkeypatch.setenv("APP_PORT", "9000")
        monkeypatch.setenv("SERVICE_API_KEY", "s3cret")
        monkeypatch.setenv("RELAY_TIMEOUT_SEC", "2.5")
        monkeypatch.setenv("REDELIVERY_ENABLED", "yes")
        monkeypatch.setenv("HOTSPOT_MIN_POINTS", "8")
        monkeypatch.setenv("DOMAIN_CATEGORY", "securite")

        s = build_settings()

        assert s.app.mode == "domain"
        assert s.app.port == 9000
        assert s.security.service_api_key == "s3cret"
        assert s.relay.timeout_sec == 2.5
        assert s.relay.redelivery_enabled is True
        assert s.correlation.hotspot_min_points == 8
        assert s.domain.category == "securite"

    def test_services_json(self, monkeypatch):
        monkeypatch.setenv("SERVICES_JSON", json.dumps([
            {"id": "hygiene-service", "base_url": "http://hygiene:8000/domain/external", "categories": ["hygiene"]},
            {"id": "citizen-service", "base_url": "http://citizen:8000/citizen", "is_active": False},
        ]))

        s = build_settings()

        assert [e.id for e in s.directory.services] == ["hygiene-service", "citizen-service"]
        assert s.directory.services[0].categories == ["hygiene"]
        assert s.directory.services[1].is_active is False
