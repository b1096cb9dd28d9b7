"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import pytest
import asyncio
import tempfile
import os
from unittest.mock import AsyncMock
from alert_relay.core.models import ServiceTarget
from alert_relay.settings import Settings, ServiceEntry


SERVICE_KEY = "test-secret"

# 정사각형 존 [14.6, 14.8] x [-17.5, -17.3]
SQUARE_RING = [[14.6, -17.5], [14.8, -17.5], [14.8, -17.3], [14.6, -17.3], [14.6, -17.5]]


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    # 테스트 후 파일 정리
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def temp_dir():
    """임시 디렉터리"""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def sample_settings(temp_dir):
    """테스트용 설정"""
    settings = Settings()
    settings.security.service_api_key = SERVICE_KEY
    settings.storage.citizen_db_path = os.path.join(temp_dir, "citizen.db")
    settings.storage.domain_db_path = os.path.join(temp_dir, "domain.db")
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.directory.services = [
        ServiceEntry(id="hygiene-service", name="Hygiene", base_url="http://hygiene.local/domain/external",
                     categories=["hygiene"]),
        ServiceEntry(id="citizen-service", name="Citizen", base_url="http://citizen.local/citizen"),
        ServiceEntry(id="transport-service", name="Transport", base_url="http://transport.local",
                     is_active=False, categories=["transport"]),
    ]
    return settings


@pytest.fixture
def hygiene_target():
    return ServiceTarget(id="hygiene-service", name="Hygiene", base_url="http://hygiene.local/domain/external")


@pytest.fixture
def sample_alert_body():
    """테스트용 시민 경보 요청 본문"""
    return {
        "serviceId": "hygiene-service",
        "category": "hygiene",
        "description": "Overflowing bins near the market",
        "coordinates": [14.70, -17.43],
        "address": "Marché central",
        "proofs": [{"type": "image", "url": "https://cdn.example.org/p/1.jpg"}],
    }


@pytest.fixture
def sample_relay_payload():
    """테스트용 릴레이 페이로드"""
    return {
        "alertId": "A1",
        "category": "hygiene",
        "description": "Overflowing bins near the market",
        "location": {"type": "Point", "coordinates": [14.70, -17.43], "address": "Marché central"},
        "proofs": [{"type": "image", "url": "https://cdn.example.org/p/1.jpg"}],
        "isAnonymous": False,
        "citizenId": "c-42",
        "createdAt": "2026-10-01T10:00:00+00:00",
    }


@pytest.fixture
def mock_relay():
    """테스트용 릴레이 클라이언트"""
    return AsyncMock()


@pytest.fixture
def mock_notifier():
    """테스트용 웹훅 클라이언트"""
    return AsyncMock()


# pytest 설정
def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "asyncio: 비동기 테스트 마커"
    )
    config.addinivalue_line(
        "markers", "slow: 느린 테스트 마커"
    )
    config.addinivalue_line(
        "markers", "integration: 통합 테스트 마커"
    )


def pytest_collection_modifyitems(config, items):
    """테스트 아이템 수정"""
    for item in items:
        # 비동기 테스트에 asyncio 마커 추가
        if asyncio.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)

        # 통합 테스트 마커 추가
        if "integration" in item.name or "end_to_end" in item.name:
            item.add_marker(pytest.mark.integration)
