"""
Request dependencies shared by the citizen and domain routers.
"""

import hmac
from typing import Any
from fastapi import Request
from alert_relay.core.errors import AuthenticationFailed, InvalidPayload
from alert_relay.core.models import IdentityClaims
from alert_relay.settings import Settings

def service_key_guard(settings: Settings):
    """공유 비밀 헤더를 검사하는 의존성을 만듭니다."""

    async def _guard(request: Request) -> None:
        provided = request.headers.get(settings.security.header_name)
        if not provided:
            raise AuthenticationFailed("service key missing", missing=True)
        expected = settings.security.service_api_key
        # 비밀이 설정되지 않았으면 모든 키를 거부
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            raise AuthenticationFailed("invalid service key")

    return _guard

def get_claims(request: Request) -> IdentityClaims:
    """게이트웨이가 주입한 신원 헤더를 읽습니다."""
    return IdentityClaims(
        subject=request.headers.get("X-User-Id") or None,
        role=request.headers.get("X-User-Role") or None,
        service_id=request.headers.get("X-Service-Id") or None,
    )

async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InvalidPayload("request body is not valid JSON", ["malformed_body"])
