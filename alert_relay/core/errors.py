"""
Error taxonomy for the alert relay service.

Validation and authentication failures are rejected at the boundary;
ServiceUnavailable is absorbed on the relay / status push paths.
A duplicate ingestion is not an error (see IngestResult.duplicate).
"""

from typing import List, Optional

class RelayError(Exception):
    """모든 서비스 오류의 기반 클래스"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class InvalidPayload(RelayError):
    """필수 필드 누락/형식 오류. 레코드를 만들지 않는다."""
    status_code = 400

    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.reasons = list(reasons or [])

class AuthenticationFailed(RelayError):
    """서비스 간 공유 비밀 불일치"""
    status_code = 403

    def __init__(self, message: str, missing: bool = False):
        super().__init__(message)
        # 키 자체가 없으면 401, 틀리면 403
        if missing:
            self.status_code = 401

class AlertNotFound(RelayError):
    status_code = 404

class ServiceUnavailable(RelayError):
    """대상 서비스 비활성/연결 불가"""
    status_code = 503

class GeoComputationDegenerate(InvalidPayload):
    """꼭짓점이 부족하거나 닫히지 않은 폴리곤 (존 생성 시에만 발생)"""

def error_reason(error: Exception) -> str:
    """로그/댓글/Outbox에 남길 오류 사유 문자열"""
    return getattr(error, "message", None) or str(error) or type(error).__name__
