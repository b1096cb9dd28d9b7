"""
Domain-internal status to citizen-facing status mapping.
"""

from typing import Dict
from .models import CITIZEN_STATUSES, CitizenStatus, DOMAIN_STATUSES
from .errors import InvalidPayload

DOMAIN_TO_CITIZEN: Dict[str, CitizenStatus] = {
    "new": "pending",
    "assigned": "processing",
    "in_progress": "processing",
    "resolved": "resolved",
    "closed": "rejected",
}

def to_citizen_status(status: str) -> CitizenStatus:
    """
    도메인 상태를 시민 측 상태로 매핑합니다.

    시민 측 어휘(pending, received, ...)는 그대로 통과합니다.

    Raises:
        InvalidPayload: 알 수 없는 상태
    """
    if status in DOMAIN_TO_CITIZEN:
        return DOMAIN_TO_CITIZEN[status]
    if status in CITIZEN_STATUSES:
        return status  # type: ignore[return-value]
    raise InvalidPayload(f"unknown status: {status!r}", ["invalid_status"])

def is_domain_status(status: str) -> bool:
    return status in DOMAIN_STATUSES
