"""
Normalization functions for the alert relay service.

Pure functions converting loosely-typed request bodies into typed domain
models. Each parser either returns a model or raises InvalidPayload with
an enumerated list of reasons, so no record is ever created from a
malformed body.
"""

from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from alert_relay.common.geo import validate_point
from .errors import InvalidPayload
from .models import (
    AlertRecord, Attachment, CATEGORIES, CreateAlertRequest, Location, Proof,
    PROOF_TYPES, RelayPayload, RelayProof, RISK_LEVELS, parse_iso,
)

MIME_TYPES = {
    "photo": "image/jpeg",
    "image": "image/jpeg",
    "video": "video/mp4",
    "audio": "audio/mpeg",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None

def _location(raw: Any) -> Optional[Location]:
    """{type, coordinates, address} 또는 [경도, 위도] 를 Location으로 변환"""
    if isinstance(raw, dict):
        coords = raw.get("coordinates")
        address = raw.get("address")
    else:
        coords, address = raw, None
    if not validate_point(coords):
        return None
    return Location(coordinates=[float(coords[0]), float(coords[1])],
                    address=address if isinstance(address, str) else None)

def _as_bool(value: Any) -> bool:
    # multipart 폼에서 온 "true" 문자열도 허용
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)

def parse_relay_payload(raw: Any) -> RelayPayload:
    """
    릴레이 페이로드를 검증하여 RelayPayload로 변환합니다.

    Args:
        raw: 요청 본문

    Returns:
        검증된 RelayPayload

    Raises:
        InvalidPayload: missing_alert_id, missing_description,
            invalid_location, missing_proofs, invalid_proof
    """
    if not isinstance(raw, dict):
        raise InvalidPayload("relay payload must be an object", ["malformed_body"])

    reasons: List[str] = []

    alert_id = raw.get("alertId")
    if alert_id is None or str(alert_id).strip() == "":
        reasons.append("missing_alert_id")

    description = _text(raw.get("description"))
    if description is None:
        reasons.append("missing_description")

    location = _location(raw.get("location"))
    if location is None:
        reasons.append("invalid_location")

    raw_proofs = raw.get("proofs")
    proofs: List[RelayProof] = []
    if not isinstance(raw_proofs, list) or not raw_proofs:
        reasons.append("missing_proofs")
    else:
        for item in raw_proofs:
            if not isinstance(item, dict) or not _text(item.get("url")):
                reasons.append("invalid_proof")
                break
            size = item.get("size")
            proofs.append(RelayProof(type=str(item.get("type") or ""),
                                     url=item["url"].strip(),
                                     size=size if isinstance(size, int) and not isinstance(size, bool) else None))

    if reasons:
        raise InvalidPayload("incomplete alert data", reasons)

    category = raw.get("category")
    is_anonymous = _as_bool(raw.get("isAnonymous", False))
    citizen_id = raw.get("citizenId")
    created_at = raw.get("createdAt")

    return RelayPayload(
        alert_id=str(alert_id).strip(),
        category=str(category) if category else None,
        description=description,
        location=location,
        proofs=proofs,
        is_anonymous=is_anonymous,
        citizen_id=None if is_anonymous or citizen_id is None else str(citizen_id),
        created_at=str(created_at) if created_at else None,
    )

def mime_type_for(proof_type: str) -> str:
    return MIME_TYPES.get((proof_type or "").lower(), DEFAULT_MIME_TYPE)

def proofs_to_attachments(proofs: List[RelayProof]) -> List[Attachment]:
    """
    외부 증거 서술자를 첨부파일로 변환합니다.

    파일명은 URL 경로의 마지막 세그먼트, 경로는 URL 그대로 사용합니다.
    """
    attachments = []
    for proof in proofs:
        path = proof.url.split("?", 1)[0].rstrip("/")
        filename = path.rsplit("/", 1)[-1] or proof.url
        attachments.append(Attachment(
            filename=filename,
            path=proof.url,
            mimetype=mime_type_for(proof.type),
            size=proof.size or 0,
        ))
    return attachments

def parse_create_request(raw: Any, *, known_service: Optional[bool] = None) -> CreateAlertRequest:
    """
    시민 경보 생성 요청을 검증합니다.

    Args:
        raw: 요청 본문 (serviceId, category, description, coordinates,
            address, isAnonymous, proofs)
        known_service: 서비스 디렉터리에 존재하는지 여부 (None이면 검사 안 함)

    Raises:
        InvalidPayload: 필수 필드 누락 또는 형식 오류
    """
    if not isinstance(raw, dict):
        raise InvalidPayload("alert body must be an object", ["malformed_body"])

    reasons: List[str] = []

    service_id = _text(raw.get("serviceId"))
    if service_id is None:
        reasons.append("missing_service_id")
    elif known_service is False:
        reasons.append("unknown_service")

    category = raw.get("category")
    if category not in CATEGORIES:
        reasons.append("invalid_category")

    description = _text(raw.get("description"))
    if description is None:
        reasons.append("missing_description")

    location = _location(raw.get("coordinates"))
    if location is None:
        reasons.append("invalid_location")
    elif isinstance(raw.get("address"), str):
        location.address = raw["address"]

    proofs: List[Proof] = []
    raw_proofs = raw.get("proofs")
    if not isinstance(raw_proofs, list) or not raw_proofs:
        reasons.append("missing_proofs")
    else:
        try:
            proofs = [Proof.model_validate(p) for p in raw_proofs]
        except ValidationError:
            reasons.append("invalid_proof")

    if reasons:
        raise InvalidPayload("invalid alert", reasons)

    return CreateAlertRequest(
        service_id=service_id,
        category=category,
        description=description,
        location=location,
        proofs=proofs,
        is_anonymous=_as_bool(raw.get("isAnonymous", False)),
    )

def build_relay_payload(alert: AlertRecord) -> RelayPayload:
    """시민 측 레코드로부터 릴레이 페이로드를 만듭니다."""
    return RelayPayload(
        alert_id=alert.id,
        category=alert.category,
        description=alert.description,
        location=alert.location,
        proofs=[RelayProof(type=p.type, url=p.url) for p in alert.proofs],
        is_anonymous=alert.is_anonymous,
        citizen_id=None if alert.is_anonymous else alert.citizen_id,
        created_at=alert.created_at,
    )

def parse_zone(raw: Any) -> Dict[str, Any]:
    """
    존 생성 요청에서 필드를 추출합니다. 링 검증은 저장소가 담당합니다.

    boundary는 [[경도, 위도], ...] 링 또는 GeoJSON Polygon
    ({"type": "Polygon", "coordinates": [ring]}) 모두 허용합니다.
    """
    if not isinstance(raw, dict):
        raise InvalidPayload("zone body must be an object", ["malformed_body"])

    reasons = []
    name = _text(raw.get("name"))
    if name is None:
        reasons.append("missing_name")

    risk_level = raw.get("riskLevel", raw.get("risk_level"))
    if risk_level not in RISK_LEVELS:
        reasons.append("invalid_risk_level")

    boundary = raw.get("boundary")
    if isinstance(boundary, dict):
        rings = boundary.get("coordinates") or []
        boundary = rings[0] if rings else None
    if not isinstance(boundary, list):
        reasons.append("missing_boundary")

    last_inspection = raw.get("lastInspection")
    if last_inspection is not None:
        try:
            parse_iso(last_inspection)
        except (TypeError, ValueError, AttributeError):
            reasons.append("invalid_last_inspection")

    if reasons:
        raise InvalidPayload("invalid zone", reasons)

    return {
        "name": name,
        "description": raw.get("description"),
        "risk_level": risk_level,
        "boundary": boundary,
        "last_inspection": last_inspection,
        "responsible_team": raw.get("responsibleTeam"),
    }
