"""
Core domain models for the alert relay service.

This module defines the citizen-facing alert, the domain-local copy,
risk zones, hotspots and the wire payloads exchanged between services,
using Pydantic v2 for type safety and validation.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from alert_relay.common.geo import polygon_area_km2

Category = Literal["commerce", "hygiene", "securite", "urbanisme", "transport", "autre"]
ProofType = Literal["image", "video", "audio"]
CitizenStatus = Literal["pending", "received", "processing", "resolved", "rejected"]
DomainStatus = Literal["new", "assigned", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "critical"]
RiskLevel = Literal["low", "medium", "high", "critical"]

CATEGORIES = ("commerce", "hygiene", "securite", "urbanisme", "transport", "autre")
PROOF_TYPES = ("image", "video", "audio")
CITIZEN_STATUSES = ("pending", "received", "processing", "resolved", "rejected")
DOMAIN_STATUSES = ("new", "assigned", "in_progress", "resolved", "closed")
RISK_LEVELS = ("low", "medium", "high", "critical")

SYSTEM_ACTOR = "system"

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def parse_iso(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

class Location(BaseModel):
    """GeoJSON Point 위치 (좌표는 [경도, 위도])"""
    type: Literal["Point"] = "Point"
    coordinates: List[float]
    address: Optional[str] = None

    @property
    def lon(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

class Proof(BaseModel):
    """시민 측 증거 서술자"""
    type: ProofType
    url: str

class StatusEntry(BaseModel):
    status: CitizenStatus
    comment: Optional[str] = None
    actor: str = SYSTEM_ACTOR
    at: str = Field(default_factory=now_iso)

class Comment(BaseModel):
    author: str
    text: str
    from_service: bool = False
    at: str = Field(default_factory=now_iso)

class AlertRecord(BaseModel):
    """시민 측 경보 레코드"""
    id: str
    citizen_id: Optional[str] = None
    service_id: str
    category: Category
    description: str
    location: Location
    proofs: List[Proof] = Field(default_factory=list)
    is_anonymous: bool = False
    status: CitizenStatus = "pending"
    status_history: List[StatusEntry] = Field(default_factory=list)
    relay_reference: Optional[str] = None
    comments: List[Comment] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @property
    def status_label(self) -> str:
        if self.status == "resolved":
            return "Resolved"
        if self.status == "rejected":
            return "Rejected"
        return "In progress"

class CreateAlertRequest(BaseModel):
    """검증을 통과한 시민 경보 생성 요청"""
    service_id: str
    category: Category
    description: str
    location: Location
    proofs: List[Proof]
    is_anonymous: bool = False

class ExternalReference(BaseModel):
    """중복 제거 키 (origin_service_id, origin_alert_id)"""
    origin_service_id: str
    origin_alert_id: str
    citizen_id: Optional[str] = None

class Attachment(BaseModel):
    filename: str
    path: str
    mimetype: str
    size: int = 0
    uploaded_at: str = Field(default_factory=now_iso)

class DomainComment(BaseModel):
    author: str
    text: str
    at: str = Field(default_factory=now_iso)

class DomainAlertRecord(BaseModel):
    """도메인 서비스 측 경보 레코드 (운영 상태의 원본)"""
    id: str
    title: str
    description: str
    category: str
    status: DomainStatus = "new"
    priority: Priority = "medium"
    location: Location
    attachments: List[Attachment] = Field(default_factory=list)
    comments: List[DomainComment] = Field(default_factory=list)
    external_references: List[ExternalReference] = Field(default_factory=list)
    created_by: str
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    zone_updated: bool = False

class Zone(BaseModel):
    """위험 구역"""
    id: str
    name: str
    description: Optional[str] = None
    risk_level: RiskLevel
    boundary: List[List[float]]
    alert_count: int = 0
    last_alert_date: Optional[str] = None
    last_inspection: Optional[str] = None
    responsible_team: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @property
    def area_km2(self) -> float:
        return polygon_area_km2(self.boundary)

    def needs_inspection(self, days_threshold: float = 30, now: Optional[datetime] = None) -> bool:
        """
        점검이 필요한지 판단합니다.

        위험도에 따라 임계값을 조정합니다 (critical: 1/4, high: 1/2,
        medium: 그대로, low: 1.5배). 점검 이력이 없으면 항상 True.
        날짜를 해석할 수 없는 점검 이력도 없는 것으로 취급합니다.
        """
        if not self.last_inspection:
            return True
        try:
            inspected_at = parse_iso(self.last_inspection)
        except (TypeError, ValueError, AttributeError):
            return True

        factor = {"critical": 0.25, "high": 0.5, "medium": 1.0, "low": 1.5}[self.risk_level]
        now = now or datetime.now(timezone.utc)
        elapsed_days = (now - inspected_at).total_seconds() / 86400
        return elapsed_days >= days_threshold * factor

class ZoneSummary(BaseModel):
    id: str
    name: str
    risk_level: RiskLevel

class Hotspot(BaseModel):
    """계산된 핫스팟 (저장하지 않음)"""
    center: List[float]
    density: int
    radius_km: float
    zones: List[ZoneSummary] = Field(default_factory=list)

class ServiceTarget(BaseModel):
    """서비스 디렉터리 조회 결과"""
    id: str
    name: str = ""
    base_url: str = ""
    is_active: bool = True

class IdentityClaims(BaseModel):
    """게이트웨이가 주입한 신원 클레임 (읽기 전용)"""
    subject: Optional[str] = None
    role: Optional[str] = None
    service_id: Optional[str] = None

class RelayProof(BaseModel):
    type: str
    url: str
    size: Optional[int] = None

class RelayPayload(BaseModel):
    """시민 서비스 → 도메인 서비스 릴레이 페이로드"""
    model_config = ConfigDict(populate_by_name=True)

    alert_id: str = Field(alias="alertId")
    category: Optional[str] = None
    description: str
    location: Location
    proofs: List[RelayProof]
    is_anonymous: bool = Field(default=False, alias="isAnonymous")
    citizen_id: Optional[str] = Field(default=None, alias="citizenId")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    def to_wire(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_none=True)
        # 익명 경보는 시민 ID를 보내지 않음
        if self.is_anonymous:
            data.pop("citizenId", None)
        return data

class RelayResult(BaseModel):
    ok: bool
    service_reference_id: Optional[str] = None
    error: Optional[str] = None

class IngestResult(BaseModel):
    accepted: bool
    domain_alert_id: Optional[str] = None
    duplicate: bool = False

class PushOutcome(BaseModel):
    origin_service_id: str
    origin_alert_id: str
    delivered: bool
    error: Optional[str] = None

class BridgeOutcome(BaseModel):
    domain_alert_id: str
    status: DomainStatus
    citizen_status: CitizenStatus
    pushes: List[PushOutcome] = Field(default_factory=list)
