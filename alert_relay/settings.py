# alert_relay/settings.py
from __future__ import annotations
from typing import List, Literal
from pydantic import BaseModel, Field

class AppConfig(BaseModel):
    # citizen: 시민 측 API만, domain: 도메인 서비스 API만, all: 둘 다 (개발용)
    mode: Literal["citizen", "domain", "all"] = "all"
    host: str = "0.0.0.0"
    port: int = 8000

class Security(BaseModel):
    service_api_key: str = ""
    header_name: str = "X-Service-Key"

class Relay(BaseModel):
    timeout_sec: float = 10.0
    redelivery_enabled: bool = False
    redelivery_interval_sec: float = 60.0
    redelivery_max_attempts: int = 5
    backoff_initial_sec: float = 5.0
    backoff_max_sec: float = 300.0

class Domain(BaseModel):
    service_id: str = "hygiene-service"
    category: str = "hygiene"
    default_origin_service_id: str = "citizen-service"
    webhook_timeout_sec: float = 10.0

class Storage(BaseModel):
    citizen_db_path: str = "/data/citizen_alerts.db"
    domain_db_path: str = "/data/domain_alerts.db"

class Correlation(BaseModel):
    hotspot_radius_km: float = 1.0
    hotspot_min_points: int = 5
    nearby_max_distance_m: float = 5000.0
    nearby_limit: int = 50

class ServiceEntry(BaseModel):
    id: str
    name: str = ""
    base_url: str = ""
    is_active: bool = True
    categories: List[str] = Field(default_factory=list)

class Directory(BaseModel):
    services: List[ServiceEntry] = Field(default_factory=list)

class Observability(BaseModel):
    metrics_enabled: bool = True
    service_name: str = "alert-relay"
    build_version: str = "0.1.0"
    build_date: str = "2026-10-01"
    log_level: str = "INFO"

class Settings(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    security: Security = Field(default_factory=Security)
    relay: Relay = Field(default_factory=Relay)
    domain: Domain = Field(default_factory=Domain)
    storage: Storage = Field(default_factory=Storage)
    correlation: Correlation = Field(default_factory=Correlation)
    directory: Directory = Field(default_factory=Directory)
    observability: Observability = Field(default_factory=Observability)
