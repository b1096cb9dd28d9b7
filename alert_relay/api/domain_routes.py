"""
Domain-service HTTP routes.

Mounted under ``/domain``. ``/external/...`` is the service-to-service
surface used by the citizen service; the rest is used by domain agents
(status changes, comments, zones and hotspots).
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from alert_relay.core.errors import AlertNotFound, InvalidPayload
from alert_relay.core.models import DomainAlertRecord, IdentityClaims, Zone
from alert_relay.services import Services
from .deps import get_claims, read_json, service_key_guard

def zone_to_dict(zone: Zone) -> Dict[str, Any]:
    data = zone.model_dump()
    data["area_km2"] = round(zone.area_km2, 4)
    data["needs_inspection"] = zone.needs_inspection()
    return data

def _field(body: Any, name: str) -> Optional[Any]:
    return body.get(name) if isinstance(body, dict) else None

def _actor(claims: IdentityClaims) -> Optional[str]:
    return f"Agent {claims.subject}" if claims.subject else None

def build_domain_router(services: Services) -> APIRouter:
    """도메인 서비스 측 라우터를 생성합니다."""
    router = APIRouter(prefix="/domain", tags=["domain"])
    require_key = service_key_guard(services.settings)
    default_origin = services.settings.domain.default_origin_service_id

    @router.post("/external/alerts", dependencies=[Depends(require_key)])
    async def ingest_alert(request: Request, claims: IdentityClaims = Depends(get_claims)):
        """릴레이된 경보 수집 (신규 201, 중복 200)"""
        result = await services.ingestion.ingest(await read_json(request),
                                                 claims.service_id or default_origin)
        return JSONResponse(status_code=200 if result.duplicate else 201, content={
            "success": True,
            "message": "Alert already recorded" if result.duplicate else "Alert recorded",
            "serviceReferenceId": result.domain_alert_id,
        })

    @router.post("/external/alerts/{reference}/comments", dependencies=[Depends(require_key)])
    async def external_comment(reference: str, request: Request, claims: IdentityClaims = Depends(get_claims)):
        body = await read_json(request)
        record = await services.ingestion.receive_comment(
            reference, _field(body, "text"),
            author_type=_field(body, "authorType"),
            citizen_id=_field(body, "citizenId"),
            caller_service_id=claims.service_id or default_origin,
        )
        return JSONResponse(status_code=201, content={
            "success": True, "message": "Comment recorded", "serviceReferenceId": record.id,
        })

    @router.get("/alerts/{alert_id}")
    async def get_alert(alert_id: str):
        record: Optional[DomainAlertRecord] = await services.domain_store.get(alert_id)
        if record is None:
            raise AlertNotFound(f"alert {alert_id} not found")
        return {"success": True, "data": record.model_dump()}

    @router.put("/alerts/{alert_id}/status")
    async def change_status(alert_id: str, request: Request, claims: IdentityClaims = Depends(get_claims)):
        body = await read_json(request)
        status = _field(body, "status")
        if not status:
            raise InvalidPayload("status is required", ["missing_status"])
        outcome = await services.bridge.change_status(alert_id, str(status), _field(body, "comment"),
                                                      _actor(claims))
        return {"success": True, "data": outcome.model_dump()}

    @router.post("/alerts/{alert_id}/comments")
    async def add_comment(alert_id: str, request: Request, claims: IdentityClaims = Depends(get_claims)):
        body = await read_json(request)
        pushes = await services.bridge.add_service_comment(alert_id, _field(body, "text"), _actor(claims))
        return JSONResponse(status_code=201, content={
            "success": True, "pushes": [p.model_dump() for p in pushes],
        })

    @router.post("/zones")
    async def create_zone(request: Request):
        zone = await services.zones.create_zone(await read_json(request))
        return JSONResponse(status_code=201, content={"success": True, "data": zone_to_dict(zone)})

    @router.get("/zones")
    async def list_zones():
        zones = await services.zones.list_zones()
        return {"success": True, "count": len(zones), "data": [zone_to_dict(z) for z in zones]}

    @router.get("/zones/containing")
    async def zones_containing(lon: float = Query(...), lat: float = Query(...)):
        zones = await services.zones.zones_containing([lon, lat])
        return {"success": True, "count": len(zones), "data": [zone_to_dict(z) for z in zones]}

    @router.get("/zones/hotspots")
    async def hotspots(radius: Optional[float] = Query(None), minAlerts: Optional[int] = Query(None)):
        found = await services.hotspots.detect(radius, minAlerts)
        return {"success": True, "count": len(found), "data": [h.model_dump() for h in found]}

    return router
