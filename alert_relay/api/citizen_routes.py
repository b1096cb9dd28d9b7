"""
Citizen-facing HTTP routes.

Mounted under ``/citizen``. Citizens create, list and comment on their
alerts; domain services call the two webhooks (shared-secret protected)
to push status changes and comments back.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from alert_relay.core.errors import AuthenticationFailed, InvalidPayload
from alert_relay.core.models import AlertRecord, IdentityClaims
from alert_relay.services import Services
from .deps import get_claims, read_json, service_key_guard

def alert_to_dict(alert: AlertRecord) -> Dict[str, Any]:
    data = alert.model_dump()
    data["status_label"] = alert.status_label
    return data

def _field(body: Any, name: str) -> Optional[Any]:
    return body.get(name) if isinstance(body, dict) else None

def build_citizen_router(services: Services) -> APIRouter:
    """시민 측 라우터를 생성합니다."""
    router = APIRouter(prefix="/citizen", tags=["citizen"])
    require_key = service_key_guard(services.settings)
    citizen = services.citizen

    @router.post("/alerts")
    async def create_alert(request: Request, claims: IdentityClaims = Depends(get_claims)):
        """경보 생성 (릴레이 실패와 무관하게 201)"""
        alert = await citizen.create_alert(await read_json(request), claims)
        return JSONResponse(status_code=201, content={
            "success": True,
            "message": "Alert created",
            "relayed": alert.relay_reference is not None,
            "data": alert_to_dict(alert),
        })

    @router.get("/alerts/mine")
    async def my_alerts(claims: IdentityClaims = Depends(get_claims)):
        if not claims.subject:
            raise AuthenticationFailed("user identity missing", missing=True)
        alerts = await citizen.list_citizen_alerts(claims.subject)
        return {"success": True, "count": len(alerts), "data": [alert_to_dict(a) for a in alerts]}

    @router.get("/alerts/nearby")
    async def nearby_alerts(lon: float = Query(...),
                            lat: float = Query(...),
                            maxDistance: Optional[float] = Query(None),
                            limit: Optional[int] = Query(None)):
        found = await citizen.alerts_nearby([lon, lat], maxDistance, limit)
        return {
            "success": True,
            "count": len(found),
            "data": [dict(alert_to_dict(a), distance_m=round(d, 1)) for a, d in found],
        }

    @router.get("/alerts/{alert_id}")
    async def get_alert(alert_id: str):
        return {"success": True, "data": alert_to_dict(await citizen.get_alert(alert_id))}

    @router.post("/alerts/{alert_id}/comments")
    async def add_comment(alert_id: str, request: Request, claims: IdentityClaims = Depends(get_claims)):
        body = await read_json(request)
        alert = await citizen.add_comment(alert_id, _field(body, "text"), claims)
        return JSONResponse(status_code=201, content={"success": True, "data": alert_to_dict(alert)})

    @router.post("/webhooks/status", dependencies=[Depends(require_key)])
    async def status_webhook(request: Request):
        body = await read_json(request)
        alert_id = _field(body, "alertId")
        status = _field(body, "status")
        if not alert_id or not status:
            raise InvalidPayload("alertId and status are required", ["missing_alert_id_or_status"])
        alert = await citizen.update_alert_status(str(alert_id), str(status),
                                                  _field(body, "comment"), _field(body, "updatedBy"))
        return {"success": True, "status": alert.status, "status_label": alert.status_label}

    @router.post("/webhooks/comments", dependencies=[Depends(require_key)])
    async def comment_webhook(request: Request):
        body = await read_json(request)
        alert_id = _field(body, "alertId")
        if not alert_id:
            raise InvalidPayload("alertId is required", ["missing_alert_id"])
        await citizen.add_service_comment(str(alert_id), _field(body, "text"), _field(body, "author"))
        return {"success": True}

    return router
