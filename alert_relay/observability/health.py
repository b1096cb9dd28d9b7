"""
HTTP application for the alert relay service.

Builds the FastAPI app: health, readiness, metrics and info endpoints,
the citizen and/or domain routers selected by ``app.mode``, and the
error-taxonomy exception handlers.
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from alert_relay.api.citizen_routes import build_citizen_router
from alert_relay.api.domain_routes import build_domain_router
from alert_relay.core.errors import InvalidPayload, RelayError
from alert_relay.observability import metrics
from alert_relay.observability.logging_setup import get_logger
from alert_relay.services import Services
from alert_relay.settings import Settings

log = get_logger("alert_relay.http_app")

def create_app(settings: Settings, services: Services) -> FastAPI:
    """FastAPI 애플리케이션을 생성합니다."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.init()
        await services.start()
        log.info(f"HTTP 애플리케이션 시작 mode:{settings.app.mode}")
        try:
            yield
        finally:
            await services.stop()
            log.info("HTTP 애플리케이션 종료")

    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="Citizen alert relay and geospatial correlation service",
        lifespan=lifespan,
    )

    start_time = time.time()

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        content = {"success": False, "message": exc.message}
        if isinstance(exc, InvalidPayload) and exc.reasons:
            content["reasons"] = exc.reasons
        if exc.status_code >= 500:
            log.error(f"요청 처리 오류 path:{request.url.path} error:{exc.message}")
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/health")
    async def health():
        """헬스 체크 엔드포인트"""
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/ready")
    async def ready():
        """레디니스 체크 엔드포인트 (저장소 RW 확인)"""
        try:
            if services.serves_citizen:
                await services.alert_store.get_count()
            if services.serves_domain:
                await services.domain_store.get_count()
        except Exception as e:
            log.error(f"레디니스 확인 실패 error:{str(e)}")
            return JSONResponse(status_code=503, content={
                "status": "not_ready",
                "service": settings.observability.service_name,
                "timestamp": time.time()
            })
        return JSONResponse({
            "status": "ready",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus 메트릭 엔드포인트"""
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")

        metrics.uptime_seconds.set(time.time() - start_time)
        try:
            return Response(
                generate_latest(),
                media_type=CONTENT_TYPE_LATEST
            )
        except Exception as e:
            log.error(f"메트릭 생성 오류: {e}")
            raise HTTPException(status_code=500, detail="Metrics generation failed")

    @app.get("/info")
    async def info():
        """서비스 정보 엔드포인트"""
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "mode": settings.app.mode,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level
        })

    if services.serves_citizen:
        app.include_router(build_citizen_router(services))
    if services.serves_domain:
        app.include_router(build_domain_router(services))

    return app
