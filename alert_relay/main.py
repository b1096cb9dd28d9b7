# alert_relay/main.py
import os, asyncio, json, signal
import uvicorn
from alert_relay.settings import Settings, ServiceEntry
from alert_relay.services import build_services
from alert_relay.observability.health import create_app
from alert_relay.observability.logging_setup import setup_logger, get_logger

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()

    # 앱
    s.app.mode = os.getenv("APP_MODE", s.app.mode)
    s.app.host = os.getenv("APP_HOST", s.app.host)
    s.app.port = int(os.getenv("APP_PORT", s.app.port))

    # 보안
    s.security.service_api_key = os.getenv("SERVICE_API_KEY", s.security.service_api_key)
    s.security.header_name = os.getenv("SERVICE_KEY_HEADER", s.security.header_name)

    # 릴레이
    s.relay.timeout_sec = float(os.getenv("RELAY_TIMEOUT_SEC", s.relay.timeout_sec))
    s.relay.redelivery_enabled = _b("REDELIVERY_ENABLED", s.relay.redelivery_enabled)
    s.relay.redelivery_interval_sec = float(os.getenv("REDELIVERY_INTERVAL_SEC", s.relay.redelivery_interval_sec))
    s.relay.redelivery_max_attempts = int(os.getenv("REDELIVERY_MAX_ATTEMPTS", s.relay.redelivery_max_attempts))
    s.relay.backoff_initial_sec = float(os.getenv("BACKOFF_INITIAL_SEC", s.relay.backoff_initial_sec))
    s.relay.backoff_max_sec = float(os.getenv("BACKOFF_MAX_SEC", s.relay.backoff_max_sec))

    # 도메인 서비스
    s.domain.service_id = os.getenv("DOMAIN_SERVICE_ID", s.domain.service_id)
    s.domain.category = os.getenv("DOMAIN_CATEGORY", s.domain.category)
    s.domain.default_origin_service_id = os.getenv("DEFAULT_ORIGIN_SERVICE_ID", s.domain.default_origin_service_id)
    s.domain.webhook_timeout_sec = float(os.getenv("WEBHOOK_TIMEOUT_SEC", s.domain.webhook_timeout_sec))

    # 저장소
    s.storage.citizen_db_path = os.getenv("CITIZEN_DB_PATH", s.storage.citizen_db_path)
    s.storage.domain_db_path = os.getenv("DOMAIN_DB_PATH", s.storage.domain_db_path)

    # 상관 분석
    s.correlation.hotspot_radius_km = float(os.getenv("HOTSPOT_RADIUS_KM", s.correlation.hotspot_radius_km))
    s.correlation.hotspot_min_points = int(os.getenv("HOTSPOT_MIN_POINTS", s.correlation.hotspot_min_points))
    s.correlation.nearby_max_distance_m = float(os.getenv("NEARBY_MAX_DISTANCE_M", s.correlation.nearby_max_distance_m))
    s.correlation.nearby_limit = int(os.getenv("NEARBY_LIMIT", s.correlation.nearby_limit))

    # 서비스 디렉터리: [{"id": ..., "base_url": ..., "is_active": ..., "categories": [...]}, ...]
    services_json = os.getenv("SERVICES_JSON")
    if services_json:
        s.directory.services = [ServiceEntry.model_validate(e) for e in json.loads(services_json)]

    # 관측성
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)

    return s

async def main():
    # 로거 초기화 (환경변수 LOG_LEVEL 우선)
    setup_logger(os.getenv("LOG_LEVEL", "INFO"))
    log = get_logger()

    s = build_settings()
    log.info(f"설정 로드 완료 mode:{s.app.mode} services:{len(s.directory.services)}")
    if not s.security.service_api_key:
        log.warning("SERVICE_API_KEY 미설정: 서비스 간 요청이 모두 거부됩니다")

    services = build_services(s)
    app = create_app(s, services)
    server = uvicorn.Server(uvicorn.Config(app, host=s.app.host, port=s.app.port, log_level="info"))
    http_task = asyncio.create_task(server.serve())
    log.info(f"HTTP 서버 시작됨 port:{s.app.port}")

    stop = asyncio.Future()
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
            except NotImplementedError: pass
    except RuntimeError: pass

    await asyncio.wait([http_task, stop], return_when=asyncio.FIRST_COMPLETED)
    server.should_exit = True
    await http_task

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
