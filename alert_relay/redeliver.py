"""
Operator entry point for relay redelivery.

    python -m alert_relay.redeliver --once
    python -m alert_relay.redeliver            # loop every REDELIVERY_INTERVAL_SEC

Uses the same environment configuration as the HTTP service.
"""

import argparse
import asyncio
import os
import sys
from alert_relay.main import build_settings
from alert_relay.observability.logging_setup import get_logger, setup_logger
from alert_relay.services import build_services

log = get_logger("alert_relay.redeliver")

async def run(once: bool) -> int:
    s = build_settings()
    services = build_services(s)
    await services.alert_store.init()
    await services.outbox.init()

    async with services.relay_client:
        if once:
            delivered = await services.redelivery.run_once()
            remaining = await services.outbox.get_count()
            log.info(f"재전송 패스 완료 delivered:{delivered} remaining:{remaining}")
            return 0
        await services.redelivery.start()
    return 0

def main(argv=None) -> int:
    """메인 함수"""
    parser = argparse.ArgumentParser(description="릴레이 Outbox 재전송")
    parser.add_argument(
        "--once",
        action="store_true",
        help="한 번만 실행하고 종료"
    )
    args = parser.parse_args(argv)

    setup_logger(os.getenv("LOG_LEVEL", "INFO"))
    try:
        return asyncio.run(run(args.once))
    except KeyboardInterrupt:
        return 130

if __name__ == "__main__":
    sys.exit(main())
