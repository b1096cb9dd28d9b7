"""
Configuration-driven service directory.

Resolves a service id (or an alert category) to its base URL and active
flag. The directory itself is managed outside this package; here it is a
read-only snapshot loaded from settings.
"""

from typing import Dict, Iterable, Optional
from alert_relay.core.models import ServiceTarget
from alert_relay.observability.logging_setup import get_logger
from alert_relay.settings import ServiceEntry

log = get_logger("alert_relay.directory")

class StaticServiceDirectory:
    """설정 기반 서비스 디렉터리"""

    def __init__(self, entries: Iterable[ServiceEntry]):
        self._entries: Dict[str, ServiceEntry] = {e.id: e for e in entries}
        log.info(f"서비스 디렉터리 로드됨 count:{len(self._entries)}")

    async def lookup(self, service_id: str) -> Optional[ServiceTarget]:
        entry = self._entries.get(service_id)
        if entry is None:
            return None
        return ServiceTarget(id=entry.id, name=entry.name, base_url=entry.base_url, is_active=entry.is_active)

    async def lookup_by_category(self, category: str) -> Optional[ServiceTarget]:
        """카테고리를 담당하는 첫 번째 활성 서비스"""
        for entry in self._entries.values():
            if category in entry.categories and entry.is_active:
                return await self.lookup(entry.id)
        return None
