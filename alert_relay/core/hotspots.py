"""
Density-based hotspot detection.

For every point, neighbours within the radius are counted (the point
itself included). Points reaching ``min_points`` become candidate
centers, and candidates are accepted greedily in input order unless they
fall within the radius of an already accepted center. One physical cluster
can still yield several hotspots when its density is uneven; that is an
accepted approximation. Cost is O(n^2) in the number of points.
"""

from typing import List, Sequence
from alert_relay.common.geo import haversine_distance_km
from .models import Hotspot

def find_hotspots(points: Sequence[Sequence[float]], radius_km: float, min_points: int) -> List[Hotspot]:
    """
    좌표 스냅샷에서 핫스팟 중심을 찾습니다.

    Args:
        points: [경도, 위도] 목록
        radius_km: 반경 (킬로미터)
        min_points: 핫스팟이 되기 위한 최소 점 수 (자기 자신 포함)

    Returns:
        입력 순서대로 채택된 핫스팟 목록 (zones는 비어 있음)
    """
    hotspots: List[Hotspot] = []

    for point in points:
        count = sum(1 for other in points if haversine_distance_km(point, other) <= radius_km)
        if count < min_points:
            continue

        # 이미 채택된 중심과 겹치면 버림
        if any(haversine_distance_km(point, h.center) <= radius_km for h in hotspots):
            continue

        hotspots.append(Hotspot(center=[float(point[0]), float(point[1])],
                                density=count,
                                radius_km=radius_km))

    return hotspots
