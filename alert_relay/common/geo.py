"""
Geographic utilities for the alert relay service.

Distance calculation, point-in-polygon testing and ring validation.
Points and ring vertices are always ``[lon, lat]`` pairs.

Containment is a linear scan over vertices and callers scan every zone;
there is no spatial index.
"""

import math
from typing import List, Optional, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0

Point = Sequence[float]

def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    두 지점 간의 Haversine 거리를 계산합니다 (킬로미터).

    Args:
        lat1: 첫 번째 지점의 위도
        lon1: 첫 번째 지점의 경도
        lat2: 두 번째 지점의 위도
        lon2: 두 번째 지점의 경도

    Returns:
        두 지점 간의 거리 (킬로미터)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # 부동소수 오차로 1을 살짝 넘는 경우 방지
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM

def haversine_distance_km(a: Point, b: Point) -> float:
    """[경도, 위도] 두 점 사이의 거리 (킬로미터)."""
    return haversine_distance(a[1], a[0], b[1], b[0])

def _as_ring(ring) -> Optional[List[Tuple[float, float]]]:
    """꼭짓점 목록을 (경도, 위도) 튜플 목록으로 변환합니다. 형식 오류면 None."""
    try:
        return [(float(v[0]), float(v[1])) for v in ring]
    except (TypeError, ValueError, IndexError):
        return None

def point_in_polygon(point: Point, ring) -> bool:
    """
    점이 폴리곤 내부에 있는지 Ray casting(even-odd) 알고리즘으로 확인합니다.

    링은 닫혀 있지 않은 것으로 취급하며 마지막 꼭짓점과 첫 꼭짓점을 잇는
    변까지 검사합니다. 닫는 꼭짓점이 중복되어도 길이 0인 변이 되어 결과에
    영향이 없습니다.

    Args:
        point: 확인할 점 (경도, 위도)
        ring: 폴리곤 꼭짓점 [[경도, 위도], ...]

    Returns:
        내부이면 True. 서로 다른 꼭짓점이 3개 미만이거나 형식이 잘못된
        입력은 예외 없이 False.
    """
    vertices = _as_ring(ring)
    if vertices is None or len(set(vertices)) < 3:
        return False
    try:
        lon, lat = float(point[0]), float(point[1])
    except (TypeError, ValueError, IndexError):
        return False

    inside = False
    n = len(vertices)
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        # (yi > lat) != (yj > lat) 이면 yi != yj 이므로 0 나눗셈 없음
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lon < x_cross:
                inside = not inside
        j = i
    return inside

def validate_coordinates(lat: float, lon: float) -> bool:
    """
    좌표가 유효한지 확인합니다.

    Args:
        lat: 위도
        lon: 경도

    Returns:
        좌표가 유효하면 True
    """
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180

def validate_point(point) -> bool:
    """[경도, 위도] 쌍이 유효한지 확인합니다."""
    if not isinstance(point, (list, tuple)) or len(point) != 2:
        return False
    if any(isinstance(v, bool) for v in point):
        return False
    return validate_coordinates(point[1], point[0])

def ring_problems(ring) -> List[str]:
    """
    존 경계 링의 문제점 목록을 반환합니다. 빈 목록이면 유효합니다.

    링은 닫혀 있어야 하고(첫 꼭짓점 == 마지막 꼭짓점), 4개 이상의 점과
    3개 이상의 서로 다른 꼭짓점을 가져야 합니다.
    """
    vertices = _as_ring(ring)
    if vertices is None:
        return ["malformed_vertices"]
    problems = []
    if len(vertices) < 4:
        problems.append("too_few_points")
    if len(set(vertices)) < 3:
        problems.append("too_few_distinct_vertices")
    if vertices and vertices[0] != vertices[-1]:
        problems.append("ring_not_closed")
    if not all(validate_coordinates(lat, lon) for lon, lat in vertices):
        problems.append("invalid_coordinates")
    return problems

def polygon_area_km2(ring) -> float:
    """
    폴리곤 면적의 근사값 (제곱킬로미터).

    경위도 평면에서 신발끈 공식을 적용한 뒤 R² * π / 180 / 2 로 환산합니다.
    정밀 측지 면적이 아니며 퇴화된 링은 0을 반환합니다.
    """
    vertices = _as_ring(ring)
    if vertices is None or len(set(vertices)) < 3:
        return 0.0

    area = 0.0
    for (x1, y1), (x2, y2) in zip(vertices, vertices[1:]):
        area += (x2 - x1) * (y2 + y1)

    return abs(area) * EARTH_RADIUS_KM ** 2 * math.pi / 180 / 2
