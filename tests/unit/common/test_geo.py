"""
Geo 유틸리티 단위 테스트

거리 계산, point-in-polygon, 링 검증, 면적 근사를 테스트합니다.
"""

import math
import pytest
from alert_relay.common.geo import (
    haversine_distance, haversine_distance_km,
    point_in_polygon, polygon_area_km2, ring_problems, validate_coordinates,
    validate_point,
)
from alert_relay.common.retry import backoff_delay


SQUARE = [[14.6, -17.5], [14.8, -17.5], [14.8, -17.3], [14.6, -17.3], [14.6, -17.5]]


class TestHaversine:
    """Haversine 거리 테스트"""

    def test_same_point_is_zero(self):
        assert haversine_distance(37.5665, 126.9780, 37.5665, 126.9780) == 0.0

    def test_seoul_busan(self):
        """서울-부산 약 325km"""
        distance = haversine_distance(37.5665, 126.9780, 35.1796, 129.0756)
        assert 320 < distance < 330

    def test_one_degree_latitude(self):
        distance = haversine_distance_km([0.0, 0.0], [0.0, 1.0])
        assert distance == pytest.approx(6371 * math.pi / 180, rel=1e-9)

    def test_lon_lat_order(self):
        """[경도, 위도] 순서를 따른다"""
        a = [14.70, -17.43]
        b = [14.71, -17.43]
        assert haversine_distance_km(a, b) == pytest.approx(haversine_distance(-17.43, 14.70, -17.43, 14.71))

    def test_antipodal_points(self):
        distance = haversine_distance_km([0.0, 0.0], [180.0, 0.0])
        assert distance == pytest.approx(math.pi * 6371, rel=1e-9)


class TestPointInPolygon:
    """Ray casting 테스트"""

    def test_center_inside(self):
        assert point_in_polygon([14.70, -17.43], SQUARE) is True

    def test_outside(self):
        assert point_in_polygon([15.0, -17.43], SQUARE) is False
        assert point_in_polygon([14.70, -18.0], SQUARE) is False

    def test_open_ring_equivalent(self):
        """닫는 꼭짓점이 없어도 결과가 같다"""
        assert point_in_polygon([14.70, -17.43], SQUARE[:-1]) is True

    def test_concave_polygon(self):
        # ㄷ자 모양: 오목한 부분은 외부
        ring = [[0, 0], [3, 0], [3, 1], [1, 1], [1, 2], [3, 2], [3, 3], [0, 3], [0, 0]]
        assert point_in_polygon([0.5, 1.5], ring) is True
        assert point_in_polygon([2.0, 1.5], ring) is False

    @pytest.mark.parametrize("ring", [
        [],
        [[0, 0]],
        [[0, 0], [1, 1]],
        [[0, 0], [1, 1], [0, 0]],
        [[0, 0], [1, 1], [1, 1], [0, 0]],
    ])
    def test_degenerate_ring_is_false(self, ring):
        assert point_in_polygon([0.5, 0.5], ring) is False

    def test_malformed_input_never_raises(self):
        assert point_in_polygon([0.5, 0.5], [["a", "b"], [1, 1], [2, 2]]) is False
        assert point_in_polygon([0.5, 0.5], None) is False
        assert point_in_polygon(None, SQUARE) is False


class TestValidation:
    """좌표/링 검증 테스트"""

    @pytest.mark.parametrize("lat,lon,expected", [
        (0, 0, True),
        (90, 180, True),
        (-90, -180, True),
        (90.1, 0, False),
        (0, 180.1, False),
        (float("nan"), 0, False),
        ("x", 0, False),
    ])
    def test_validate_coordinates(self, lat, lon, expected):
        assert validate_coordinates(lat, lon) is expected

    def test_validate_point(self):
        assert validate_point([14.70, -17.43]) is True
        assert validate_point((14.70, -17.43)) is True
        assert validate_point([14.70]) is False
        assert validate_point([14.70, -17.43, 3.0]) is False
        assert validate_point([True, False]) is False
        assert validate_point("14.7,-17.4") is False
        assert validate_point([200, 0]) is False

    def test_valid_ring(self):
        assert ring_problems(SQUARE) == []

    def test_ring_not_closed(self):
        assert "ring_not_closed" in ring_problems(SQUARE[:-1])

    def test_two_distinct_vertices(self):
        problems = ring_problems([[0, 0], [1, 1], [1, 1], [0, 0]])
        assert "too_few_distinct_vertices" in problems

    def test_too_few_points(self):
        assert "too_few_points" in ring_problems([[0, 0], [1, 1], [0, 0]])

    def test_malformed_vertices(self):
        assert ring_problems([["a"], [1, 1]]) == ["malformed_vertices"]

    def test_invalid_coordinates(self):
        ring = [[0, 0], [200, 0], [0, 1], [0, 0]]
        assert "invalid_coordinates" in ring_problems(ring)


class TestArea:
    """면적 근사 테스트"""

    def test_degenerate_area_is_zero(self):
        assert polygon_area_km2([[0, 0], [1, 1], [0, 0]]) == 0.0

    def test_square_area_positive(self):
        area = polygon_area_km2(SQUARE)
        assert area == pytest.approx(0.04 * 6371 ** 2 * math.pi / 180, rel=1e-6)

    def test_orientation_independent(self):
        assert polygon_area_km2(SQUARE) == pytest.approx(polygon_area_km2(list(reversed(SQUARE))))


class TestBackoff:
    """백오프 계산 테스트"""

    def test_exponential_growth(self):
        assert backoff_delay(1, 5, 300) == 5
        assert backoff_delay(2, 5, 300) == 10
        assert backoff_delay(3, 5, 300) == 20

    def test_capped(self):
        assert backoff_delay(20, 5, 300) == 300
