"""
Backoff utilities for the relay redelivery worker.

The request path never retries; only the opt-in redelivery worker
spaces its attempts using these helpers.
"""

def backoff_delay(attempt: int, base: float, max_delay: float) -> float:
    """
    지수 백오프 지연 시간을 계산합니다.

    Args:
        attempt: 현재 시도 횟수 (1부터 시작)
        base: 기본 지연 시간 (초)
        max_delay: 최대 지연 시간 (초)

    Returns:
        지연 시간 (초)
    """
    return min(max_delay, base * (2 ** max(0, attempt - 1)))
