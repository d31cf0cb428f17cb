"""
Rate Limiter for Gemini TTS requests
분당 쿼터를 공유하는 합성 호출을 위한 슬라이딩 윈도우 리미터
"""
import time
from collections import deque
from threading import Lock
from typing import Callable, Optional
from .constants import TTS_QUOTA_RPM

WINDOW_SECONDS = 60.0


class RateLimiter:
    """
    Sliding-window limiter shared by every synthesis call in the process.

    Conversation jobs run sequentially internally but several jobs may run at
    once, and they all draw from the same per-minute API quota.
    """

    def __init__(
        self,
        quota_rpm: float = TTS_QUOTA_RPM,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            quota_rpm: 분당 요청 한도 (0 이하이면 제한 없음)
            clock: 현재 시각 함수 (테스트용 주입)
            sleep: 대기 함수 (테스트용 주입)
        """
        self.quota_rpm = quota_rpm
        self._clock = clock
        self._sleep = sleep
        self._request_times: deque = deque()
        self._lock = Lock()

    def _evict(self, now: float) -> None:
        while self._request_times and self._request_times[0] <= now - WINDOW_SECONDS:
            self._request_times.popleft()

    def wait_if_needed(self) -> float:
        """
        Block until another request fits in the current window, then record it.

        Returns:
            Seconds spent waiting.
        """
        if self.quota_rpm <= 0:
            return 0.0

        waited = 0.0
        with self._lock:
            now = self._clock()
            self._evict(now)

            if len(self._request_times) >= max(1, int(self.quota_rpm)):
                oldest = self._request_times[0]
                wait_time = oldest + WINDOW_SECONDS - now
                if wait_time > 0:
                    self._sleep(wait_time)
                    waited = wait_time
                now = self._clock()
                self._evict(now)

            self._request_times.append(now)
        return waited

    def reset(self) -> None:
        """Drop all recorded requests (e.g. after the backend reports a quota reset)."""
        with self._lock:
            self._request_times.clear()

    def get_current_count(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return len(self._request_times)


_default_rate_limiter: Optional[RateLimiter] = None


def get_default_rate_limiter() -> RateLimiter:
    """
    전역 RateLimiter 인스턴스를 반환합니다.

    Returns:
        전역 RateLimiter 인스턴스
    """
    global _default_rate_limiter
    if _default_rate_limiter is None:
        from ..config import TTS_QUOTA_RPM_SETTING
        _default_rate_limiter = RateLimiter(quota_rpm=TTS_QUOTA_RPM_SETTING)
    return _default_rate_limiter


def set_default_rate_limiter(limiter: RateLimiter) -> None:
    """
    전역 RateLimiter 인스턴스를 설정합니다.

    Args:
        limiter: RateLimiter 인스턴스
    """
    global _default_rate_limiter
    _default_rate_limiter = limiter
