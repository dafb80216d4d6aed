"""
YouTube Data API 配额跟踪。

免费额度 10,000 单位/天：search 约 100 单位，channels / videos / commentThreads 各 1 单位。
"""
import time
from typing import Dict, Optional

from ...infrastructure.utils.time_util import Clock

OPERATION_COSTS: Dict[str, int] = {
    "search": 100,
    "channels": 1,
    "videos": 1,
    "comments": 1,
}

RESET_INTERVAL = 24 * 60 * 60


class QuotaManager:
    def __init__(self, daily_limit: int = 10000, clock: Optional[Clock] = None):
        self.daily_limit = daily_limit
        self._clock = clock or time.monotonic
        self.used_quota = 0
        self._last_reset = self._clock()

    def _check_reset(self) -> None:
        now = self._clock()
        if now - self._last_reset >= RESET_INTERVAL:
            self.used_quota = 0
            self._last_reset = now

    def has_quota(self, operation: str) -> bool:
        self._check_reset()
        return self.used_quota + OPERATION_COSTS[operation] <= self.daily_limit

    def track_usage(self, operation: str) -> None:
        self._check_reset()
        self.used_quota += OPERATION_COSTS[operation]

    @property
    def remaining(self) -> int:
        self._check_reset()
        return self.daily_limit - self.used_quota
