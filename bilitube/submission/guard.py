"""
按客户端的固定窗口限流：每个客户端每个窗口最多 N 次提交。
"""
import time
from typing import Dict, NamedTuple, Optional

from ..core.exceptions import RateLimitExceeded
from ..infrastructure.utils.time_util import Clock


class _Window(NamedTuple):
    count: int
    reset_at: float


class SubmissionRateGuard:
    def __init__(
        self,
        limit: int = 10,
        window: float = 3600,
        clock: Optional[Clock] = None,
        prune_every: int = 100,
    ):
        self.limit = limit
        self.window = window
        self._clock = clock or time.monotonic
        self._windows: Dict[str, _Window] = {}
        # 每 prune_every 次 check 清理一次过期窗口
        self.prune_every = prune_every
        self._checks = 0

    def check(self, client_id: str) -> None:
        """
        记录一次提交。

        Raises:
            RateLimitExceeded: 当前窗口已达上限
        """
        self._checks += 1
        if self._checks % self.prune_every == 0:
            self.prune()

        now = self._clock()
        current = self._windows.get(client_id)

        if current is None or now >= current.reset_at:
            self._windows[client_id] = _Window(count=1, reset_at=now + self.window)
            return

        if current.count >= self.limit:
            raise RateLimitExceeded(client_id, retry_after=current.reset_at - now)

        self._windows[client_id] = current._replace(count=current.count + 1)

    def prune(self) -> None:
        """丢弃已过期的窗口"""
        now = self._clock()
        self._windows = {k: w for k, w in self._windows.items() if now < w.reset_at}
