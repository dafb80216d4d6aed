"""
B站候选用户扫描：拉取榜单，剔除已有映射的用户，并在多个榜单之间去重。
"""
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from ..fetchers.base import BilibiliSource
from ..infrastructure.rate_limiter import RateLimiter
from ..infrastructure.utils.time_util import utc_now_iso
from .models import BilibiliUser, HotRankingType, ScannerConfig, ScanResult
from .shard_store import ShardStores

logger = logging.getLogger(__name__)


class UserScanner:
    """
    Bilibili user scanner for automated discovery.

    All list fetches go through one RateLimiter so they never overlap.
    """

    def __init__(
        self,
        bili_api: BilibiliSource,
        stores: ShardStores,
        rate_limiter: Optional[RateLimiter] = None,
        delay_ms: int = 1000,
    ):
        self.bili_api = bili_api
        self.stores = stores
        self.rate_limiter = rate_limiter or RateLimiter(delay_ms)

    async def is_cold_start(self) -> bool:
        """两个方向都还没有索引文件时为冷启动"""
        b2y_index = await self.stores.b2y.read_index()
        y2b_index = await self.stores.y2b.read_index()
        return b2y_index is None and y2b_index is None

    async def _scan(
        self,
        ranking_type: HotRankingType,
        fetch: Callable[[], Awaitable[List[BilibiliUser]]],
    ) -> ScanResult:
        logger.info(f"[UserScanner] Scanning {ranking_type.value} list...")
        users = await self.rate_limiter.execute(fetch)
        new_users = await self.filter_new_users(users)
        logger.info(f"[UserScanner] {ranking_type.value}: {len(users)} scanned, {len(new_users)} new")
        return ScanResult(
            type=ranking_type,
            users=new_users,
            scanned_at=utc_now_iso(),
            total_scanned=len(users),
            new_users=len(new_users),
        )

    async def scan_must_watch_list(self) -> ScanResult:
        """入站必刷榜"""
        return await self._scan(HotRankingType.MUST_WATCH, self.bili_api.get_must_watch_list)

    async def scan_hot_rankings(self) -> ScanResult:
        return await self._scan(HotRankingType.HOT, self.bili_api.get_hot_rankings)

    async def scan_top100(self) -> ScanResult:
        """百大UP主"""
        return await self._scan(HotRankingType.TOP_100, self.bili_api.get_top100_creators)

    async def filter_new_users(self, users: Iterable[BilibiliUser]) -> List[BilibiliUser]:
        """剔除在 b2y 中已有映射文件的用户，保持原顺序"""
        new_users = []
        for user in users:
            if not await self.stores.b2y.has(user.uid):
                new_users.append(user)
        return new_users

    @staticmethod
    def deduplicate_users(results: Iterable[ScanResult]) -> List[BilibiliUser]:
        """按 uid 保留首次出现，顺序依次为结果顺序、榜单内顺序"""
        seen_uids = set()
        unique_users = []
        for result in results:
            for user in result.users:
                if user.uid not in seen_uids:
                    seen_uids.add(user.uid)
                    unique_users.append(user)
        return unique_users

    async def run_daily_scan(self, config: ScannerConfig) -> List[ScanResult]:
        """
        冷启动：先扫百大，再扫入站必刷；否则只扫热门排行。
        """
        if config.cold_start:
            logger.info("[UserScanner] Cold start detected - scanning top 100 and must-watch list")
            return [await self.scan_top100(), await self.scan_must_watch_list()]

        logger.info("[UserScanner] Regular scan - scanning hot rankings")
        return [await self.scan_hot_rankings()]
