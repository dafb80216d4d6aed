"""
Pipeline driver: scan -> verify -> persist to both stores -> rebuild both indexes.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Sequence

from pydantic import TypeAdapter

from .exceptions import StorageIOError
from .models import ScannerConfig, VerificationResult, WorkItem
from .scanner import UserScanner
from .shard_store import ShardStores
from .verifier import UserVerifier

logger = logging.getLogger(__name__)

_WORK_ITEMS = TypeAdapter(List[WorkItem])


def parse_work_items(raw: str) -> List[WorkItem]:
    """解析 USERS_JSON：[{"uid": "...", "ytChannelId": "...", "issueNumber": 1}, ...]"""
    return _WORK_ITEMS.validate_python(json.loads(raw))


class VerifyRunner:
    """
    批量验证工作流。

    每个工作项独立处理：验证错误在 Verifier 内部降级为 Level 4，
    写入失败只放弃当前映射，不影响已写入的其他映射。
    所有写入完成之后才重建索引。
    """

    def __init__(
        self,
        verifier: UserVerifier,
        stores: ShardStores,
        delay_ms: int = 1000,
        search_candidates: int = 5,
    ):
        self.verifier = verifier
        self.stores = stores
        self.delay = delay_ms / 1000
        self.search_candidates = search_candidates

    async def verify_item(self, item: WorkItem) -> VerificationResult:
        logger.info(f"[VerifyRunner] Verifying {item.uid} -> {item.yt_channel_id or 'searching...'}")

        if item.yt_channel_id:
            result = await self.verifier.verify(item.uid, item.yt_channel_id)
        else:
            try:
                result = await self.verifier.find_channel(item.uid, self.search_candidates)
            except Exception as e:
                logger.warning(f"[VerifyRunner] Channel search failed for {item.uid}: {e}")
                result = VerificationResult.manual_review(f"Channel search failed: {e}")
            if result is None:
                logger.info(f"[VerifyRunner] No YouTube channel found for {item.uid}")
                result = VerificationResult.manual_review("No YouTube channel found")

        if result.success and result.mapping:
            result.metadata.issue_number = item.issue_number
            result.mapping.metadata.issue_number = item.issue_number
            try:
                await self.stores.save(result.mapping)
            except StorageIOError as e:
                logger.error(f"[VerifyRunner] Failed to persist mapping for {item.uid}: {e}")
                result = VerificationResult.manual_review(f"Storage error: {e}")
            else:
                logger.info(
                    f"[VerifyRunner] Verified: {result.mapping.bilibili_username} -> "
                    f"{result.mapping.youtube_channel_name} (Level {result.level})"
                )
        else:
            logger.info(f"[VerifyRunner] Verification failed for {item.uid}: {result.reasons[-1:]}")

        result.issue_number = item.issue_number
        return result

    async def run(self, items: Sequence[WorkItem]) -> List[VerificationResult]:
        results = []
        for i, item in enumerate(items):
            results.append(await self.verify_item(item))
            if i < len(items) - 1 and self.delay > 0:
                await asyncio.sleep(self.delay)

        # 写入全部完成后再重建索引
        logger.info("[VerifyRunner] Rebuilding indexes...")
        await self.stores.rebuild_indexes()

        success_count = sum(1 for r in results if r.success)
        logger.info(f"[VerifyRunner] Verification complete: {success_count}/{len(results)} successful")
        return results


async def run_scan(scanner: UserScanner, max_users: int = 100) -> Dict[str, Any]:
    """
    执行一次日常扫描，返回可直接写入 scan-results.json 的结构。
    """
    cold_start = await scanner.is_cold_start()
    logger.info(f"[Pipeline] Running scanner (cold start: {cold_start})")

    config = ScannerConfig(cold_start=cold_start, max_users=max_users, delay_ms=int(scanner.rate_limiter.delay * 1000))
    results = await scanner.run_daily_scan(config)
    unique_users = scanner.deduplicate_users(results)[: config.max_users]
    logger.info(f"[Pipeline] Scanned {len(unique_users)} unique new users")

    return {
        "coldStart": cold_start,
        "results": [r.to_output() for r in results],
        "uniqueUsers": [{"uid": u.uid, "name": u.name, "follower": u.follower} for u in unique_users],
    }


def results_to_output(results: Iterable[VerificationResult]) -> List[Dict[str, Any]]:
    return [r.to_output() for r in results]
