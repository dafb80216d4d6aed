import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from ..config.settings import settings
from ..core.models import UserMapping
from ..core.pipeline import VerifyRunner, parse_work_items, results_to_output, run_scan
from ..core.scanner import UserScanner
from ..core.shard_store import ShardStores, create_shard_stores
from ..core.verifier import UserVerifier
from ..fetchers.bilibili.client import BilibiliClient
from ..fetchers.youtube.client import YouTubeClient
from ..fetchers.youtube.quota import QuotaManager

logger = logging.getLogger(__name__)


def _write_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


async def run_scan_command(stores: ShardStores, output: Path) -> None:
    bili_api = BilibiliClient(settings.bilibili_sessdata, timeout=settings.http_timeout)
    scanner = UserScanner(bili_api, stores, delay_ms=settings.SCANNER_DELAY_MS)
    try:
        result = await run_scan(scanner, max_users=settings.SCANNER_MAX_USERS)
    finally:
        await scanner.rate_limiter.aclose()
    _write_json(output, result)
    print(f"✅ Scan complete: {len(result['uniqueUsers'])} new users -> {output}")


async def run_verify_command(stores: ShardStores, users_json: str, output: Path) -> None:
    if not settings.youtube_api_key:
        raise SystemExit("YOUTUBE_API_KEY environment variable is required")

    items = parse_work_items(users_json)
    bili_api = BilibiliClient(settings.bilibili_sessdata, timeout=settings.http_timeout)
    yt_api = YouTubeClient(
        settings.youtube_api_key,
        timeout=settings.http_timeout,
        quota=QuotaManager(settings.YOUTUBE_DAILY_QUOTA),
    )
    runner = VerifyRunner(
        UserVerifier(bili_api, yt_api),
        stores,
        delay_ms=settings.VERIFY_DELAY_MS,
        search_candidates=settings.CHANNEL_SEARCH_CANDIDATES,
    )
    results = await runner.run(items)
    _write_json(output, results_to_output(results))

    success_count = sum(1 for r in results if r.success)
    print(f"✅ Verification complete: {success_count}/{len(results)} successful -> {output}")


async def run_rebuild_command(stores: ShardStores) -> None:
    b2y_index, y2b_index = await stores.rebuild_indexes()
    print(f"✅ Indexes rebuilt: b2y={len(b2y_index)} keys, y2b={len(y2b_index)} keys")


async def lookup(stores: ShardStores, identifier: str) -> Optional[UserMapping]:
    """按任一平台的标识符查找映射（先 b2y 后 y2b）"""
    return await stores.b2y.read(identifier) or await stores.y2b.read(identifier)


async def run_lookup_command(stores: ShardStores, identifier: str) -> None:
    mapping = await lookup(stores, identifier)
    if mapping is None:
        print(f"⚠️  No mapping found for {identifier}")
        return
    print(json.dumps(mapping.to_record(), ensure_ascii=False, indent=2))


def _load_users_json(users_file: Optional[str]) -> str:
    if users_file:
        return Path(users_file).read_text(encoding="utf-8")
    users_json = os.getenv("USERS_JSON")
    if not users_json:
        raise SystemExit("USERS_JSON environment variable (or --users FILE) is required")
    return users_json


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{settings.project_name} identity reconciliation CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  python -m bilitube.interface.cli scan
  python -m bilitube.interface.cli verify --users users.json
  python -m bilitube.interface.cli rebuild-index
  python -m bilitube.interface.cli lookup 123456
        """,
    )
    parser.add_argument("--data-dir", default=settings.data_dir, help="映射数据根目录（包含 b2y/ 与 y2b/）")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出 DEBUG 日志")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="扫描 B站榜单，输出尚无映射的候选用户")
    scan.add_argument("--output", default="scan-results.json")

    verify = sub.add_parser("verify", help="批量验证工作项并写入两个方向的分片")
    verify.add_argument("--users", default=None, help="工作项 JSON 文件；缺省时读取 USERS_JSON 环境变量")
    verify.add_argument("--output", default="verify-results.json")

    sub.add_parser("rebuild-index", help="全量重建 b2y / y2b 索引")

    lookup_cmd = sub.add_parser("lookup", help="按 B站 UID 或 YouTube 频道 ID 查找映射")
    lookup_cmd.add_argument("identifier")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # Windows 兼容性处理
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")

    stores = create_shard_stores(args.data_dir)

    if args.command == "scan":
        asyncio.run(run_scan_command(stores, Path(args.output)))
    elif args.command == "verify":
        asyncio.run(run_verify_command(stores, _load_users_json(args.users), Path(args.output)))
    elif args.command == "rebuild-index":
        asyncio.run(run_rebuild_command(stores))
    elif args.command == "lookup":
        asyncio.run(run_lookup_command(stores, args.identifier))


if __name__ == "__main__":
    main()
