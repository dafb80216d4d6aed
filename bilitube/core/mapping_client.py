"""
Mapping Client: 读取已发布的索引与分片文件（CDN 优先，失败后回退到 GitHub raw）。

调用方构造一次并显式传递给所有使用者；缓存 TTL 与时钟均可注入。
"""
import json
import logging
import time
from typing import Any, Dict, NamedTuple, Optional, Sequence

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config.settings import settings
from ..infrastructure.utils.time_util import Clock
from .exceptions import DataFetchError
from .models import MappingIndex, UserMapping

logger = logging.getLogger(__name__)

B2Y = "b2y"
Y2B = "y2b"


class CachedData(NamedTuple):
    data: Any
    timestamp: float


class MappingClient:
    def __init__(
        self,
        base_urls: Optional[Sequence[str]] = None,
        ttl: float = settings.MAPPING_CACHE_TTL,
        clock: Optional[Clock] = None,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_urls = list(base_urls or (settings.MAPPING_CDN_BASE_URL, settings.MAPPING_RAW_BASE_URL))
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self.timeout = timeout
        self._transport = transport
        self._indexes: Dict[str, CachedData] = {}
        self._mappings: Dict[str, CachedData] = {}

    def _is_valid(self, cached: Optional[CachedData]) -> bool:
        return cached is not None and self._clock() - cached.timestamp < self.ttl

    async def _fetch_with_fallback(self, path: str) -> Any:
        last_error = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for base_url in self.base_urls:
                url = f"{base_url.rstrip('/')}/{path}"
                try:
                    response = await client.get(url)
                    if response.status_code == 200:
                        return response.json()
                    last_error = f"HTTP {response.status_code}"
                except (httpx.HTTPError, json.JSONDecodeError) as e:
                    last_error = str(e)
                logger.warning(f"[MappingClient] Fetch {url} failed ({last_error}), trying next source")
        raise DataFetchError(f"Failed to fetch {path}: {last_error}")

    async def get_index(self, direction: str) -> MappingIndex:
        cached = self._indexes.get(direction)
        if self._is_valid(cached):
            return cached.data

        index = await self._fetch_with_fallback(f"{direction}/index.json")
        if not isinstance(index, dict):
            raise DataFetchError(f"Malformed index for {direction}")
        self._indexes[direction] = CachedData(index, self._clock())
        return index

    async def _lookup(self, direction: str, key: str) -> Optional[UserMapping]:
        cache_key = f"{direction}:{key}"
        cached = self._mappings.get(cache_key)
        if self._is_valid(cached):
            return cached.data

        try:
            index = await self.get_index(direction)
            shard_path = index.get(key)
            if not shard_path:
                return None
            mapping = UserMapping.from_record(await self._fetch_with_fallback(f"{direction}/{shard_path}"))
        except (DataFetchError, PydanticValidationError) as e:
            logger.error(f"[MappingClient] Failed to get mapping for {cache_key}: {e}")
            return None

        self._mappings[cache_key] = CachedData(mapping, self._clock())
        return mapping

    async def get_mapping_by_bili_uid(self, uid: str) -> Optional[UserMapping]:
        return await self._lookup(B2Y, uid)

    async def get_mapping_by_youtube_id(self, channel_id: str) -> Optional[UserMapping]:
        return await self._lookup(Y2B, channel_id)

    def clear_cache(self) -> None:
        self._indexes.clear()
        self._mappings.clear()
