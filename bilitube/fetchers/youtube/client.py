import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from ...core.exceptions import DataFetchError
from ...core.models import Thumbnails, YouTubeChannel, YouTubeVideo
from ..base import YouTubeSource
from .quota import QuotaManager

logger = logging.getLogger(__name__)

PLATFORM = "youtube"

# endpoint -> 配额操作类型
_ENDPOINT_OPERATIONS = {
    "search": "search",
    "channels": "channels",
    "videos": "videos",
    "commentThreads": "comments",
}


def _thumbnails(snippet: Dict) -> Thumbnails:
    thumbs = snippet.get("thumbnails") or {}
    return Thumbnails(
        default=(thumbs.get("default") or {}).get("url", ""),
        medium=(thumbs.get("medium") or {}).get("url", ""),
        high=(thumbs.get("high") or {}).get("url", ""),
    )


def _int_or_none(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class YouTubeClient(YouTubeSource):
    """YouTube Data API v3 客户端"""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10,
        quota: Optional[QuotaManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("YouTube API key is required")
        self.api_key = api_key
        self.timeout = timeout
        self.quota = quota or QuotaManager()
        self._transport = transport
        self._base_url = "https://www.googleapis.com/youtube/v3"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(1),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(url, params=params)

    async def request(self, endpoint: str, params: Dict[str, Any]) -> Dict:
        operation = _ENDPOINT_OPERATIONS.get(endpoint, "channels")
        if not self.quota.has_quota(operation):
            raise DataFetchError(f"YouTube quota exhausted ({self.quota.remaining} left)", platform=PLATFORM)

        query = {**params, "key": self.api_key}
        try:
            response = await self._send(f"{self._base_url}/{endpoint}", query)
        except httpx.HTTPError as e:
            logger.error(f"[YouTubeClient] Request failed: {endpoint} {e}")
            raise DataFetchError(f"Request failed: {e}", platform=PLATFORM) from e
        self.quota.track_usage(operation)

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            logger.error(f"[YouTubeClient] JSON decode error. Status: {response.status_code}")
            raise DataFetchError(f"JSON decode error. Status: {response.status_code}", platform=PLATFORM) from e

        if isinstance(data, dict) and data.get("error"):
            message = data["error"].get("message", "unknown error")
            logger.error(f"[YouTubeClient] API error on {endpoint}: {message}")
            raise DataFetchError(f"YouTube API error: {message}", platform=PLATFORM)
        if response.status_code != 200:
            raise DataFetchError(f"HTTP {response.status_code}", platform=PLATFORM)
        return data

    async def get_channel(self, channel_id: str) -> YouTubeChannel:
        data = await self.request("channels", {"part": "snippet,statistics,status", "id": channel_id})
        items = data.get("items") or []
        if not items:
            raise DataFetchError(f"Channel not found: {channel_id}", platform=PLATFORM)

        item = items[0]
        snippet = item.get("snippet") or {}
        statistics = item.get("statistics") or {}
        # 隐藏订阅数的频道不返回 subscriberCount
        subscribers = None if statistics.get("hiddenSubscriberCount") else _int_or_none(statistics.get("subscriberCount"))
        return YouTubeChannel(
            id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            custom_url=snippet.get("customUrl"),
            thumbnails=_thumbnails(snippet),
            subscriber_count=subscribers,
            video_count=_int_or_none(statistics.get("videoCount")),
            verified=bool((item.get("status") or {}).get("isLinked", False)),
        )

    async def search_channels(self, query: str, max_results: int = 10) -> List[YouTubeChannel]:
        data = await self.request("search", {"part": "snippet", "type": "channel", "q": query, "maxResults": max_results})
        channel_ids = [item["id"]["channelId"] for item in data.get("items") or [] if "channelId" in item.get("id", {})]

        channels = []
        for channel_id in channel_ids:
            try:
                channels.append(await self.get_channel(channel_id))
            except DataFetchError as e:
                logger.warning(f"[YouTubeClient] Failed to get channel {channel_id}: {e}")
        return channels

    async def get_channel_videos(self, channel_id: str, max_results: int = 10) -> List[YouTubeVideo]:
        data = await self.request(
            "search",
            {"part": "snippet", "channelId": channel_id, "type": "video", "order": "date", "maxResults": max_results},
        )
        videos = []
        for item in data.get("items") or []:
            snippet = item.get("snippet") or {}
            videos.append(
                YouTubeVideo(
                    id=(item.get("id") or {}).get("videoId", ""),
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    channel_id=snippet.get("channelId", ""),
                    channel_title=snippet.get("channelTitle", ""),
                    published_at=snippet.get("publishedAt", ""),
                    thumbnails=_thumbnails(snippet),
                )
            )
        return videos
