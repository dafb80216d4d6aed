import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from ...core.exceptions import DataFetchError
from ...core.models import BilibiliOfficial, BilibiliUser, BilibiliVideo
from ..base import BilibiliSource
from . import wbi

logger = logging.getLogger(__name__)

PLATFORM = "bilibili"


def _as_int(value: Any) -> int:
    # 统计字段偶尔返回 "--" 之类的占位符
    return value if isinstance(value, int) else 0


class BilibiliClient(BilibiliSource):
    """
    B站 Web API 客户端。

    提供 SESSDATA 时对请求做 WBI 签名并携带 Cookie；否则匿名、不签名。
    """

    def __init__(
        self,
        sessdata: Optional[str] = None,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sessdata = sessdata or None
        self.timeout = timeout
        self._transport = transport
        self._host = "https://api.bilibili.com"
        self._wbi_keys: Optional[Tuple[str, str]] = None
        self.headers = {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                          "(KHTML, like Gecko) Chrome/120.0 Safari/537.36",
            "Referer": "https://www.bilibili.com",
            "Accept": "application/json, text/plain, */*",
        }
        if self.sessdata:
            self.headers["Cookie"] = f"SESSDATA={self.sessdata}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, headers=self.headers)

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict:
        async with self._client() as client:
            try:
                response = await client.get(url, params=params)
            except httpx.HTTPError as e:
                logger.error(f"[BilibiliClient] Request failed: {url} {e}")
                raise DataFetchError(f"Request failed: {e}", platform=PLATFORM) from e

        if response.status_code != 200:
            logger.error(f"[BilibiliClient] Non-200 response: status={response.status_code} url={url}")
            raise DataFetchError(f"HTTP {response.status_code}: {response.text[:200]}", platform=PLATFORM)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            logger.error(f"[BilibiliClient] JSON decode error. Body Preview: {response.text[:500]}")
            raise DataFetchError("JSON decode error", platform=PLATFORM) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(1),
        retry=retry_if_exception_type(DataFetchError),
        reraise=True,
    )
    async def _get_wbi_keys(self) -> Tuple[str, str]:
        if self._wbi_keys:
            return self._wbi_keys
        # nav 未登录时 code=-101，但仍然返回 wbi_img
        data = await self._get_json(f"{self._host}/x/web-interface/nav")
        wbi_img = (data.get("data") or {}).get("wbi_img") or {}
        img_url, sub_url = wbi_img.get("img_url"), wbi_img.get("sub_url")
        if not img_url or not sub_url:
            raise DataFetchError("wbi_img missing from nav response", platform=PLATFORM)
        self._wbi_keys = (wbi.key_from_url(img_url), wbi.key_from_url(sub_url))
        return self._wbi_keys

    async def request(self, path: str, params: Optional[Dict[str, Any]] = None, signed: bool = True) -> Any:
        """
        发起 GET 请求并返回 data 字段。

        Raises:
            DataFetchError: 传输失败、非 200、JSON 无法解析，或 code != 0
        """
        params = dict(params or {})
        if signed and self.sessdata:
            img_key, sub_key = await self._get_wbi_keys()
            params = wbi.sign_params(params, img_key, sub_key)

        payload = await self._get_json(f"{self._host}{path}", params)
        code = payload.get("code")
        if code != 0:
            logger.error(f"[BilibiliClient.request] {path} err, code={code}, msg={payload.get('message')}")
            raise DataFetchError(f"Bilibili API error: {payload.get('message')}", platform=PLATFORM)
        return payload.get("data")

    async def get_user_info(self, uid: str) -> BilibiliUser:
        path = "/x/space/wbi/acc/info" if self.sessdata else "/x/space/acc/info"
        data = await self.request(path, {"mid": uid})
        # 粉丝数不在 acc/info 中，需要单独查询关系统计
        stat = await self.request("/x/relation/stat", {"vmid": uid}, signed=False)

        official = data.get("official") or {}
        return BilibiliUser(
            uid=str(data["mid"]),
            name=data.get("name", ""),
            face=data.get("face", ""),
            sign=data.get("sign", ""),
            follower=(stat or {}).get("follower"),
            level=data.get("level", 0),
            official=(
                BilibiliOfficial(type=official["type"], desc=official.get("desc", ""))
                if official.get("type", -1) >= 0 else None
            ),
        )

    async def get_user_videos(self, uid: str, page: int = 1, page_size: int = 30) -> List[BilibiliVideo]:
        data = await self.request("/x/space/wbi/arc/search", {"mid": uid, "ps": page_size, "pn": page})
        vlist = ((data or {}).get("list") or {}).get("vlist") or []
        return [
            BilibiliVideo(
                bvid=v["bvid"],
                aid=v.get("aid", 0),
                title=v.get("title", ""),
                pic=v.get("pic", ""),
                author=v.get("author", ""),
                mid=v.get("mid", 0),
                created=v.get("created", 0),
                length=v.get("length", ""),
                play=_as_int(v.get("play")),
                danmaku=_as_int(v.get("video_review")),
            )
            for v in vlist
        ]

    @staticmethod
    def _owners(items: List[Dict]) -> List[BilibiliUser]:
        """从视频列表中提取去重后的 UP 主"""
        users = []
        seen = set()
        for item in items:
            owner = item.get("owner") or {}
            if "mid" not in owner:
                continue
            uid = str(owner["mid"])
            if uid in seen:
                continue
            seen.add(uid)
            users.append(BilibiliUser(uid=uid, name=owner.get("name", ""), face=owner.get("face", "")))
        return users

    async def get_hot_rankings(self) -> List[BilibiliUser]:
        data = await self.request("/x/web-interface/ranking/v2", {"rid": 0, "type": "all"}, signed=False)
        return self._owners((data or {}).get("list") or [])

    async def get_must_watch_list(self) -> List[BilibiliUser]:
        data = await self.request("/x/web-interface/popular/precious", signed=False)
        return self._owners((data or {}).get("list") or [])

    async def get_top100_creators(self) -> List[BilibiliUser]:
        # 百大UP主没有公开接口，退化为热门排行
        return await self.get_hot_rankings()
