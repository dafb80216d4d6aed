"""
平台客户端接口定义。

Verifier 与 Scanner 只依赖这里的抽象，测试中可以用 AsyncMock 替换。
"""
from abc import ABC, abstractmethod
from typing import List

from ..core.models import BilibiliUser, BilibiliVideo, YouTubeChannel, YouTubeVideo


class BilibiliSource(ABC):
    """B站数据源"""

    @abstractmethod
    async def get_user_info(self, uid: str) -> BilibiliUser:
        pass

    @abstractmethod
    async def get_user_videos(self, uid: str, page: int = 1, page_size: int = 30) -> List[BilibiliVideo]:
        pass

    @abstractmethod
    async def get_hot_rankings(self) -> List[BilibiliUser]:
        pass

    @abstractmethod
    async def get_must_watch_list(self) -> List[BilibiliUser]:
        pass

    @abstractmethod
    async def get_top100_creators(self) -> List[BilibiliUser]:
        pass


class YouTubeSource(ABC):
    """YouTube 数据源"""

    @abstractmethod
    async def get_channel(self, channel_id: str) -> YouTubeChannel:
        pass

    @abstractmethod
    async def get_channel_videos(self, channel_id: str, max_results: int = 10) -> List[YouTubeVideo]:
        pass

    @abstractmethod
    async def search_channels(self, query: str, max_results: int = 10) -> List[YouTubeChannel]:
        pass
