"""
平台侧资料模型：B 站用户 / 视频，YouTube 频道 / 视频。
"""
from typing import Optional

from pydantic import BaseModel, Field


class BilibiliOfficial(BaseModel):
    """B站官方认证信息"""
    type: int
    desc: str = ""


class BilibiliUser(BaseModel):
    """B站用户资料"""
    uid: str
    name: str
    face: str = Field("", description="头像 URL")
    sign: str = Field("", description="个人简介")
    # 榜单接口不返回粉丝数，此时为 None
    follower: Optional[int] = None
    level: int = 0
    official: Optional[BilibiliOfficial] = None


class BilibiliVideo(BaseModel):
    """B站投稿视频"""
    bvid: str
    aid: int = 0
    title: str
    pic: str = ""
    author: str = ""
    mid: int = 0
    created: int = 0
    length: str = ""
    play: int = 0
    danmaku: int = 0


class Thumbnails(BaseModel):
    default: str = ""
    medium: str = ""
    high: str = ""


class YouTubeChannel(BaseModel):
    """YouTube 频道资料"""
    id: str
    title: str
    description: str = ""
    custom_url: Optional[str] = None
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)
    subscriber_count: Optional[int] = None
    video_count: Optional[int] = None
    verified: bool = False


class YouTubeVideo(BaseModel):
    """YouTube 视频"""
    id: str
    title: str
    description: str = ""
    channel_id: str = ""
    channel_title: str = ""
    published_at: str = ""
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)
    duration: str = ""
    view_count: Optional[int] = None
