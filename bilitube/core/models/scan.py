"""
扫描与批量验证的输入输出模型。
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .profiles import BilibiliUser


class HotRankingType(str, Enum):
    """B站榜单类型"""
    MUST_WATCH = "must-watch"  # 入站必刷
    HOT = "hot"  # 热门排行
    TOP_100 = "top-100"  # 百大UP主


class ScanResult(BaseModel):
    """一次榜单扫描的结果"""
    model_config = ConfigDict(populate_by_name=True)

    type: HotRankingType
    users: List[BilibiliUser] = Field(default_factory=list, description="尚无映射的新用户")
    scanned_at: str = Field(..., alias="scannedAt")
    total_scanned: int = Field(0, alias="totalScanned")
    new_users: int = Field(0, alias="newUsers")

    def to_output(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScannerConfig(BaseModel):
    """扫描运行参数"""
    model_config = ConfigDict(populate_by_name=True)

    cold_start: bool = Field(..., alias="coldStart")
    max_users: int = Field(100, alias="maxUsers")
    delay_ms: int = Field(1000, alias="delayMs")


class WorkItem(BaseModel):
    """批量验证的一个工作项；ytChannelId 缺省时按用户名搜索频道"""
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    yt_channel_id: Optional[str] = Field(None, alias="ytChannelId")
    issue_number: Optional[int] = Field(None, alias="issueNumber")
