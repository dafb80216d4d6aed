"""
映射模型：一个 B 站用户与一个 YouTube 频道之间已确认的身份关联。

序列化字段使用 camelCase（与分片文件格式一致），Python 属性使用 snake_case。
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

VerificationLevel = Literal[1, 2, 3, 4]


class VerifiedBy(str, Enum):
    """映射的确认方式"""
    AUTO = "auto"
    MANUAL = "manual"


class VerificationMetadata(BaseModel):
    """验证过程中逐级累积的证据"""
    model_config = ConfigDict(populate_by_name=True)

    bilibili_followers: Optional[int] = Field(None, alias="bilibiliFollowers", description="B站粉丝数")
    youtube_subscribers: Optional[int] = Field(None, alias="youtubeSubscribers", description="YouTube 订阅数")
    avatar_similarity: Optional[float] = Field(None, alias="avatarSimilarity", ge=0.0, le=1.0)
    username_similarity: Optional[float] = Field(None, alias="usernameSimilarity", ge=0.0, le=1.0)
    bio_match: Optional[bool] = Field(None, alias="bioMatch", description="简介是否互相引用")
    youtube_verified: Optional[bool] = Field(None, alias="youtubeVerified")
    matching_videos: Optional[int] = Field(None, alias="matchingVideos", description="标题相似的视频数")
    issue_number: Optional[int] = Field(None, alias="issueNumber", description="用户提交时对应的工单号")


class UserMapping(BaseModel):
    """分片存储中的一条映射记录"""
    model_config = ConfigDict(populate_by_name=True)

    bilibili_uid: str = Field(..., alias="bilibiliUid")
    bilibili_username: str = Field(..., alias="bilibiliUsername")
    bilibili_avatar: Optional[str] = Field(None, alias="bilibiliAvatar")
    youtube_channel_id: str = Field(..., alias="youtubeChannelId")
    youtube_channel_name: str = Field(..., alias="youtubeChannelName")
    youtube_avatar: Optional[str] = Field(None, alias="youtubeAvatar")
    verification_level: VerificationLevel = Field(..., alias="verificationLevel")
    verified_at: str = Field(..., alias="verifiedAt", description="ISO-8601 UTC 时间戳")
    verified_by: VerifiedBy = Field(VerifiedBy.AUTO, alias="verifiedBy")
    metadata: VerificationMetadata = Field(default_factory=VerificationMetadata)

    def to_record(self) -> Dict[str, Any]:
        """转换为写入分片文件的 JSON 对象"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "UserMapping":
        return cls.model_validate(data)


class VerificationResult(BaseModel):
    """
    一次验证尝试的结果（不直接持久化）。

    只有 success 为 True 时才携带 mapping。
    """
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    level: VerificationLevel
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)
    metadata: VerificationMetadata = Field(default_factory=VerificationMetadata)
    mapping: Optional[UserMapping] = None
    issue_number: Optional[int] = Field(None, alias="issueNumber")

    @model_validator(mode="after")
    def _mapping_only_on_success(self) -> "VerificationResult":
        if self.mapping is not None and not self.success:
            raise ValueError("mapping may only be attached to a successful result")
        return self

    @classmethod
    def manual_review(cls, reason: str, issue_number: Optional[int] = None) -> "VerificationResult":
        """构造零置信度的 Level 4 结果"""
        return cls(
            success=False,
            level=4,
            confidence=0.0,
            reasons=[reason],
            issue_number=issue_number,
        )

    def to_output(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
