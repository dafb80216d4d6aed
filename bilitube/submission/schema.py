"""
用户提交映射的请求校验。
"""
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..config.settings import settings
from ..core.exceptions import ValidationError

BILIBILI_UID_PATTERN = re.compile(r"^\d+$")
YOUTUBE_CHANNEL_ID_PATTERN = re.compile(r"^UC[\w-]{22}$")


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    bilibili_uid: str = Field(..., alias="bilibiliUid")
    youtube_channel_id: str = Field(..., alias="youtubeChannelId")
    submitter_email: Optional[EmailStr] = Field(None, alias="submitterEmail")
    notes: Optional[str] = Field(None, max_length=settings.SUBMISSION_NOTES_MAX)

    @field_validator("bilibili_uid")
    @classmethod
    def _check_uid(cls, v: str) -> str:
        if not BILIBILI_UID_PATTERN.match(v):
            raise ValueError("Invalid Bilibili UID")
        return v

    @field_validator("youtube_channel_id")
    @classmethod
    def _check_channel_id(cls, v: str) -> str:
        if not YOUTUBE_CHANNEL_ID_PATTERN.match(v):
            raise ValueError("Invalid YouTube Channel ID")
        return v


def _field_name(loc) -> str:
    field = loc[0] if loc else "__root__"
    info = SubmissionRequest.model_fields.get(field)
    return info.alias if info is not None and info.alias else str(field)


def validate_submission(payload: Dict[str, Any]) -> SubmissionRequest:
    """
    Raises:
        ValidationError: errors 为 字段名(camelCase) -> 错误信息列表
    """
    try:
        return SubmissionRequest.model_validate(payload)
    except PydanticValidationError as e:
        errors: Dict[str, List[str]] = {}
        for err in e.errors():
            errors.setdefault(_field_name(err["loc"]), []).append(err["msg"])
        raise ValidationError(errors) from e
