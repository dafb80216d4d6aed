"""
提交边界：限流 -> 校验 -> 建单，三种结果分别对应不同的状态。
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.settings import settings
from ..core.exceptions import DataFetchError, RateLimitExceeded, ValidationError
from .guard import SubmissionRateGuard
from .schema import validate_submission
from .tickets import GitHubTicketFiler

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    INVALID = "invalid"
    TOO_MANY_REQUESTS = "too_many_requests"
    FAILED = "failed"


class SubmissionOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: SubmissionStatus
    message: str = ""
    issue_number: Optional[int] = Field(None, alias="issueNumber")
    issue_url: Optional[str] = Field(None, alias="issueUrl")
    errors: Dict[str, List[str]] = Field(default_factory=dict)
    retry_after: Optional[float] = Field(None, alias="retryAfter")


class SubmissionService:
    def __init__(self, guard: SubmissionRateGuard, filer: GitHubTicketFiler):
        self.guard = guard
        self.filer = filer

    async def submit(self, client_id: str, payload: Dict[str, Any]) -> SubmissionOutcome:
        try:
            self.guard.check(client_id)
        except RateLimitExceeded as e:
            logger.info(f"[SubmissionService] Rate limit exceeded for {client_id}")
            return SubmissionOutcome(
                status=SubmissionStatus.TOO_MANY_REQUESTS,
                message="Rate limit exceeded. Please try again later.",
                retry_after=e.retry_after,
            )

        try:
            request = validate_submission(payload)
        except ValidationError as e:
            return SubmissionOutcome(status=SubmissionStatus.INVALID, message="Validation failed", errors=e.errors)

        try:
            ticket = await self.filer.file(request)
        except DataFetchError as e:
            logger.error(f"[SubmissionService] Failed to create submission ticket: {e}")
            return SubmissionOutcome(
                status=SubmissionStatus.FAILED,
                message="Failed to create submission. Please try again later.",
            )

        logger.info(f"[SubmissionService] Filed #{ticket.number} for {request.bilibili_uid} -> {request.youtube_channel_id}")
        return SubmissionOutcome(
            status=SubmissionStatus.ACCEPTED,
            message="Submission received. Verification will be processed automatically.",
            issue_number=ticket.number,
            issue_url=ticket.url,
        )


def create_submission_service() -> SubmissionService:
    """按全局配置组装提交服务"""
    guard = SubmissionRateGuard(limit=settings.SUBMISSION_RATE_LIMIT, window=settings.SUBMISSION_RATE_WINDOW)
    filer = GitHubTicketFiler(
        settings.github_token,
        settings.github_owner,
        settings.github_repo,
        timeout=settings.http_timeout,
    )
    return SubmissionService(guard, filer)
