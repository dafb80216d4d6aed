"""
把通过校验的提交登记为 GitHub issue，供验证工作流拾取。
"""
import logging
from typing import NamedTuple, Optional

import httpx

from ..core.exceptions import DataFetchError
from .schema import SubmissionRequest

logger = logging.getLogger(__name__)

TICKET_LABELS = ["user-mapping", "pending-verification"]


class Ticket(NamedTuple):
    number: int
    url: str


def render_issue_body(request: SubmissionRequest) -> str:
    lines = [
        "## User Mapping Submission",
        "",
        f"**Bilibili UID**: {request.bilibili_uid}",
        f"**YouTube Channel ID**: {request.youtube_channel_id}",
    ]
    if request.submitter_email:
        lines += ["", f"**Submitter Email**: {request.submitter_email}"]
    if request.notes:
        lines += ["", "### Notes", request.notes]
    lines += [
        "",
        "---",
        "",
        "*This issue was automatically created by the BiliTube submission system.*",
        "*The verification workflow will run automatically to validate this mapping.*",
    ]
    return "\n".join(lines)


class GitHubTicketFiler:
    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self._transport = transport

    async def file(self, request: SubmissionRequest) -> Ticket:
        url = f"https://api.github.com/repos/{self.owner}/{self.repo}/issues"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }
        body = {
            "title": f"User Mapping: {request.bilibili_uid} -> {request.youtube_channel_id}",
            "body": render_issue_body(request),
            "labels": TICKET_LABELS,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as e:
                logger.error(f"[GitHubTicketFiler] Request failed: {e}")
                raise DataFetchError(f"Request failed: {e}", platform="github") from e

        if response.status_code != 201:
            logger.error(f"[GitHubTicketFiler] Issue creation failed: {response.status_code} {response.text[:200]}")
            raise DataFetchError(f"HTTP {response.status_code}", platform="github")

        try:
            data = response.json()
            return Ticket(number=int(data["number"]), url=str(data["html_url"]))
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"[GitHubTicketFiler] Unexpected issue payload: {response.text[:200]}")
            raise DataFetchError(f"Malformed issue response: {e}", platform="github") from e
