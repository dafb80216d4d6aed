"""
多级身份验证：对一个 (B站 UID, YouTube 频道 ID) 候选对逐级打分。

    Level 1  YouTube 认证 + 名称匹配         置信度 0.95 ~ 1.0
    Level 2  简介互相引用                    置信度 0.85
    Level 3  名称 / 视频标题 / 粉丝比例加权    置信度 >= 0.7
    Level 4  人工审核（自动验证失败或出错）
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from ..config.settings import settings
from ..fetchers.base import BilibiliSource, YouTubeSource
from ..infrastructure.utils.time_util import to_iso_z, utc_now
from .models import (
    BilibiliUser,
    UserMapping,
    VerificationLevel,
    VerificationMetadata,
    VerificationResult,
    VerifiedBy,
    YouTubeChannel,
)
from .similarity import bio_references, count_matching_titles, name_similarity

logger = logging.getLogger(__name__)

MANUAL_REVIEW_REASON = "Manual review required"


def audience_ratio_reasonable(followers: Optional[int], subscribers: Optional[int]) -> Optional[bool]:
    """
    订阅数 / 粉丝数 是否落在 [0.5, 2.0]。

    任一计数缺失（或粉丝数为 0）时返回 None，表示该项检查不适用而非失败。
    """
    if followers is None or subscribers is None or followers <= 0:
        return None
    ratio = subscribers / followers
    return settings.AUDIENCE_RATIO_MIN <= ratio <= settings.AUDIENCE_RATIO_MAX


class UserVerifier:
    """
    Multi-level user verification.

    verify() never raises: any fetch failure is folded into a level-4,
    zero-confidence result whose reasons carry the error.
    """

    def __init__(
        self,
        bili_api: BilibiliSource,
        yt_api: YouTubeSource,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.bili_api = bili_api
        self.yt_api = yt_api
        self._clock = clock

    async def verify(self, bili_uid: str, yt_channel_id: str) -> VerificationResult:
        try:
            return await self._run_cascade(bili_uid, yt_channel_id)
        except Exception as e:
            logger.warning(f"[UserVerifier] Verification of {bili_uid} -> {yt_channel_id} failed: {e}")
            return VerificationResult.manual_review(f"Verification failed: {e}")

    async def _run_cascade(self, bili_uid: str, yt_channel_id: str) -> VerificationResult:
        bili_user = await self.bili_api.get_user_info(bili_uid)
        yt_channel = await self.yt_api.get_channel(yt_channel_id)

        metadata = VerificationMetadata(
            bilibili_followers=bili_user.follower,
            youtube_subscribers=yt_channel.subscriber_count,
            youtube_verified=yt_channel.verified,
        )
        similarity = name_similarity(bili_user.name, yt_channel.title)

        # Level 1: YouTube verified + name match
        if yt_channel.verified:
            metadata.username_similarity = similarity
            if similarity >= settings.LEVEL1_NAME_THRESHOLD:
                return self._success(
                    level=1,
                    confidence=0.95 + similarity * 0.05,
                    reasons=[
                        "YouTube channel is verified",
                        f"Username similarity: {similarity * 100:.1f}%",
                    ],
                    metadata=metadata,
                    bili_user=bili_user,
                    yt_channel=yt_channel,
                )

        # Level 2: cross-platform bio mentions
        bili_mentions_yt, yt_mentions_bili = bio_references(
            bili_user.sign, yt_channel.description, bili_uid, yt_channel_id
        )
        metadata.bio_match = bili_mentions_yt or yt_mentions_bili
        if metadata.bio_match:
            metadata.username_similarity = similarity
            reasons = ["Cross-platform bio mentions detected"]
            if bili_mentions_yt:
                reasons.append("Bilibili bio references the YouTube channel")
            if yt_mentions_bili:
                reasons.append("YouTube description references the Bilibili account")
            return self._success(
                level=2,
                confidence=settings.LEVEL2_CONFIDENCE,
                reasons=reasons,
                metadata=metadata,
                bili_user=bili_user,
                yt_channel=yt_channel,
            )

        # Level 3: weighted similarity
        metadata.username_similarity = similarity
        sample = settings.RECENT_VIDEO_SAMPLE
        bili_videos = (await self.bili_api.get_user_videos(bili_uid, 1, sample))[:sample]
        yt_videos = (await self.yt_api.get_channel_videos(yt_channel_id, sample))[:sample]

        matching_videos = count_matching_titles(
            [v.title for v in bili_videos],
            [v.title for v in yt_videos],
            settings.TITLE_MATCH_THRESHOLD,
        )
        metadata.matching_videos = matching_videos
        ratio_ok = audience_ratio_reasonable(bili_user.follower, yt_channel.subscriber_count)

        confidence = 0.0
        reasons: List[str] = []

        if similarity >= 0.8:
            confidence += 0.4
            reasons.append(f"High username similarity: {similarity * 100:.1f}%")
        elif similarity >= 0.6:
            confidence += 0.2
            reasons.append(f"Moderate username similarity: {similarity * 100:.1f}%")

        if matching_videos >= 3:
            confidence += 0.3
            reasons.append(f"{matching_videos} matching video titles")
        elif matching_videos >= 1:
            confidence += 0.15
            reasons.append(f"{matching_videos} matching video title(s)")

        if ratio_ok:
            confidence += 0.15
            reasons.append("Follower count ratio is reasonable")
        elif ratio_ok is None:
            reasons.append("Follower count ratio not checked (missing audience count)")

        # 消除浮点累加误差，避免 0.7 这样的边界值被判为 0.6999...
        confidence = round(confidence, 6)

        if confidence >= settings.LEVEL3_MIN_CONFIDENCE:
            return self._success(
                level=3,
                confidence=confidence,
                reasons=reasons,
                metadata=metadata,
                bili_user=bili_user,
                yt_channel=yt_channel,
            )

        # Level 4: manual review
        return VerificationResult(
            success=False,
            level=4,
            confidence=confidence,
            reasons=["Insufficient confidence for automatic verification", *reasons, MANUAL_REVIEW_REASON],
            metadata=metadata,
        )

    def _success(
        self,
        level: VerificationLevel,
        confidence: float,
        reasons: List[str],
        metadata: VerificationMetadata,
        bili_user: BilibiliUser,
        yt_channel: YouTubeChannel,
    ) -> VerificationResult:
        return VerificationResult(
            success=True,
            level=level,
            confidence=min(confidence, 1.0),
            reasons=reasons,
            metadata=metadata,
            mapping=self.create_mapping(bili_user, yt_channel, level, metadata),
        )

    def create_mapping(
        self,
        bili_user: BilibiliUser,
        yt_channel: YouTubeChannel,
        level: VerificationLevel,
        metadata: VerificationMetadata,
    ) -> UserMapping:
        return UserMapping(
            bilibili_uid=bili_user.uid,
            bilibili_username=bili_user.name,
            bilibili_avatar=bili_user.face or None,
            youtube_channel_id=yt_channel.id,
            youtube_channel_name=yt_channel.title,
            youtube_avatar=yt_channel.thumbnails.high or None,
            verification_level=level,
            verified_at=to_iso_z(self._clock()),
            verified_by=VerifiedBy.AUTO,
            metadata=metadata.model_copy(deep=True),
        )

    async def find_channel(self, bili_uid: str, max_candidates: int = 5) -> Optional[VerificationResult]:
        """
        没有给定频道 ID 时，按 B站用户名搜索 YouTube 频道并逐个验证。

        Returns:
            第一个 Level <= 3 的成功结果；找不到时返回 None
        """
        bili_user = await self.bili_api.get_user_info(bili_uid)
        channels = await self.yt_api.search_channels(bili_user.name, max_candidates)
        logger.info(f"[UserVerifier] {len(channels)} candidate channels for {bili_user.name} ({bili_uid})")

        for channel in channels:
            result = await self.verify(bili_uid, channel.id)
            if result.success and result.level <= 3:
                return result
        return None
