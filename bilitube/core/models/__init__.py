"""
Core domain models for the BiliTube identity reconciliation engine.
"""
from .mapping import (
    UserMapping,
    VerificationLevel,
    VerificationMetadata,
    VerificationResult,
    VerifiedBy,
)
from .profiles import (
    BilibiliOfficial,
    BilibiliUser,
    BilibiliVideo,
    Thumbnails,
    YouTubeChannel,
    YouTubeVideo,
)
from .scan import HotRankingType, ScannerConfig, ScanResult, WorkItem
from .shard import MappingIndex, ShardConfig

__all__ = [
    "UserMapping",
    "VerificationLevel",
    "VerificationMetadata",
    "VerificationResult",
    "VerifiedBy",
    "BilibiliOfficial",
    "BilibiliUser",
    "BilibiliVideo",
    "Thumbnails",
    "YouTubeChannel",
    "YouTubeVideo",
    "HotRankingType",
    "ScannerConfig",
    "ScanResult",
    "WorkItem",
    "MappingIndex",
    "ShardConfig",
]
