"""
Fetchers package
"""
from .base import BilibiliSource, YouTubeSource
from .bilibili.client import BilibiliClient
from .youtube.client import YouTubeClient

__all__ = ["BilibiliSource", "YouTubeSource", "BilibiliClient", "YouTubeClient"]
