from .client import YouTubeClient
from .quota import QuotaManager

__all__ = ["YouTubeClient", "QuotaManager"]
