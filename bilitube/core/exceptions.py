"""
Exception hierarchy shared by the clients, the shard store and the submission boundary.
"""
from typing import Dict, List, Optional


class BiliTubeError(Exception):
    pass


class DataFetchError(BiliTubeError):
    """Any failure reaching a platform API (transport, HTTP status, decode, API error code)."""

    def __init__(self, message: str, platform: Optional[str] = None):
        super().__init__(message)
        self.platform = platform


class StorageIOError(BiliTubeError):
    """Genuine filesystem fault inside a ShardStore. Missing files are not errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ValidationError(BiliTubeError):
    """Submission payload failed schema validation."""

    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__("Validation failed: " + ", ".join(sorted(errors)))
        self.errors = errors


class RateLimitExceeded(BiliTubeError):
    """Per-client submission ceiling reached."""

    def __init__(self, client_id: str, retry_after: float):
        super().__init__(f"Rate limit exceeded for {client_id}, retry in {retry_after:.0f}s")
        self.client_id = client_id
        self.retry_after = retry_after
