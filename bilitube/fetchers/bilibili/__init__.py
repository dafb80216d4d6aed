from .client import BilibiliClient

__all__ = ["BilibiliClient"]
