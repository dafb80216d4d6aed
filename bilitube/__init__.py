"""
BiliTube: Bilibili <-> YouTube creator identity reconciliation.
"""
__version__ = "0.1.0"
