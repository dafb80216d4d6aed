"""
名称 / 标题相似度与跨平台简介引用检测。
"""
import re
from typing import Iterable, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

_SEPARATORS = re.compile(r"[_\-\s]")
# 频道名常见的泛化后缀
_GENERIC_TOKENS = re.compile(r"official|channel|频道", re.IGNORECASE)

# B站简介里指向 YouTube 的模式
YOUTUBE_PATTERNS = ("youtube.com", "youtu.be")
# YouTube 简介里指向 B站的模式（含中文简称）
BILIBILI_PATTERNS = ("bilibili.com", "b23.tv", "b站", "b站空间")


def string_similarity(a: str, b: str) -> float:
    """
    基于 Levenshtein 编辑距离的相似度：1 - distance / max(len)。

    两个空串视为完全相同（1.0），仅一个为空时为 0.0。
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


def normalize_username(name: str) -> str:
    """
    归一化用户名：小写、去分隔符、去掉 official/channel/频道 等后缀词。

    >>> normalize_username("Test_User-Official Channel")
    'testuser'
    """
    s = name.lower()
    s = _SEPARATORS.sub("", s)
    return _GENERIC_TOKENS.sub("", s)


def name_similarity(bili_name: str, yt_title: str) -> float:
    return string_similarity(normalize_username(bili_name), normalize_username(yt_title))


def _mentions_any(text: str, patterns: Iterable[str]) -> bool:
    return any(p and p in text for p in patterns)


def bio_references(
    bili_sign: str,
    yt_description: str,
    bili_uid: str,
    yt_channel_id: str,
) -> Tuple[bool, bool]:
    """
    大小写不敏感的子串匹配，分别返回两个方向的结果。

    Returns:
        (B站简介提到 YouTube, YouTube 简介提到 B站)
    """
    bili_lower = (bili_sign or "").lower()
    yt_lower = (yt_description or "").lower()

    bili_mentions_yt = _mentions_any(bili_lower, (yt_channel_id.lower(), *YOUTUBE_PATTERNS))
    yt_mentions_bili = _mentions_any(yt_lower, (bili_uid.lower(), *BILIBILI_PATTERNS))
    return bili_mentions_yt, yt_mentions_bili


def check_bio_match(bili_sign: str, yt_description: str, bili_uid: str, yt_channel_id: str) -> bool:
    """任一方向的简介引用了对方平台身份即为匹配"""
    return any(bio_references(bili_sign, yt_description, bili_uid, yt_channel_id))


def count_matching_titles(
    source_titles: Sequence[str],
    target_titles: Sequence[str],
    threshold: float,
) -> int:
    """
    统计有多少个源标题能在目标标题中找到相似度 >= threshold 的匹配。

    每个源标题最多计一次；目标标题可以被多个源标题重复匹配。
    """
    targets = [t.lower() for t in target_titles]
    matches = 0
    for title in source_titles:
        lowered = title.lower()
        for target in targets:
            if string_similarity(lowered, target) >= threshold:
                matches += 1
                break
    return matches
