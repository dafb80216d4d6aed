"""
测试名称相似度与简介引用检测
"""
import pytest
from bilitube.core.similarity import (
    bio_references,
    check_bio_match,
    count_matching_titles,
    name_similarity,
    normalize_username,
    string_similarity,
)


class TestStringSimilarity:
    """Levenshtein 相似度"""

    @pytest.mark.parametrize("s", ["a", "TestUser", "测试用户", "hello world"])
    def test_identity(self, s):
        assert string_similarity(s, s) == 1.0

    def test_empty_strings(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("abc", "") == 0.0
        assert string_similarity("", "abc") == 0.0

    def test_symmetric(self):
        pairs = [("kitten", "sitting"), ("flaw", "lawn"), ("测试", "测验用户")]
        for a, b in pairs:
            assert string_similarity(a, b) == string_similarity(b, a)

    def test_classic_distance(self):
        # kitten -> sitting: 3 edits, max len 7
        assert string_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_completely_different(self):
        assert string_similarity("abc", "xyz") == 0.0


class TestNormalizeUsername:
    """用户名归一化"""

    def test_strip_separators_and_suffixes(self):
        assert normalize_username("Test_User-Official Channel") == "testuser"

    def test_strip_localized_channel(self):
        assert normalize_username("测试用户频道") == "测试用户"

    def test_case_insensitive_tokens(self):
        assert normalize_username("OFFICIAL_Foo") == "foo"

    def test_name_similarity_uses_normalization(self):
        assert name_similarity("Test_User", "TestUser Official") == 1.0


class TestBioMatch:
    """简介互相引用"""

    def test_bili_bio_mentions_channel_id(self):
        assert bio_references("My YouTube: UCtest123", "", "123456", "UCtest123") == (True, False)

    def test_bili_bio_mentions_youtube_domain(self):
        assert check_bio_match("see youtu.be/xyz", "", "1", "UCabc")

    def test_yt_description_mentions_uid(self):
        assert bio_references("", "Bilibili UID 123456", "123456", "UCabc") == (False, True)

    def test_yt_description_localized_alias(self):
        assert check_bio_match("", "我的B站空间在这里", "999", "UCabc")

    def test_case_insensitive(self):
        assert check_bio_match("WWW.YOUTUBE.COM/@foo", "", "1", "UCabc")
        assert check_bio_match("", "follow me on BILIBILI.COM", "1", "UCabc")

    def test_no_match(self):
        assert not check_bio_match("just a bio", "just a description", "123456", "UCabc")


class TestCountMatchingTitles:
    """视频标题匹配计数"""

    def test_each_source_counted_once(self):
        source = ["Cooking Pasta", "Cooking Pasta"]
        target = ["cooking pasta"]
        # 目标标题可被重复匹配
        assert count_matching_titles(source, target, 0.7) == 2

    def test_source_item_matches_at_most_once(self):
        source = ["Minecraft Ep 1"]
        target = ["minecraft ep 1", "Minecraft Ep 1!"]
        assert count_matching_titles(source, target, 0.7) == 1

    def test_threshold(self):
        assert count_matching_titles(["abcdefghij"], ["abcdefghxy"], 0.7) == 1
        assert count_matching_titles(["abcdefghij"], ["abcdewxyzq"], 0.7) == 0

    def test_empty(self):
        assert count_matching_titles([], ["x"], 0.7) == 0
        assert count_matching_titles(["x"], [], 0.7) == 0
