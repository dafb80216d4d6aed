import pytest

from bilitube.core.models import UserMapping, VerificationMetadata


def build_mapping(uid: str = "12345", channel_id: str = "UCabcdefghijklmnopqrstuv", **overrides) -> UserMapping:
    fields = dict(
        bilibili_uid=uid,
        bilibili_username="测试用户",
        bilibili_avatar="https://i0.hdslb.com/face.jpg",
        youtube_channel_id=channel_id,
        youtube_channel_name="Test User",
        verification_level=2,
        verified_at="2025-12-16T00:00:00Z",
        metadata=VerificationMetadata(bio_match=True),
    )
    fields.update(overrides)
    return UserMapping(**fields)


@pytest.fixture
def make_mapping():
    return build_mapping
