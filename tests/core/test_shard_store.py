"""
测试 ShardStore 分片存储
"""
import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from bilitube.core.exceptions import StorageIOError
from bilitube.core.models import ShardConfig
from bilitube.core.shard_store import ShardStore, create_shard_stores


@pytest.fixture
def store(tmp_path):
    return ShardStore(tmp_path / "b2y")


class TestShardPath:
    """分片路径计算"""

    def test_known_vector(self, store):
        # sha256("12345") = 5994471a...
        assert store.hash("12345") == "5994471a"
        assert store.shard_path("12345") == "59/94/5994471a.json"

    def test_shape_and_stability(self, store):
        for uid in ["1", "12345", "UCabcdefghijklmnopqrstuv", "测试"]:
            path = store.shard_path(uid)
            segments = path.split("/")
            assert len(segments) == 3
            assert len(segments[0]) == 2
            assert len(segments[1]) == 2
            assert segments[2].endswith(".json")
            assert len(segments[2]) == 8 + len(".json")
            assert path == store.shard_path(uid)

    def test_prefix_of_filename(self, store):
        level1, level2, filename = store.shard_path("999").split("/")
        assert filename.startswith(level1 + level2)

    def test_custom_config(self, tmp_path):
        config = ShardConfig(level1_length=1, level2_length=3, hash_length=12)
        custom = ShardStore(tmp_path, config)
        assert custom.shard_path("12345") == "5/994/5994471abb01.json"
        assert custom.shard_dir("12345") == tmp_path / "5" / "994"

    def test_config_accepts_camel_case(self):
        config = ShardConfig.model_validate({"level1Length": 3, "level2Length": 3, "hashLength": 10})
        assert config.level1_length == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"level1_length": 0},
            {"hash_length": 65},
            {"level1_length": 4, "level2_length": 4, "hash_length": 6},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(PydanticValidationError):
            ShardConfig(**kwargs)


class TestReadWrite:
    """读写、覆盖与软删除"""

    @pytest.mark.asyncio
    async def test_round_trip(self, store, make_mapping):
        mapping = make_mapping()
        await store.write("12345", mapping)

        loaded = await store.read("12345")
        assert loaded == mapping
        assert store.full_path("12345").is_file()

    @pytest.mark.asyncio
    async def test_file_uses_camel_case_keys(self, store, make_mapping):
        await store.write("12345", make_mapping())
        data = json.loads(store.full_path("12345").read_text(encoding="utf-8"))
        assert data["bilibiliUid"] == "12345"
        assert data["verificationLevel"] == 2
        assert data["metadata"] == {"bioMatch": True}
        # 中文不被转义
        assert "测试用户" in store.full_path("12345").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, store):
        assert await store.read("nope") is None
        assert await store.has("nope") is False

    @pytest.mark.asyncio
    async def test_last_write_wins(self, store, make_mapping):
        await store.write("12345", make_mapping(bilibili_username="old"))
        await store.write("12345", make_mapping(bilibili_username="new"))
        loaded = await store.read("12345")
        assert loaded.bilibili_username == "new"

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, store, make_mapping):
        await store.write("12345", make_mapping())
        leftovers = [p for p in store.shard_dir("12345").iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    @pytest.mark.asyncio
    async def test_soft_delete(self, store, make_mapping):
        await store.write("12345", make_mapping())
        await store.delete("12345")

        assert await store.read("12345") is None
        # 墓碑文件仍在，has 只检查存在性
        assert await store.has("12345") is True
        assert store.full_path("12345").read_text(encoding="utf-8") == ""

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store):
        await store.delete("ghost")
        assert not store.full_path("ghost").exists()

    @pytest.mark.asyncio
    async def test_unparsable_file_reads_as_none(self, store):
        path = store.full_path("12345")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        assert await store.read("12345") is None

    @pytest.mark.asyncio
    async def test_non_utf8_file_reads_as_none(self, store):
        path = store.full_path("12345")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert await store.read("12345") is None

    @pytest.mark.asyncio
    async def test_invalid_record_reads_as_none(self, store):
        path = store.full_path("12345")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"bilibiliUid": "12345"}), encoding="utf-8")
        assert await store.read("12345") is None

    @pytest.mark.asyncio
    async def test_read_io_failure_raises(self, store):
        # 目标路径是目录，读取失败但不是"不存在"
        store.full_path("12345").mkdir(parents=True)
        with pytest.raises(StorageIOError):
            await store.read("12345")

    @pytest.mark.asyncio
    async def test_write_io_failure_raises(self, store, make_mapping):
        store.base_dir.mkdir(parents=True)
        level1 = store.shard_path("12345").split("/")[0]
        (store.base_dir / level1).write_text("blocker", encoding="utf-8")
        with pytest.raises(StorageIOError):
            await store.write("12345", make_mapping())


class TestBatchWrite:
    """批量写入"""

    @pytest.mark.asyncio
    async def test_writes_all(self, store, make_mapping):
        pairs = [(str(i), make_mapping(uid=str(i))) for i in range(5)]
        await store.batch_write(pairs)
        for uid, mapping in pairs:
            assert await store.read(uid) == mapping

    @pytest.mark.asyncio
    async def test_first_error_raised_without_rollback(self, store, make_mapping, monkeypatch):
        real_write = ShardStore._write_text_atomic
        bad_paths = {store.full_path("bad1"), store.full_path("bad2")}

        def fake_write(path, text):
            if path in bad_paths:
                raise StorageIOError(f"boom {path.name}", path=str(path))
            real_write(path, text)

        monkeypatch.setattr(ShardStore, "_write_text_atomic", staticmethod(fake_write))

        pairs = [
            ("ok1", make_mapping(uid="ok1")),
            ("bad1", make_mapping(uid="bad1")),
            ("bad2", make_mapping(uid="bad2")),
            ("ok2", make_mapping(uid="ok2")),
        ]
        with pytest.raises(StorageIOError) as exc_info:
            await store.batch_write(pairs)

        assert exc_info.value.path == str(store.full_path("bad1"))
        assert await store.read("ok1") is not None
        assert await store.read("ok2") is not None


class TestIndex:
    """索引构建与读写"""

    @pytest.mark.asyncio
    async def test_build_index_has_both_keys(self, tmp_path, make_mapping):
        stores = create_shard_stores(tmp_path)
        mappings = [
            make_mapping(uid=str(1000 + i), channel_id=f"UC{i:022d}")
            for i in range(4)
        ]
        for mapping in mappings:
            await stores.save(mapping)

        index = await stores.b2y.build_index()
        assert len(index) >= 2 * len(mappings)
        for mapping in mappings:
            rel = index[mapping.bilibili_uid]
            assert index[mapping.youtube_channel_id] == rel
            assert (stores.b2y.base_dir / rel).is_file()

        y2b_index = await stores.y2b.build_index()
        for mapping in mappings:
            assert y2b_index[mapping.youtube_channel_id] == stores.y2b.shard_path(mapping.youtube_channel_id)

    @pytest.mark.asyncio
    async def test_build_index_skips_tombstones_and_garbage(self, store, make_mapping):
        await store.write("1", make_mapping(uid="1", channel_id="UC_one"))
        await store.write("2", make_mapping(uid="2", channel_id="UC_two"))
        await store.delete("2")
        garbage = store.full_path("3")
        garbage.parent.mkdir(parents=True, exist_ok=True)
        garbage.write_text("[]", encoding="utf-8")

        await store.rebuild_index()
        index = await store.build_index()
        assert index == {"1": store.shard_path("1"), "UC_one": store.shard_path("1")}

    @pytest.mark.asyncio
    async def test_build_index_skips_non_utf8_file(self, store, make_mapping):
        await store.write("1", make_mapping(uid="1", channel_id="UC_one"))
        broken = store.full_path("2")
        broken.parent.mkdir(parents=True, exist_ok=True)
        broken.write_bytes(b"\xff\xfe")

        index = await store.build_index()

        assert index == {"1": store.shard_path("1"), "UC_one": store.shard_path("1")}

    @pytest.mark.asyncio
    async def test_build_index_empty_dir(self, store):
        assert await store.build_index() == {}

    @pytest.mark.asyncio
    async def test_index_round_trip(self, store):
        index = {"12345": "59/94/5994471a.json"}
        await store.write_index(index)
        assert await store.read_index() == index
        assert store.index_path.name == "index.json"

    @pytest.mark.asyncio
    async def test_read_index_missing_or_malformed(self, store):
        assert await store.read_index() is None

        store.base_dir.mkdir(parents=True)
        store.index_path.write_text("not json", encoding="utf-8")
        assert await store.read_index() is None

        store.index_path.write_text(json.dumps({"12345": 1}), encoding="utf-8")
        assert await store.read_index() is None

        store.index_path.write_text(json.dumps(["12345"]), encoding="utf-8")
        assert await store.read_index() is None


class TestShardStores:
    """b2y / y2b 镜像写入"""

    @pytest.mark.asyncio
    async def test_mirror_files_identical(self, tmp_path, make_mapping):
        stores = create_shard_stores(tmp_path)
        mapping = make_mapping()
        await stores.save(mapping)

        b2y_file = stores.b2y.full_path(mapping.bilibili_uid)
        y2b_file = stores.y2b.full_path(mapping.youtube_channel_id)
        assert b2y_file.read_bytes() == y2b_file.read_bytes()
        assert b2y_file.parent.parent.parent == tmp_path / "b2y"
        assert await stores.y2b.read(mapping.youtube_channel_id) == mapping

    @pytest.mark.asyncio
    async def test_rebuild_indexes_writes_files(self, tmp_path, make_mapping):
        stores = create_shard_stores(tmp_path)
        await stores.save(make_mapping())
        b2y_index, y2b_index = await stores.rebuild_indexes()

        assert await stores.b2y.read_index() == b2y_index
        assert await stores.y2b.read_index() == y2b_index
        assert len(b2y_index) == len(y2b_index) == 2
