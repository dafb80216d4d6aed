"""
Shard Store: Git 风格两级目录分片的映射存储。

布局::

    <root>/ab/cd/abcd1234.json   # 一条映射一个文件
    <root>/index.json            # 标识符 -> 分片相对路径（派生数据，可随时重建）

同一条映射会被写入两个实例（b2y 以 B站 UID 为键，y2b 以 YouTube 频道 ID 为键），
两份是内容完全相同的镜像拷贝，而不是引用。
"""
import asyncio
import hashlib
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .exceptions import StorageIOError
from .models import MappingIndex, ShardConfig, UserMapping

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"

DEFAULT_SHARD_CONFIG = ShardConfig()


class ShardStore:
    """
    基于文件的分片 KV 存储。

    Attributes:
        base_dir: 存储根目录
        config: 分片配置
    """

    def __init__(self, base_dir: Union[Path, str], config: ShardConfig = DEFAULT_SHARD_CONFIG):
        self.base_dir = Path(base_dir)
        self.config = config

    # ------------------------------------------------------------------
    # 路径计算
    # ------------------------------------------------------------------

    def hash(self, user_id: str) -> str:
        """SHA-256 十六进制摘要，截断到 hash_length 位"""
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return digest[: self.config.hash_length]

    def _levels(self, digest: str) -> Tuple[str, str]:
        l1 = self.config.level1_length
        l2 = self.config.level2_length
        return digest[:l1], digest[l1 : l1 + l2]

    def shard_path(self, user_id: str) -> str:
        """
        分片相对路径。

        >>> ShardStore("data/b2y").shard_path("12345")  # doctest: +SKIP
        '59/94/5994471a.json'
        """
        digest = self.hash(user_id)
        level1, level2 = self._levels(digest)
        return f"{level1}/{level2}/{digest}.json"

    def full_path(self, user_id: str) -> Path:
        return self.base_dir / self.shard_path(user_id)

    def shard_dir(self, user_id: str) -> Path:
        level1, level2 = self._levels(self.hash(user_id))
        return self.base_dir / level1 / level2

    @property
    def index_path(self) -> Path:
        return self.base_dir / INDEX_FILENAME

    # ------------------------------------------------------------------
    # 同步文件操作（在线程中执行）
    # ------------------------------------------------------------------

    @staticmethod
    def _read_json(path: Path) -> Optional[dict]:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}", path=str(path)) from e

        # 空文件是软删除留下的墓碑
        if not raw.strip():
            return None
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning(f"[ShardStore] Unparsable JSON at {path}, treating as absent")
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _write_text_atomic(path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageIOError(f"Failed to write {path}: {e}", path=str(path)) from e

    @staticmethod
    def _dumps(data) -> str:
        return json.dumps(data, ensure_ascii=False, indent=2)

    # ------------------------------------------------------------------
    # 映射读写
    # ------------------------------------------------------------------

    async def read(self, user_id: str) -> Optional[UserMapping]:
        """
        读取映射。

        Returns:
            UserMapping；文件不存在、为空或无法解析时返回 None

        Raises:
            StorageIOError: 非"不存在"类的 I/O 故障
        """
        path = self.full_path(user_id)
        data = await asyncio.to_thread(self._read_json, path)
        if data is None:
            return None
        try:
            return UserMapping.from_record(data)
        except PydanticValidationError as e:
            logger.warning(f"[ShardStore] Malformed mapping for {user_id}: {e.error_count()} errors")
            return None

    async def write(self, user_id: str, mapping: UserMapping) -> None:
        """写入（覆盖）一条映射"""
        path = self.full_path(user_id)
        text = self._dumps(mapping.to_record())
        try:
            await asyncio.to_thread(self._write_text_atomic, path, text)
        except StorageIOError:
            logger.error(f"[ShardStore] Failed to write mapping for {user_id}")
            raise
        logger.debug(f"[ShardStore] Wrote {user_id} -> {self.shard_path(user_id)}")

    async def delete(self, user_id: str) -> None:
        """
        软删除：清空文件内容但保留路径。

        读取方把空文件视为不存在；build_index 会跳过它。
        不存在的映射直接忽略。
        """
        path = self.full_path(user_id)
        exists = await asyncio.to_thread(path.exists)
        if not exists:
            return
        try:
            await asyncio.to_thread(self._write_text_atomic, path, "")
        except StorageIOError:
            logger.error(f"[ShardStore] Failed to delete mapping for {user_id}")
            raise

    async def has(self, user_id: str) -> bool:
        """仅检查文件是否存在，不读取内容"""
        path = self.full_path(user_id)
        try:
            return await asyncio.to_thread(path.is_file)
        except OSError as e:
            raise StorageIOError(f"Failed to stat {path}: {e}", path=str(path)) from e

    async def batch_write(self, mappings: Iterable[Tuple[str, UserMapping]]) -> None:
        """
        并发写入多条映射并等待全部完成。

        不回滚：某条失败不会撤销其他已成功的写入，全部结束后抛出第一个错误。
        """
        pairs = list(mappings)
        results = await asyncio.gather(
            *(self.write(user_id, mapping) for user_id, mapping in pairs),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(f"[ShardStore] batch_write: {len(errors)}/{len(pairs)} writes failed")
            raise errors[0]

    # ------------------------------------------------------------------
    # 索引
    # ------------------------------------------------------------------

    def _scan_records(self) -> List[Tuple[str, Path]]:
        records = []
        if not self.base_dir.exists():
            return records
        for path in sorted(self.base_dir.rglob("*.json")):
            rel = path.relative_to(self.base_dir).as_posix()
            if rel == INDEX_FILENAME:
                continue
            records.append((rel, path))
        return records

    def _build_index_sync(self) -> MappingIndex:
        index: Dict[str, str] = {}
        for rel, path in self._scan_records():
            try:
                data = self._read_json(path)
                if data is None:
                    continue
                mapping = UserMapping.from_record(data)
            except (StorageIOError, PydanticValidationError) as e:
                logger.error(f"[ShardStore] Failed to process {rel}: {e}")
                continue
            # 双向索引，指向同一个文件
            index[mapping.bilibili_uid] = rel
            index[mapping.youtube_channel_id] = rel
        return index

    async def build_index(self) -> MappingIndex:
        """
        全量扫描分片文件，构建 标识符 -> 相对路径 的索引。

        代价为 O(记录数)。调用方必须在一批写入全部完成之后再调用，
        否则可能漏掉尚在进行中的写入。
        """
        index = await asyncio.to_thread(self._build_index_sync)
        logger.info(f"[ShardStore] Built index for {self.base_dir}: {len(index)} keys")
        return index

    async def write_index(self, index: MappingIndex) -> None:
        await asyncio.to_thread(self._write_text_atomic, self.index_path, self._dumps(index))

    async def read_index(self) -> Optional[MappingIndex]:
        """读取索引文件；不存在或格式错误时返回 None"""
        data = await asyncio.to_thread(self._read_json, self.index_path)
        if data is None:
            return None
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
            logger.warning(f"[ShardStore] Malformed index at {self.index_path}")
            return None
        return data

    async def rebuild_index(self) -> MappingIndex:
        index = await self.build_index()
        await self.write_index(index)
        return index


class ShardStores:
    """b2y / y2b 一对存储"""

    def __init__(self, b2y: ShardStore, y2b: ShardStore):
        self.b2y = b2y
        self.y2b = y2b

    async def save(self, mapping: UserMapping) -> None:
        """把同一条映射镜像写入两个方向"""
        await asyncio.gather(
            self.b2y.write(mapping.bilibili_uid, mapping),
            self.y2b.write(mapping.youtube_channel_id, mapping),
        )

    async def rebuild_indexes(self) -> Tuple[MappingIndex, MappingIndex]:
        b2y_index = await self.b2y.rebuild_index()
        y2b_index = await self.y2b.rebuild_index()
        return b2y_index, y2b_index


def create_shard_stores(
    data_dir: Union[Path, str] = "data",
    config: ShardConfig = DEFAULT_SHARD_CONFIG,
) -> ShardStores:
    data_dir = Path(data_dir)
    return ShardStores(
        b2y=ShardStore(data_dir / "b2y", config),
        y2b=ShardStore(data_dir / "y2b", config),
    )
