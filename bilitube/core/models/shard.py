"""
分片配置与索引类型。
"""
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 标识符（任一平台） -> 分片相对路径
MappingIndex = Dict[str, str]

SHA256_HEX_LENGTH = 64


class ShardConfig(BaseModel):
    """
    Git 风格的两级目录分片：ab/cd/abcdef12.json

    Attributes:
        level1_length: 一级目录取哈希前几位
        level2_length: 二级目录再取几位
        hash_length: 文件名使用的哈希长度
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    level1_length: int = Field(2, alias="level1Length", gt=0)
    level2_length: int = Field(2, alias="level2Length", gt=0)
    hash_length: int = Field(8, alias="hashLength", gt=0, le=SHA256_HEX_LENGTH)

    @model_validator(mode="after")
    def _levels_fit_in_hash(self) -> "ShardConfig":
        if self.level1_length + self.level2_length > self.hash_length:
            raise ValueError(
                f"level1Length + level2Length ({self.level1_length + self.level2_length}) "
                f"exceeds hashLength ({self.hash_length})"
            )
        return self
