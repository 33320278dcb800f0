"""
阶段0：数据类型定义
- Record: 原始输入行及其到达序号
- Candidate: 通过身份过滤的记录（含权重、随机数与采样键）
- Classification: 身份过滤结果
- SampleResult: 保留的记录与运行计数
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Classification(Enum):
    EXCLUDED = "excluded"
    FORCED_INCLUDE = "forced_include"
    NORMAL = "normal"


class PipelineState(Enum):
    INIT = "init"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Record:
    fields: List[str]
    seq: int  # 到达序号：每条读入的行都分配（含被排除的行）


@dataclass
class Candidate:
    record: Record
    weight: float
    randomness: Optional[float]  # 均匀随机数；强制包含时为 None
    key: float
    arrival: int

    @property
    def forced(self) -> bool:
        return self.randomness is None


@dataclass
class SampleResult:
    schema: List[str]
    records: List[Record]  # 按到达顺序
    records_read: int = 0
    excluded: int = 0
    forced: int = 0
    offered: int = 0
    evicted: int = 0
    tie_breaks: int = 0
    conflicts: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def rows(self) -> List[List[str]]:
        return [r.fields for r in self.records]
