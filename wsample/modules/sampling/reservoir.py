"""
阶段3：加权蓄水池采样（Efraimidis–Spirakis，A-ES，对数形式）
- 目标：在单遍流式处理中，按权重保留 k 条代表性记录，包含概率随 weight 增大
- 关键点：
  - 对每条 NORMAL 记录生成随机键：key = (1/weight) * log2(u)，其中 u ~ Uniform(0,1)
    （即经典键 u^(1/weight) 取对数：顺序不变，极端权重下不会下溢）
  - 强制包含的记录使用哨兵键 FORCED_KEY（+inf），不消耗随机数
  - 维护大小为 k 的最小堆（heapq，按 key 排序），保留最大的 k 个 key
  - 无法严格比较的键（相等、NaN）按到达序号抛硬币决定
  - 插入复杂度：O(log k)
"""

import heapq
import logging
import math
from typing import Any, List, Optional

from wsample.pipeline.errors import DegenerateComparisonWarning, WeightError
from wsample.pipeline.types import Candidate

FORCED_KEY = math.inf

logger = logging.getLogger(__name__)


def sampling_key(weight: float, u: float) -> float:
    """
    A-ES 对数键。u == 0.0（random.random() 可能返回）时给出最差键 -inf。
    """
    if u <= 0.0:
        return -math.inf
    return (1.0 / weight) * math.log2(u)


def parse_weight(raw: Optional[str], column: Optional[str] = None, arrival: Optional[int] = None) -> float:
    """
    将权重单元格转换为可用权重：
    - 空值 / 无法解析 / 非有限 / 负数 / 零 → WeightError
    """
    text = (raw or "").strip()
    if not text:
        raise WeightError(
            f"Missing weight in column '{column}' at record {arrival}.", column=column, arrival=arrival
        )
    try:
        weight = float(text)
    except ValueError:
        raise WeightError(
            f"Unparseable weight {raw!r} in column '{column}' at record {arrival}.",
            column=column,
            arrival=arrival,
        ) from None
    if weight == 0.0:
        raise WeightError(
            f"Non-zero weights required for numerical precision (column '{column}', record {arrival}).",
            column=column,
            arrival=arrival,
        )
    if not math.isfinite(weight) or weight < 0.0:
        raise WeightError(
            f"Weight {raw!r} in column '{column}' at record {arrival} must be a positive finite number.",
            column=column,
            arrival=arrival,
        )
    return weight


class _HeapEntry:
    """heapq 只通过 __lt__ 比较元素；比较委托给所属 selector（平局时会抽随机数）。"""

    __slots__ = ("cand", "_selector")

    def __init__(self, cand: Candidate, selector: "BoundedSelector"):
        self.cand = cand
        self._selector = selector

    def __lt__(self, other: "_HeapEntry") -> bool:
        return self._selector._ranks_below(self.cand, other.cand)


class BoundedSelector:
    def __init__(self, capacity: int, rng: Any, log: Optional[logging.Logger] = None):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.k = int(capacity)
        self._rng = rng
        self._log = log or logger
        # 最小堆；堆顶为当前最弱（最小 key）的候选
        self._heap: List[_HeapEntry] = []
        self._drained = False
        self.tie_breaks = 0
        self.events: List[DegenerateComparisonWarning] = []

    def __len__(self) -> int:
        return len(self._heap)

    @property
    def minimum(self) -> Optional[Candidate]:
        return self._heap[0].cand if self._heap else None

    def _ranks_below(self, a: Candidate, b: Candidate) -> bool:
        """
        a 应先于 b 被淘汰时返回 True（a 的 key 更小）。
        既不 < 也不 > 的键（相等、NaN）按到达序号抛硬币。
        """
        if a.key < b.key:
            return True
        if b.key < a.key:
            return False
        return self._break_tie(a, b)

    def _break_tie(self, a: Candidate, b: Candidate) -> bool:
        self.tie_breaks += 1
        later_loses = self._rng.random() < 0.5
        event = DegenerateComparisonWarning(
            f"Keys {a.key!r} (record {a.arrival}) and {b.key!r} (record {b.arrival}) "
            f"could not be ordered; resolved randomly.",
            arrivals=(a.arrival, b.arrival),
            keys=(a.key, b.key),
        )
        self.events.append(event)
        # 强制包含记录之间的平局属正常情况
        if a.forced and b.forced:
            self._log.debug("%s", event)
        else:
            self._log.warning("%s", event)
        if later_loses:
            return a.arrival > b.arrival
        return a.arrival < b.arrival

    def offer(self, candidate: Candidate) -> Optional[Candidate]:
        """
        提交一个候选：
        - 未满：直接入堆
        - 已满：仅当候选优于堆顶（最小键）时替换堆顶
        返回被丢弃的候选（被淘汰的堆顶或被拒绝的新候选），无丢弃时返回 None
        """
        if self._drained:
            raise RuntimeError("BoundedSelector already drained")
        self._log.debug("pushing record %d key=%r", candidate.arrival, candidate.key)
        entry = _HeapEntry(candidate, self)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
            return None
        weakest = self._heap[0].cand
        if self._ranks_below(weakest, candidate):
            heapq.heapreplace(self._heap, entry)
            self._log.debug("removing record %d key=%r", weakest.arrival, weakest.key)
            return weakest
        self._log.debug("removing record %d key=%r", candidate.arrival, candidate.key)
        return candidate

    def drain(self) -> List[Candidate]:
        """
        按到达顺序返回保留的候选；之后 selector 不可再用
        """
        if self._drained:
            raise RuntimeError("BoundedSelector already drained")
        self._drained = True
        out = sorted((e.cand for e in self._heap), key=lambda c: c.arrival)
        self._heap = []
        return out
