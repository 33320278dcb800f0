"""
阶段2：身份过滤（include / exclude）
- 按标识列的取值将记录分为 EXCLUDED / FORCED_INCLUDE / NORMAL
- 同时出现在两个集合中的标识：排除优先
- 纯分类，无副作用
"""

from typing import Iterable, List, Optional

from wsample.pipeline.types import Classification


class IdentityFilter:
    def __init__(self, include: Optional[Iterable[str]] = None, exclude: Optional[Iterable[str]] = None):
        self.include = frozenset(str(x) for x in (include or []))
        self.exclude = frozenset(str(x) for x in (exclude or []))

    def classify(self, identity: str) -> Classification:
        if identity in self.exclude:
            return Classification.EXCLUDED
        if identity in self.include:
            return Classification.FORCED_INCLUDE
        return Classification.NORMAL

    def conflicts(self) -> List[str]:
        """同时出现在 include 与 exclude 中的标识（按排除处理）"""
        return sorted(self.include & self.exclude)

    def stats(self):
        return {
            "include": len(self.include),
            "exclude": len(self.exclude),
            "conflicts": len(self.include & self.exclude),
        }
