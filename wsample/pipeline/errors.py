"""
阶段0：错误类型

- ConfigurationError: 致命，读取任何记录之前抛出
- SchemaError: 致命，某行与表头不一致
- WeightError: 致命，NORMAL 记录的权重不可用
- DegenerateComparisonWarning: 非致命，两个键无法比较（随机裁决）
"""

from typing import Optional


class SamplingError(Exception):
    def __init__(self, message: str, column: Optional[str] = None, arrival: Optional[int] = None):
        super().__init__(message)
        self.column = column
        self.arrival = arrival


class ConfigurationError(SamplingError):
    pass


class SchemaError(SamplingError):
    pass


class WeightError(SamplingError):
    pass


class DegenerateComparisonWarning(UserWarning):
    def __init__(self, message: str, arrivals=(), keys=()):
        super().__init__(message)
        self.arrivals = tuple(arrivals)
        self.keys = tuple(keys)
