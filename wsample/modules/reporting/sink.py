"""
阶段4：样本落地（Output Sinks）

用途
- 流结束后将保留的记录写出：TSV/CSV、JSONL、内存
- 调用顺序：write_header(schema) 一次 → 每条记录 write_record(fields) → close()
- 运行失败时不产生有效输出：记录只在整条流处理完后才交给 sinks

实现
- ReportSink 抽象类：统一 write_header / write_record / close 接口
- DelimitedSink：分隔文本（默认制表符），写文件或 stdout（"-"）
- JSONLSink：每条记录一行 JSON，以列名为键
- MemorySink：在内存中保存表头与行（测试、重复运行）
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
import csv
import json
import os
import sys

from wsample.pipeline.errors import ConfigurationError


def _ensure_parent(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


class ReportSink:
    def write_header(self, schema: Sequence[str]) -> None:
        raise NotImplementedError

    def write_record(self, fields: Sequence[str]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class DelimitedSink(ReportSink):
    def __init__(self, path: str = "-", delimiter: str = "\t", ensure_dir: bool = True):
        self.path = path
        self.delimiter = delimiter
        self.ensure_dir = ensure_dir
        self._fh = None
        self._writer = None

    def write_header(self, schema: Sequence[str]) -> None:
        if self.path == "-":
            self._fh = sys.stdout
        else:
            if self.ensure_dir:
                _ensure_parent(self.path)
            self._fh = open(self.path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._fh, delimiter=self.delimiter, lineterminator="\n")
        self._writer.writerow(list(schema))

    def write_record(self, fields: Sequence[str]) -> None:
        self._writer.writerow(list(fields))

    def close(self) -> None:
        if self._fh is None:
            return
        self._fh.flush()
        if self._fh is not sys.stdout:
            self._fh.close()
        self._fh = None


class JSONLSink(ReportSink):
    def __init__(self, path: str, ensure_dir: bool = True):
        self.path = path
        if ensure_dir:
            _ensure_parent(path)
        self._schema: List[str] = []
        self._fh = None

    def write_header(self, schema: Sequence[str]) -> None:
        self._schema = list(schema)
        self._fh = open(self.path, "w", encoding="utf-8")

    def write_record(self, fields: Sequence[str]) -> None:
        row = dict(zip(self._schema, fields))
        self._fh.write(json.dumps(row, ensure_ascii=False) + "\n")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class MemorySink(ReportSink):
    def __init__(self):
        self.header: Optional[List[str]] = None
        self.rows: List[List[str]] = []
        self.closed = False

    def write_header(self, schema: Sequence[str]) -> None:
        self.header = list(schema)

    def write_record(self, fields: Sequence[str]) -> None:
        self.rows.append(list(fields))

    def close(self) -> None:
        self.closed = True


def build_sinks_from_config(cfg: Dict[str, Any]) -> List[ReportSink]:
    """
    根据配置构建 sinks 列表；未配置时默认输出制表符分隔到 stdout
    示例：
    reporting:
      sinks:
        - type: "tsv"
          path: "-"
        - type: "csv"
          path: "out/sample.csv"
        - type: "jsonl"
          path: "out/sample.jsonl"
        - type: "memory"
    """
    reporting = cfg.get("reporting", {}) or {}
    sinks = reporting.get("sinks", None)
    if not sinks:
        return [DelimitedSink("-")]
    out: List[ReportSink] = []
    for s in sinks:
        t = (s.get("type") or "").lower()
        if t == "tsv":
            out.append(DelimitedSink(path=s.get("path", "-"), delimiter=s.get("delimiter", "\t")))
        elif t == "csv":
            out.append(DelimitedSink(path=s.get("path", "-"), delimiter=s.get("delimiter", ",")))
        elif t == "jsonl":
            if "path" not in s:
                raise ConfigurationError("jsonl sink requires a 'path'")
            out.append(JSONLSink(path=s["path"]))
        elif t == "memory":
            out.append(MemorySink())
        else:
            raise ConfigurationError(f"Unknown sink type: {t!r}")
    return out
