"""
Record sources for the sampling pipeline

- DelimitedSource: header + rows from a delimited text file (tab by default), read lazily
- MemorySource: schema + rows already in memory (tests, synthetic streams)

Both expose `schema` (column names) and iterate over rows as lists of strings.
Malformed input (undecodable bytes, csv errors) surfaces as SchemaError.
"""

from __future__ import annotations
import csv
import sys
from typing import Iterable, Iterator, List, Optional, Sequence

from wsample.pipeline.errors import SchemaError


def _raise_field_limit() -> None:
    # csv defaults to 131072 chars per field
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return
        except OverflowError:
            limit = int(limit // 10)


class MemorySource:
    def __init__(self, schema: Sequence[str], rows: Iterable[Sequence[str]]):
        self.schema: List[str] = list(schema)
        self._rows = rows

    def __iter__(self) -> Iterator[List[str]]:
        for row in self._rows:
            yield list(row)


class DelimitedSource:
    """
    Usage:
        with DelimitedSource("data.tsv") as src:
            result = pipeline.run(src)
    path "-" reads stdin.
    """

    def __init__(self, path: str, delimiter: str = "\t", encoding: str = "utf-8"):
        self.path = path
        self.delimiter = delimiter
        self.encoding = encoding
        self.schema: List[str] = []
        self._fh = None
        self._reader: Optional[Iterator[List[str]]] = None

    def __enter__(self) -> "DelimitedSource":
        _raise_field_limit()
        if self.path == "-":
            self._fh = sys.stdin
        else:
            self._fh = open(self.path, "r", newline="", encoding=self.encoding)
        self._reader = csv.reader(self._fh, delimiter=self.delimiter)
        try:
            header = next(self._reader, None)
        except (csv.Error, UnicodeDecodeError) as e:
            self.close()
            raise SchemaError(f"Unreadable header in '{self.path}': {e}") from e
        if header is None:
            self.close()
            raise SchemaError(f"Input '{self.path}' has no header row.")
        self.schema = header
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is not None and self._fh is not sys.stdin:
            self._fh.close()
        self._fh = None

    def __iter__(self) -> Iterator[List[str]]:
        if self._reader is None:
            raise RuntimeError("DelimitedSource must be opened with 'with' before iterating")
        arrival = 0
        while True:
            try:
                row = next(self._reader)
            except StopIteration:
                return
            except (csv.Error, UnicodeDecodeError) as e:
                raise SchemaError(
                    f"Unreadable record {arrival} in '{self.path}': {e}", arrival=arrival
                ) from e
            # blank lines
            if not row:
                continue
            yield row
            arrival += 1
