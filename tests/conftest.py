"""Shared fixtures: scripted randomness and small record streams."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, List

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


class ScriptedRandom:
    """Stands in for random.Random; hands out a fixed sequence of draws."""

    def __init__(self, values: Iterable[float]):
        self.values: List[float] = list(values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if not self.values:
            raise AssertionError("unexpected random draw")
        return self.values.pop(0)


@pytest.fixture()
def scripted():
    return ScriptedRandom


@pytest.fixture()
def abc_stream():
    schema = ["id", "weight"]
    rows = [["A", "1"], ["B", "1"], ["C", "1"]]
    return schema, rows


@pytest.fixture()
def tsv_file(tmp_path):
    path = tmp_path / "data.tsv"
    path.write_text(
        "id\tregion\tweight\n"
        "S201\tR2\t1.0\n"
        "S202\tR2\t2.0\n"
        "S203\tR3\t3.0\n"
        "S204\tR3\t4.0\n"
        "S205\tR4\t5.0\n",
        encoding="utf-8",
    )
    return path
