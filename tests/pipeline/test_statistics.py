"""Large-sample checks on selection frequencies (fixed master seeds, generous tolerances)."""

from __future__ import annotations

import random
from collections import Counter

from wsample.modules.ingest.tabular import MemorySource
from wsample.modules.testing.compare import compare_with_weights, selection_frequencies
from wsample.pipeline.pipeline import SamplingPipeline


def test_equal_weights_pairs_are_equally_likely(abc_stream):
    schema, rows = abc_stream
    runs = 3000
    pairs = Counter()
    for seed in range(runs):
        pipe = SamplingPipeline({"sampling": {"sample_count": 2, "weight_column": "weight"}},
                                rng=random.Random(seed))
        result = pipe.run(MemorySource(schema, rows), [])
        pairs[tuple(r.fields[0] for r in result.records)] += 1
    assert set(pairs) == {("A", "B"), ("A", "C"), ("B", "C")}
    for count in pairs.values():
        assert abs(count / runs - 1 / 3) < 0.05


def test_double_weight_is_selected_more_often():
    schema = ["id", "weight"]
    rows = [["A", "1"], ["B", "2"]]
    cfg = {"sampling": {"sample_count": 1, "weight_column": "weight"}}
    freq = selection_frequencies(schema, rows, cfg, runs=4000, seed=17)
    assert freq["B"] > freq["A"]
    assert abs(freq["B"] - 2 / 3) < 0.05
    assert abs(freq["A"] + freq["B"] - 1.0) < 1e-9


def test_frequency_is_monotone_in_weight():
    schema = ["id", "weight"]
    rows = [[f"S{i}", str(w)] for i, w in enumerate([1, 2, 4, 8])]
    cfg = {"sampling": {"sample_count": 2, "weight_column": "weight"}}
    freq = selection_frequencies(schema, rows, cfg, runs=3000, seed=5)
    report = compare_with_weights(schema, rows, cfg, freq)
    assert [r["id"] for r in report] == ["S0", "S1", "S2", "S3"]
    assert all(r["status"]["monotone_ok"] for r in report)
    assert abs(sum(r["frequency"] for r in report) - 2.0) < 1e-9
    assert report[-1]["weight_share"] == 8 / 15


def test_compare_skips_rows_without_usable_weight():
    schema = ["id", "weight"]
    rows = [["X", ""], ["B", "0"], ["A", "1"], ["C", "3"]]
    cfg = {"sampling": {"sample_count": 2, "weight_column": "weight", "include": ["X"], "exclude": ["B"]}}
    freq = selection_frequencies(schema, rows, cfg, runs=200, seed=2)
    assert freq["X"] == 1.0
    assert freq["B"] == 0.0
    report = compare_with_weights(schema, rows, cfg, freq)
    assert [r["id"] for r in report] == ["A", "C"]
    assert report[1]["weight_share"] == 0.75
