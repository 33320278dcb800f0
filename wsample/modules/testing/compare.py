"""
Repeat the pipeline over one input with fresh seeds and compare how often each
identifier was selected against its weight.

Usage:
    from wsample.modules.testing.compare import selection_frequencies, compare_with_weights
    freq = selection_frequencies(schema, rows, cfg, runs=2000, seed=1)
    rows = compare_with_weights(schema, rows, cfg, freq)
    write_compare_results("out/compare.jsonl", rows)
"""

from __future__ import annotations
import json
import os
import random
from collections import defaultdict
from typing import Any, Dict, List, Sequence

from wsample.modules.ingest.tabular import MemorySource
from wsample.modules.sampling.reservoir import parse_weight
from wsample.pipeline.errors import WeightError
from wsample.pipeline.pipeline import SamplingPipeline


def selection_frequencies(
    schema: Sequence[str],
    rows: Sequence[Sequence[str]],
    cfg: Dict[str, Any],
    runs: int = 1000,
    seed: int = 0,
) -> Dict[str, float]:
    """Share of runs in which each identifier appears in the sample."""
    sp = cfg.get("sampling", {}) or {}
    id_col = sp.get("id_column")
    id_idx = list(schema).index(id_col) if id_col else 0

    master = random.Random(int(seed))
    counts: Dict[str, int] = defaultdict(int)
    for _ in range(int(runs)):
        pipe = SamplingPipeline(cfg, rng=random.Random(master.getrandbits(64)))
        result = pipe.run(MemorySource(schema, rows), sinks=[])
        for rec in result.records:
            counts[rec.fields[id_idx]] += 1
    ids = [str(r[id_idx]) for r in rows]
    return {i: counts.get(i, 0) / float(runs) for i in ids}


def compare_with_weights(
    schema: Sequence[str],
    rows: Sequence[Sequence[str]],
    cfg: Dict[str, Any],
    frequencies: Dict[str, float],
) -> List[Dict[str, Any]]:
    """
    One row per identifier, sorted by weight: weight, single-draw share w/sum(w),
    observed frequency and whether frequency is non-decreasing in weight (with tolerance).
    Rows whose weight cell is not a usable weight are left out.
    """
    sp = cfg.get("sampling", {}) or {}
    id_col = sp.get("id_column")
    w_col = sp.get("weight_column")
    id_idx = list(schema).index(id_col) if id_col else 0
    w_idx = list(schema).index(w_col) if w_col else None

    weighted = []
    for r in rows:
        if w_idx is None:
            w = 1.0
        else:
            # forced-include and excluded rows may carry blank or zero weights
            try:
                w = parse_weight(r[w_idx], column=w_col)
            except WeightError:
                continue
        weighted.append((str(r[id_idx]), w))
    total = sum(w for _, w in weighted) or 1.0

    out: List[Dict[str, Any]] = []
    tol = 0.02
    prev_freq = None
    for ident, w in sorted(weighted, key=lambda x: x[1]):
        freq = frequencies.get(ident, 0.0)
        monotone_ok = prev_freq is None or freq + tol >= prev_freq
        out.append(
            {
                "id": ident,
                "weight": w,
                "weight_share": w / total,
                "frequency": freq,
                "status": {"monotone_ok": monotone_ok},
            }
        )
        prev_freq = freq
    return out


def write_compare_results(out_path: str, rows: List[Dict[str, Any]]) -> str:
    """Write comparison rows as JSONL and return the file path."""
    d = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(d, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        for r in rows:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")
    return out_path
