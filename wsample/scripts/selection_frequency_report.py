"""
Run the sampler many times over one delimited file and report, per identifier,
how often it was selected next to its weight.

Usage:
  python -m wsample.scripts.selection_frequency_report --file data.tsv --sample-count 5 \
      --weights weight --runs 2000 --out out/compare.jsonl
"""

import argparse
from typing import List, Optional

from wsample.main import load_config
from wsample.modules.ingest.tabular import DelimitedSource
from wsample.modules.testing.compare import compare_with_weights, selection_frequencies, write_compare_results


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--file", required=True, help="delimited input with a header row")
    ap.add_argument("--sample-count", type=int, required=True)
    ap.add_argument("--weights", default=None, help="weight column")
    ap.add_argument("--id-col", default=None, help="id column (default: first)")
    ap.add_argument("--runs", type=int, default=1000)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--delimiter", default="\t")
    ap.add_argument("--config", default=None, help="optional YAML config (sampling.include/exclude etc.)")
    ap.add_argument("--out", default=None, help="write JSONL here as well as printing")
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    sp = dict(cfg.get("sampling", {}) or {})
    sp["sample_count"] = args.sample_count
    if args.weights:
        sp["weight_column"] = args.weights
    if args.id_col:
        sp["id_column"] = args.id_col
    cfg["sampling"] = sp

    # one pass to memory: the report replays the same rows many times
    with DelimitedSource(args.file, delimiter=args.delimiter) as src:
        schema = src.schema
        rows = list(src)

    freq = selection_frequencies(schema, rows, cfg, runs=args.runs, seed=args.seed)
    report = compare_with_weights(schema, rows, cfg, freq)

    print(f"Selection frequency over {args.runs} runs (k={args.sample_count}):")
    for r in report:
        print(r)
    if args.out:
        path = write_compare_results(args.out, report)
        print(f"Compare report written: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
