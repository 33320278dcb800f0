"""
阶段1：主程序入口
- 功能：加载 YAML 配置（可选），用命令行参数覆盖，运行 SamplingPipeline
- 样本默认以制表符分隔写到 stdout；-o 或 reporting.sinks 可改写目标

示例：
    wsample -f data.tsv -s 100 -w weight --include S201 S202 --exclude S999 --seed 7
"""
import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from wsample.modules.ingest.tabular import DelimitedSource
from wsample.modules.reporting.sink import DelimitedSink, build_sinks_from_config
from wsample.pipeline.errors import SamplingError
from wsample.pipeline.pipeline import SamplingPipeline

log = logging.getLogger("wsample")


def load_config(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log.debug("Starting up")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="wsample", description="Command line tool for random data sampling!")
    p.add_argument("-f", "--file", required=True, help="Input file ('-' for stdin)")
    p.add_argument("-s", "--sample-count", type=int, default=None, help="The number of samples we'd like to get")
    p.add_argument("-w", "--weights", default=None, help="The column with the weights")
    p.add_argument("--include", nargs="+", action="extend", default=None,
                   help="Include these rows - named by Id column")
    p.add_argument("--exclude", nargs="+", action="extend", default=None,
                   help="Exclude these rows - named by Id column")
    p.add_argument("--id-col", default=None, help="Id column - default is the first one")
    p.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible sample")
    p.add_argument("--delimiter", default=None, help="Input delimiter (default: tab)")
    p.add_argument("-o", "--output", default=None, help="Write the sample here instead of stdout")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    return p


def merge_args(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """命令行参数优先于配置文件"""
    out = dict(cfg)
    sp = dict(out.get("sampling", {}) or {})
    overrides = {
        "sample_count": args.sample_count,
        "weight_column": args.weights,
        "id_column": args.id_col,
        "include": args.include,
        "exclude": args.exclude,
        "seed": args.seed,
    }
    for k, v in overrides.items():
        if v is not None:
            sp[k] = v
    out["sampling"] = sp
    if args.delimiter is not None:
        out["input"] = dict(out.get("input", {}) or {}, delimiter=args.delimiter)
    if args.log_level is not None:
        out["logging"] = dict(out.get("logging", {}) or {}, level=args.log_level)
    return out


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = merge_args(load_config(args.config), args)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error reading config: {e}", file=sys.stderr)
        return 1

    setup_logging((cfg.get("logging", {}) or {}).get("level", "WARNING"))
    log.debug("%s", cfg)

    delimiter = (cfg.get("input", {}) or {}).get("delimiter", "\t")
    try:
        pipe = SamplingPipeline(cfg)
        sinks = [DelimitedSink(args.output)] if args.output else build_sinks_from_config(cfg)
        with DelimitedSource(args.file, delimiter=delimiter) as src:
            pipe.run(src, sinks)
    except SamplingError as err:
        print(f"Error processing data: {err}", file=sys.stderr)
        return 1
    except OSError as err:
        print(f"Error processing data: {err}", file=sys.stderr)
        return 1
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
