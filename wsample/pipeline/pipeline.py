"""
Weighted sampling pipeline (identity filter + A-ES keys + bounded selector)

Purpose
- Draw a fixed-size weighted sample without replacement from a record stream in one pass.
- Flow per record: assign arrival index → shape check → identity filter → key → bounded selector.
- At stream end: drain the selector and hand the retained records (arrival order) to the sinks.

States
- INIT → STREAMING → FINALIZING → DONE; any fatal error moves to FAILED and propagates.
- A pipeline instance runs once.

Notes
- Randomness comes from one injected random.Random-like object: one draw per NORMAL record,
  plus one per tie-break. A fixed seed reproduces the output exactly.
- Zero/invalid weights, unknown columns and ragged rows are fatal; there is no partial output.

Config keys
- sampling: { sample_count: 100, weight_column: null, id_column: null, include: [], exclude: [], seed: null }
- reporting.sinks: see modules/reporting/sink.py docstring
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import random

from .errors import ConfigurationError, SchemaError
from .types import Candidate, Classification, PipelineState, Record, SampleResult
from wsample.modules.filters.identity import IdentityFilter
from wsample.modules.reporting.sink import ReportSink, build_sinks_from_config
from wsample.modules.sampling.reservoir import FORCED_KEY, BoundedSelector, parse_weight, sampling_key

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _sample_count(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        raise ConfigurationError(f"Sample count must be a positive integer, got {raw!r}.")
    try:
        k = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Sample count must be a positive integer, got {raw!r}.") from None
    if isinstance(raw, float) and raw != k:
        raise ConfigurationError(f"Sample count must be a positive integer, got {raw!r}.")
    if k <= 0:
        raise ConfigurationError(f"Sample count must be a positive integer, got {raw!r}.")
    return k


class SamplingPipeline:
    def __init__(self, config: Dict[str, Any], rng: Any = None, log: Optional[logging.Logger] = None):
        self.cfg = config or {}
        self.log = log or logger

        sp = self.cfg.get("sampling", {}) or {}
        self.sample_count = _sample_count(sp.get("sample_count"))
        self.weight_column: Optional[str] = sp.get("weight_column")
        self.id_column: Optional[str] = sp.get("id_column")
        self.identity = IdentityFilter(_as_list(sp.get("include")), _as_list(sp.get("exclude")))
        self.seed = sp.get("seed")

        self._rng = rng if rng is not None else random.Random(self.seed)
        self.state = PipelineState.INIT

    # -------------------------- INIT -------------------------- #
    def _resolve_columns(self, schema: Sequence[str]) -> Tuple[Optional[int], int]:
        if not schema:
            raise ConfigurationError("Input schema has no columns.")
        weight_idx = None
        if self.weight_column is not None:
            if self.weight_column not in schema:
                raise ConfigurationError(
                    f"Column '{self.weight_column}' not found.", column=self.weight_column
                )
            weight_idx = list(schema).index(self.weight_column)
        id_idx = 0
        if self.id_column is not None:
            if self.id_column not in schema:
                raise ConfigurationError(f"Id column '{self.id_column}' not found.", column=self.id_column)
            id_idx = list(schema).index(self.id_column)
        return weight_idx, id_idx

    # -------------------------- Stream processing -------------------------- #
    def process_stream(self, source: Any) -> SampleResult:
        """
        Consume `source` (has .schema and iterates rows) once and return the retained sample.
        Leaves the pipeline in FINALIZING; export() completes the run.
        """
        if self.state is not PipelineState.INIT:
            raise RuntimeError(f"SamplingPipeline is single-use (state={self.state.value})")
        try:
            return self._process(source)
        except Exception:
            self.state = PipelineState.FAILED
            raise

    def _process(self, source: Any) -> SampleResult:
        schema = list(source.schema)
        weight_idx, id_idx = self._resolve_columns(schema)
        width = len(schema)

        conflicts = self.identity.conflicts()
        if conflicts:
            self.log.warning("Identifiers in both include and exclude sets are excluded: %s", conflicts)
        self.log.debug(
            "sample_count=%d weight_column=%r id_column=%r identity=%s",
            self.sample_count, self.weight_column, schema[id_idx], self.identity.stats(),
        )

        selector = BoundedSelector(self.sample_count, self._rng, self.log)
        result = SampleResult(schema=schema, records=[], conflicts=conflicts)
        self.state = PipelineState.STREAMING

        for seq, row in enumerate(source):
            result.records_read += 1
            if len(row) != width:
                raise SchemaError(
                    f"Record {seq} has {len(row)} fields, expected {width}.", arrival=seq
                )
            record = Record(fields=list(row), seq=seq)
            cls = self.identity.classify(record.fields[id_idx])

            if cls is Classification.EXCLUDED:
                result.excluded += 1
                continue

            if cls is Classification.FORCED_INCLUDE:
                weight = 1.0 if weight_idx is None else self._forced_weight(record.fields[weight_idx])
                cand = Candidate(record=record, weight=weight, randomness=None, key=FORCED_KEY, arrival=seq)
                result.forced += 1
                if result.forced == self.sample_count + 1:
                    self.log.warning(
                        "More forced includes than sample slots (%d); keeping a random subset.",
                        self.sample_count,
                    )
            else:
                if weight_idx is None:
                    weight = 1.0
                else:
                    weight = parse_weight(record.fields[weight_idx], column=self.weight_column, arrival=seq)
                u = self._rng.random()
                cand = Candidate(record=record, weight=weight, randomness=u, key=sampling_key(weight, u), arrival=seq)

            result.offered += 1
            if selector.offer(cand) is not None:
                result.evicted += 1

        self.state = PipelineState.FINALIZING
        result.records = [c.record for c in selector.drain()]
        result.tie_breaks = selector.tie_breaks
        return result

    def _forced_weight(self, raw: str) -> float:
        # forced includes ignore their weight; keep it for diagnostics when it parses
        try:
            return float(raw)
        except ValueError:
            return float("nan")

    # -------------------------- Export -------------------------- #
    def export(self, result: SampleResult, sinks: Iterable[ReportSink]) -> SampleResult:
        """
        Write the sample: every sink gets its header before any record is written,
        then each retained record; all sinks are closed even when a write fails.
        """
        if self.state is not PipelineState.FINALIZING:
            raise RuntimeError(f"Nothing to export (state={self.state.value})")
        sinks = list(sinks)
        try:
            for sink in sinks:
                sink.write_header(result.schema)
            for rec in result.records:
                for sink in sinks:
                    sink.write_record(rec.fields)
        except Exception:
            self.state = PipelineState.FAILED
            raise
        finally:
            self._close_sinks(sinks)
        self.state = PipelineState.DONE
        self.log.debug(
            "done: read=%d excluded=%d offered=%d evicted=%d kept=%d tie_breaks=%d",
            result.records_read, result.excluded, result.offered, result.evicted,
            len(result.records), result.tie_breaks,
        )
        return result

    def _close_sinks(self, sinks: List[ReportSink]) -> None:
        first_err = None
        for sink in sinks:
            try:
                sink.close()
            except Exception as e:
                self.log.error("closing sink %s failed: %s", type(sink).__name__, e)
                first_err = first_err or e
        if first_err is not None and self.state is not PipelineState.FAILED:
            self.state = PipelineState.FAILED
            raise first_err

    def run(self, source: Any, sinks: Optional[Iterable[ReportSink]] = None) -> SampleResult:
        if sinks is None:
            sinks = build_sinks_from_config(self.cfg)
        result = self.process_stream(source)
        return self.export(result, sinks)
