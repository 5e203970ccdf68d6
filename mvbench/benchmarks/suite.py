"""
Benchmark driver: runs every configured extractor method under parallel load.

Methods are benchmarked strictly one after another so that one method's
workers never compete with another's. Each method-pass spawns ``streams``
workers, waits for all of them, parses their output files, aggregates the
measurements, and then applies the output-file retention policy.

Progress goes to stdout through ``logger``; warnings go to stderr through
``warn``. A ``SpawnError`` aborts the run, and results gathered before it
remain available in ``BenchmarkSuite.results``.
"""

from __future__ import annotations

import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from mvbench.benchmarks.metrics import BenchmarkResult, aggregate_pass
from mvbench.benchmarks.orchestrator import PassOutcome, ProcessOrchestrator, validate_stream_count
from mvbench.benchmarks.output_parser import ParsedFile, parse_output_file
from mvbench.methods.base import HarnessSettings, Method
from mvbench.utils.resources import host_summary
from mvbench.utils.stats import StatisticsCollector

Logger = Callable[[str], None]


def stderr_warning(message: str) -> None:
    print(f"[warning] {message}", file=sys.stderr, flush=True)


def generate_stream_runs(max_streams: int) -> List[int]:
    """Stream counts for a sweep: 1, 3, 5, then every 5 up to ``max_streams``."""
    validate_stream_count(max_streams)
    steps = [x for x in (1, 3, 5) if x <= max_streams]
    if max_streams > 5:
        steps += list(range(10, max_streams + 1, 5))
    return steps


def format_duration(seconds: float) -> str:
    seconds = max(int(seconds), 0)
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    remaining = seconds % 60
    if remaining == 0:
        return f"{minutes}m"
    return f"{minutes}m{remaining}s"


class BenchmarkSuite:
    """Coordinator for sequential, per-method parallel benchmark passes."""

    def __init__(
        self,
        methods: Sequence[Method],
        settings: HarnessSettings,
        output_dir: Path,
        logger: Optional[Logger] = None,
        warn: Optional[Logger] = None,
        orchestrator: Optional[ProcessOrchestrator] = None,
    ) -> None:
        self.methods = tuple(methods)
        self.settings = settings
        self.output_dir = Path(output_dir)
        self.logger = logger or print
        self.warn = warn or stderr_warning
        self.orchestrator = orchestrator or ProcessOrchestrator(
            settings, logger=self._log_indented, warn=self.warn
        )
        self.results: List[BenchmarkResult] = []
        self.sweep_results: Dict[int, List[BenchmarkResult]] = {}

    def _log_indented(self, message: str) -> None:
        self.logger(f"  {message}")

    def run(self, input_target: str, streams: int) -> List[BenchmarkResult]:
        """Benchmark every method once with ``streams`` workers, in configuration order."""
        validate_stream_count(streams)
        self.results = []
        self._print_banner(input_target, streams)

        start_time = time.time()
        for idx, method in enumerate(self.methods, start=1):
            self.logger(f"[{idx}/{len(self.methods)}] Running: {method.name}")
            result = self.run_method(method, input_target, streams)
            self.results.append(result)
            self.logger(
                f"  Done: {result.frame_count} frames, {result.avg_ms_per_frame:.2f} ms/frame, "
                f"{result.throughput_fps:.1f} FPS"
            )
            self.logger(f"  Elapsed: {format_duration(time.time() - start_time)}")
            self.logger("")
        return list(self.results)

    def run_sweep(self, input_target: str, max_streams: int) -> Dict[int, List[BenchmarkResult]]:
        """Run the full suite once per stream step up to ``max_streams``."""
        steps = generate_stream_runs(max_streams)
        self.logger(f"Stream ranges to test: {steps}")
        self.sweep_results = {}
        for streams in steps:
            self.sweep_results[streams] = self.run(input_target, streams)
        return dict(self.sweep_results)

    def run_method(self, method: Method, input_target: str, streams: int) -> BenchmarkResult:
        """One method-pass: spawn and reap, parse, aggregate, then apply retention."""
        outcome = self.orchestrator.run_pass(method, input_target, streams, self.output_dir)

        parsed: List[ParsedFile] = []
        for run in outcome.runs:
            counts = parse_output_file(run.output_path, logger=self.warn)
            self.logger(
                f"  Parsed file '{run.output_path}': frames={counts.frame_count}, mvs={counts.record_count}"
            )
            parsed.append(counts)

        result = aggregate_pass(outcome, parsed, self.settings.frames_per_stream)
        self._log_worker_spread(outcome)
        self.apply_retention(outcome)
        return result

    def apply_retention(self, outcome: PassOutcome) -> None:
        """Delete per-worker output files according to ``settings.retention``."""
        policy = self.settings.retention
        if policy == "all":
            return
        for run in outcome.runs:
            if policy == "first" and run.index == 0:
                continue
            try:
                run.output_path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.warn(f"could not remove output file '{run.output_path}': {exc}")

    def _log_worker_spread(self, outcome: PassOutcome) -> None:
        cpu = StatisticsCollector.compute_stats([r.snapshot.user_cpu_seconds for r in outcome.runs])
        mem = StatisticsCollector.compute_stats([r.snapshot.peak_rss_kb for r in outcome.runs])
        self.logger(
            f"  Worker CPU: mean {StatisticsCollector.format_time(cpu['mean'])}, "
            f"max {StatisticsCollector.format_time(cpu['max'])}, "
            f"std {StatisticsCollector.format_time(cpu['std'])} | "
            f"Peak memory: mean {StatisticsCollector.format_size(mem['mean'])}, "
            f"max {StatisticsCollector.format_size(mem['max'])}"
        )

    def _print_banner(self, input_target: str, streams: int) -> None:
        host = host_summary()
        self.logger("=" * 80)
        self.logger("MOTION VECTOR EXTRACTOR BENCHMARK")
        self.logger("=" * 80)
        self.logger(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger(f"Input: {input_target}")
        self.logger(f"Streams per method: {streams}")
        self.logger(f"Methods: {len(self.methods)}")
        self.logger(
            f"Host: {host['logical_cpus']} logical CPUs, "
            f"{StatisticsCollector.format_size(host['total_memory_kb'])} memory"
        )
        self.logger(f"Output directory: {self.output_dir} (retention: {self.settings.retention})")
        self.logger("")
