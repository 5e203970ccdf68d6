"""
Command-line entry point for the extractor benchmark.

Usage examples:
    mvbench clip.mp4
    mvbench rtsp://camera/stream 8 results/ --retention all
    mvbench clip.mp4 20 results/ --sweep

Exit codes: 0 on success, 1 when a worker cannot be spawned, 2 on usage or
configuration errors (raised before any worker is started).
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from pathlib import Path
from typing import List, Optional

from mvbench.benchmarks.orchestrator import MAX_STREAMS, MIN_STREAMS, SpawnError
from mvbench.benchmarks.reporter import render_fastest_table, render_results_table
from mvbench.benchmarks.suite import BenchmarkSuite
from mvbench.methods import RETENTION_POLICIES, ConfigError, MethodFactory

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def stream_count(value: str) -> int:
    # int() would also take "+5", "1_0" and surrounding whitespace
    if not (value.isascii() and value.isdigit()):
        raise argparse.ArgumentTypeError(f"invalid stream count: {value!r}")
    streams = int(value)
    if not MIN_STREAMS <= streams <= MAX_STREAMS:
        raise argparse.ArgumentTypeError(f"Streams must be between {MIN_STREAMS} and {MAX_STREAMS}.")
    return streams


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mvbench",
        description="Benchmark motion-vector extractors under parallel load",
    )
    parser.add_argument("input", help="Input video file or RTSP URL handed to every worker")
    parser.add_argument(
        "streams",
        nargs="?",
        type=stream_count,
        default=1,
        help=f"Concurrent workers per method ({MIN_STREAMS}-{MAX_STREAMS}, default 1)",
    )
    parser.add_argument(
        "output_dir",
        nargs="?",
        default=None,
        help="Directory for per-worker output files (default: current directory)",
    )
    parser.add_argument("--config", default=None, help="Path to benchmark configuration JSON")
    parser.add_argument(
        "--retention",
        choices=RETENTION_POLICIES,
        default=None,
        help="Which per-worker output files to keep after a method-pass",
    )
    parser.add_argument(
        "--frames-per-stream",
        type=positive_int,
        default=None,
        help="Assumed frames per stream used for time/frame and FPS",
    )
    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Run the suite for stream counts 1, 3, 5, 10, ... up to STREAMS",
    )
    parser.add_argument("--quiet-workers", action="store_true", help="Discard worker stdout/stderr")
    return parser


def _prepare_output_dir(parser: argparse.ArgumentParser, raw: Optional[str]) -> Path:
    output_dir = Path(raw).expanduser() if raw else Path.cwd()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        parser.error(f"cannot create output directory '{output_dir}': {exc}")
    if not output_dir.is_dir() or not os.access(output_dir, os.W_OK):
        parser.error(f"output directory '{output_dir}' is not writable")
    return output_dir.resolve()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        factory = MethodFactory(config_path=args.config)
    except ConfigError as exc:
        parser.error(str(exc))

    overrides = {}
    if args.retention is not None:
        overrides["retention"] = args.retention
    if args.frames_per_stream is not None:
        overrides["frames_per_stream"] = args.frames_per_stream
    if args.quiet_workers:
        overrides["quiet_workers"] = True
    settings = dataclasses.replace(factory.settings, **overrides)

    output_dir = _prepare_output_dir(parser, args.output_dir)
    suite = BenchmarkSuite(factory.get_methods(), settings, output_dir)

    try:
        if args.sweep:
            sweep = suite.run_sweep(args.input, args.streams)
            for streams, results in sweep.items():
                render_results_table(results, streams)
            render_fastest_table(sweep)
        else:
            results = suite.run(args.input, args.streams)
            render_results_table(results, args.streams)
    except SpawnError as exc:
        for streams, results in suite.sweep_results.items():
            render_results_table(results, streams)
        if suite.results:
            render_results_table(suite.results, suite.results[0].stream_count)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FATAL
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
