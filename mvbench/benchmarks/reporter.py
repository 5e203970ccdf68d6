"""Fixed-width text tables for benchmark results."""

from __future__ import annotations

import sys
from typing import Dict, List, Optional, Sequence, TextIO

from mvbench.benchmarks.metrics import BenchmarkResult

TABLE_WIDTH = 112
NAME_WIDTH = 38


def _fit(name: str, width: int = NAME_WIDTH) -> str:
    return name if len(name) <= width else name[: width - 1] + "…"


def format_results_table(results: Sequence[BenchmarkResult], streams: int) -> str:
    """Render results in the given order, one row per method."""
    lines: List[str] = []
    lines.append("")
    lines.append("=" * TABLE_WIDTH)
    lines.append("COMPLETE MOTION VECTOR EXTRACTION BENCHMARK".center(TABLE_WIDTH).rstrip())
    lines.append(f"Streams per Method: {streams}".center(TABLE_WIDTH).rstrip())
    lines.append("=" * TABLE_WIDTH)
    lines.append(
        f"{'Method':<{NAME_WIDTH}} | {'Time/Frame':>12} | {'FPS':>7} | {'CPU %':>8} | "
        f"{'Peak Mem KB':>11} | {'Total MVs':>10} | {'Frames':>7} | High Profile"
    )
    lines.append("-" * TABLE_WIDTH)
    for r in results:
        lines.append(
            f"{_fit(r.name):<{NAME_WIDTH}} | {r.avg_ms_per_frame:9.2f} ms | {r.throughput_fps:7.1f} | "
            f"{r.cpu_usage_percent:7.1f}% | {r.memory_peak_kb:11d} | {r.total_records:10d} | "
            f"{r.frame_count:7d} | {'yes' if r.supports_high_profile else 'no'}"
        )
    lines.append("-" * TABLE_WIDTH)

    failed = [r for r in results if r.failed_workers]
    for r in failed:
        lines.append(f"  ! {r.name}: {r.failed_workers}/{r.stream_count} workers did not exit cleanly")
    return "\n".join(lines) + "\n"


def render_results_table(
    results: Sequence[BenchmarkResult],
    streams: int,
    stream: Optional[TextIO] = None,
) -> None:
    out = stream or sys.stdout
    out.write(format_results_table(results, streams))
    out.flush()


def fastest_high_profile(sweep: Dict[int, Sequence[BenchmarkResult]]) -> List[BenchmarkResult]:
    """Lowest time/frame high-profile result at each stream count, in stream order."""
    rows = []
    for streams in sorted(sweep):
        candidates = [r for r in sweep[streams] if r.supports_high_profile and r.frame_count > 0]
        if candidates:
            rows.append(min(candidates, key=lambda r: r.avg_ms_per_frame))
    return rows


def render_fastest_table(
    sweep: Dict[int, Sequence[BenchmarkResult]],
    stream: Optional[TextIO] = None,
) -> None:
    out = stream or sys.stdout
    rows = fastest_high_profile(sweep)
    out.write("\n" + "=" * 80 + "\n")
    out.write("FASTEST HIGH PROFILE METHOD PER STREAM COUNT\n")
    out.write("=" * 80 + "\n")
    if not rows:
        out.write("No high profile methods in results.\n")
        out.flush()
        return
    out.write(f"{'Streams':>7} | {'Method':<{NAME_WIDTH}} | {'Time/Frame':>12} | {'FPS':>7} | {'CPU %':>8}\n")
    out.write("-" * 80 + "\n")
    for r in rows:
        out.write(
            f"{r.stream_count:7d} | {_fit(r.name):<{NAME_WIDTH}} | {r.avg_ms_per_frame:9.2f} ms | "
            f"{r.throughput_fps:7.1f} | {r.cpu_usage_percent:7.1f}%\n"
        )
    out.flush()
