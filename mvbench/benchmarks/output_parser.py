"""
Parser for the per-worker motion-vector CSV files.

Schema (header is discarded without validation):
    frame,method_id,source,w,h,src_x,src_y,dst_x,dst_y,flags,motion_x,motion_y,motion_scale

Frames are counted as transitions of the leading frame index between
consecutive data lines, so a non-monotonic index sequence over-counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

Logger = Callable[[str], None]

OUTPUT_HEADER = (
    "frame,method_id,source,w,h,src_x,src_y,dst_x,dst_y,flags,"
    "motion_x,motion_y,motion_scale"
)


@dataclass(frozen=True)
class ParsedFile:
    """Counts derived from one worker's output file."""

    frame_count: int = 0
    record_count: int = 0


EMPTY_PARSE = ParsedFile(0, 0)


def count_records(lines: Iterable[str]) -> ParsedFile:
    """Count frame transitions and well-formed records in CSV lines (header included)."""
    iterator = iter(lines)
    if next(iterator, None) is None:
        return EMPTY_PARSE

    frames = 0
    records = 0
    last_frame: Optional[int] = None
    for line in iterator:
        try:
            frame = int(line.split(",", 1)[0].strip())
        except ValueError:
            continue
        records += 1
        if frame != last_frame:
            frames += 1
            last_frame = frame
    return ParsedFile(frame_count=frames, record_count=records)


def parse_output_file(path: Union[str, Path], logger: Optional[Logger] = None) -> ParsedFile:
    """
    Parse one worker output file.

    A missing or unreadable file yields ``(0, 0)`` and a warning through
    ``logger``; it never raises.
    """
    log = logger or (lambda msg: None)
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return count_records(fh)
    except OSError as exc:
        log(f"cannot open output file '{path}': {exc.strerror or exc}")
    return EMPTY_PARSE
