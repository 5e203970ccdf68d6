"""Shared pytest fixtures for the benchmark harness.

Provides:
- A factory for fake extractor executables (a POSIX shell wrapper that
  re-executes the current interpreter on a generated worker script)
- Factories for harness settings, methods and worker runs
"""

from __future__ import annotations

import json
import stat
import sys
import textwrap
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from mvbench.benchmarks.orchestrator import PassOutcome, WorkerRun, WorkerStatus
from mvbench.methods.base import HarnessSettings, Method
from mvbench.utils.resources import ResourceSnapshot

HEADER = "frame,method_id,source,w,h,src_x,src_y,dst_x,dst_y,flags,motion_x,motion_y,motion_scale"

WORKER_TEMPLATE = '''
import json
import os
import sys
import time

started = time.time()
input_target, flag, output_path = sys.argv[1:4]

if {cpu_seconds} > 0:
    deadline = time.process_time() + {cpu_seconds}
    while time.process_time() < deadline:
        pass
if {sleep_seconds} > 0:
    time.sleep({sleep_seconds})

if flag == "1":
    with open(output_path, "w") as fh:
        fh.write({header!r} + "\\n")
        for frame in {frames!r}:
            fh.write(str(frame) + ",0,-1,16,16,8,8,8,8,0x0,0,0,4\\n")

if {trace_path!r}:
    with open({trace_path!r}, "a") as fh:
        fh.write(json.dumps({{
            "argv": sys.argv[1:],
            "pid": os.getpid(),
            "env": dict(os.environ),
            "started": started,
            "finished": time.time(),
        }}) + "\\n")

if {kill_signal}:
    os.kill(os.getpid(), {kill_signal})
    time.sleep(5)
sys.exit({exit_code})
'''


def ten_records_five_frames() -> List[int]:
    """Ten data lines spread over five frame transitions."""
    return [0, 0, 1, 1, 2, 2, 3, 3, 4, 4]


def write_extractor(
    directory: Path,
    name: str,
    frames: Sequence[int] = (),
    exit_code: int = 0,
    kill_signal: int = 0,
    cpu_seconds: float = 0.0,
    sleep_seconds: float = 0.0,
    trace_path: Optional[Path] = None,
) -> Path:
    """Create an executable fake extractor named ``name`` inside ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / f"{name}_worker.py"
    script.write_text(
        textwrap.dedent(
            WORKER_TEMPLATE.format(
                cpu_seconds=cpu_seconds,
                sleep_seconds=sleep_seconds,
                header=HEADER,
                frames=list(frames),
                trace_path=str(trace_path) if trace_path else "",
                kill_signal=kill_signal,
                exit_code=exit_code,
            )
        )
    )
    wrapper = directory / name
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return wrapper


def read_trace(trace_path: Path) -> List[dict]:
    if not trace_path.exists():
        return []
    return [json.loads(line) for line in trace_path.read_text().splitlines() if line.strip()]


def make_settings(root: Path, **overrides) -> HarnessSettings:
    values = dict(
        frames_per_stream=298,
        output_extension="csv",
        output_enabled=True,
        retention="all",
        executables_root=root,
        quiet_workers=True,
        cpu_affinity={},
    )
    values.update(overrides)
    return HarnessSettings(**values)


def make_method(
    name: str = "Fake Extractor",
    executable: str = "fake_extractor",
    output_prefix: str = "method0_output",
    supports_high_profile: bool = True,
    env: Optional[Dict[str, str]] = None,
) -> Method:
    return Method(
        name=name,
        executable=executable,
        output_prefix=output_prefix,
        supports_high_profile=supports_high_profile,
        env=env or {},
    )


def make_run(
    index: int = 0,
    peak_rss_kb: int = 0,
    user_cpu_seconds: float = 0.0,
    status: Optional[WorkerStatus] = None,
) -> WorkerRun:
    return WorkerRun(
        index=index,
        pid=1000 + index,
        output_path=Path(f"/tmp/method0_output_{index}.csv"),
        status=status or WorkerStatus.normal_exit(0),
        snapshot=ResourceSnapshot(peak_rss_kb=peak_rss_kb, user_cpu_seconds=user_cpu_seconds),
    )


def make_outcome(runs: Sequence[WorkerRun], total_time_ms: float = 1000.0, method: Optional[Method] = None) -> PassOutcome:
    return PassOutcome(method=method or make_method(), runs=tuple(runs), total_time_ms=total_time_ms)


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    path = tmp_path / "results"
    path.mkdir()
    return path


@pytest.fixture
def extractor_factory(bin_dir: Path) -> Callable[..., Path]:
    """Provide ``write_extractor`` bound to a per-test bin directory."""

    def factory(name: str = "fake_extractor", **kwargs) -> Path:
        return write_extractor(bin_dir, name, **kwargs)

    return factory


@pytest.fixture
def warnings_log() -> List[str]:
    return []


@pytest.fixture
def settings_factory(bin_dir: Path) -> Callable[..., HarnessSettings]:
    """Provide ``make_settings`` rooted at the per-test bin directory."""

    def factory(**overrides) -> HarnessSettings:
        return make_settings(bin_dir, **overrides)

    return factory


@pytest.fixture
def method_factory() -> Callable[..., Method]:
    return make_method


@pytest.fixture
def run_factory() -> Callable[..., WorkerRun]:
    return make_run


@pytest.fixture
def outcome_factory() -> Callable[..., PassOutcome]:
    return make_outcome


@pytest.fixture
def trace_reader() -> Callable[[Path], List[dict]]:
    return read_trace


@pytest.fixture
def ten_frames() -> List[int]:
    return ten_records_five_frames()


@pytest.fixture(autouse=True)
def _isolate_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from its own temporary directory."""
    monkeypatch.chdir(tmp_path)
