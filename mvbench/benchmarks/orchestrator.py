"""
Process orchestration for one method-pass.

All workers of a pass are spawned before any wait begins (fan-out), then each
one is reaped in spawn order with a blocking ``os.wait4`` (fan-in). The
``rusage`` returned by the reap is the worker's resource snapshot, so it is
never read before that worker has terminated. There is no timeout: a hung
worker stalls the pass.
"""

from __future__ import annotations

import enum
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from mvbench.methods.base import HarnessSettings, Method
from mvbench.utils.affinity import AffinityManager
from mvbench.utils.resources import (
    WAIT4_AVAILABLE,
    ZERO_SNAPSHOT,
    ResourceSnapshot,
    snapshot_from_rusage,
)
from mvbench.utils.timer import HighPrecisionTimer

Logger = Callable[[str], None]

MIN_STREAMS = 1
MAX_STREAMS = 100


class SpawnError(RuntimeError):
    """A worker could not be started; the whole benchmark run must stop."""

    def __init__(self, method: Method, index: int, cause: OSError, spawned_pids: List[int]) -> None:
        super().__init__(
            f"failed to spawn worker {index} for method '{method.name}': {cause}"
        )
        self.method = method
        self.index = index
        self.cause = cause
        self.spawned_pids = spawned_pids


class TerminationKind(enum.Enum):
    NORMAL_EXIT = "exited"
    KILLED_BY_SIGNAL = "signaled"
    ABNORMAL = "abnormal"
    WAIT_FAILED = "wait-failed"


@dataclass(frozen=True)
class WorkerStatus:
    """Terminal state of one worker. No transition leaves a terminal state."""

    kind: TerminationKind
    code: Optional[int] = None
    signal: Optional[int] = None

    @classmethod
    def normal_exit(cls, code: int) -> "WorkerStatus":
        return cls(TerminationKind.NORMAL_EXIT, code=code)

    @classmethod
    def killed_by_signal(cls, signal: int) -> "WorkerStatus":
        return cls(TerminationKind.KILLED_BY_SIGNAL, signal=signal)

    @classmethod
    def abnormal(cls) -> "WorkerStatus":
        return cls(TerminationKind.ABNORMAL)

    @classmethod
    def wait_failed(cls) -> "WorkerStatus":
        return cls(TerminationKind.WAIT_FAILED)

    @classmethod
    def from_wait_status(cls, status: int) -> "WorkerStatus":
        """Classify a raw ``waitpid``-style status word."""
        if os.WIFEXITED(status):
            return cls.normal_exit(os.WEXITSTATUS(status))
        if os.WIFSIGNALED(status):
            return cls.killed_by_signal(os.WTERMSIG(status))
        return cls.abnormal()

    @classmethod
    def from_returncode(cls, returncode: int) -> "WorkerStatus":
        """Classify a ``Popen.returncode`` (negative means killed by signal)."""
        if returncode < 0:
            return cls.killed_by_signal(-returncode)
        return cls.normal_exit(returncode)

    @property
    def returncode(self) -> int:
        """Popen-style return code; negative for signals, -1 when unknown."""
        if self.kind is TerminationKind.NORMAL_EXIT:
            return self.code
        if self.kind is TerminationKind.KILLED_BY_SIGNAL:
            return -self.signal
        return -1

    @property
    def succeeded(self) -> bool:
        return self.kind is TerminationKind.NORMAL_EXIT and self.code == 0

    def describe(self) -> str:
        if self.kind is TerminationKind.NORMAL_EXIT:
            return f"exited with code {self.code}"
        if self.kind is TerminationKind.KILLED_BY_SIGNAL:
            return f"killed by signal {self.signal}"
        if self.kind is TerminationKind.WAIT_FAILED:
            return "wait failed"
        return "ended abnormally"


@dataclass
class WorkerRun:
    """One spawned worker. ``status`` stays ``None`` until its wait returns."""

    index: int
    pid: int
    output_path: Path
    status: Optional[WorkerStatus] = None
    snapshot: ResourceSnapshot = ZERO_SNAPSHOT
    process: Optional[subprocess.Popen] = field(default=None, repr=False, compare=False)

    @property
    def terminal(self) -> bool:
        return self.status is not None


@dataclass(frozen=True)
class PassOutcome:
    """Everything the orchestrator measured for one method-pass."""

    method: Method
    runs: Tuple[WorkerRun, ...]
    total_time_ms: float

    @property
    def stream_count(self) -> int:
        return len(self.runs)


def validate_stream_count(streams: int) -> int:
    if isinstance(streams, bool) or not isinstance(streams, int):
        raise ValueError(f"Stream count must be an integer, got {streams!r}")
    if not MIN_STREAMS <= streams <= MAX_STREAMS:
        raise ValueError(f"Streams must be between {MIN_STREAMS} and {MAX_STREAMS}.")
    return streams


class ProcessOrchestrator:
    """Spawns and reaps the workers of one method at a time."""

    def __init__(
        self,
        settings: HarnessSettings,
        logger: Optional[Logger] = None,
        warn: Optional[Logger] = None,
        affinity_manager: Optional[AffinityManager] = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or (lambda msg: None)
        self.warn = warn or (lambda msg: None)
        if affinity_manager is None:
            affinity_manager = AffinityManager.from_config(
                settings.cpu_affinity, logger=lambda msg: self.warn(f"[affinity] {msg}")
            )
        self.affinity_manager = affinity_manager

    def build_argv(self, method: Method, input_target: str, output_path: Path) -> List[str]:
        """Worker argv: ``exe input_target output_enabled_flag output_path``."""
        exe = method.resolve_executable(self.settings.executables_root)
        flag = "1" if self.settings.output_enabled else "0"
        return [str(exe), input_target, flag, str(output_path)]

    def build_env(self, method: Method) -> Optional[Dict[str, str]]:
        """Harness environment overlaid with the method's variables; None inherits unchanged."""
        if not method.env:
            return None
        return {**os.environ, **method.env}

    def clear_stale_output(self, path: Path) -> None:
        """Remove a leftover file so a worker that writes nothing parses as empty."""
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.warn(f"could not remove stale output file '{path}': {exc}")

    def run_pass(
        self,
        method: Method,
        input_target: str,
        streams: int,
        output_dir: Path,
    ) -> PassOutcome:
        """
        Spawn ``streams`` workers for ``method`` and block until all terminate.

        Raises:
            SpawnError: a worker could not be started. Workers already
                spawned for this pass are left running and are not reaped.
        """
        validate_stream_count(streams)
        output_dir = Path(output_dir).resolve()
        sink = subprocess.DEVNULL if self.settings.quiet_workers else None
        env = self.build_env(method)
        output_paths = [
            method.output_path(output_dir, index, self.settings.output_extension) for index in range(streams)
        ]
        for output_path in output_paths:
            self.clear_stale_output(output_path)

        self.logger(f"Starting {streams} parallel streams for method: {method.name}")
        timer = HighPrecisionTimer()
        timer.start()

        runs: List[WorkerRun] = []
        for index, output_path in enumerate(output_paths):
            argv = self.build_argv(method, input_target, output_path)
            try:
                proc = subprocess.Popen(argv, stdout=sink, stderr=sink, env=env)
            except OSError as exc:
                raise SpawnError(method, index, exc, [run.pid for run in runs]) from exc
            runs.append(WorkerRun(index=index, pid=proc.pid, output_path=output_path, process=proc))
            self.affinity_manager.pin(proc.pid, index)
            self.logger(f"Spawned worker {index} with pid {proc.pid}")

        for run in runs:
            self._reap(run)
            self.logger(f"Worker {run.index} (pid {run.pid}) {run.status.describe()}")

        timer.stop()
        self.logger(f"All workers done; total wall time elapsed: {timer.elapsed_ms:.2f} ms")
        return PassOutcome(method=method, runs=tuple(runs), total_time_ms=timer.elapsed_ms)

    def _reap(self, run: WorkerRun) -> None:
        proc = run.process
        if not WAIT4_AVAILABLE:  # pragma: no cover - non-POSIX fallback
            try:
                run.status = WorkerStatus.from_returncode(proc.wait())
            except OSError as exc:
                self.warn(f"wait failed for worker {run.index} (pid {run.pid}): {exc}")
                run.status = WorkerStatus.wait_failed()
            run.snapshot = ZERO_SNAPSHOT
            return

        try:
            _, status, usage = os.wait4(run.pid, 0)
        except OSError as exc:
            self.warn(f"wait4 failed for worker {run.index} (pid {run.pid}): {exc}")
            run.status = WorkerStatus.wait_failed()
            run.snapshot = ZERO_SNAPSHOT
            return

        run.status = WorkerStatus.from_wait_status(status)
        run.snapshot = snapshot_from_rusage(usage)
        if proc is not None:
            # reaped behind Popen's back; record it so Popen never polls the pid again
            proc.returncode = run.status.returncode
