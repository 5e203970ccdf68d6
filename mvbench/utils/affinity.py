"""
Pin spawned extractor workers to CPU cores.

Pinning happens from the harness right after a worker is spawned, so a
worker may run briefly on any core first. Where psutil exposes no
``cpu_affinity`` (macOS) workers stay unpinned and one warning is logged.
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Sequence

import psutil


Logger = Callable[[str], None]


class AffinityManager:
    """Round-robin assignment of worker indices onto an ordered core list."""

    def __init__(self, cores: Sequence[int] = (), logger: Optional[Logger] = None) -> None:
        self.cores: List[int] = list(cores)
        self.logger = logger or (lambda msg: None)
        self._warned = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any], logger: Optional[Logger] = None) -> "AffinityManager":
        """
        Build from the ``cpu_affinity`` config block.

        ``strategy`` picks which list is filled first; ``efficiency_first``
        puts efficiency cores ahead of performance cores. A disabled block
        yields a manager that pins nothing.
        """
        if not config.get("enabled", False):
            return cls(logger=logger)
        performance = list(config.get("performance_cores") or [])
        efficiency = list(config.get("efficiency_cores") or [])
        if config.get("strategy", "performance_first") == "efficiency_first":
            return cls(efficiency + performance, logger=logger)
        return cls(performance + efficiency, logger=logger)

    @property
    def enabled(self) -> bool:
        return bool(self.cores)

    def core_for(self, index: int) -> Optional[int]:
        if not self.cores:
            return None
        return self.cores[index % len(self.cores)]

    def pin(self, pid: int, index: int) -> bool:
        """Bind worker ``index`` (running as ``pid``) to its core. Returns True if applied."""
        core = self.core_for(index)
        if core is None:
            return False
        try:
            process = psutil.Process(pid)
            if not hasattr(process, "cpu_affinity"):  # pragma: no cover - macOS
                self._log_once("CPU affinity is not supported on this platform; workers run unpinned.")
                return False
            process.cpu_affinity([core])
            return True
        except (psutil.Error, OSError, ValueError) as exc:
            self._log_once(f"could not pin pid {pid} to core {core}: {exc}")
            return False

    def _log_once(self, message: str) -> None:
        if not self._warned:
            self.logger(message)
            self._warned = True
