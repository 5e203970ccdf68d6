import numpy as np
from typing import Dict, List


class StatisticsCollector:
    """Summarize per-worker measurements of a method-pass."""

    @staticmethod
    def compute_stats(values: List[float]) -> Dict[str, float]:
        """Compute spread statistics; an empty list yields all zeros."""
        if not values:
            return {key: 0.0 for key in ('mean', 'median', 'std', 'min', 'max', 'p95', 'p99')}
        arr = np.asarray(values, dtype=float)
        return {
            'mean': float(np.mean(arr)),
            'median': float(np.median(arr)),
            'std': float(np.std(arr)),
            'min': float(np.min(arr)),
            'max': float(np.max(arr)),
            'p95': float(np.percentile(arr, 95)),
            'p99': float(np.percentile(arr, 99)),
        }

    @staticmethod
    def format_time(seconds: float) -> str:
        """Format time in appropriate unit (s, ms, μs)."""
        if seconds >= 1:
            return f"{seconds:.3f} s"
        elif seconds >= 1e-3:
            return f"{seconds * 1e3:.3f} ms"
        else:
            return f"{seconds * 1e6:.3f} μs"

    @staticmethod
    def format_size(kilobytes: float) -> str:
        """Format a kilobyte count as KB, MB or GB."""
        if kilobytes >= 1024 * 1024:
            return f"{kilobytes / (1024 * 1024):.2f} GB"
        elif kilobytes >= 1024:
            return f"{kilobytes / 1024:.2f} MB"
        else:
            return f"{kilobytes:.0f} KB"
