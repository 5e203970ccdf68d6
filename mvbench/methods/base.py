from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


RETENTION_POLICIES: Tuple[str, ...] = ("all", "first", "none")


@dataclass(frozen=True)
class Method:
    """One extractor variant under comparison."""

    name: str
    executable: str
    output_prefix: str
    supports_high_profile: bool = False
    # overlaid on the harness environment, e.g. LD_LIBRARY_PATH for a patched FFmpeg build
    env: Dict[str, str] = field(default_factory=dict, hash=False)

    def resolve_executable(self, root: Path) -> Path:
        """Return the absolute executable path, joining relative paths onto ``root``."""
        exe = Path(self.executable).expanduser()
        if exe.is_absolute():
            return exe
        return (root / exe).resolve()

    def output_path(self, output_dir: Path, index: int, extension: str) -> Path:
        """Per-worker output destination ``<prefix>_<index>.<ext>``."""
        return output_dir / f"{self.output_prefix}_{index}.{extension}"


@dataclass(frozen=True)
class HarnessSettings:
    """Harness-wide options shared by every method-pass."""

    frames_per_stream: int = 298
    output_extension: str = "csv"
    output_enabled: bool = True
    retention: str = "first"
    executables_root: Path = field(default_factory=Path.cwd)
    quiet_workers: bool = False
    cpu_affinity: Dict[str, Any] = field(default_factory=dict)
    config_path: Optional[Path] = None
